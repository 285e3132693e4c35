"""Configuration constants for retype application."""

# Persistence
SAVE_THROTTLE_MS = 1000       # Minimum gap between two snapshot writes
SNAPSHOT_KEY_PREFIX = 'typing-progress-'
DEFAULT_STORAGE = 'file'      # 'file' or 'postgres'

# Input
MAX_KEYSTROKES_PER_EDIT = 10000  # Upper bound on key presses reported for one edit or event

# Sentence ingestion
MIN_SENTENCE_LENGTH = 2       # Sentences of one character or less are dropped
HASH_SEPARATOR = '\n'         # Joins sentences before hashing
ESTIMATED_CHARS_PER_MINUTE = 100  # Used for the setup-time estimate

# Session lifecycle states
STATE_SETUP = 'setup'
STATE_RUNNING = 'running'
STATE_COMPLETED = 'completed'
STATE_ABANDONED = 'abandoned'
