from .models import PracticeSession
from .contribution import Contribution, contribution_sign
from .distance import levenshtein_distance
from .errors import RetypeError, InvalidState, MalformedSnapshot, HashComputationFailure
from .interfaces import SnapshotStore
from .metrics import (
    calculate_accuracy, calculate_speed, calculate_productivity,
    earned_chars, format_productivity, session_metrics
)
from .snapshot import Snapshot, SnapshotRecorder, serialize, deserialize, resume, snapshot_key
from .utils import split_into_sentences, compute_content_hash, shuffle_sentences
from .config import (
    SAVE_THROTTLE_MS, SNAPSHOT_KEY_PREFIX,
    STATE_SETUP, STATE_RUNNING, STATE_COMPLETED, STATE_ABANDONED
)

__all__ = [
    'PracticeSession', 'Contribution', 'contribution_sign',
    'levenshtein_distance',
    'RetypeError', 'InvalidState', 'MalformedSnapshot', 'HashComputationFailure',
    'SnapshotStore',
    'calculate_accuracy', 'calculate_speed', 'calculate_productivity',
    'earned_chars', 'format_productivity', 'session_metrics',
    'Snapshot', 'SnapshotRecorder', 'serialize', 'deserialize', 'resume', 'snapshot_key',
    'split_into_sentences', 'compute_content_hash', 'shuffle_sentences',
    'SAVE_THROTTLE_MS', 'SNAPSHOT_KEY_PREFIX',
    'STATE_SETUP', 'STATE_RUNNING', 'STATE_COMPLETED', 'STATE_ABANDONED'
]
