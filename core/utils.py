"""Utility functions for retype application."""

import hashlib
import random
import re

from .config import HASH_SEPARATOR, MIN_SENTENCE_LENGTH
from .errors import HashComputationFailure

# A run of text up to and including sentence-final punctuation (plus any
# closing brackets or quotes), or a trailing fragment with no terminator.
# A period only ends a sentence when followed by whitespace or end of line.
_SENTENCE_RE = re.compile(
    r'[^。．！？!?]*?(?:[。．！？!?]+|\.(?=\s|$))[」』）)"\'\]]*'
    r'|[^。．！？!?]+$'
)


def segment_sentences(text: str) -> list[str]:
    """Split text into sentences on sentence-final punctuation and newlines."""
    segments = []
    for line in text.splitlines():
        for match in _SENTENCE_RE.findall(line):
            match = match.strip()
            if match:
                segments.append(match)
    return segments


def split_into_sentences(text: str, split_pattern: str = '', filter_pattern: str = '',
                         filter_replacement: str = '', use_segmenter: bool = False) -> list[str]:
    """Turn raw practice material into a sentence set.

    The text is first rewritten with filter_pattern -> filter_replacement,
    then split on split_pattern (the whole text is one part when it is
    empty), optionally segmented further into sentences. Parts of one
    character or less are dropped. Invalid patterns raise re.error.
    """
    text = text.strip()
    if not text:
        return []

    if filter_pattern:
        text = re.sub(filter_pattern, filter_replacement, text)

    if split_pattern:
        parts = [p for p in re.split(split_pattern, text) if p and p.strip()]
    else:
        parts = [text]

    if use_segmenter:
        segmented = []
        for part in parts:
            segmented.extend(segment_sentences(part))
        parts = segmented

    return [p.strip() for p in parts if len(p.strip()) >= MIN_SENTENCE_LENGTH]


def compute_content_hash(sentences: list[str]) -> str:
    """SHA-256 hex digest of the sentences joined by newlines."""
    try:
        text = HASH_SEPARATOR.join(sentences)
        digest = hashlib.sha256(text.encode('utf-8'))
    except (TypeError, ValueError) as e:
        raise HashComputationFailure(f"Could not hash sentence set: {e}") from e
    return digest.hexdigest()


def shuffle_sentences(sentences: list[str], rng: random.Random | None = None) -> list[str]:
    """Return a shuffled copy (Fisher-Yates) of the sentences."""
    shuffled = list(sentences)
    (rng or random).shuffle(shuffled)
    return shuffled
