"""Session snapshots: codec, throttled recording and resume."""

import logging
import random
import time
from typing import Annotated, Callable

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr, ValidationError, model_validator

from .config import SAVE_THROTTLE_MS, SNAPSHOT_KEY_PREFIX
from .errors import HashComputationFailure, MalformedSnapshot
from .interfaces import SnapshotStore
from .models import PracticeSession
from .utils import compute_content_hash

logger = logging.getLogger(__name__)

Count = Annotated[StrictInt, Field(ge=0)]


class Snapshot(BaseModel):
    """Persisted progress for one sentence set."""

    model_config = ConfigDict(extra='ignore')

    original_sentences: list[StrictStr] = Field(alias='originalSentences', min_length=1)
    randomize_order: StrictBool = Field(alias='randomizeOrder')
    completed_sentences: list[Count] = Field(alias='completedSentences')
    # Older snapshots predate these counters
    committed_chars: Count = Field(0, alias='committedChars')
    contribution_positive: Count = Field(0, alias='contributionPositive')
    contribution_negative: Count = Field(0, alias='contributionNegative')
    contribution_neutral: Count = Field(0, alias='contributionNeutral')
    elapsed_time: Count = Field(alias='elapsedTime')
    skipped_sentences: Count = Field(alias='skippedSentences')
    current_index: Count = Field(alias='currentIndex')
    timestamp: Count

    @model_validator(mode='after')
    def check_indices(self) -> 'Snapshot':
        total = len(self.original_sentences)
        if self.current_index > total:
            raise ValueError(f"currentIndex {self.current_index} is past the {total} sentences")
        for index in self.completed_sentences:
            if index >= total:
                raise ValueError(f"completed index {index} is out of range for {total} sentences")
        return self

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


def snapshot_key(content_hash: str) -> str:
    """Storage key for a content hash."""
    return f"{SNAPSHOT_KEY_PREFIX}{content_hash}"


def serialize(session: PracticeSession, now_ms: int = None) -> dict:
    """Capture the persisted fields of a session.

    Live input and the in-flight keystroke buffers are not captured.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return {
        'originalSentences': list(session.original_sentences),
        'randomizeOrder': session.randomize_order,
        'completedSentences': sorted(session.completed_sentences),
        'committedChars': session.committed_chars,
        'contributionPositive': session.contribution.positive,
        'contributionNegative': session.contribution.negative,
        'contributionNeutral': session.contribution.neutral,
        'elapsedTime': session.elapsed_seconds,
        'skippedSentences': session.skipped_count,
        'currentIndex': session.current_index,
        'timestamp': now_ms
    }


def deserialize(blob: dict | str | bytes) -> Snapshot:
    """Validate a stored blob. Raises MalformedSnapshot."""
    try:
        if isinstance(blob, (str, bytes)):
            return Snapshot.model_validate_json(blob)
        return Snapshot.model_validate(blob)
    except ValidationError as e:
        raise MalformedSnapshot(f"Invalid snapshot: {e.error_count()} validation error(s)\n{e}") from e


class SnapshotRecorder:
    """Writes session snapshots to a store, at most once per throttle window.

    A save that lands inside the window is dropped, not deferred. Store
    failures are logged and swallowed so the run carries on in memory.
    """

    def __init__(self, store: SnapshotStore, throttle_ms: int = SAVE_THROTTLE_MS,
                 clock: Callable[[], float] = time.time):
        self.store = store
        self.throttle_ms = throttle_ms
        self._clock = clock
        self._last_save_ms = None

    def save(self, session: PracticeSession) -> bool:
        """Write a snapshot unless throttled. Returns True when written."""
        now_ms = int(self._clock() * 1000)
        if self._last_save_ms is not None and now_ms - self._last_save_ms < self.throttle_ms:
            return False
        if not session.content_hash:
            return False
        try:
            self.store.save_snapshot(session.content_hash, serialize(session, now_ms))
        except Exception as e:
            logger.warning(f"Snapshot save failed for {session.content_hash[:8]}: {e}")
            return False
        self._last_save_ms = now_ms
        return True

    def clear(self, content_hash: str) -> bool:
        """Delete the snapshot for a content hash. Returns True if one was deleted."""
        if not content_hash:
            return False
        try:
            return self.store.delete_snapshot(content_hash)
        except Exception as e:
            logger.warning(f"Snapshot delete failed for {content_hash[:8]}: {e}")
            return False


def resume(content_hash: str, store: SnapshotStore, clock: Callable[[], float] = time.time,
           rng: random.Random = None, recorder: SnapshotRecorder = None) -> PracticeSession | None:
    """Rebuild a running session from the snapshot stored for a content hash.

    Returns None when there is nothing usable to resume: no snapshot, an
    unreachable store, or a malformed snapshot (which is left in place).
    """
    try:
        blob = store.load_snapshot(content_hash)
    except Exception as e:
        logger.warning(f"Snapshot load failed for {content_hash[:8]}: {e}")
        return None
    if blob is None:
        logger.info(f"No snapshot stored for {content_hash[:8]}")
        return None

    try:
        snapshot = deserialize(blob)
    except MalformedSnapshot as e:
        logger.warning(f"Ignoring malformed snapshot for {content_hash[:8]}: {e}")
        return None

    try:
        matches_key = compute_content_hash(snapshot.original_sentences) == content_hash
    except HashComputationFailure as e:
        logger.warning(f"Ignoring snapshot for {content_hash[:8]}: {e}")
        return None
    if not matches_key:
        logger.warning(f"Ignoring snapshot for {content_hash[:8]}: sentences do not match the key")
        return None

    session = PracticeSession.from_snapshot(snapshot, clock=clock, rng=rng, recorder=recorder)
    logger.info(f"Session {content_hash[:8]} resumed at {session.current_index}/{session.total_sentences}, "
                f"{session.elapsed_seconds}s elapsed")
    return session
