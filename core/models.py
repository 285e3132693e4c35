"""Domain models for retype application."""

import logging
import random
import time
from typing import Callable

from .config import STATE_SETUP, STATE_RUNNING, STATE_COMPLETED, STATE_ABANDONED
from .contribution import Contribution
from .errors import InvalidState
from .utils import compute_content_hash, shuffle_sentences

logger = logging.getLogger(__name__)


class PracticeSession:
    """A typing-practice run over an ordered sentence set.

    The session owns navigation (advance, skip, back), the contribution
    counters and the run timing. Callers drive it by calling the transition
    methods; fields are read, never assigned, from outside.
    """

    def __init__(self, sentences: list[str] = None, randomize_order: bool = False,
                 clock: Callable[[], float] = time.time, rng: random.Random = None,
                 recorder=None):
        self.original_sentences = list(sentences or [])
        self.sentences = list(self.original_sentences)
        self.randomize_order = randomize_order
        self.content_hash = compute_content_hash(self.original_sentences) if self.original_sentences else ''
        self.current_index = 0
        self.completed_sentences = set()
        self.skipped_count = 0
        self.committed_chars = 0
        self.contribution = Contribution()
        self.elapsed_seconds = 0
        self.start_time = None
        self.state = STATE_SETUP
        # Live input for the current sentence, never persisted
        self.typed_text = ''
        # In-flight keystroke buffers, never persisted
        self.keys_since_last_edit = 0
        self.composition_keystrokes = 0
        self.is_composing = False
        self._clock = clock
        self._rng = rng
        self._recorder = recorder

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self.state == STATE_RUNNING

    @property
    def is_complete(self) -> bool:
        return self.state == STATE_COMPLETED

    @property
    def total_sentences(self) -> int:
        return len(self.sentences)

    @property
    def current_sentence(self) -> str | None:
        if 0 <= self.current_index < len(self.sentences):
            return self.sentences[self.current_index]
        return None

    @property
    def previous_sentence(self) -> str | None:
        if 0 < self.current_index <= len(self.sentences):
            return self.sentences[self.current_index - 1]
        return None

    @property
    def next_sentence(self) -> str | None:
        if 0 <= self.current_index < len(self.sentences) - 1:
            return self.sentences[self.current_index + 1]
        return None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, sentences: list[str] = None, randomize: bool = None) -> None:
        """Begin a fresh run.

        When sentences are given they replace the original sentence set.
        randomize=None keeps the current ordering preference.
        """
        original = list(sentences) if sentences is not None else list(self.original_sentences)
        if not original:
            raise InvalidState("Cannot start a session without sentences")
        content_hash = compute_content_hash(original)
        if randomize is None:
            randomize = self.randomize_order

        self.original_sentences = original
        self.content_hash = content_hash
        self.randomize_order = randomize
        if randomize:
            self.sentences = shuffle_sentences(original, self._rng)
        else:
            self.sentences = list(original)
        self.current_index = 0
        self.completed_sentences = set()
        self.skipped_count = 0
        self.committed_chars = 0
        self.contribution = Contribution()
        self.elapsed_seconds = 0
        self.typed_text = ''
        self._reset_input_buffers()
        self.start_time = self._clock()
        self.state = STATE_RUNNING
        logger.info(f"Session {self.content_hash[:8]} started: {len(self.sentences)} sentences, "
                    f"randomized={self.randomize_order}")

    def retry(self) -> None:
        """Start again over the same sentences, reshuffling if the run was randomized."""
        self.start()

    def abandon(self) -> None:
        """Stop the run before completion. The stored snapshot is kept."""
        self._require_running('abandon')
        self.tick()
        self.state = STATE_ABANDONED
        self._reset_input_buffers()
        logger.info(f"Session {self.content_hash[:8]} abandoned at {self.current_index}/{len(self.sentences)}")

    def tick(self) -> int:
        """Refresh elapsed seconds from the clock. Returns the elapsed seconds."""
        if self.is_running and self.start_time is not None:
            elapsed = int(self._clock() - self.start_time)
            if elapsed > self.elapsed_seconds:
                self.elapsed_seconds = elapsed
        return self.elapsed_seconds

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def advance_on_match(self) -> bool:
        """Mark the current sentence completed and move on.

        Returns True when this completed the whole run.
        """
        self._require_running('advance')
        self.completed_sentences.add(self.current_index)
        self.current_index += 1
        self.typed_text = ''
        self._persist()
        if self.current_index >= len(self.sentences):
            self._complete()
            return True
        return False

    def match_check(self, typed_text: str = None) -> bool:
        """Advance when the typed text equals the current sentence.

        Returns True when the session advanced.
        """
        if not self.is_running or self.is_composing:
            return False
        if typed_text is not None:
            self.typed_text = typed_text
        if self.typed_text == self.current_sentence:
            self.advance_on_match()
            return True
        return False

    def skip(self) -> bool:
        """Move to the next sentence without completing the current one."""
        self._require_running('skip')
        self.skipped_count += 1
        self.current_index += 1
        self.typed_text = ''
        self._persist()
        if self.current_index >= len(self.sentences):
            self._complete()
        return True

    def go_back(self) -> bool:
        """Return to the previous sentence. Returns False on the first sentence.

        Both the sentence being left and the one revisited lose their
        completion mark; the revisited one must be typed again.
        """
        self._require_running('go back')
        if self.current_index <= 0:
            return False
        self.completed_sentences.discard(self.current_index)
        self.current_index -= 1
        self.completed_sentences.discard(self.current_index)
        self.typed_text = ''
        self._persist()
        return True

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def record_keystroke(self, count: int = 1) -> bool:
        """Count raw key presses. Ignored when the session is not running."""
        if not self.is_running:
            return False
        count = max(0, count)
        if self.is_composing:
            self.composition_keystrokes += count
        else:
            self.keys_since_last_edit += count
        return True

    def begin_composition(self) -> None:
        self._require_running('begin composition')
        self.is_composing = True
        self.composition_keystrokes = 0

    def apply_edit(self, before: str, after: str, inserted_count: int = 0,
                   keystrokes: int = None) -> int | None:
        """Classify one non-composition edit and check for a match.

        keystrokes defaults to the key presses buffered since the last edit.
        Returns the contribution sign, or None when an IME composition is
        active (composition text is classified on commit).
        """
        self._require_running('edit')
        if self.is_composing:
            return None
        if keystrokes is None:
            keystrokes = self.keys_since_last_edit
        sign = self.contribution.allocate(before, after, self.current_sentence, keystrokes)
        self.keys_since_last_edit = 0
        if inserted_count > 0:
            self.committed_chars += inserted_count
        self.typed_text = after
        self._persist()
        self.match_check()
        return sign

    def commit_composition(self, after: str, inserted_length: int,
                           keystrokes: int = None, before: str = None) -> int:
        """Classify an IME composition commit as one edit and check for a match.

        Without an explicit before, the committed text is taken to be the
        last inserted_length characters of after.
        """
        self._require_running('commit composition')
        self.is_composing = False
        inserted_length = max(0, inserted_length)
        if before is None:
            before = after[:max(0, len(after) - inserted_length)]
        if keystrokes is None:
            keystrokes = self.composition_keystrokes
        sign = self.contribution.allocate(before, after, self.current_sentence, keystrokes)
        self.composition_keystrokes = 0
        self.committed_chars += inserted_length
        self.typed_text = after
        self._persist()
        self.match_check()
        return sign

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_running(self, action: str) -> None:
        if not self.is_running:
            raise InvalidState(f"Cannot {action}: session is {self.state}")

    def _reset_input_buffers(self) -> None:
        self.keys_since_last_edit = 0
        self.composition_keystrokes = 0
        self.is_composing = False

    def _persist(self) -> None:
        if self._recorder is not None:
            self.tick()
            self._recorder.save(self)

    def _complete(self) -> None:
        self.tick()
        self.state = STATE_COMPLETED
        self._reset_input_buffers()
        logger.info(f"Session {self.content_hash[:8]} completed: "
                    f"{len(self.completed_sentences)} completed, {self.skipped_count} skipped, "
                    f"{self.elapsed_seconds}s")
        if self._recorder is not None:
            self._recorder.clear(self.content_hash)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        """Display view of the session."""
        return {
            'content_hash': self.content_hash,
            'state': self.state,
            'current_index': self.current_index,
            'total_sentences': len(self.sentences),
            'previous_sentence': self.previous_sentence,
            'current_sentence': self.current_sentence,
            'next_sentence': self.next_sentence,
            'completed_sentences': sorted(self.completed_sentences),
            'skipped_count': self.skipped_count,
            'committed_chars': self.committed_chars,
            'contribution': self.contribution.to_dict(),
            'elapsed_seconds': self.elapsed_seconds,
            'randomize_order': self.randomize_order,
            'typed_text': self.typed_text
        }

    @classmethod
    def from_snapshot(cls, snapshot, clock: Callable[[], float] = time.time,
                      rng: random.Random = None, recorder=None) -> 'PracticeSession':
        """Rehydrate a running session from a validated snapshot.

        The working order is rebuilt by re-applying the randomize flag, so a
        randomized run comes back in a new order. The cursor then skips past
        sentences already marked completed.
        """
        session = cls(snapshot.original_sentences, snapshot.randomize_order,
                      clock=clock, rng=rng, recorder=recorder)
        if session.randomize_order:
            session.sentences = shuffle_sentences(session.original_sentences, rng)
        session.completed_sentences = set(snapshot.completed_sentences)
        session.committed_chars = snapshot.committed_chars
        session.contribution = Contribution(
            snapshot.contribution_positive,
            snapshot.contribution_negative,
            snapshot.contribution_neutral
        )
        session.elapsed_seconds = snapshot.elapsed_time
        session.skipped_count = snapshot.skipped_sentences
        session.current_index = snapshot.current_index

        while (session.current_index < len(session.sentences)
               and session.current_index in session.completed_sentences):
            session.current_index += 1

        session.start_time = clock() - session.elapsed_seconds
        session.state = STATE_RUNNING
        if session.current_index >= len(session.sentences):
            session._complete()
        return session
