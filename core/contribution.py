"""Edit contribution classification.

An edit is judged by its net effect on the distance to the target sentence:
an edit that brings the typed text closer to the target is a positive
contribution even when it does not extend a literal prefix match (fixing an
earlier typo counts), one that pushes it away is negative, anything else is
neutral. The keystrokes that produced the edit are credited to one bucket.
"""

from .distance import levenshtein_distance


def contribution_sign(before: str, after: str, target: str) -> int:
    """Return +1, 0 or -1 for an edit from before to after, relative to target."""
    dist_before = levenshtein_distance(before, target)
    dist_after = levenshtein_distance(after, target)
    delta = dist_before - dist_after
    if delta > 0:
        return 1
    if delta < 0:
        return -1
    return 0


class Contribution:
    """Keystroke counters split by contribution sign."""

    def __init__(self, positive: int = 0, negative: int = 0, neutral: int = 0):
        self.positive = positive
        self.negative = negative
        self.neutral = neutral

    @property
    def total(self) -> int:
        """All keystrokes attributed so far."""
        return self.positive + self.negative + self.neutral

    def allocate(self, before: str, after: str, target: str, keystrokes: int) -> int:
        """Credit the keystrokes of one edit to a bucket. Returns the sign.

        At least one keystroke is credited, even when the input layer counted
        none (e.g. a paste from a context menu).
        """
        sign = contribution_sign(before, after, target)
        amount = max(1, keystrokes)
        if sign > 0:
            self.positive += amount
        elif sign < 0:
            self.negative += amount
        else:
            self.neutral += amount
        return sign

    def reset(self) -> None:
        self.positive = 0
        self.negative = 0
        self.neutral = 0

    def to_dict(self) -> dict:
        return {
            'positive': self.positive,
            'negative': self.negative,
            'neutral': self.neutral
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, Contribution):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (f"Contribution(positive={self.positive}, negative={self.negative}, "
                f"neutral={self.neutral})")
