"""Error types raised by the retype core."""


class RetypeError(Exception):
    """Base class for all retype errors."""


class InvalidState(RetypeError):
    """A session transition was attempted outside its legal source state."""


class MalformedSnapshot(RetypeError):
    """A persisted snapshot failed validation."""


class HashComputationFailure(RetypeError):
    """The content hash of a sentence set could not be computed."""
