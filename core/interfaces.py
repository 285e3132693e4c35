"""Abstract base classes for dependency injection."""

from abc import ABC, abstractmethod


class SnapshotStore(ABC):
    """Abstract base class for config and session snapshot storage.

    Snapshots are opaque JSON-compatible dicts keyed by the content hash of
    their sentence set; one record per hash.
    """

    @abstractmethod
    def load_config(self) -> dict:
        """Load configuration. Returns config dict."""
        pass

    @abstractmethod
    def load_snapshot(self, content_hash: str) -> dict | None:
        """Load the snapshot for a content hash. Returns None if not found."""
        pass

    @abstractmethod
    def save_snapshot(self, content_hash: str, snapshot: dict) -> None:
        """Create or replace the snapshot for a content hash."""
        pass

    @abstractmethod
    def delete_snapshot(self, content_hash: str) -> bool:
        """Delete the snapshot for a content hash. Returns True if one existed."""
        pass

    @abstractmethod
    def list_snapshots(self) -> list[str]:
        """List the content hashes that have a stored snapshot."""
        pass
