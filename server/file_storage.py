"""File-based storage implementation."""

import json
import logging
import os

from core.config import SNAPSHOT_KEY_PREFIX
from core.interfaces import SnapshotStore
from core.snapshot import snapshot_key

logger = logging.getLogger(__name__)


class FileStorage(SnapshotStore):
    """File-based storage implementation. One JSON file per snapshot."""

    def __init__(self, config_file: str = None, state_dir: str = None):
        self.config_file = config_file or os.path.expanduser('~/.config/retype/config.json')
        self.state_dir = state_dir or os.path.expanduser('~/.local/share/retype')

    def _get_snapshot_file(self, content_hash: str) -> str:
        """Get snapshot file path for a content hash."""
        return os.path.join(self.state_dir, f'{snapshot_key(content_hash)}.json')

    def load_config(self) -> dict:
        if not os.path.exists(self.config_file):
            raise FileNotFoundError(
                f"Config file not found at {self.config_file}\n"
                f'Create it with e.g.: {{"save_throttle_ms": 1000}}'
            )
        with open(self.config_file, 'r', encoding='utf-8') as f:
            return json.load(f)

    def load_snapshot(self, content_hash: str) -> dict | None:
        snapshot_file = self._get_snapshot_file(content_hash)
        if os.path.exists(snapshot_file):
            try:
                with open(snapshot_file, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except Exception as e:
                logger.warning(f"Error reading snapshot {snapshot_file}: {e}")
                return None
        return None

    def save_snapshot(self, content_hash: str, snapshot: dict) -> None:
        os.makedirs(self.state_dir, exist_ok=True)
        snapshot_file = self._get_snapshot_file(content_hash)
        # Swap in atomically
        tmp_file = snapshot_file + '.tmp'
        with open(tmp_file, 'w', encoding='utf-8') as f:
            json.dump(snapshot, f, ensure_ascii=False, indent=2)
        os.replace(tmp_file, snapshot_file)

    def delete_snapshot(self, content_hash: str) -> bool:
        snapshot_file = self._get_snapshot_file(content_hash)
        if os.path.exists(snapshot_file):
            os.remove(snapshot_file)
            return True
        return False

    def list_snapshots(self) -> list[str]:
        """List content hashes with a stored snapshot."""
        hashes = []
        if os.path.exists(self.state_dir):
            for filename in sorted(os.listdir(self.state_dir)):
                if filename.startswith(SNAPSHOT_KEY_PREFIX) and filename.endswith('.json'):
                    hashes.append(filename[len(SNAPSHOT_KEY_PREFIX):-len('.json')])
        return hashes
