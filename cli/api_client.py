"""REST API client for retype server."""

import requests


class RetypeAPIClient:
    """Client for communicating with the retype REST API."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        self.base_url = base_url.rstrip('/')
        self.session = requests.Session()

    def _get(self, endpoint: str, params: dict = None) -> dict:
        """Make a GET request."""
        response = self.session.get(f"{self.base_url}{endpoint}", params=params or {})
        response.raise_for_status()
        return response.json()

    def _post(self, endpoint: str, data: dict = None) -> dict:
        """Make a POST request."""
        response = self.session.post(f"{self.base_url}{endpoint}", json=data or {})
        response.raise_for_status()
        return response.json()

    def _delete(self, endpoint: str) -> dict:
        """Make a DELETE request."""
        response = self.session.delete(f"{self.base_url}{endpoint}")
        response.raise_for_status()
        return response.json()

    def health_check(self) -> dict:
        """Check if the server is running."""
        return self._get("/")

    def process_text(self, text: str, split_pattern: str = '', filter_pattern: str = '',
                     filter_replacement: str = '', use_segmenter: bool = False) -> dict:
        """Split raw text into a sentence set."""
        return self._post("/api/texts", {
            'text': text,
            'split_pattern': split_pattern,
            'filter_pattern': filter_pattern,
            'filter_replacement': filter_replacement,
            'use_segmenter': use_segmenter
        })

    def list_snapshots(self) -> list[str]:
        """Content hashes with saved progress."""
        return self._get("/api/snapshots")['snapshots']

    def start_session(self, sentences: list[str], randomize: bool = False) -> dict:
        """Start a fresh run."""
        return self._post("/api/sessions", {
            'sentences': sentences,
            'randomize': randomize
        })

    def resume_session(self, content_hash: str) -> dict:
        """Resume saved progress."""
        return self._post(f"/api/sessions/{content_hash}/resume")

    def get_session(self, content_hash: str) -> dict:
        """Get position, timing and metrics."""
        return self._get(f"/api/sessions/{content_hash}")

    def submit_edit(self, content_hash: str, before: str, after: str,
                    inserted: int, keystrokes: int, composition: bool = False) -> dict:
        """Submit one edit of the typed text."""
        return self._post(f"/api/sessions/{content_hash}/edits", {
            'before': before,
            'after': after,
            'inserted': inserted,
            'keystrokes': keystrokes,
            'composition': composition
        })

    def skip(self, content_hash: str) -> dict:
        return self._post(f"/api/sessions/{content_hash}/skip")

    def go_back(self, content_hash: str) -> dict:
        return self._post(f"/api/sessions/{content_hash}/back")

    def retry(self, content_hash: str) -> dict:
        return self._post(f"/api/sessions/{content_hash}/retry")

    def abandon(self, content_hash: str) -> dict:
        """Stop the run; saved progress stays resumable."""
        return self._delete(f"/api/sessions/{content_hash}")
