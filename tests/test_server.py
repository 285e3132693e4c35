"""Tests for the retype REST API."""

import unittest
from datetime import datetime
from unittest.mock import patch

from fastapi.testclient import TestClient

import server.app as server_app
from core.config import MAX_KEYSTROKES_PER_EDIT
from core.interfaces import SnapshotStore
from core.utils import compute_content_hash


class MockSnapshotStore(SnapshotStore):
    """In-memory snapshot storage for API tests."""

    def __init__(self):
        self.snapshots = {}

    def load_config(self) -> dict:
        return {}

    def load_snapshot(self, content_hash: str) -> dict | None:
        return self.snapshots.get(content_hash)

    def save_snapshot(self, content_hash: str, snapshot: dict) -> None:
        self.snapshots[content_hash] = snapshot

    def delete_snapshot(self, content_hash: str) -> bool:
        return self.snapshots.pop(content_hash, None) is not None

    def list_snapshots(self) -> list[str]:
        return sorted(self.snapshots)


class MockEventStore(MockSnapshotStore):
    """In-memory store that also records lifecycle events."""

    def __init__(self):
        super().__init__()
        self.events = []

    def log_event(self, event: str, content_hash: str, **data) -> None:
        self.events.append({
            'timestamp': datetime(2024, 1, 2, 3, 4, 5),
            'event': event,
            'content_hash': content_hash,
            'data': data or None
        })

    def get_session_events(self, content_hash: str, event_type: str = None,
                           limit: int = 100) -> list[dict]:
        events = [dict(e) for e in reversed(self.events)
                  if e['content_hash'] == content_hash and (not event_type or e['event'] == event_type)]
        return events[:limit]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestRetypeAPI(unittest.TestCase):
    """Tests for the session endpoints."""

    def setUp(self):
        self.store = MockSnapshotStore()
        self.clock = FakeClock()
        server_app.configure(self.store, throttle_ms=0)
        patcher = patch.object(server_app, 'clock', self.clock)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TestClient(server_app.create_app())
        self.sentences = ["ab", "cd", "ef"]
        self.content_hash = compute_content_hash(self.sentences)

    def start(self, **kwargs) -> dict:
        response = self.client.post("/api/sessions", json={'sentences': self.sentences, **kwargs})
        self.assertEqual(response.status_code, 200)
        return response.json()

    def edit(self, before: str, after: str, inserted: int, keystrokes: int = 1, **kwargs):
        return self.client.post(f"/api/sessions/{self.content_hash}/edits", json={
            'before': before, 'after': after, 'inserted': inserted,
            'keystrokes': keystrokes, **kwargs
        })

    def test_health_check(self):
        response = self.client.get("/")
        self.assertEqual(response.json(), {"service": "retype", "status": "ok"})

    def test_process_text(self):
        response = self.client.post("/api/texts", json={
            'text': "Hello world. How are you?",
            'use_segmenter': True
        })
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['sentences'], ["Hello world.", "How are you?"])
        self.assertEqual(data['content_hash'], compute_content_hash(data['sentences']))
        self.assertEqual(data['sentence_count'], 2)
        self.assertEqual(data['character_count'], 24)

    def test_process_text_invalid_pattern(self):
        response = self.client.post("/api/texts", json={'text': "some text", 'split_pattern': '('})
        self.assertEqual(response.status_code, 400)

    def test_process_text_without_sentences(self):
        response = self.client.post("/api/texts", json={'text': "   "})
        self.assertEqual(response.status_code, 400)

    def test_start_session(self):
        data = self.start()
        self.assertEqual(data['state'], 'running')
        self.assertEqual(data['content_hash'], self.content_hash)
        self.assertEqual(data['current_sentence'], "ab")
        self.assertEqual(data['next_sentence'], "cd")
        self.assertEqual(data['accuracy'], 0)

    def test_start_without_sentences(self):
        response = self.client.post("/api/sessions", json={'sentences': []})
        self.assertEqual(response.status_code, 400)

    def test_unknown_session(self):
        response = self.client.get(f"/api/sessions/{self.content_hash}")
        self.assertEqual(response.status_code, 404)

    def test_edits_advance_on_match(self):
        self.start()
        response = self.edit("", "a", 1, keystrokes=1)
        data = response.json()
        self.assertEqual(data['sign'], 1)
        self.assertFalse(data['advanced'])
        self.assertEqual(data['typed_text'], "a")

        data = self.edit("a", "ab", 1, keystrokes=1).json()
        self.assertTrue(data['advanced'])
        self.assertEqual(data['current_index'], 1)
        self.assertEqual(data['completed_sentences'], [0])
        self.assertEqual(data['committed_chars'], 2)
        self.assertEqual(data['contribution'], {'positive': 2, 'negative': 0, 'neutral': 0})
        self.assertIn(self.content_hash, self.store.snapshots)

    def test_composition_edit(self):
        self.start()
        data = self.edit("", "ab", 2, keystrokes=5, composition=True).json()
        self.assertTrue(data['advanced'])
        self.assertEqual(data['contribution']['positive'], 5)

    def test_raw_input_events(self):
        self.start()
        url = f"/api/sessions/{self.content_hash}/input"
        data = self.client.post(url, json={'input_type': 'insertText', 'data': 'ax',
                                           'selection_start': 0, 'selection_end': 0}).json()
        self.assertEqual(data['typed_text'], "ax")
        self.assertEqual(data['sign'], 1)

        data = self.client.post(url, json={'input_type': 'deleteContentBackward',
                                           'selection_start': 2, 'selection_end': 2}).json()
        self.assertEqual(data['typed_text'], "a")
        self.assertEqual(data['sign'], 0)

        # Composition previews are not edits
        data = self.client.post(url, json={'input_type': 'insertCompositionText', 'data': 'b',
                                           'keystrokes': 2}).json()
        self.assertIsNone(data['sign'])
        self.assertEqual(data['typed_text'], "a")

        data = self.client.post(url, json={'input_type': 'insertText', 'data': 'b',
                                           'selection_start': 1, 'selection_end': 1,
                                           'keystrokes': 1}).json()
        self.assertTrue(data['advanced'])
        self.assertEqual(data['contribution'], {'positive': 4, 'negative': 0, 'neutral': 1})
        self.assertEqual(data['committed_chars'], 3)

    def test_elapsed_time(self):
        self.start()
        self.clock.now += 65
        data = self.client.get(f"/api/sessions/{self.content_hash}").json()
        self.assertEqual(data['elapsed_seconds'], 65)
        self.assertEqual(data['elapsed_display'], "1:05")

    def test_skip_to_completion_clears_snapshot(self):
        self.start()
        for _ in range(3):
            response = self.client.post(f"/api/sessions/{self.content_hash}/skip")
            self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['state'], 'completed')
        self.assertEqual(data['skipped_count'], 3)
        self.assertNotIn(self.content_hash, self.store.snapshots)

        response = self.client.post(f"/api/sessions/{self.content_hash}/skip")
        self.assertEqual(response.status_code, 409)
        response = self.edit("", "a", 1)
        self.assertEqual(response.status_code, 409)

    def test_go_back(self):
        self.start()
        self.edit("", "ab", 2, keystrokes=2)
        data = self.client.post(f"/api/sessions/{self.content_hash}/back").json()
        self.assertEqual(data['current_index'], 0)
        self.assertEqual(data['completed_sentences'], [])

    def test_retry(self):
        self.start()
        self.edit("", "ab", 2, keystrokes=2)
        data = self.client.post(f"/api/sessions/{self.content_hash}/retry").json()
        self.assertEqual(data['current_index'], 0)
        self.assertEqual(data['committed_chars'], 0)

    def test_abandon_then_resume(self):
        self.start()
        self.edit("", "ab", 2, keystrokes=2)
        self.clock.now += 10

        response = self.client.delete(f"/api/sessions/{self.content_hash}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['state'], 'abandoned')
        self.assertEqual(self.client.get(f"/api/sessions/{self.content_hash}").status_code, 404)
        self.assertEqual(self.client.get("/api/snapshots").json(), {'snapshots': [self.content_hash]})

        response = self.client.post(f"/api/sessions/{self.content_hash}/resume")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['state'], 'running')
        self.assertEqual(data['current_index'], 1)
        self.assertEqual(data['committed_chars'], 2)
        self.assertEqual(data['typed_text'], "")

    def test_resume_without_snapshot(self):
        response = self.client.post(f"/api/sessions/{self.content_hash}/resume")
        self.assertEqual(response.status_code, 404)

    def test_event_stats_without_event_log(self):
        data = self.client.get("/api/events/stats").json()
        self.assertIn('error', data)

    def test_session_events_without_event_log(self):
        data = self.client.get(f"/api/sessions/{self.content_hash}/events").json()
        self.assertIn('error', data)

    def test_keystrokes_out_of_range(self):
        self.start()
        response = self.client.post(f"/api/sessions/{self.content_hash}/input", json={
            'input_type': 'insertLineBreak', 'keystrokes': MAX_KEYSTROKES_PER_EDIT + 1
        })
        self.assertEqual(response.status_code, 422)
        response = self.edit("", "a", 1, keystrokes=MAX_KEYSTROKES_PER_EDIT + 1)
        self.assertEqual(response.status_code, 422)
        response = self.edit("", "a", 1, keystrokes=-1)
        self.assertEqual(response.status_code, 422)

    def test_keystrokes_buffered_in_one_step(self):
        self.start()
        url = f"/api/sessions/{self.content_hash}/input"
        response = self.client.post(url, json={'input_type': 'insertLineBreak',
                                                'keystrokes': MAX_KEYSTROKES_PER_EDIT})
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json()['sign'])

        data = self.client.post(url, json={'input_type': 'insertText', 'data': 'a',
                                           'selection_start': 0, 'selection_end': 0}).json()
        self.assertEqual(data['contribution']['positive'], MAX_KEYSTROKES_PER_EDIT + 1)


class TestSessionEvents(unittest.TestCase):
    """Tests for the session event log endpoint."""

    def setUp(self):
        self.store = MockEventStore()
        server_app.configure(self.store, throttle_ms=0)
        patcher = patch.object(server_app, 'clock', FakeClock())
        patcher.start()
        self.addCleanup(patcher.stop)
        self.client = TestClient(server_app.create_app())
        self.sentences = ["ab", "cd"]
        self.content_hash = compute_content_hash(self.sentences)

    def test_events_for_session(self):
        self.client.post("/api/sessions", json={'sentences': self.sentences})
        self.client.delete(f"/api/sessions/{self.content_hash}")

        data = self.client.get(f"/api/sessions/{self.content_hash}/events").json()
        events = data['events']
        self.assertEqual([e['event'] for e in events], ['session.abandon', 'session.start'])
        self.assertEqual(events[0]['timestamp'], '2024-01-02T03:04:05')
        self.assertEqual(events[1]['data'], {'sentence_count': 2, 'randomize': False})

    def test_events_filtered_by_type(self):
        self.client.post("/api/sessions", json={'sentences': self.sentences})
        self.client.delete(f"/api/sessions/{self.content_hash}")

        data = self.client.get(f"/api/sessions/{self.content_hash}/events",
                               params={'event_type': 'session.start', 'limit': 5}).json()
        self.assertEqual([e['event'] for e in data['events']], ['session.start'])

    def test_events_for_unknown_text(self):
        data = self.client.get("/api/sessions/deadbeef/events").json()
        self.assertEqual(data, {'events': []})


if __name__ == '__main__':
    unittest.main()
