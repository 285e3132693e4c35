"""PostgreSQL storage implementation."""

import json
import logging
import os
import psycopg2
from psycopg2.extras import RealDictCursor

from core.interfaces import SnapshotStore

logger = logging.getLogger(__name__)


class PostgresStorage(SnapshotStore):
    """PostgreSQL-based storage implementation."""

    def __init__(self, config_file: str = None, db_url: str = None):
        self.config_file = config_file or os.path.expanduser('~/.config/retype/config.json')
        self.db_url = db_url or os.environ.get(
            'DATABASE_URL',
            'postgresql://localhost:5432/retype'
        )
        self._conn = None
        self._initialized = False

    @property
    def conn(self):
        """Lazy connection initialization."""
        if self._conn is None or self._conn.closed:
            self._conn = psycopg2.connect(self.db_url)
            if not self._initialized:
                self._init_db()
                self._initialized = True
        return self._conn

    def _init_db(self):
        """Create tables if they don't exist."""
        with self._conn.cursor() as cur:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    content_hash VARCHAR(64) PRIMARY KEY,
                    snapshot JSONB NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_snapshots_updated
                ON snapshots(updated_at)
            """)
            # Session lifecycle events
            cur.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    id SERIAL PRIMARY KEY,
                    timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    event VARCHAR(50) NOT NULL,
                    content_hash VARCHAR(64) NOT NULL,
                    data JSONB
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_events_content_hash ON events(content_hash)
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_events_event ON events(event)
            """)
        self._conn.commit()

    def close(self):
        """Close the database connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()

    def load_config(self) -> dict:
        if not os.path.exists(self.config_file):
            raise FileNotFoundError(
                f"Config file not found at {self.config_file}\n"
                f'Create it with e.g.: {{"save_throttle_ms": 1000}}'
            )
        with open(self.config_file, 'r', encoding='utf-8') as f:
            return json.load(f)

    def load_snapshot(self, content_hash: str) -> dict | None:
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    "SELECT snapshot FROM snapshots WHERE content_hash = %s",
                    (content_hash,)
                )
                row = cur.fetchone()
                if row:
                    return row['snapshot']
                return None
        except Exception as e:
            logger.warning(f"Error loading snapshot: {e}")
            return None

    def save_snapshot(self, content_hash: str, snapshot: dict) -> None:
        try:
            with self.conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO snapshots (content_hash, snapshot, updated_at)
                    VALUES (%s, %s, CURRENT_TIMESTAMP)
                    ON CONFLICT (content_hash)
                    DO UPDATE SET snapshot = EXCLUDED.snapshot, updated_at = CURRENT_TIMESTAMP
                """, (content_hash, json.dumps(snapshot)))
            self.conn.commit()
        except Exception as e:
            logger.warning(f"Error saving snapshot: {e}")
            self.conn.rollback()
            raise

    def delete_snapshot(self, content_hash: str) -> bool:
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM snapshots WHERE content_hash = %s",
                    (content_hash,)
                )
                deleted = cur.rowcount > 0
            self.conn.commit()
            return deleted
        except Exception as e:
            logger.warning(f"Error deleting snapshot: {e}")
            self.conn.rollback()
            raise

    def list_snapshots(self) -> list[str]:
        """List content hashes with a stored snapshot, most recent first."""
        try:
            with self.conn.cursor() as cur:
                cur.execute("SELECT content_hash FROM snapshots ORDER BY updated_at DESC")
                rows = cur.fetchall()
                return [row[0] for row in rows]
        except Exception as e:
            logger.warning(f"Error listing snapshots: {e}")
            return []

    def log_event(self, event: str, content_hash: str, **data) -> None:
        """Log a session event to the database."""
        try:
            with self.conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO events (event, content_hash, data)
                    VALUES (%s, %s, %s)
                """, (event, content_hash, json.dumps(data) if data else None))
            self.conn.commit()
        except Exception as e:
            logger.warning(f"Error logging event: {e}")
            self.conn.rollback()

    def get_session_events(self, content_hash: str, event_type: str = None,
                           limit: int = 100) -> list[dict]:
        """Get recent events for a sentence set."""
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                if event_type:
                    cur.execute("""
                        SELECT * FROM events
                        WHERE content_hash = %s AND event = %s
                        ORDER BY timestamp DESC LIMIT %s
                    """, (content_hash, event_type, limit))
                else:
                    cur.execute("""
                        SELECT * FROM events
                        WHERE content_hash = %s
                        ORDER BY timestamp DESC LIMIT %s
                    """, (content_hash, limit))
                return [dict(row) for row in cur.fetchall()]
        except Exception as e:
            logger.warning(f"Error getting session events: {e}")
            return []

    def get_global_stats(self) -> dict:
        """Get aggregated event stats across all sentence sets."""
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute("""
                    SELECT
                        COUNT(DISTINCT content_hash) as sentence_sets,
                        COUNT(*) FILTER (WHERE event = 'session.start') as sessions_started,
                        COUNT(*) FILTER (WHERE event = 'session.complete') as sessions_completed,
                        COUNT(*) FILTER (WHERE event = 'session.resume') as sessions_resumed,
                        COUNT(*) FILTER (WHERE event = 'session.abandon') as sessions_abandoned
                    FROM events
                """)
                return dict(cur.fetchone())
        except Exception as e:
            logger.warning(f"Error getting global stats: {e}")
            return {}
