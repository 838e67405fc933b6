"""
Local SQLite persistence of the active session.

Holds the signed-in user and the greenhouse they are currently connected
to, so the monitoring view can reopen the last greenhouse without a device
id being passed in.
"""

import sqlite3
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .. import config


@dataclass(frozen=True)
class ActiveSession:
    user_id: str
    device_id: Optional[str]
    saved_at: int


class SessionStore:
    """Single-row session table"""

    def __init__(self, db_path: str = None):
        self.db_path = Path(db_path or config.SESSION_DB_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def _get_connection(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self):
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS active_session (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    user_id TEXT NOT NULL,
                    device_id TEXT,
                    saved_at INTEGER NOT NULL
                )
            """)

    def save(self, user_id: str, device_id: Optional[str] = None):
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO active_session (id, user_id, device_id, saved_at)
                VALUES (1, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    user_id = excluded.user_id,
                    device_id = excluded.device_id,
                    saved_at = excluded.saved_at
                """,
                (user_id, device_id, int(time.time() * 1000)),
            )

    def load(self) -> Optional[ActiveSession]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT user_id, device_id, saved_at FROM active_session WHERE id = 1"
            ).fetchone()
        if row is None:
            return None
        return ActiveSession(user_id=row["user_id"], device_id=row["device_id"], saved_at=row["saved_at"])

    def current_device(self) -> Optional[str]:
        session = self.load()
        return session.device_id if session else None

    def clear_device(self):
        """Leave the greenhouse but stay signed in"""
        with self._get_connection() as conn:
            conn.execute("UPDATE active_session SET device_id = NULL WHERE id = 1")

    def clear(self):
        with self._get_connection() as conn:
            conn.execute("DELETE FROM active_session")
