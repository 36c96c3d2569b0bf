"""
Message store module.

Durable, append-only log of chat messages backed by SQLite. Messages are
queryable by recency (join snapshot) and by id cursor (pagination).
"""

import sqlite3
import threading
import time
from pathlib import Path
from typing import List, Optional, Tuple, Union

from common.constants import DEFAULT_DB_PATH, HISTORY_LIMIT, PAGE_SIZE
from common.protocol_definitions import ChatMessage
from server.utils.logger import logger


class PersistenceError(Exception):
    """Raised when the underlying database cannot accept a write."""


# Column order matters: later columns are added to older databases in this order.
_OPTIONAL_COLUMNS = (
    ("image", "TEXT"),
    ("imageType", "TEXT"),
)

_SELECT_COLUMNS = "id, username, text, timestamp, image, imageType"

# SQLite INTEGER range; cursors outside it are clamped rather than rejected
_MAX_ROWID = 2 ** 63 - 1
_MIN_ROWID = -(2 ** 63)


def _clamp_cursor(message_id: int) -> int:
    return max(_MIN_ROWID, min(message_id, _MAX_ROWID))


class MessageStore:
    """SQLite-backed message history."""

    def __init__(self, db_path: Union[str, Path] = DEFAULT_DB_PATH):
        self.db_path = str(db_path)
        self._lock = threading.Lock()
        self._closed = False

        if self.db_path != ':memory:':
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        # One connection for the lifetime of the store; the lock serializes access
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()
        logger.info(f"Message store opened at {self.db_path} ({self.count()} messages)")

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def _init_schema(self) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL,
                    text TEXT NOT NULL,
                    timestamp INTEGER NOT NULL
                )
                """
            )
            existing = {row["name"] for row in self._conn.execute("PRAGMA table_info(messages)")}
            for name, column_type in _OPTIONAL_COLUMNS:
                if name not in existing:
                    self._conn.execute(f"ALTER TABLE messages ADD COLUMN {name} {column_type}")
                    logger.info(f"Added column '{name}' to messages table")

    @staticmethod
    def _row_to_message(row: sqlite3.Row) -> ChatMessage:
        return ChatMessage(
            id=row["id"],
            username=row["username"],
            text=row["text"] if row["text"] is not None else '',
            timestamp=row["timestamp"],
            image=row["image"],
            image_type=row["imageType"],
        )

    def _check_open(self) -> None:
        if self._closed:
            raise PersistenceError("Message store is closed")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append(self, username: str, text: str, image: Optional[str] = None,
               image_type: Optional[str] = None) -> ChatMessage:
        """
        Insert a message and return it with its server-assigned id and timestamp.

        Raises PersistenceError if the write is not accepted; callers must not
        broadcast the message in that case.
        """
        timestamp = int(time.time() * 1000)
        with self._lock:
            self._check_open()
            try:
                with self._conn:
                    cursor = self._conn.execute(
                        "INSERT INTO messages (username, text, timestamp, image, imageType) "
                        "VALUES (?, ?, ?, ?, ?)",
                        (username, text, timestamp, image, image_type),
                    )
            except sqlite3.Error as e:
                raise PersistenceError(f"Failed to save message from {username}: {e}") from e
            message_id = cursor.lastrowid

        return ChatMessage(
            id=message_id,
            username=username,
            text=text,
            timestamp=timestamp,
            image=image,
            image_type=image_type,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def recent(self, limit: int = HISTORY_LIMIT) -> List[ChatMessage]:
        """Return at most ``limit`` most recent messages, oldest first."""
        with self._lock:
            self._check_open()
            rows = self._conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM messages ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        messages = [self._row_to_message(row) for row in rows]
        messages.reverse()
        return messages

    def before(self, before_id: int, limit: int = PAGE_SIZE) -> Tuple[List[ChatMessage], bool]:
        """
        Return the ``limit`` newest messages with id < ``before_id``, oldest first,
        plus whether anything older than the returned page exists.
        """
        before_id = _clamp_cursor(before_id)
        with self._lock:
            self._check_open()
            rows = self._conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM messages WHERE id < ? ORDER BY id DESC LIMIT ?",
                (before_id, limit),
            ).fetchall()
            has_more = False
            if rows:
                has_more = self._exists_before(rows[-1]["id"])

        messages = [self._row_to_message(row) for row in rows]
        messages.reverse()
        return messages, has_more

    def _exists_before(self, message_id: int) -> bool:
        row = self._conn.execute(
            "SELECT EXISTS(SELECT 1 FROM messages WHERE id < ?) AS found",
            (message_id,),
        ).fetchone()
        return bool(row["found"])

    def has_before(self, message_id: int) -> bool:
        """True if any message is older than ``message_id``."""
        message_id = _clamp_cursor(message_id)
        with self._lock:
            self._check_open()
            return self._exists_before(message_id)

    def count(self) -> int:
        """Total number of stored messages."""
        with self._lock:
            self._check_open()
            row = self._conn.execute("SELECT COUNT(*) AS total FROM messages").fetchone()
        return row["total"]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Commit and close the database. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._conn.commit()
            finally:
                self._conn.close()
        logger.info(f"Message store closed ({self.db_path})")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
