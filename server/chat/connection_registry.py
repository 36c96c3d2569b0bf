"""
Connection registry module.

Tracks live connections and the display name each one has claimed. Entries are
keyed by a server-assigned uid rather than by the transport object, so fan-out
works over a snapshot and tolerates connections coming and going mid-broadcast.
"""

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional


@dataclass
class Connection:
    """One live client session."""
    uid: int
    handle: Any  # transport handle with an async send(str)
    display_name: Optional[str] = None


class ConnectionRegistry:
    """Owns the uid -> connection mapping."""

    def __init__(self):
        self._connections: Dict[int, Connection] = {}
        self._next_uid = 1
        self._lock = threading.Lock()

    def next_uid(self) -> int:
        """Allocate the next connection uid."""
        with self._lock:
            uid = self._next_uid
            self._next_uid += 1
            return uid

    def register(self, uid: int, handle: Any) -> Connection:
        """Add a connection with no display name. Re-registering overwrites."""
        connection = Connection(uid=uid, handle=handle)
        with self._lock:
            self._connections[uid] = connection
        return connection

    def set_name(self, uid: int, name: str) -> bool:
        """Assign (or overwrite) the display name of a registered connection."""
        if not name:
            return False
        with self._lock:
            connection = self._connections.get(uid)
            if connection is None:
                return False
            connection.display_name = name
            return True

    def get(self, uid: int) -> Optional[Connection]:
        with self._lock:
            return self._connections.get(uid)

    def unregister(self, uid: int) -> Optional[str]:
        """Remove a connection and return its last display name (None if it never joined)."""
        with self._lock:
            connection = self._connections.pop(uid, None)
        if connection is None:
            return None
        return connection.display_name

    def snapshot(self, exclude_uid: Optional[int] = None) -> List[Connection]:
        """Copy of the current connections, in registration order."""
        with self._lock:
            return [conn for uid, conn in self._connections.items() if uid != exclude_uid]

    def for_each(self, fn: Callable[[Any], Any]) -> List[Any]:
        """Apply fn(handle) to every registered connection; returns the results."""
        return [fn(conn.handle) for conn in self.snapshot()]

    def for_each_except(self, uid: int, fn: Callable[[Any], Any]) -> List[Any]:
        """Like for_each, skipping one connection."""
        return [fn(conn.handle) for conn in self.snapshot(exclude_uid=uid)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, uid: int) -> bool:
        with self._lock:
            return uid in self._connections
