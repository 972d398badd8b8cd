"""
Connection Registry

Maps a live connection handle to the one room it currently belongs to.
"""

import threading
from typing import Dict, Optional


class ConnectionRegistry:
    """Connection handle -> room code. A handle is in at most one room."""

    def __init__(self):
        self._rooms: Dict[str, str] = {}
        self._lock = threading.Lock()

    def bind(self, sid: str, code: str) -> Optional[str]:
        """Bind a handle to a room. Returns the room it was previously bound to."""
        with self._lock:
            previous = self._rooms.get(sid)
            self._rooms[sid] = code
            return previous

    def unbind(self, sid: str, code: Optional[str] = None) -> bool:
        """Remove a binding, only if it still points at ``code`` when given."""
        with self._lock:
            if sid not in self._rooms:
                return False
            if code is not None and self._rooms[sid] != code:
                return False
            del self._rooms[sid]
            return True

    def room_of(self, sid: str) -> Optional[str]:
        with self._lock:
            return self._rooms.get(sid)

    def __len__(self):
        with self._lock:
            return len(self._rooms)
