"""
Room Directory Service

Publicly queryable index of public rooms, kept in step with the rooms it
describes, plus the set of connections watching the listing.
"""

import threading
from typing import Dict, List, Optional

from ..config.game_settings import DIRECTORY_LIST_LIMIT
from ..models import events
from ..models.directory import DirectoryEntry, RoomFilter
from ..models.events import Outbox
from ..models.room import Phase, Room, RoomStatus


class RoomDirectory:
    """
    One entry per public room.

    Call ``sync`` while holding the room's lock; the directory lock is only
    taken inside it, never the other way round.
    """

    def __init__(self, limit: int = DIRECTORY_LIST_LIMIT):
        self.limit = limit
        self._entries: Dict[str, DirectoryEntry] = {}
        self._watchers: Dict[str, RoomFilter] = {}
        self._lock = threading.RLock()

    def _build_entry(self, room: Room) -> DirectoryEntry:
        host = room.players.get(room.host_id) if room.host_id else None
        return DirectoryEntry(
            code=room.code,
            host_name=host.name if host else "",
            player_count=len(room.players),
            max_players=room.settings.max_players,
            status=room.status().value,
            region=room.settings.region,
            is_public=room.settings.is_public,
            created_at=room.created_at,
            updated_at=room.updated_at
        )

    def sync(self, room: Room) -> bool:
        """
        Upsert or drop the room's entry.

        Returns:
            bool: True if the public listing changed
        """
        if room.phase == Phase.CLOSED or not room.settings.is_public:
            return self.remove(room.code)

        entry = self._build_entry(room)
        with self._lock:
            changed = not entry.same_listing(self._entries.get(room.code))
            # Stored even when unchanged so updated_at follows the room
            self._entries[room.code] = entry
            return changed

    def remove(self, code: str) -> bool:
        with self._lock:
            return self._entries.pop(code, None) is not None

    def get(self, code: str) -> Optional[DirectoryEntry]:
        with self._lock:
            return self._entries.get(code)

    def list_rooms(self, room_filter: Optional[RoomFilter] = None) -> List[DirectoryEntry]:
        """Filtered listing: WAITING rooms first, then most recently updated."""
        room_filter = room_filter or RoomFilter()
        with self._lock:
            entries = [entry for entry in self._entries.values() if room_filter.matches(entry)]
        entries.sort(key=lambda e: (e.status != RoomStatus.WAITING.value, -e.updated_at, e.code))
        return entries[:self.limit]

    def list_payload(self, room_filter: Optional[RoomFilter] = None) -> List[Dict]:
        return [entry.to_dict() for entry in self.list_rooms(room_filter)]

    def watch(self, sid: str, room_filter: RoomFilter) -> List[Dict]:
        """Remember the caller's filter and return the current listing."""
        with self._lock:
            self._watchers[sid] = room_filter
        return self.list_payload(room_filter)

    def unwatch(self, sid: str) -> bool:
        with self._lock:
            return self._watchers.pop(sid, None) is not None

    def watcher_count(self) -> int:
        with self._lock:
            return len(self._watchers)

    def watcher_updates(self) -> Outbox:
        """
        Build one ``rooms:update`` event per distinct filter.

        Watchers sharing a filter share the computed list, so a change costs
        one listing per distinct filter rather than one per watcher.
        """
        outbox = Outbox()
        with self._lock:
            groups: Dict[RoomFilter, List[str]] = {}
            for sid, room_filter in self._watchers.items():
                groups.setdefault(room_filter, []).append(sid)

        for room_filter, sids in groups.items():
            outbox.add(events.ROOMS_UPDATE, {'rooms': self.list_payload(room_filter)}, sids)
        return outbox

    def __len__(self):
        with self._lock:
            return len(self._entries)
