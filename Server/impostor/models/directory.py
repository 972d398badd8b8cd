"""
Directory Data Models

Public projection of a room used by the matchmaking listing.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from ..config.game_settings import ANY_REGION


@dataclass(frozen=True)
class DirectoryEntry:
    code: str
    host_name: str
    player_count: int
    max_players: int
    status: str
    region: str
    is_public: bool
    created_at: float
    updated_at: float

    def is_open(self) -> bool:
        return self.status == "WAITING" and self.player_count < self.max_players

    def same_listing(self, other: Optional["DirectoryEntry"]) -> bool:
        """True when nothing but the timestamps differ."""
        if other is None:
            return False
        mine = asdict(self)
        theirs = asdict(other)
        mine.pop('updated_at')
        theirs.pop('updated_at')
        return mine == theirs

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'hostName': self.host_name,
            'playerCount': self.player_count,
            'maxPlayers': self.max_players,
            'status': self.status,
            'region': self.region,
            'isPublic': self.is_public,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at
        }


@dataclass(frozen=True)
class RoomFilter:
    """Listing filter. Hashable so identical filters share one computed view."""
    region: str = ANY_REGION
    only_open: bool = False

    def matches(self, entry: DirectoryEntry) -> bool:
        if self.region != ANY_REGION and entry.region.lower() != self.region:
            return False
        if self.only_open and not entry.is_open():
            return False
        return True

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "RoomFilter":
        payload = payload or {}
        region = payload.get('region')
        if not isinstance(region, str) or not region.strip():
            region = ANY_REGION
        only_open = payload.get('onlyOpen', payload.get('open', False))
        if isinstance(only_open, str):
            only_open = only_open.lower() in ('1', 'true', 'yes')
        return cls(region=region.strip().lower(), only_open=bool(only_open))
