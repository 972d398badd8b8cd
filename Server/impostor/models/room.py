"""
Room Data Models

Contains the room aggregate, its players and all game-related enums.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..config import game_settings as rules


class Phase(Enum):
    """Room phase. CLOSED is a teardown marker, not a gameplay phase."""
    LOBBY = "LOBBY"
    HINT = "HINT"
    VOTE = "VOTE"
    GAME_OVER = "GAME_OVER"
    CLOSED = "CLOSED"


class Role(Enum):
    INNOCENT = "innocent"
    IMPOSTOR = "impostor"


class Winners(Enum):
    INNOCENTS = "INNOCENTS"
    IMPOSTORS = "IMPOSTORS"


class RoomStatus(Enum):
    """Directory-facing status derived from the phase."""
    WAITING = "WAITING"
    PLAYING = "PLAYING"
    FINISHED = "FINISHED"


@dataclass
class Settings:
    """Host-editable room settings. Mutable only while the room is in LOBBY."""
    impostors: int = rules.DEFAULT_IMPOSTORS
    hint_seconds: int = rules.DEFAULT_HINT_SECONDS
    vote_seconds: int = rules.DEFAULT_VOTE_SECONDS
    max_players: int = rules.DEFAULT_MAX_PLAYERS
    region: str = rules.DEFAULT_REGION
    is_public: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'impostors': self.impostors,
            'hintSeconds': self.hint_seconds,
            'voteSeconds': self.vote_seconds,
            'maxPlayers': self.max_players,
            'region': self.region,
            'isPublic': self.is_public
        }


@dataclass
class Player:
    """A seated player. Owned by exactly one room."""
    id: str
    name: str
    alive: bool = True
    role: Role = Role.INNOCENT
    ready: bool = False
    last_seen: float = 0.0


@dataclass
class Hint:
    submitter: str
    name: str
    text: str

    def to_dict(self) -> Dict[str, str]:
        return {'by': self.submitter, 'name': self.name, 'text': self.text}


@dataclass
class Ghost:
    """Rejoin token kept for a disconnected player during the grace window."""
    name: str
    role: Role
    alive: bool
    position: int
    expires_at: float


@dataclass
class Room:
    """
    One isolated game instance.

    Every read or write of a room must happen while holding ``room.lock``.
    ``timers`` holds the outstanding cancellable tasks of the current phase
    and ``timer_token`` is bumped on every phase change so late callbacks
    can tell they are stale.
    """
    code: str
    host_id: Optional[str]
    settings: Settings
    created_at: float
    players: Dict[str, Player] = field(default_factory=dict)
    order: List[str] = field(default_factory=list)
    phase: Phase = Phase.LOBBY
    secret: Optional[str] = None
    previous_secret: Optional[str] = None
    hints: List[Hint] = field(default_factory=list)
    votes: Dict[str, str] = field(default_factory=dict)
    winners: Optional[Winners] = None
    ghosts: Dict[str, Ghost] = field(default_factory=dict)
    turn_index: int = 0
    round: int = 0
    updated_at: float = 0.0
    last_activity: float = 0.0
    game_started_at: Optional[float] = None
    vote_deadline: Optional[float] = None
    timers: Dict[str, Any] = field(default_factory=dict)
    timer_token: int = 0
    lock: Any = field(default_factory=threading.RLock, repr=False, compare=False)

    def alive_players(self) -> List[Player]:
        return [p for p in self.players.values() if p.alive]

    def alive_order(self) -> List[str]:
        """Turn order restricted to living, present players."""
        return [pid for pid in self.order if pid in self.players and self.players[pid].alive]

    def count_alive(self, role: Role) -> int:
        return sum(1 for p in self.players.values() if p.alive and p.role == role)

    def current_turn_id(self) -> Optional[str]:
        if self.phase != Phase.HINT:
            return None
        alive = self.alive_order()
        if 0 <= self.turn_index < len(alive):
            return alive[self.turn_index]
        return None

    def status(self) -> RoomStatus:
        if self.phase == Phase.LOBBY:
            return RoomStatus.WAITING
        if self.phase in (Phase.HINT, Phase.VOTE):
            return RoomStatus.PLAYING
        return RoomStatus.FINISHED

    def find_player_by_name(self, name: str) -> Optional[Player]:
        lowered = name.lower()
        for player in self.players.values():
            if player.name.lower() == lowered:
                return player
        return None

    def touch(self, now: float, activity: bool = True) -> None:
        self.updated_at = now
        if activity:
            self.last_activity = now

    def snapshot(self) -> Dict[str, Any]:
        """
        Room-wide view broadcast to every member.

        The secret and the roles are only revealed once the game is over.
        """
        game_over = self.phase == Phase.GAME_OVER
        players = []
        for player in self.players.values():
            entry = {
                'id': player.id,
                'name': player.name,
                'alive': player.alive,
                'ready': player.ready,
                'isHost': player.id == self.host_id
            }
            if game_over:
                entry['role'] = player.role.value
            players.append(entry)

        return {
            'code': self.code,
            'hostId': self.host_id,
            'settings': self.settings.to_dict(),
            'phase': self.phase.value,
            'round': self.round,
            'players': players,
            'order': [{'id': pid, 'name': self.players[pid].name}
                      for pid in self.order if pid in self.players],
            'currentTurnId': self.current_turn_id(),
            'hints': [hint.to_dict() for hint in self.hints],
            'votedIds': list(self.votes.keys()),
            'voteDeadline': int(self.vote_deadline * 1000) if self.vote_deadline else None,
            'winners': self.winners.value if self.winners else None,
            'secretPlayer': self.secret if game_over else None
        }
