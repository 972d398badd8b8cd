"""
Outbound Event Models

State changes are computed first and collected as events in an Outbox;
the room service hands the outbox to a broadcaster afterwards.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

# Room-wide events
LOBBY_UPDATE = "lobby:update"
PHASE = "phase"
TURN = "turn"
HINT_UPDATE = "hint:update"
VOTE_OPEN = "vote:open"
VOTE_UPDATE = "vote:update"
VOTE_RESULT = "vote:result"
CHAT = "chat"
HOST_CHANGED = "host:changed"
ROOM_CLOSED = "room:closed"

# Private events
SECRET = "secret"
ROLE = "role"

# Directory events
ROOMS_UPDATE = "rooms:update"


@dataclass(frozen=True)
class Event:
    name: str
    payload: Dict[str, Any]
    recipients: Tuple[str, ...]


@dataclass
class Outbox:
    """Ordered list of events produced by one action or timer callback."""
    events: List[Event] = field(default_factory=list)

    def add(self, name: str, payload: Dict[str, Any], recipients: Iterable[str]) -> None:
        recipients = tuple(recipients)
        if recipients:
            self.events.append(Event(name, payload, recipients))

    def extend(self, other: "Outbox") -> None:
        self.events.extend(other.events)

    def __iter__(self):
        return iter(self.events)

    def __len__(self):
        return len(self.events)
