"""
Turn Scheduler

Drives the HINT phase: announces whose turn it is, arms the per-turn
timeout and records a placeholder hint when a turn expires.
"""

from ..config import game_settings as rules
from ..errors import (
    AuthorizationError, PhaseError, ValidationError,
    ELIMINATED, EMPTY_HINT, HOST_ONLY, NOT_YOUR_TURN, WRONG_PHASE
)
from ..models import events
from ..models.events import Outbox
from ..models.room import Hint, Phase, Room
from ..utils.helpers import sanitize_text

TURN_TIMER = "turn"


class TurnScheduler:
    """One outstanding turn timer per room, keyed to ``room.turn_index``."""

    def __init__(self, machine):
        self.machine = machine

    def announce(self, room: Room, outbox: Outbox) -> None:
        """
        Announce the current turn, or leave HINT when the order is exhausted.

        With fewer than two living players the game cannot continue and the
        end conditions decide the winner instead.
        """
        if room.phase != Phase.HINT:
            return

        alive = room.alive_order()
        if len(alive) < 2:
            self.machine.check_end(room, outbox, include_ghosts=False)
            return

        if room.turn_index >= len(alive):
            self.machine.enter_vote(room, outbox)
            return

        turn_id = alive[room.turn_index]
        seconds = room.settings.hint_seconds
        now = self.machine.clock()
        outbox.add(events.TURN, {
            'turnId': turn_id,
            'turnName': room.players[turn_id].name,
            'turnIndex': room.turn_index,
            'seconds': seconds,
            'deadline': int((now + seconds) * 1000),
            'serverNow': int(now * 1000)
        }, self.machine.members(room))

        self.machine.arm(room, TURN_TIMER, seconds)

    def advance(self, room: Room, outbox: Outbox) -> None:
        if room.phase != Phase.HINT:
            return
        self.machine.cancel_timer(room, TURN_TIMER)
        room.turn_index += 1
        self.announce(room, outbox)

    def _record(self, room: Room, player_id: str, text: str, outbox: Outbox) -> None:
        player = room.players[player_id]
        room.hints.append(Hint(player_id, player.name, text))
        outbox.add(events.HINT_UPDATE, {'hints': [hint.to_dict() for hint in room.hints]},
                   self.machine.members(room))

    def submit(self, room: Room, sid: str, text: str, outbox: Outbox) -> None:
        """Record the current speaker's hint and pass the turn on."""
        if room.phase != Phase.HINT:
            raise PhaseError(WRONG_PHASE)
        player = room.players.get(sid)
        if player is not None and not player.alive:
            raise PhaseError(ELIMINATED)
        if room.current_turn_id() != sid:
            raise PhaseError(NOT_YOUR_TURN)

        clean = sanitize_text(text, rules.MAX_HINT_LENGTH)
        if not clean:
            raise ValidationError(EMPTY_HINT)

        self._record(room, sid, clean, outbox)
        self.advance(room, outbox)

    def skip_current(self, room: Room, outbox: Outbox) -> None:
        """Placeholder hint for the current speaker, then advance."""
        current = room.current_turn_id()
        if current is not None:
            self._record(room, current, rules.PLACEHOLDER_HINT, outbox)
        self.advance(room, outbox)

    def on_timeout(self, room: Room, outbox: Outbox) -> None:
        if room.phase == Phase.HINT:
            self.skip_current(room, outbox)

    def force_next(self, room: Room, sid: str, outbox: Outbox) -> None:
        if sid != room.host_id:
            raise AuthorizationError(HOST_ONLY)
        if room.phase != Phase.HINT:
            raise PhaseError(WRONG_PHASE)
        self.machine.cancel_timer(room, TURN_TIMER)
        self.skip_current(room, outbox)
