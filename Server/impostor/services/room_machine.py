"""
Room State Machine

Owns the phase transitions of a single room:
LOBBY -> HINT -> VOTE -> (HINT | GAME_OVER), with CLOSED as teardown.

Every method expects the caller to hold ``room.lock``. Methods never emit
directly; they append events to the Outbox they are given.
"""

import math
import random
import time
from typing import Callable, List, Optional

from ..config import game_settings as rules
from ..errors import (
    AuthorizationError, ConflictError, PhaseError,
    HOST_ONLY, NOT_ENOUGH_PLAYERS, NOT_ENOUGH_READY, WRONG_PHASE
)
from ..models import events
from ..models.events import Outbox
from ..models.room import Phase, Role, Room, Winners
from ..utils.game_logger import game_logger
from .scheduler import TimerScheduler
from .turn_scheduler import TurnScheduler
from .vote_resolver import VoteResolver


def impostor_count_for(configured: int, player_count: int) -> int:
    """Configured impostors, capped at one per three players (never below one)."""
    return min(max(1, configured), max(1, player_count // 3))


def ready_gate_met(room: Room) -> bool:
    """All players ready, or at least 70% of them. The host always counts as ready."""
    total = len(room.players)
    ready = sum(1 for p in room.players.values() if p.ready or p.id == room.host_id)
    return ready == total or ready >= math.ceil(rules.READY_RATIO * total)


class RoomMachine:
    """
    Phase transition logic shared by every room.

    ``on_timer(code, kind, token)`` is invoked from a timer thread when an
    armed deadline fires; the room service resolves it back to a room under
    the room lock.
    """

    def __init__(self,
                 on_timer: Callable[[str, str, int], None],
                 scheduler: Optional[TimerScheduler] = None,
                 clock: Callable[[], float] = time.time,
                 rng: Optional[random.Random] = None,
                 secret_pool: Optional[List[str]] = None):
        self.on_timer = on_timer
        self.scheduler = scheduler or TimerScheduler()
        self.clock = clock
        self.rng = rng or random.Random()
        self.secret_pool = list(secret_pool or rules.SECRET_POOL)
        self.turns = TurnScheduler(self)
        self.votes = VoteResolver(self)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def arm(self, room: Room, kind: str, delay: float) -> None:
        """Cancel the outstanding timer of this kind, then arm a new one."""
        self.cancel_timer(room, kind)
        room.timer_token += 1
        token = room.timer_token
        handle = self.scheduler.schedule(delay, self.on_timer, room.code, kind, token)
        room.timers[kind] = (handle, token)

    def cancel_timer(self, room: Room, kind: str) -> None:
        entry = room.timers.pop(kind, None)
        if entry is not None:
            self.scheduler.cancel(entry[0])

    def cancel_timers(self, room: Room) -> None:
        for kind in list(room.timers):
            self.cancel_timer(room, kind)
        room.timer_token += 1

    def timer_is_current(self, room: Room, kind: str, token: int) -> bool:
        entry = room.timers.get(kind)
        return entry is not None and entry[1] == token

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def members(self, room: Room) -> List[str]:
        return list(room.players.keys())

    def broadcast_snapshot(self, room: Room, outbox: Outbox, name: str = events.LOBBY_UPDATE) -> None:
        outbox.add(name, room.snapshot(), self.members(room))

    def send_secret(self, room: Room, outbox: Outbox) -> None:
        """Private secret to living innocents only."""
        for player in room.players.values():
            if player.alive and player.role == Role.INNOCENT:
                outbox.add(events.SECRET, {'secretPlayer': room.secret}, [player.id])

    def send_roles(self, room: Room, outbox: Outbox) -> None:
        for player in room.players.values():
            outbox.add(events.ROLE, {'role': player.role.value, 'alive': player.alive}, [player.id])

    # ------------------------------------------------------------------
    # Game start
    # ------------------------------------------------------------------

    def check_can_start(self, room: Room, sid: str) -> None:
        if sid != room.host_id:
            raise AuthorizationError(HOST_ONLY)
        if room.phase != Phase.LOBBY:
            raise PhaseError(WRONG_PHASE)
        if len(room.players) < rules.MIN_PLAYERS:
            raise ConflictError(NOT_ENOUGH_PLAYERS)
        if not ready_gate_met(room):
            raise ConflictError(NOT_ENOUGH_READY)

    def check_can_restart(self, room: Room, sid: str) -> None:
        if sid != room.host_id:
            raise AuthorizationError(HOST_ONLY)
        if room.phase not in (Phase.HINT, Phase.VOTE, Phase.GAME_OVER):
            raise PhaseError(WRONG_PHASE)
        if len(room.players) < rules.MIN_PLAYERS:
            raise ConflictError(NOT_ENOUGH_PLAYERS)

    def assign_roles(self, room: Room) -> None:
        ids = list(room.players)
        count = impostor_count_for(room.settings.impostors, len(ids))
        impostors = set(self.rng.sample(ids, count))
        for pid in ids:
            player = room.players[pid]
            player.alive = True
            player.role = Role.IMPOSTOR if pid in impostors else Role.INNOCENT

    def choose_secret(self, room: Room, replay: bool) -> str:
        room.previous_secret = room.secret
        secret = self.rng.choice(self.secret_pool)
        if replay and room.previous_secret is not None and len(self.secret_pool) > 1:
            while secret == room.previous_secret:
                secret = self.rng.choice(self.secret_pool)
        room.secret = secret
        return secret

    def rotate_order(self, room: Room) -> None:
        if room.order:
            room.order = room.order[1:] + room.order[:1]

    def start_game(self, room: Room, outbox: Outbox, replay: bool = False) -> None:
        """
        Enter HINT with fresh roles and secret.

        A first start fixes the turn order to join order; a replay keeps the
        previous order (minus leavers) and rotates it by one.
        """
        self.cancel_timers(room)
        ids = list(room.players)
        if replay:
            kept = [pid for pid in room.order if pid in room.players]
            room.order = kept + [pid for pid in ids if pid not in kept]
            self.rotate_order(room)
        else:
            room.order = ids

        self.assign_roles(room)
        self.choose_secret(room, replay)
        room.winners = None
        room.round = 0
        room.ghosts.clear()
        room.game_started_at = self.clock()

        game_logger.log_game_event(
            room.code, 'game_started',
            replay=replay,
            players=len(ids),
            impostors=room.count_alive(Role.IMPOSTOR)
        )

        self.send_roles(room, outbox)
        self.begin_round(room, outbox, rotate=False)

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------

    def begin_round(self, room: Room, outbox: Outbox, rotate: bool = True) -> None:
        """Start a HINT round: clear hints and votes, optionally rotate the order."""
        self.cancel_timers(room)
        room.phase = Phase.HINT
        room.hints = []
        room.votes = {}
        room.vote_deadline = None
        room.round += 1
        room.turn_index = 0
        if rotate:
            self.rotate_order(room)

        game_logger.log_game_event(room.code, 'phase_changed', phase=Phase.HINT.value, round=room.round)

        self.broadcast_snapshot(room, outbox, events.PHASE)
        self.send_secret(room, outbox)
        self.turns.announce(room, outbox)

    def enter_vote(self, room: Room, outbox: Outbox) -> None:
        self.cancel_timers(room)
        room.phase = Phase.VOTE
        room.votes = {}
        game_logger.log_game_event(room.code, 'phase_changed', phase=Phase.VOTE.value, round=room.round)
        self.votes.open(room, outbox)

    def eliminate(self, room: Room, target_id: str, outbox: Outbox) -> None:
        target = room.players.get(target_id)
        if target is None:
            return
        target.alive = False
        game_logger.log_game_event(room.code, 'player_eliminated', player=target.name, round=room.round)

        if not self.check_end(room, outbox):
            self.begin_round(room, outbox, rotate=True)

    # ------------------------------------------------------------------
    # End conditions
    # ------------------------------------------------------------------

    def alive_counts(self, room: Room, include_ghosts: bool = True):
        impostors = room.count_alive(Role.IMPOSTOR)
        innocents = room.count_alive(Role.INNOCENT)
        if include_ghosts:
            for ghost in room.ghosts.values():
                if ghost.alive and ghost.role == Role.IMPOSTOR:
                    impostors += 1
                elif ghost.alive:
                    innocents += 1
        return impostors, innocents

    def check_end(self, room: Room, outbox: Outbox, include_ghosts: bool = True) -> bool:
        """
        End the game if a side has won.

        Seats held for rejoin count as alive unless ``include_ghosts`` is
        False, which is used when too few present players remain to play on.

        Returns:
            bool: True if the room is now in GAME_OVER
        """
        if room.phase not in (Phase.HINT, Phase.VOTE):
            return room.phase == Phase.GAME_OVER

        impostors, innocents = self.alive_counts(room, include_ghosts)
        if impostors == 0:
            self.end_game(room, Winners.INNOCENTS, outbox)
            return True
        if innocents <= 1:
            self.end_game(room, Winners.IMPOSTORS, outbox)
            return True
        return False

    def end_game(self, room: Room, winners: Winners, outbox: Outbox) -> None:
        self.cancel_timers(room)
        room.phase = Phase.GAME_OVER
        room.winners = winners
        room.vote_deadline = None
        room.turn_index = 0
        game_logger.log_game_event(room.code, 'game_over', winners=winners.value, round=room.round)
        self.broadcast_snapshot(room, outbox, events.PHASE)
