"""
Room Service

Process-wide owner of every room, the connection registry and the room
directory. Each action locks the addressed room, validates, mutates through
the room machine, syncs the directory and finally publishes the collected
events through the broadcaster.
"""

import random
import threading
import time
from collections import deque
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Deque, Dict, List, Optional

from ..config import Config
from ..config import game_settings as rules
from ..errors import (
    ActionRejected, AuthorizationError, ConflictError, NotFoundError, PhaseError,
    RateLimitError, ValidationError,
    ALREADY_STARTED, ELIMINATED, EMPTY_MESSAGE, HOST_ONLY, INVALID_SETTINGS, NAME_TAKEN,
    NOT_FOUND, NOT_IN_ROOM, NO_REJOIN_SLOT, RATE_LIMITED, REJOIN_EXPIRED, ROOM_FULL,
    VOTING_ONLY, WRONG_PHASE
)
from ..models import events
from ..models.directory import RoomFilter
from ..models.events import Outbox
from ..models.room import Ghost, Phase, Player, Role, Room, Settings
from ..utils.game_logger import game_logger
from ..utils.helpers import make_room_code, sanitize_text
from .connection_registry import ConnectionRegistry
from .directory_service import RoomDirectory
from .room_machine import RoomMachine
from .scheduler import TimerScheduler


class NullBroadcaster:
    """Drops every event. Used until the socket layer attaches a real one."""

    def publish(self, outbox: Outbox) -> None:
        pass


def acknowledged(method):
    """Turn a rejected action into an ``{'ok': False, 'error': ...}`` ack."""
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            result = method(self, *args, **kwargs)
        except ActionRejected as rejected:
            return rejected.to_ack()
        return {'ok': True} if result is None else result
    return wrapper


class RoomService:
    """
    Room lifecycle and every player-facing action.

    This class handles:
    - Room creation with unique codes and directory registration
    - Membership (join, leave, disconnect, rejoin through ghost slots)
    - Host migration and room closure
    - Forwarding gameplay actions to the room machine
    """

    def __init__(self,
                 broadcaster=None,
                 scheduler: Optional[TimerScheduler] = None,
                 clock: Callable[[], float] = time.time,
                 rng: Optional[random.Random] = None,
                 secret_pool: Optional[List[str]] = None,
                 config=Config):
        self.broadcaster = broadcaster or NullBroadcaster()
        self.clock = clock
        self.rng = rng or random.Random()
        self.config = config
        self.rooms: Dict[str, Room] = {}
        self.registry = ConnectionRegistry()
        self.directory = RoomDirectory()
        self.machine = RoomMachine(
            on_timer=self._on_timer,
            scheduler=scheduler,
            clock=clock,
            rng=self.rng,
            secret_pool=secret_pool
        )
        self._rooms_lock = threading.RLock()
        self._chat_history: Dict[str, Deque[float]] = {}

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def get_room(self, code: str) -> Optional[Room]:
        with self._rooms_lock:
            return self.rooms.get(code)

    def room_codes(self) -> List[str]:
        with self._rooms_lock:
            return list(self.rooms.keys())

    def _require_room(self, code: str) -> Room:
        room = self.get_room(code)
        if room is None:
            raise NotFoundError(NOT_FOUND)
        return room

    def _require_member(self, room: Room, sid: str) -> Player:
        player = room.players.get(sid)
        if player is None:
            raise NotFoundError(NOT_IN_ROOM)
        return player

    def _require_host(self, room: Room, sid: str) -> None:
        self._require_member(room, sid)
        if sid != room.host_id:
            raise AuthorizationError(HOST_ONLY)

    @contextmanager
    def _transaction(self, code: str, activity: bool = True):
        """
        Lock a live room and yield it with a fresh outbox.

        The outbox is committed only if the body completes; a rejected
        action raises before mutating anything. Events go out after the
        room lock is released.
        """
        room = self._require_room(code)
        with room.lock:
            if room.phase == Phase.CLOSED:
                raise NotFoundError(NOT_FOUND)
            outbox = Outbox()
            yield room, outbox
            listing_changed = self._settle(room, outbox, activity)
        self._dispatch(outbox, listing_changed)

    def _settle(self, room: Room, outbox: Outbox, activity: bool = True) -> bool:
        """
        Stamp the room and sync its directory entry. Caller holds the room lock.

        Returns:
            bool: True if the public listing changed
        """
        if room.phase != Phase.CLOSED and (activity or outbox):
            room.touch(self.clock(), activity)
        return self.directory.sync(room)

    def _dispatch(self, outbox: Outbox, listing_changed: bool) -> None:
        """Add directory pushes and publish. Called without any room lock held."""
        if listing_changed:
            outbox.extend(self.directory.watcher_updates())
        self.publish(outbox)

    def publish(self, outbox: Outbox) -> None:
        try:
            self.broadcaster.publish(outbox)
        except Exception as e:
            game_logger.log_error(None, e, 'publish')

    def run_locked(self, code: str, fn: Callable[[Room, Outbox], Any], activity: bool = False) -> Any:
        """
        Run ``fn(room, outbox)`` under the room lock and commit its events.

        Returns None without calling ``fn`` when the room no longer exists.
        """
        room = self.get_room(code)
        if room is None:
            return None
        with room.lock:
            if room.phase == Phase.CLOSED:
                return None
            outbox = Outbox()
            result = fn(room, outbox)
            listing_changed = self._settle(room, outbox, activity)
        self._dispatch(outbox, listing_changed)
        return result

    def _on_timer(self, code: str, kind: str, token: int) -> None:
        """Timer thread entry point for turn timeouts and vote deadlines."""
        def fire(room, outbox):
            if not self.machine.timer_is_current(room, kind, token):
                return
            room.timers.pop(kind, None)
            if kind == 'turn':
                self.machine.turns.on_timeout(room, outbox)
            elif kind == 'vote':
                self.machine.votes.on_deadline(room, outbox)
            game_logger.log_game_event(code, f'{kind}_timer_fired', phase=room.phase.value)

        try:
            self.run_locked(code, fire)
        except Exception as e:
            game_logger.log_error(None, e, f'timer:{kind}', code)

    # ------------------------------------------------------------------
    # Room lifecycle
    # ------------------------------------------------------------------

    @acknowledged
    def create_room(self, sid: str, display_name: str, settings: Optional[Dict[str, Any]] = None) -> Dict:
        """
        Create a room hosted by the caller.

        Args:
            sid: Connection handle of the host
            display_name: Validated display name
            settings: Validated Settings attributes (defaults for the rest)

        Returns:
            Ack with the new room code
        """
        self._leave_current_room(sid)

        now = self.clock()
        with self._rooms_lock:
            code = make_room_code(self.rng, self.rooms)
            room = Room(
                code=code,
                host_id=sid,
                settings=Settings(**(settings or {})),
                created_at=now
            )
            room.players[sid] = Player(id=sid, name=display_name, ready=True, last_seen=now)
            room.order.append(sid)
            self.rooms[code] = room

        with room.lock:
            self.registry.bind(sid, code)
            outbox = Outbox()
            self.machine.broadcast_snapshot(room, outbox)
            listing_changed = self._settle(room, outbox)
        self._dispatch(outbox, listing_changed)

        game_logger.log_game_event(code, 'room_created', sid, host=display_name,
                                   public=room.settings.is_public, region=room.settings.region)
        return {'ok': True, 'code': code}

    def _check_joinable(self, room: Room, sid: str, display_name: str) -> None:
        if room.phase != Phase.LOBBY:
            raise PhaseError(ALREADY_STARTED)
        existing = room.find_player_by_name(display_name)
        if existing is not None and existing.id != sid:
            raise ConflictError(NAME_TAKEN)
        if len(room.players) >= room.settings.max_players and sid not in room.players:
            raise ConflictError(ROOM_FULL)

    @acknowledged
    def join_room(self, sid: str, code: str, display_name: str) -> Dict:
        room = self._require_room(code)
        with room.lock:
            if sid in room.players:
                return {'ok': True, 'code': code}
            self._check_joinable(room, sid, display_name)

        # Leave any previous room before taking a seat here
        self._leave_current_room(sid)

        with self._transaction(code) as (room, outbox):
            self._check_joinable(room, sid, display_name)
            # Joining with a ghost's name reclaims the slot
            room.ghosts.pop(display_name.lower(), None)
            room.players[sid] = Player(id=sid, name=display_name, last_seen=self.clock())
            room.order.append(sid)
            self.registry.bind(sid, code)
            self.machine.broadcast_snapshot(room, outbox)

        game_logger.log_game_event(code, 'player_joined', sid, player=display_name)
        return {'ok': True, 'code': code}

    @acknowledged
    def set_ready(self, sid: str, code: str, ready: bool) -> None:
        with self._transaction(code) as (room, outbox):
            player = self._require_member(room, sid)
            if room.phase != Phase.LOBBY:
                raise PhaseError(WRONG_PHASE)
            player.ready = ready
            player.last_seen = self.clock()
            self.machine.broadcast_snapshot(room, outbox)

    @acknowledged
    def update_settings(self, sid: str, code: str, patch: Dict[str, Any]) -> Dict:
        with self._transaction(code) as (room, outbox):
            self._require_host(room, sid)
            if room.phase != Phase.LOBBY:
                raise PhaseError(WRONG_PHASE)
            if patch.get('max_players', room.settings.max_players) < len(room.players):
                raise ValidationError(INVALID_SETTINGS, "maxPlayers below current player count")
            for attribute, value in patch.items():
                setattr(room.settings, attribute, value)
            self.machine.broadcast_snapshot(room, outbox)
            return {'ok': True, 'settings': room.settings.to_dict()}

    @acknowledged
    def start_game(self, sid: str, code: str) -> None:
        with self._transaction(code) as (room, outbox):
            self._require_member(room, sid)
            self.machine.check_can_start(room, sid)
            self.machine.start_game(room, outbox)

    @acknowledged
    def force_next_turn(self, sid: str, code: str) -> None:
        with self._transaction(code) as (room, outbox):
            self._require_member(room, sid)
            self.machine.turns.force_next(room, sid, outbox)

    @acknowledged
    def force_restart(self, sid: str, code: str) -> None:
        with self._transaction(code) as (room, outbox):
            self._require_member(room, sid)
            self.machine.check_can_restart(room, sid)
            self.machine.start_game(room, outbox, replay=True)

    @acknowledged
    def close_room(self, sid: str, code: str) -> None:
        with self._transaction(code) as (room, outbox):
            self._require_host(room, sid)
            self.close_locked(room, outbox, 'host_closed')

    def close_locked(self, room: Room, outbox: Outbox, reason: str) -> None:
        """Tear the room down. Caller holds the room lock and commits the outbox."""
        self.machine.cancel_timers(room)
        outbox.add(events.ROOM_CLOSED, {'code': room.code, 'reason': reason}, self.machine.members(room))
        for sid in list(room.players):
            self.registry.unbind(sid, room.code)
        room.phase = Phase.CLOSED
        room.players.clear()
        room.order = []
        room.ghosts.clear()
        room.host_id = None
        with self._rooms_lock:
            self.rooms.pop(room.code, None)
        game_logger.log_game_event(room.code, 'room_closed', reason=reason)

    # ------------------------------------------------------------------
    # Departures
    # ------------------------------------------------------------------

    @acknowledged
    def leave_room(self, sid: str, code: str) -> None:
        with self._transaction(code) as (room, outbox):
            self._require_member(room, sid)
            self._remove_player(room, sid, outbox, keep_seat=False)

    def disconnect(self, sid: str) -> bool:
        """
        Handle a dropped connection: stop directory pushes and free the seat,
        keeping a ghost slot for rejoin.

        Returns:
            bool: True if the connection was seated in a room
        """
        self.directory.unwatch(sid)
        with self._rooms_lock:
            self._chat_history.pop(sid, None)

        code = self.registry.room_of(sid)
        if code is None:
            return False

        def depart(room, outbox):
            if sid in room.players:
                self._remove_player(room, sid, outbox, keep_seat=True)
                return True
            self.registry.unbind(sid, code)
            return False

        return bool(self.run_locked(code, depart))

    def _leave_current_room(self, sid: str) -> None:
        code = self.registry.room_of(sid)
        if code is None:
            return

        def depart(room, outbox):
            if sid in room.players:
                self._remove_player(room, sid, outbox, keep_seat=False)

        self.run_locked(code, depart, activity=True)
        self.registry.unbind(sid, code)

    def _remove_player(self, room: Room, sid: str, outbox: Outbox, keep_seat: bool) -> None:
        """
        Remove a player and repair every structure that referenced them.

        Caller holds the room lock.
        """
        alive_before = room.alive_order()
        speaker_pos = alive_before.index(sid) if sid in alive_before else None
        position = room.order.index(sid) if sid in room.order else len(room.order)

        player = room.players.pop(sid)
        if sid in room.order:
            room.order.remove(sid)
        self.registry.unbind(sid, room.code)

        if keep_seat:
            room.ghosts[player.name.lower()] = Ghost(
                name=player.name,
                role=player.role,
                alive=player.alive,
                position=position,
                expires_at=self.clock() + self.config.REJOIN_GRACE_SECONDS
            )

        # Votes by or for the departed player no longer count
        room.votes.pop(sid, None)
        room.votes = {voter: target for voter, target in room.votes.items() if target != sid}

        game_logger.log_game_event(room.code, 'player_left', sid, player=player.name,
                                   phase=room.phase.value, seat_kept=keep_seat)

        if not room.players:
            self.close_locked(room, outbox, 'empty')
            return

        if room.host_id == sid:
            if room.order:
                room.host_id = room.order[position % len(room.order)]
            else:
                room.host_id = next(iter(room.players))
            new_host = room.players[room.host_id]
            outbox.add(events.HOST_CHANGED, {'hostId': new_host.id, 'hostName': new_host.name},
                       self.machine.members(room))
            game_logger.log_game_event(room.code, 'host_migrated', new_host=new_host.name)

        self.machine.broadcast_snapshot(room, outbox)

        if room.phase not in (Phase.HINT, Phase.VOTE):
            return
        if len(room.alive_players()) < 2:
            self.machine.check_end(room, outbox, include_ghosts=False)
            return
        if self.machine.check_end(room, outbox):
            return

        if room.phase == Phase.HINT and speaker_pos is not None:
            if speaker_pos < room.turn_index:
                room.turn_index -= 1
            elif speaker_pos == room.turn_index:
                self.machine.cancel_timer(room, 'turn')
                self.machine.turns.announce(room, outbox)
        elif room.phase == Phase.VOTE:
            self.machine.votes.resolve(room, outbox)

    # ------------------------------------------------------------------
    # Rejoin
    # ------------------------------------------------------------------

    def _claim_ghost(self, room: Room, sid: str, display_name: str) -> Ghost:
        existing = room.find_player_by_name(display_name)
        if existing is not None and existing.id != sid:
            raise ConflictError(NAME_TAKEN)
        ghost = room.ghosts.get(display_name.lower())
        if ghost is None:
            raise NotFoundError(NO_REJOIN_SLOT)
        if ghost.expires_at <= self.clock():
            raise NotFoundError(REJOIN_EXPIRED)
        if room.phase == Phase.LOBBY and len(room.players) >= room.settings.max_players:
            raise ConflictError(ROOM_FULL)
        return ghost

    @acknowledged
    def rejoin(self, sid: str, code: str, display_name: str) -> Dict:
        """Restore a disconnected player's seat, role and alive-state."""
        room = self._require_room(code)
        with room.lock:
            if sid in room.players:
                return {'ok': True, 'code': code}
            self._claim_ghost(room, sid, display_name)

        self._leave_current_room(sid)

        with self._transaction(code) as (room, outbox):
            ghost = self._claim_ghost(room, sid, display_name)
            del room.ghosts[ghost.name.lower()]

            player = Player(id=sid, name=ghost.name, alive=ghost.alive, role=ghost.role,
                            ready=True, last_seen=self.clock())
            room.players[sid] = player
            room.order.insert(min(ghost.position, len(room.order)), sid)
            self.registry.bind(sid, code)

            # A rejoining speaker does not get back a turn already passed
            if room.phase == Phase.HINT and player.alive:
                if room.alive_order().index(sid) <= room.turn_index:
                    room.turn_index += 1

            self.machine.broadcast_snapshot(room, outbox)
            if room.phase in (Phase.HINT, Phase.VOTE, Phase.GAME_OVER):
                outbox.add(events.ROLE, {'role': player.role.value, 'alive': player.alive}, [sid])
            if room.phase in (Phase.HINT, Phase.VOTE) and player.alive and player.role == Role.INNOCENT:
                outbox.add(events.SECRET, {'secretPlayer': room.secret}, [sid])

        game_logger.log_game_event(code, 'player_rejoined', sid, player=ghost.name, phase=room.phase.value)
        return {'ok': True, 'code': code, 'role': ghost.role.value, 'alive': ghost.alive}

    # ------------------------------------------------------------------
    # Gameplay
    # ------------------------------------------------------------------

    @acknowledged
    def submit_hint(self, sid: str, code: str, text: str) -> None:
        with self._transaction(code) as (room, outbox):
            self._require_member(room, sid).last_seen = self.clock()
            self.machine.turns.submit(room, sid, text, outbox)

    @acknowledged
    def cast_vote(self, sid: str, code: str, target: str) -> None:
        with self._transaction(code) as (room, outbox):
            self._require_member(room, sid).last_seen = self.clock()
            self.machine.votes.cast(room, sid, target, outbox)

    def _check_chat_rate(self, sid: str) -> None:
        now = self.clock()
        window = self.config.CHAT_RATE_WINDOW_SECONDS
        with self._rooms_lock:
            history = self._chat_history.setdefault(sid, deque())
            while history and now - history[0] >= window:
                history.popleft()
            if len(history) >= self.config.CHAT_RATE_LIMIT:
                raise RateLimitError(RATE_LIMITED)
            history.append(now)

    @acknowledged
    def send_chat(self, sid: str, code: str, text: str) -> None:
        with self._transaction(code) as (room, outbox):
            player = self._require_member(room, sid)
            if room.phase != Phase.VOTE:
                raise PhaseError(VOTING_ONLY)
            if not player.alive:
                raise PhaseError(ELIMINATED)
            clean = sanitize_text(text, rules.MAX_CHAT_LENGTH)
            if not clean:
                raise ValidationError(EMPTY_MESSAGE)
            self._check_chat_rate(sid)
            player.last_seen = self.clock()
            outbox.add(events.CHAT, {
                'id': sid,
                'name': player.name,
                'text': clean,
                'at': int(self.clock() * 1000)
            }, self.machine.members(room))

    # ------------------------------------------------------------------
    # Directory
    # ------------------------------------------------------------------

    def list_rooms(self, room_filter: Optional[RoomFilter] = None) -> List[Dict]:
        return self.directory.list_payload(room_filter)

    def watch_rooms(self, sid: str, room_filter: Optional[RoomFilter] = None) -> Dict:
        rooms = self.directory.watch(sid, room_filter or RoomFilter())
        return {'ok': True, 'rooms': rooms}

    def unwatch_rooms(self, sid: str) -> Dict:
        self.directory.unwatch(sid)
        return {'ok': True}

    def get_snapshot(self, code: str) -> Optional[Dict]:
        room = self.get_room(code)
        if room is None:
            return None
        with room.lock:
            if room.phase == Phase.CLOSED:
                return None
            return room.snapshot()


# Global service instance
_room_service = None


def get_room_service() -> Optional[RoomService]:
    """Get the global room service instance."""
    return _room_service


def initialize_room_service(config=Config, **kwargs) -> RoomService:
    """Initialize the global room service instance."""
    global _room_service
    _room_service = RoomService(config=config, **kwargs)
    return _room_service
