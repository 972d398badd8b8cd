import os
import random
import tempfile

import pytest

os.environ.setdefault('LOG_DIR', tempfile.mkdtemp(prefix='impostor-logs-'))

from impostor.config import TestingConfig
from impostor.models.room import Phase, Role
from impostor.services.room_service import RoomService

SECRETS = ["Alpha", "Bravo", "Charlie"]


class ManualTimer:
    def __init__(self, delay, callback, args):
        self.delay = delay
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    @property
    def kind(self):
        return self.args[1]

    @property
    def active(self):
        return not (self.cancelled or self.fired)


class ManualScheduler:
    """Records timers instead of starting threads; tests fire them explicitly."""

    def __init__(self):
        self.timers = []

    def schedule(self, delay, callback, *args):
        timer = ManualTimer(delay, callback, args)
        self.timers.append(timer)
        return timer

    def cancel(self, handle):
        if handle is not None:
            handle.cancelled = True

    def active(self, kind=None):
        return [t for t in self.timers if t.active and (kind is None or t.kind == kind)]

    def fire(self, kind):
        pending = self.active(kind)
        assert pending, f"no active {kind} timer"
        timer = pending[-1]
        timer.fired = True
        timer.callback(*timer.args)
        return timer


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingBroadcaster:
    def __init__(self):
        self.events = []

    def publish(self, outbox):
        self.events.extend(outbox)

    def named(self, name):
        return [event for event in self.events if event.name == name]

    def received_by(self, sid, name=None):
        return [event for event in self.events
                if sid in event.recipients and (name is None or event.name == name)]

    def clear(self):
        self.events.clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def service(broadcaster, scheduler, clock):
    return RoomService(
        broadcaster=broadcaster,
        scheduler=scheduler,
        clock=clock,
        rng=random.Random(1234),
        secret_pool=SECRETS,
        config=TestingConfig
    )


def seat_players(service, count, ready=True, **settings):
    """Create a room hosted by 'host' and seat count-1 more players p1..pN."""
    ack = service.create_room('host', 'Host', settings)
    assert ack['ok'], ack
    code = ack['code']
    sids = ['host']
    for i in range(1, count):
        sid = f'p{i}'
        assert service.join_room(sid, code, f'Player{i}')['ok']
        if ready:
            assert service.set_ready(sid, code, True)['ok']
        sids.append(sid)
    return code, sids


def start_game(service, count, **settings):
    code, sids = seat_players(service, count, **settings)
    assert service.start_game('host', code) == {'ok': True}
    return code, sids


def finish_hints(service, code):
    """Submit a hint for every remaining speaker until the room leaves HINT."""
    room = service.get_room(code)
    while room.phase == Phase.HINT:
        speaker = room.current_turn_id()
        assert service.submit_hint(speaker, code, f"clue from {speaker}")['ok']
    return room


def impostors(room):
    return [p.id for p in room.players.values() if p.role == Role.IMPOSTOR]


def innocents(room):
    return [p.id for p in room.players.values() if p.role == Role.INNOCENT]
