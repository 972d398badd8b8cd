import pytest

from impostor.config.game_settings import PLACEHOLDER_HINT
from impostor.models import events
from impostor.models.room import Phase, Role

from conftest import SECRETS, finish_hints, impostors, innocents, seat_players, start_game


class TestLobby:
    def test_create_and_join(self, service, broadcaster):
        code, sids = seat_players(service, 3)
        room = service.get_room(code)
        assert len(code) == 5
        assert room.host_id == 'host'
        assert list(room.players) == sids
        assert room.order == sids
        assert service.registry.room_of('p2') == code

        snapshot = broadcaster.received_by('p2', events.LOBBY_UPDATE)[-1].payload
        assert [p['name'] for p in snapshot['players']] == ['Host', 'Player1', 'Player2']
        assert snapshot['secretPlayer'] is None

    def test_join_errors(self, service):
        assert service.join_room('x', 'ZZZZZ', 'Ann') == {'ok': False, 'error': 'not found'}

        code, _ = seat_players(service, 3, max_players=3)
        assert service.join_room('x', code, 'player1') == {'ok': False, 'error': 'name taken'}
        assert service.join_room('x', code, 'Newcomer') == {'ok': False, 'error': 'full'}

        other, _ = seat_players(service, 1)
        service.join_room('a', other, 'A')
        service.join_room('b', other, 'B')
        service.set_ready('a', other, True)
        service.set_ready('b', other, True)
        service.start_game('host', other)
        assert service.join_room('x', other, 'Late') == {'ok': False, 'error': 'already started'}

    def test_joining_another_room_leaves_the_first(self, service):
        first, _ = seat_players(service, 2)
        second = service.create_room('other-host', 'Other')['code']

        assert service.join_room('p1', second, 'Player1')['ok']
        assert 'p1' not in service.get_room(first).players
        assert service.registry.room_of('p1') == second

    def test_settings_round_trip_only_in_lobby(self, service, broadcaster):
        code, _ = seat_players(service, 3)
        ack = service.update_settings('host', code, {'hint_seconds': 45, 'region': 'eu'})
        assert ack['ok']

        snapshot = broadcaster.named(events.LOBBY_UPDATE)[-1].payload
        assert snapshot['settings']['hintSeconds'] == 45
        assert snapshot['settings']['region'] == 'eu'

        service.start_game('host', code)
        before = service.get_room(code).settings.to_dict()
        ack = service.update_settings('host', code, {'hint_seconds': 20})
        assert ack == {'ok': False, 'error': 'wrong phase'}
        assert service.get_room(code).settings.to_dict() == before

    def test_settings_are_host_only(self, service):
        code, _ = seat_players(service, 3)
        assert service.update_settings('p1', code, {'hint_seconds': 45}) == {'ok': False, 'error': 'host only'}

    def test_max_players_cannot_drop_below_roster(self, service):
        code, _ = seat_players(service, 4)
        ack = service.update_settings('host', code, {'max_players': 3})
        assert ack['ok'] is False
        assert ack['error'] == 'invalid settings'


class TestStartGate:
    def test_needs_three_players(self, service):
        code, _ = seat_players(service, 2)
        assert service.start_game('host', code) == {'ok': False, 'error': '<3 players'}

    def test_only_host_can_start(self, service):
        code, _ = seat_players(service, 3)
        assert service.start_game('p1', code) == {'ok': False, 'error': 'host only'}

    def test_seventy_percent_ready_with_host_counted(self, service):
        code, _ = seat_players(service, 4, ready=False)
        service.set_ready('p1', code, True)
        # host + p1 = 2 of 4, need ceil(2.8) = 3
        assert service.start_game('host', code) == {'ok': False, 'error': 'not enough ready'}

        service.set_ready('p2', code, True)
        assert service.start_game('host', code) == {'ok': True}
        assert service.get_room(code).phase == Phase.HINT

    def test_host_not_marked_ready_still_counts(self, service):
        code, _ = seat_players(service, 3)
        service.set_ready('host', code, False)
        assert service.start_game('host', code) == {'ok': True}

    def test_scenario_a_one_impostor_among_three(self, service):
        code, sids = start_game(service, 3, impostors=1)
        room = service.get_room(code)
        assert len(impostors(room)) == 1
        assert len(innocents(room)) == 2
        assert all(p.alive for p in room.players.values())

    @pytest.mark.parametrize('count, expected', [(5, 1), (6, 2), (9, 3)])
    def test_impostor_count_capped_by_player_count(self, service, count, expected):
        code, _ = start_game(service, count, impostors=3)
        assert len(impostors(service.get_room(code))) == expected


class TestSecretVisibility:
    def test_secret_only_sent_privately_to_alive_innocents(self, service, broadcaster):
        code, sids = start_game(service, 4)
        room = service.get_room(code)
        assert room.secret in SECRETS

        for event in broadcaster.events:
            if event.name in (events.LOBBY_UPDATE, events.PHASE):
                assert event.payload['secretPlayer'] is None
                assert all('role' not in p for p in event.payload['players'])

        secret_events = broadcaster.named(events.SECRET)
        recipients = {sid for event in secret_events for sid in event.recipients}
        assert recipients == set(innocents(room))
        assert all(event.payload == {'secretPlayer': room.secret} for event in secret_events)

    def test_every_player_learns_only_their_own_role(self, service, broadcaster):
        code, sids = start_game(service, 3)
        room = service.get_room(code)
        for sid in sids:
            role_events = broadcaster.received_by(sid, events.ROLE)
            assert len(role_events) == 1
            assert role_events[0].recipients == (sid,)
            assert role_events[0].payload['role'] == room.players[sid].role.value

    def test_secret_revealed_at_game_over(self, service, broadcaster):
        code, sids = start_game(service, 3)
        room = service.get_room(code)
        finish_hints(service, code)
        impostor = impostors(room)[0]
        for voter in innocents(room):
            service.cast_vote(voter, code, impostor)

        assert room.phase == Phase.GAME_OVER
        final = broadcaster.named(events.PHASE)[-1].payload
        assert final['secretPlayer'] == room.secret
        assert {p['id']: p['role'] for p in final['players']}[impostor] == 'impostor'


class TestHintPhase:
    def test_turns_follow_join_order(self, service, broadcaster):
        code, sids = start_game(service, 3)
        room = service.get_room(code)
        assert room.current_turn_id() == 'host'
        turn = broadcaster.named(events.TURN)[-1].payload
        assert turn['turnId'] == 'host'
        assert turn['seconds'] == room.settings.hint_seconds

        assert service.submit_hint('host', code, 'round and <b>fast</b>') == {'ok': True}
        assert room.hints[-1].text == 'round and fast'
        assert room.current_turn_id() == 'p1'

    def test_out_of_turn_hint_rejected(self, service):
        code, _ = start_game(service, 3)
        assert service.submit_hint('p2', code, 'early') == {'ok': False, 'error': 'not your turn'}
        assert service.get_room(code).hints == []

    def test_hint_is_truncated(self, service):
        code, _ = start_game(service, 3)
        service.submit_hint('host', code, 'x' * 500)
        assert len(service.get_room(code).hints[0].text) == 120

    def test_empty_hint_rejected(self, service):
        code, _ = start_game(service, 3)
        assert service.submit_hint('host', code, '<i></i>   ') == {'ok': False, 'error': 'empty hint'}

    def test_timeout_records_placeholder_and_advances(self, service, scheduler):
        code, _ = start_game(service, 3)
        room = service.get_room(code)
        timer = scheduler.fire('turn')
        assert timer.delay == room.settings.hint_seconds
        assert room.hints[0].submitter == 'host'
        assert room.hints[0].text == PLACEHOLDER_HINT
        assert room.current_turn_id() == 'p1'
        assert len(scheduler.active('turn')) == 1

    def test_stale_timer_is_ignored(self, service, scheduler):
        code, _ = start_game(service, 3)
        room = service.get_room(code)
        stale = scheduler.active('turn')[0]
        service.submit_hint('host', code, 'clue')
        assert stale.cancelled

        # A callback that raced its own cancellation does nothing
        stale.callback(*stale.args)
        assert room.current_turn_id() == 'p1'
        assert len(room.hints) == 1

    def test_force_next_turn_is_host_only(self, service):
        code, _ = start_game(service, 3)
        room = service.get_room(code)
        assert service.force_next_turn('p1', code) == {'ok': False, 'error': 'host only'}
        assert service.force_next_turn('host', code) == {'ok': True}
        assert room.current_turn_id() == 'p1'
        assert room.hints[0].text == PLACEHOLDER_HINT

    def test_exhausted_order_opens_vote(self, service, scheduler, broadcaster):
        code, _ = start_game(service, 3)
        room = finish_hints(service, code)
        assert room.phase == Phase.VOTE
        assert scheduler.active('turn') == []
        assert len(scheduler.active('vote')) == 1

        opened = broadcaster.named(events.VOTE_OPEN)[-1].payload
        assert opened['duration'] == room.settings.vote_seconds
        assert opened['deadline'] - opened['serverNow'] == room.settings.vote_seconds * 1000


class TestRestart:
    def test_force_restart_rerolls_secret_and_rotates_order(self, service):
        code, sids = start_game(service, 3)
        room = service.get_room(code)
        finish_hints(service, code)
        for voter in innocents(room):
            service.cast_vote(voter, code, impostors(room)[0])
        assert room.phase == Phase.GAME_OVER

        previous_secret = room.secret
        previous_order = list(room.order)
        assert service.force_restart('p1', code) == {'ok': False, 'error': 'host only'}
        assert service.force_restart('host', code) == {'ok': True}

        assert room.phase == Phase.HINT
        assert room.winners is None
        assert room.secret != previous_secret
        assert room.previous_secret == previous_secret
        assert room.order == previous_order[1:] + previous_order[:1]
        assert all(p.alive for p in room.players.values())
        assert room.round == 1

    def test_consecutive_replays_never_repeat_the_last_secret(self, service):
        code, _ = start_game(service, 3)
        room = service.get_room(code)
        for _ in range(10):
            played = room.secret
            assert service.force_restart('host', code) == {'ok': True}
            assert room.previous_secret == played
            assert room.secret != room.previous_secret

    def test_restart_not_allowed_in_lobby(self, service):
        code, _ = seat_players(service, 3)
        assert service.force_restart('host', code) == {'ok': False, 'error': 'wrong phase'}


def test_role_counts_always_add_up(service):
    code, _ = start_game(service, 6)
    room = service.get_room(code)
    while room.phase == Phase.HINT:
        finish_hints(service, code)
        alive = room.alive_players()
        target = alive[0].id
        for voter in alive[1:]:
            service.cast_vote(voter.id, code, target)
            assert room.count_alive(Role.IMPOSTOR) + room.count_alive(Role.INNOCENT) == len(room.alive_players())
        assert room.players[target].alive is False

    assert room.phase == Phase.GAME_OVER
    assert room.winners is not None
