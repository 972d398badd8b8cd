from impostor.config.game_settings import SKIP_VOTE
from impostor.models import events
from impostor.models.room import Phase

from conftest import finish_hints, start_game


def open_vote(service, count, **settings):
    code, sids = start_game(service, count, **settings)
    room = finish_hints(service, code)
    assert room.phase == Phase.VOTE
    return code, sids, room


def test_scenario_b_majority_eliminates_despite_target_skipping(service, broadcaster):
    code, _, room = open_vote(service, 4)

    assert service.cast_vote('p3', code, SKIP_VOTE) == {'ok': True}
    service.cast_vote('host', code, 'p3')
    service.cast_vote('p1', code, 'p3')
    assert room.phase == Phase.VOTE

    service.cast_vote('p2', code, 'p3')
    result = broadcaster.named(events.VOTE_RESULT)[-1].payload
    assert result['outcome'] == 'eliminated'
    assert result['eliminatedId'] == 'p3'
    assert result['eliminatedName'] == 'Player3'
    assert result['tally'] == {'p3': 3}
    assert result['skips'] == 1
    assert room.players['p3'].alive is False


def test_scenario_c_split_vote_starts_next_round(service, broadcaster, scheduler):
    code, _, room = open_vote(service, 5)
    for voter, target in [('host', 'p1'), ('p2', 'p1'), ('p1', 'p3'), ('p4', 'p3'), ('p3', 'host')]:
        assert service.cast_vote(voter, code, target) == {'ok': True}

    result = broadcaster.named(events.VOTE_RESULT)[-1].payload
    assert result['outcome'] == 'no_majority'
    assert result['forced'] is False
    # Equal tallies are listed by whoever got voted first
    assert list(result['tally']) == ['p1', 'p3', 'host']

    assert room.phase == Phase.HINT
    assert room.round == 2
    assert room.hints == []
    assert room.votes == {}
    assert all(p.alive for p in room.players.values())
    assert room.order == ['p1', 'p2', 'p3', 'p4', 'host']
    assert room.current_turn_id() == 'p1'
    assert scheduler.active('vote') == []
    assert len(scheduler.active('turn')) == 1


def test_secret_is_resent_for_the_next_round(service, broadcaster):
    code, _, room = open_vote(service, 4)
    secret = room.secret
    broadcaster.clear()
    service.cast_vote('host', code, SKIP_VOTE)
    service.cast_vote('p1', code, SKIP_VOTE)
    service.cast_vote('p2', code, SKIP_VOTE)

    assert broadcaster.named(events.VOTE_RESULT)[-1].payload['outcome'] == 'skipped'
    assert room.phase == Phase.HINT
    assert room.secret == secret
    assert broadcaster.named(events.SECRET)


def test_vote_update_counts_votes(service, broadcaster):
    code, _, _ = open_vote(service, 4)
    service.cast_vote('host', code, 'p1')
    update = broadcaster.named(events.VOTE_UPDATE)[-1]
    assert update.payload == {'votes': 1, 'alive': 4}
    assert set(update.recipients) == {'host', 'p1', 'p2', 'p3'}


def test_duplicate_vote_rejected_and_tally_unchanged(service):
    code, _, room = open_vote(service, 4)
    service.cast_vote('host', code, 'p1')
    assert service.cast_vote('host', code, 'p2') == {'ok': False, 'error': 'already voted'}
    assert room.votes == {'host': 'p1'}


def test_invalid_targets(service):
    code, _, room = open_vote(service, 4)
    assert service.cast_vote('host', code, 'host') == {'ok': False, 'error': 'invalid target'}
    assert service.cast_vote('host', code, 'nobody') == {'ok': False, 'error': 'invalid target'}
    assert room.votes == {}


def test_vote_outside_voting_phase(service):
    code, _ = start_game(service, 3)
    assert service.cast_vote('host', code, 'p1') == {'ok': False, 'error': 'wrong phase'}


def test_deadline_forces_no_majority(service, broadcaster, scheduler):
    code, _, room = open_vote(service, 4)
    service.cast_vote('host', code, 'p1')

    timer = scheduler.fire('vote')
    assert timer.delay == room.settings.vote_seconds

    result = broadcaster.named(events.VOTE_RESULT)[-1].payload
    assert result == {
        'outcome': 'no_majority',
        'eliminatedId': None,
        'eliminatedName': None,
        'tally': {'p1': 1},
        'skips': 0,
        'forced': True
    }
    assert room.phase == Phase.HINT
    assert room.round == 2


def test_departed_voter_and_target_votes_are_dropped(service):
    code, _, room = open_vote(service, 5)
    service.cast_vote('host', code, 'p4')
    service.cast_vote('p1', code, 'p4')
    service.cast_vote('p4', code, 'p1')

    service.disconnect('p4')
    assert room.votes == {}
    assert room.phase == Phase.VOTE


class TestChat:
    def test_chat_is_voting_only(self, service):
        code, _ = start_game(service, 3)
        assert service.send_chat('host', code, 'hello') == {'ok': False, 'error': 'voting-only'}

    def test_chat_broadcast_during_vote(self, service, broadcaster, clock):
        code, _, _ = open_vote(service, 3)
        assert service.send_chat('p1', code, '<script>x</script>it was p2') == {'ok': True}

        chat = broadcaster.named(events.CHAT)[-1]
        assert chat.payload == {'id': 'p1', 'name': 'Player1', 'text': 'xit was p2', 'at': int(clock() * 1000)}
        assert set(chat.recipients) == {'host', 'p1', 'p2'}

    def test_empty_message_rejected(self, service):
        code, _, _ = open_vote(service, 3)
        assert service.send_chat('p1', code, '   ') == {'ok': False, 'error': 'empty message'}

    def test_rate_limit(self, service, clock):
        code, _, _ = open_vote(service, 3)
        for i in range(5):
            assert service.send_chat('p1', code, f'message {i}')['ok']
        assert service.send_chat('p1', code, 'one too many') == {'ok': False, 'error': 'rate limited'}
        # Other players have their own budget
        assert service.send_chat('p2', code, 'hi')['ok']

        clock.advance(10)
        assert service.send_chat('p1', code, 'later')['ok']
