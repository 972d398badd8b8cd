import pytest

from impostor.config.game_settings import SKIP_VOTE
from impostor.services.vote_resolver import (
    OUTCOME_ELIMINATED, OUTCOME_NO_MAJORITY, OUTCOME_SKIPPED, decide, majority_needed, tally
)


@pytest.mark.parametrize('alive, need', [(1, 1), (2, 2), (3, 2), (4, 3), (5, 3), (6, 4), (10, 6)])
def test_majority_threshold(alive, need):
    assert majority_needed(alive) == need


@pytest.mark.parametrize('alive', range(2, 11))
def test_exact_threshold_eliminates_one_less_does_not(alive):
    need = majority_needed(alive)
    voters = [f'v{i}' for i in range(alive)]

    votes = {voter: 'target' for voter in voters[:need]}
    assert decide(votes, alive) == (OUTCOME_ELIMINATED, 'target')

    votes = {voter: 'target' for voter in voters[:need - 1]}
    assert decide(votes, alive) is None


def test_skip_majority_wins_over_player_tally():
    votes = {'a': SKIP_VOTE, 'b': SKIP_VOTE, 'c': SKIP_VOTE, 'd': 'a'}
    assert decide(votes, 5) == (OUTCOME_SKIPPED, None)


def test_three_of_four_eliminates_regardless_of_fourth():
    votes = {'a': 'x', 'b': 'x', 'c': 'x'}
    assert decide(votes, 4) == (OUTCOME_ELIMINATED, 'x')
    votes['x'] = SKIP_VOTE
    assert decide(votes, 4) == (OUTCOME_ELIMINATED, 'x')


def test_split_vote_without_majority():
    votes = {'a': 'b', 'c': 'b', 'b': 'd', 'e': 'd', 'd': 'a'}
    assert decide(votes, 5) == (OUTCOME_NO_MAJORITY, None)


def test_incomplete_vote_waits_unless_forced():
    votes = {'a': 'b'}
    assert decide(votes, 4) is None
    assert decide(votes, 4, forced=True) == (OUTCOME_NO_MAJORITY, None)
    assert decide({}, 4, forced=True) == (OUTCOME_NO_MAJORITY, None)


def test_tally_orders_ties_by_earliest_cast_vote():
    votes = {'v1': 'late', 'v2': 'early', 'v3': 'early', 'v4': 'late', 'v5': SKIP_VOTE}
    skips, ranked = tally(votes)
    assert skips == 1
    # 'late' received the first vote overall, so it leads the tie
    assert ranked == [('late', 2), ('early', 2)]
