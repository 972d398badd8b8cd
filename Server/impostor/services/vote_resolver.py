"""
Vote Resolver

Tallies votes (skip included), applies the majority rule and arms the
server-authoritative voting deadline.

Resolution precedence, with majority = floor(alive / 2) + 1:
1. skip tally reaches the majority -> nobody is eliminated
2. the top player tally reaches the majority -> that player is eliminated
3. everyone has voted, or the deadline fired -> nobody is eliminated

Equal top tallies are ordered by whoever received the earliest cast vote.
"""

from collections import Counter
from typing import Dict, List, Optional, Tuple

from ..config import game_settings as rules
from ..errors import (
    ConflictError, PhaseError, ValidationError,
    ALREADY_VOTED, ELIMINATED, INVALID_TARGET, WRONG_PHASE
)
from ..models import events
from ..models.events import Outbox
from ..models.room import Phase, Room

VOTE_TIMER = "vote"

OUTCOME_ELIMINATED = "eliminated"
OUTCOME_SKIPPED = "skipped"
OUTCOME_NO_MAJORITY = "no_majority"


def majority_needed(alive_count: int) -> int:
    return alive_count // 2 + 1


def tally(votes: Dict[str, str]) -> Tuple[int, List[Tuple[str, int]]]:
    """
    Count votes in cast order.

    Returns:
        Tuple of (skip count, [(target, count), ...] sorted by count
        descending; ties keep the order in which targets first got a vote)
    """
    counts = Counter()
    for target in votes.values():
        counts[target] += 1
    skips = counts.pop(rules.SKIP_VOTE, 0)
    # Counter keeps first-insertion order and sorted() is stable
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return skips, ranked


def decide(votes: Dict[str, str], alive_count: int, forced: bool = False) -> Optional[Tuple[str, Optional[str]]]:
    """
    Apply the resolution rule to a set of votes.

    Returns:
        (outcome, eliminated target or None), or None while voting goes on
    """
    need = majority_needed(alive_count)
    skips, ranked = tally(votes)

    if skips >= need:
        return OUTCOME_SKIPPED, None
    if ranked and ranked[0][1] >= need:
        return OUTCOME_ELIMINATED, ranked[0][0]
    if forced or len(votes) >= alive_count:
        return OUTCOME_NO_MAJORITY, None
    return None


class VoteResolver:
    def __init__(self, machine):
        self.machine = machine

    def open(self, room: Room, outbox: Outbox) -> None:
        """Open the voting window and arm its deadline."""
        now = self.machine.clock()
        duration = room.settings.vote_seconds
        room.vote_deadline = now + duration

        self.machine.broadcast_snapshot(room, outbox, events.PHASE)
        outbox.add(events.VOTE_OPEN, {
            'deadline': int(room.vote_deadline * 1000),
            'serverNow': int(now * 1000),
            'duration': duration
        }, self.machine.members(room))

        self.machine.arm(room, VOTE_TIMER, duration)

    def cast(self, room: Room, sid: str, target: str, outbox: Outbox) -> None:
        if room.phase != Phase.VOTE:
            raise PhaseError(WRONG_PHASE)
        voter = room.players[sid]
        if not voter.alive:
            raise PhaseError(ELIMINATED)
        if sid in room.votes:
            raise ConflictError(ALREADY_VOTED)
        if target != rules.SKIP_VOTE:
            chosen = room.players.get(target)
            if chosen is None or not chosen.alive or target == sid:
                raise ValidationError(INVALID_TARGET)

        room.votes[sid] = target
        outbox.add(events.VOTE_UPDATE, {
            'votes': len(room.votes),
            'alive': len(room.alive_players())
        }, self.machine.members(room))

        self.resolve(room, outbox)

    def on_deadline(self, room: Room, outbox: Outbox) -> None:
        if room.phase == Phase.VOTE:
            self.resolve(room, outbox, forced=True)

    def resolve(self, room: Room, outbox: Outbox, forced: bool = False) -> Optional[str]:
        """
        Resolve the vote if the rule allows it.

        Returns:
            The outcome, or None if voting continues
        """
        if room.phase != Phase.VOTE:
            return None

        decision = decide(room.votes, len(room.alive_players()), forced)
        if decision is None:
            return None

        outcome, target_id = decision
        self.machine.cancel_timer(room, VOTE_TIMER)
        skips, ranked = tally(room.votes)
        target = room.players.get(target_id) if target_id else None
        outbox.add(events.VOTE_RESULT, {
            'outcome': outcome,
            'eliminatedId': target_id,
            'eliminatedName': target.name if target else None,
            'tally': dict(ranked),
            'skips': skips,
            'forced': forced
        }, self.machine.members(room))

        if outcome == OUTCOME_ELIMINATED:
            self.machine.eliminate(room, target_id, outbox)
        else:
            self.machine.begin_round(room, outbox, rotate=True)
        return outcome
