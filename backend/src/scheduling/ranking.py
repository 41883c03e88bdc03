"""Availability tally and ranking.

Everything here is recomputed from the current slots and votes on each read;
nothing is cached or written back.
"""

import enum
from collections.abc import Sequence
from typing import Any, NamedTuple


class RankedSlot(NamedTuple):
    slot: Any
    vote_count: int
    voters: list[str]

    @property
    def id(self):
        return self.slot.id


class MatchState(enum.StrEnum):
    WAITING = "waiting_for_responses"
    PERFECT_MATCH = "perfect_match"
    NO_PERFECT_MATCH = "no_perfect_match"


def _voted_slot_ids(participant) -> set:
    return {v.interview_time_slot_id for v in (participant.votes or [])}


def rank_slots(slots: Sequence, participants: Sequence) -> list[RankedSlot]:
    """Annotate each slot with its voters and sort by vote count, highest first.

    ``sorted`` is stable, so slots with equal counts keep their generation
    order and repeated calls on the same input return the same order.
    """
    votes_by_participant = [(p.name, _voted_slot_ids(p)) for p in participants]

    tallied = []
    for slot in slots:
        voters = [name for name, slot_ids in votes_by_participant if slot.id in slot_ids]
        tallied.append(RankedSlot(slot=slot, vote_count=len(voters), voters=voters))

    return sorted(tallied, key=lambda r: r.vote_count, reverse=True)


def best_match(ranked: Sequence[RankedSlot]) -> RankedSlot | None:
    return ranked[0] if ranked else None


def perfect_matches(ranked: Sequence[RankedSlot], participant_count: int) -> list[RankedSlot]:
    """Slots every participant voted for. Empty when there are no participants."""
    if participant_count <= 0:
        return []
    return [r for r in ranked if r.vote_count == participant_count]


def match_percentage(vote_count: int, participant_count: int) -> float:
    if participant_count <= 0:
        return 0.0
    return round(vote_count * 100 / participant_count, 1)


def availability_matrix(slots: Sequence, participants: Sequence) -> list[dict]:
    """One row per slot (generation order) with a flag per participant."""
    votes_by_participant = [(p, _voted_slot_ids(p)) for p in participants]
    return [
        {
            "slot_id": str(slot.id),
            "availability": {str(p.id): slot.id in slot_ids for p, slot_ids in votes_by_participant},
        }
        for slot in slots
    ]


def summarize_availability(slots: Sequence, participants: Sequence) -> dict:
    """Response counts, ranking and match state for the recruiter view."""
    total = len(participants)
    responded = sum(1 for p in participants if p.has_responded)
    all_responded = responded == total

    ranked = rank_slots(slots, participants)
    perfect = perfect_matches(ranked, total)
    best = best_match(ranked)

    if not all_responded:
        state = MatchState.WAITING
    elif perfect:
        state = MatchState.PERFECT_MATCH
    else:
        state = MatchState.NO_PERFECT_MATCH

    return {
        "total_participants": total,
        "responded": responded,
        "pending": total - responded,
        "all_responded": all_responded,
        "state": state,
        "ranked": ranked,
        "best_match": best,
        "perfect_matches": perfect,
    }
