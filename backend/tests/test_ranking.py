"""Tests for availability ranking and summaries (plain objects, no database)."""

import uuid
from types import SimpleNamespace

from src.scheduling.ranking import (
    MatchState,
    availability_matrix,
    best_match,
    match_percentage,
    perfect_matches,
    rank_slots,
    summarize_availability,
)


def _slot():
    return SimpleNamespace(id=uuid.uuid4())


def _participant(name, slots, responded=True):
    votes = [SimpleNamespace(interview_time_slot_id=s.id) for s in slots]
    return SimpleNamespace(id=uuid.uuid4(), name=name, votes=votes, has_responded=responded)


class TestRankSlots:
    def test_sorted_by_vote_count_descending(self):
        s1, s2, s3 = _slot(), _slot(), _slot()
        people = [_participant("A", [s2, s3]), _participant("B", [s3]), _participant("C", [s3])]
        ranked = rank_slots([s1, s2, s3], people)
        assert [r.slot for r in ranked] == [s3, s2, s1]
        assert [r.vote_count for r in ranked] == [3, 1, 0]

    def test_ties_keep_generation_order(self):
        s1, s2, s3 = _slot(), _slot(), _slot()
        people = [_participant("A", [s1, s2, s3])]
        ranked = rank_slots([s1, s2, s3], people)
        assert [r.slot for r in ranked] == [s1, s2, s3]

    def test_voters_listed_in_participant_order(self):
        s1 = _slot()
        ranked = rank_slots([s1], [_participant("Bob", [s1]), _participant("Alice", [s1])])
        assert ranked[0].voters == ["Bob", "Alice"]

    def test_id_shortcut(self):
        s1 = _slot()
        assert rank_slots([s1], [])[0].id == s1.id

    def test_repeatable(self):
        s1, s2 = _slot(), _slot()
        people = [_participant("A", [s2])]
        first = [r.slot for r in rank_slots([s1, s2], people)]
        second = [r.slot for r in rank_slots([s1, s2], people)]
        assert first == second


class TestMatches:
    def test_perfect_match_requires_every_participant(self):
        s1, s2 = _slot(), _slot()
        ranked = rank_slots([s1, s2], [_participant("A", [s1, s2]), _participant("B", [s1])])
        assert [r.slot for r in perfect_matches(ranked, 2)] == [s1]

    def test_no_participants_means_no_perfect_match(self):
        ranked = rank_slots([_slot(), _slot()], [])
        assert perfect_matches(ranked, 0) == []

    def test_best_match_is_first_ranked(self):
        s1, s2 = _slot(), _slot()
        ranked = rank_slots([s1, s2], [_participant("A", [s2])])
        assert best_match(ranked).slot is s2

    def test_best_match_empty(self):
        assert best_match([]) is None

    def test_match_percentage(self):
        assert match_percentage(2, 3) == 66.7
        assert match_percentage(3, 3) == 100.0
        assert match_percentage(0, 0) == 0.0


class TestAvailabilityMatrix:
    def test_one_row_per_slot_with_flags(self):
        s1, s2 = _slot(), _slot()
        alice, bob = _participant("Alice", [s1]), _participant("Bob", [s1, s2])
        matrix = availability_matrix([s1, s2], [alice, bob])
        assert [row["slot_id"] for row in matrix] == [str(s1.id), str(s2.id)]
        assert matrix[0]["availability"] == {str(alice.id): True, str(bob.id): True}
        assert matrix[1]["availability"] == {str(alice.id): False, str(bob.id): True}


class TestSummarizeAvailability:
    def test_waiting_until_everyone_responds(self):
        s1 = _slot()
        people = [_participant("A", [s1]), _participant("B", [], responded=False)]
        summary = summarize_availability([s1], people)
        assert summary["responded"] == 1
        assert summary["pending"] == 1
        assert summary["all_responded"] is False
        assert summary["state"] == MatchState.WAITING

    def test_perfect_match_state(self):
        s1, s2 = _slot(), _slot()
        people = [_participant("A", [s1, s2]), _participant("B", [s2])]
        summary = summarize_availability([s1, s2], people)
        assert summary["state"] == MatchState.PERFECT_MATCH
        assert summary["best_match"].slot is s2
        assert [r.slot for r in summary["perfect_matches"]] == [s2]

    def test_no_perfect_match_state(self):
        s1, s2 = _slot(), _slot()
        people = [_participant("A", [s1]), _participant("B", [s2])]
        summary = summarize_availability([s1, s2], people)
        assert summary["all_responded"] is True
        assert summary["state"] == MatchState.NO_PERFECT_MATCH
        assert summary["perfect_matches"] == []

    def test_empty_vote_set_counts_as_responded(self):
        s1 = _slot()
        summary = summarize_availability([s1], [_participant("A", [])])
        assert summary["responded"] == 1
        assert summary["state"] == MatchState.NO_PERFECT_MATCH
