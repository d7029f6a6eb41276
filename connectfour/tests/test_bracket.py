"""
Tests for the bracket engine.

Tests:
- Bracket creation
- Registration failures
- Seeding, propagation and round advance
- Completion
"""

import pytest

from ..errors import ErrorCode
from ..bracket import (
    MatchStatus,
    ParticipantStatus,
    TournamentStatus,
    begin_match,
    create_bracket,
    is_tournament_complete,
    next_free_position,
    open_registration,
    ready_matches,
    record_match_result,
    register_participant,
    remove_participant,
    start_tournament,
)


def win(bracket, match_id, winner_id):
    """Start a match and record its winner."""
    bracket = begin_match(bracket, match_id).bracket
    result = record_match_result(bracket, match_id, winner_id)
    assert result.success, result.error
    return result.bracket


def play_out(bracket):
    """Play every match to the end; player 1 always wins. Returns (bracket, played)."""
    played = 0
    while ready_matches(bracket):
        for match in ready_matches(bracket):
            bracket = win(bracket, match.match_id, match.player1_id)
            played += 1
    return bracket, played


class TestCreateBracket:
    """Tests for create_bracket."""

    def test_eight_player_tree(self):
        result = create_bracket(8)
        bracket = result.bracket

        assert result.success
        assert bracket.status == TournamentStatus.SETUP
        assert bracket.rounds == 3
        assert len(bracket.matches) == 7
        assert [len(bracket.matches_in_round(r)) for r in (1, 2, 3)] == [4, 2, 1]
        assert bracket.final_match.match_id == "r3m1"

    @pytest.mark.parametrize("size", [8, 16, 32, 64])
    def test_match_count_is_size_minus_one(self, size):
        bracket = create_bracket(size).bracket
        assert len(bracket.matches) == size - 1
        assert len(bracket.matches_in_round(1)) == size // 2
        assert all(m.status == MatchStatus.PENDING for m in bracket.matches)
        assert all(m.player1_id is None and m.player2_id is None for m in bracket.matches)

    @pytest.mark.parametrize("size", [0, 2, 4, 12, 128])
    def test_invalid_size(self, size):
        result = create_bracket(size)
        assert not result.success
        assert result.error_code == ErrorCode.INVALID_BRACKET_SIZE

    def test_explicit_tournament_id(self):
        assert create_bracket(8, tournament_id="cup").bracket.tournament_id == "cup"


class TestRegistration:
    """Tests for register_participant and remove_participant."""

    def test_register_opens_registration(self, empty_bracket):
        result = register_participant(empty_bracket, "alice", 3)

        assert result.success
        assert result.bracket.status == TournamentStatus.REGISTRATION
        assert result.bracket.participant_at(3).user_id == "alice"

    def test_input_bracket_unchanged(self, empty_bracket):
        register_participant(empty_bracket, "alice", 3)
        assert empty_bracket.participants == []
        assert empty_bracket.status == TournamentStatus.SETUP

    def test_position_taken(self, empty_bracket):
        bracket = register_participant(empty_bracket, "alice", 3).bracket
        result = register_participant(bracket, "bob", 3)
        assert result.error_code == ErrorCode.POSITION_TAKEN

    @pytest.mark.parametrize("position", [0, -1, 9])
    def test_position_out_of_range(self, empty_bracket, position):
        result = register_participant(empty_bracket, "alice", position)
        assert result.error_code == ErrorCode.INVALID_POSITION

    def test_duplicate_participant(self, empty_bracket):
        bracket = register_participant(empty_bracket, "alice", 1).bracket
        result = register_participant(bracket, "alice", 2)
        assert result.error_code == ErrorCode.DUPLICATE_PARTICIPANT

    def test_bracket_full(self, full_bracket):
        result = register_participant(full_bracket, "late", 1)
        assert result.error_code == ErrorCode.BRACKET_FULL

    def test_remove_frees_position(self, full_bracket):
        result = remove_participant(full_bracket, "p4")

        assert result.success
        assert result.bracket.participant_at(4) is None
        assert next_free_position(result.bracket) == 4
        assert register_participant(result.bracket, "sub", 4).success

    def test_remove_unknown(self, empty_bracket):
        result = remove_participant(empty_bracket, "ghost")
        assert result.error_code == ErrorCode.PARTICIPANT_NOT_FOUND

    def test_next_free_position(self, empty_bracket, full_bracket):
        assert next_free_position(empty_bracket) == 1
        assert next_free_position(full_bracket) is None

    def test_open_registration(self, empty_bracket):
        result = open_registration(empty_bracket)
        assert result.bracket.status == TournamentStatus.REGISTRATION


class TestStart:
    """Tests for start_tournament."""

    def test_incomplete_roster(self, empty_bracket):
        bracket = register_participant(empty_bracket, "alice", 1).bracket
        result = start_tournament(bracket)
        assert result.error_code == ErrorCode.INCOMPLETE_ROSTER

    def test_seeds_round_one_by_position(self, full_bracket):
        """Match n pairs positions 2n-1 and 2n."""
        bracket = start_tournament(full_bracket).bracket

        assert bracket.status == TournamentStatus.ACTIVE
        assert bracket.current_round == 1
        assert [m.players for m in bracket.matches_in_round(1)] == [
            ("p1", "p2"), ("p3", "p4"), ("p5", "p6"), ("p7", "p8"),
        ]
        assert all(m.players == (None, None) for m in bracket.matches_in_round(2))

    def test_seeding_ignores_registration_order(self, empty_bracket):
        bracket = empty_bracket
        for position in range(8, 0, -1):
            bracket = register_participant(bracket, f"p{position}", position).bracket

        bracket = start_tournament(bracket).bracket

        assert bracket.get_match("r1m4").players == ("p7", "p8")

    def test_ready_matches_after_start(self, started_bracket):
        assert [m.match_id for m in ready_matches(started_bracket)] == [
            "r1m1", "r1m2", "r1m3", "r1m4",
        ]

    def test_no_ready_matches_before_start(self, full_bracket):
        assert ready_matches(full_bracket) == []

    def test_start_twice(self, started_bracket):
        result = start_tournament(started_bracket)
        assert result.error_code == ErrorCode.TOURNAMENT_ALREADY_ACTIVE

    def test_roster_frozen_after_start(self, started_bracket):
        """Registration and removal both fail once the tournament is active."""
        assert register_participant(started_bracket, "late", 1).error_code == (
            ErrorCode.TOURNAMENT_ALREADY_ACTIVE
        )
        assert remove_participant(started_bracket, "p1").error_code == (
            ErrorCode.TOURNAMENT_ALREADY_ACTIVE
        )
        assert open_registration(started_bracket).error_code == (
            ErrorCode.TOURNAMENT_ALREADY_ACTIVE
        )


class TestMatches:
    """Tests for begin_match and record_match_result."""

    def test_begin_match(self, started_bracket):
        result = begin_match(started_bracket, "r1m1", game_id="g1")

        match = result.bracket.get_match("r1m1")
        assert match.status == MatchStatus.PLAYING
        assert match.game_id == "g1"

    def test_begin_unknown_match(self, started_bracket):
        assert begin_match(started_bracket, "r9m9").error_code == ErrorCode.MATCH_NOT_FOUND

    def test_begin_match_without_players(self, started_bracket):
        assert begin_match(started_bracket, "r2m1").error_code == ErrorCode.MATCH_NOT_READY

    def test_begin_match_before_start(self, full_bracket):
        assert begin_match(full_bracket, "r1m1").error_code == ErrorCode.MATCH_NOT_READY

    def test_begin_match_twice(self, started_bracket):
        bracket = begin_match(started_bracket, "r1m1").bracket
        assert begin_match(bracket, "r1m1").error_code == ErrorCode.MATCH_NOT_READY

    def test_result_requires_playing_match(self, started_bracket):
        result = record_match_result(started_bracket, "r1m1", "p1")
        assert result.error_code == ErrorCode.MATCH_NOT_PLAYABLE

    def test_result_requires_match_player(self, started_bracket):
        bracket = begin_match(started_bracket, "r1m1").bracket
        result = record_match_result(bracket, "r1m1", "p3")
        assert result.error_code == ErrorCode.INVALID_WINNER

    def test_result_unknown_match(self, started_bracket):
        result = record_match_result(started_bracket, "nope", "p1")
        assert result.error_code == ErrorCode.MATCH_NOT_FOUND

    def test_odd_match_winner_takes_first_slot(self, started_bracket):
        bracket = win(started_bracket, "r1m1", "p2")

        assert bracket.get_match("r1m1").winner_id == "p2"
        assert bracket.get_match("r1m1").status == MatchStatus.FINISHED
        assert bracket.get_match("r2m1").players == ("p2", None)

    def test_even_match_winner_takes_second_slot(self, started_bracket):
        bracket = win(started_bracket, "r1m2", "p3")
        assert bracket.get_match("r2m1").players == (None, "p3")

    def test_loser_is_eliminated(self, started_bracket):
        bracket = win(started_bracket, "r1m1", "p2")

        assert bracket.get_participant("p1").status == ParticipantStatus.ELIMINATED
        assert bracket.get_participant("p2").status == ParticipantStatus.ACTIVE

    def test_next_match_waits_to_be_started(self, started_bracket):
        """A filled next-round match stays Pending until someone starts it."""
        bracket = win(started_bracket, "r1m1", "p1")
        bracket = win(bracket, "r1m2", "p4")

        next_match = bracket.get_match("r2m1")
        assert next_match.status == MatchStatus.PENDING
        assert next_match.is_ready
        assert "r2m1" in [m.match_id for m in ready_matches(bracket)]

    def test_round_advances_when_all_finished(self, started_bracket):
        bracket = started_bracket
        for n, winner in enumerate(["p1", "p3", "p5"], start=1):
            bracket = win(bracket, f"r1m{n}", winner)
            assert bracket.current_round == 1

        bracket = win(bracket, "r1m4", "p7")

        assert bracket.current_round == 2

    def test_input_bracket_unchanged(self, started_bracket):
        bracket = begin_match(started_bracket, "r1m1").bracket
        record_match_result(bracket, "r1m1", "p1")
        assert bracket.get_match("r1m1").status == MatchStatus.PLAYING
        assert bracket.get_match("r2m1").players == (None, None)


class TestCompletion:
    """Tests for the final and is_tournament_complete."""

    def test_full_playthrough(self, started_bracket):
        bracket, played = play_out(started_bracket)

        assert played == 7
        assert bracket.status == TournamentStatus.FINISHED
        assert bracket.winner_id == "p1"
        assert is_tournament_complete(bracket)
        assert all(m.status == MatchStatus.FINISHED for m in bracket.matches)
        eliminated = [p for p in bracket.participants if p.status == ParticipantStatus.ELIMINATED]
        assert len(eliminated) == 7

    @pytest.mark.parametrize("size", [16, 32])
    def test_every_size_plays_size_minus_one_matches(self, size):
        bracket = create_bracket(size).bracket
        for position in range(1, size + 1):
            bracket = register_participant(bracket, f"u{position}", position).bracket
        bracket = start_tournament(bracket).bracket

        bracket, played = play_out(bracket)

        assert played == size - 1
        assert bracket.winner_id == "u1"

    def test_not_complete_until_final(self, started_bracket):
        assert not is_tournament_complete(started_bracket)
        bracket = win(started_bracket, "r1m1", "p1")
        assert not is_tournament_complete(bracket)

    def test_final_cannot_be_recorded_twice(self, started_bracket):
        bracket, _ = play_out(started_bracket)
        result = record_match_result(bracket, "r3m1", "p5")
        assert result.error_code == ErrorCode.MATCH_NOT_PLAYABLE

    def test_nothing_ready_after_finish(self, started_bracket):
        bracket, _ = play_out(started_bracket)
        assert ready_matches(bracket) == []
