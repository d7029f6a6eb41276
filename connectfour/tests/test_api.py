"""
Tests for API layer.

Tests:
- API service methods
- Tournament and game linkage
- Error handling
"""

from ..errors import ErrorCode
from ..engine_core import GamePhase
from ..bracket import MatchStatus, TournamentStatus
from ..session import SessionStatus
from ..api.models import (
    CreateGameRequest,
    CreateTournamentRequest,
    ErrorResponse,
    MoveOutcome,
    MoveRequest,
    RecordResultRequest,
    RegisterParticipantRequest,
)


def host_wins(service, session):
    """Host stacks column 0 while the guest stacks column 1."""
    host, guest = session.player1_id, session.player2_id
    for user, column in [(host, 0), (guest, 1)] * 3 + [(host, 0)]:
        outcome = service.make_move(MoveRequest(session.game_id, user, column))
        assert isinstance(outcome, MoveOutcome), outcome
    return outcome


def eight_player_tournament(service):
    bracket = service.create_tournament(CreateTournamentRequest(name="Friday Cup"))
    for i in range(1, 9):
        bracket = service.add_participant(
            RegisterParticipantRequest(tournament_id=bracket.tournament_id, user_id=f"p{i}")
        )
    return bracket


class TestGames:
    """Tests for game operations via the service."""

    def test_create_and_join(self, service):
        session = service.create_game(CreateGameRequest(host_id="alice"))
        joined = service.join_game(session.game_id, "bob")

        assert joined.status == SessionStatus.PLAYING
        assert service.list_open_games() == []

    def test_make_move(self, service):
        session = service.create_game(CreateGameRequest(host_id="alice"))
        service.join_game(session.game_id, "bob")

        outcome = service.make_move(MoveRequest(session.game_id, "alice", 3))

        assert outcome.row == 5
        assert outcome.column == 3
        assert outcome.player == 1
        assert outcome.win is None

    def test_move_error(self, service):
        session = service.create_game(CreateGameRequest(host_id="alice"))
        service.join_game(session.game_id, "bob")

        response = service.make_move(MoveRequest(session.game_id, "bob", 3))

        assert isinstance(response, ErrorResponse)
        assert response.error_code == ErrorCode.NOT_YOUR_TURN

    def test_winning_move(self, service):
        session = service.create_game(CreateGameRequest(host_id="alice"))
        service.join_game(session.game_id, "bob")

        outcome = host_wins(service, session)

        assert outcome.win.line == [(2, 0), (3, 0), (4, 0), (5, 0)]
        assert outcome.session.winner_id == "alice"

    def test_get_nonexistent_game(self, service):
        response = service.get_game("nonexistent-id")

        assert hasattr(response, "error")
        assert response.error_code == ErrorCode.GAME_NOT_FOUND

    def test_self_invite(self, service):
        response = service.create_game(CreateGameRequest(host_id="alice", invitee_id="alice"))
        assert response.error_code == ErrorCode.VALIDATION_ERROR

    def test_invites(self, service):
        session = service.create_game(CreateGameRequest(host_id="alice", invitee_id="bob"))

        assert service.list_invites("bob") == [session]
        assert service.accept_invite(session.game_id, "bob").status == SessionStatus.PLAYING

    def test_end_game(self, service):
        session = service.create_game(CreateGameRequest(host_id="alice"))
        assert service.end_game(session.game_id, "alice").game_id == session.game_id
        assert service.get_game(session.game_id).error_code == ErrorCode.GAME_NOT_FOUND

    def test_end_game_requires_player(self, service):
        session = service.create_game(CreateGameRequest(host_id="alice"))

        response = service.end_game(session.game_id, "mallory")

        assert response.error_code == ErrorCode.NOT_A_PLAYER
        assert service.get_game(session.game_id).game_id == session.game_id


class TestPresence:

    def test_online_users(self, service):
        service.sign_in("u1", "alice")
        service.sign_in("u2", "bob")
        service.sign_out("u2")

        assert [p.user_id for p in service.online_users()] == ["u1"]

    def test_sign_out_unknown(self, service):
        assert service.sign_out("ghost").error_code == ErrorCode.PROFILE_NOT_FOUND


class TestTournaments:
    """Tests for tournament operations via the service."""

    def test_create(self, service):
        bracket = service.create_tournament(
            CreateTournamentRequest(name="Cup", bracket_size=16, admin_id="admin")
        )

        assert bracket.bracket_size == 16
        assert bracket.admin_id == "admin"
        assert service.get_tournament(bracket.tournament_id) is bracket
        assert service.list_tournaments() == [bracket]

    def test_invalid_size(self, service):
        response = service.create_tournament(CreateTournamentRequest(name="Cup", bracket_size=10))
        assert response.error_code == ErrorCode.INVALID_BRACKET_SIZE
        assert service.list_tournaments() == []

    def test_unknown_tournament(self, service):
        assert service.get_tournament("nope").error_code == ErrorCode.TOURNAMENT_NOT_FOUND
        assert service.start_tournament("nope").error_code == ErrorCode.TOURNAMENT_NOT_FOUND

    def test_positions_assigned_in_order(self, service):
        bracket = eight_player_tournament(service)
        assert [(p.user_id, p.position) for p in bracket.participants][:2] == [("p1", 1), ("p2", 2)]
        assert bracket.is_full

    def test_ninth_participant_rejected(self, service):
        bracket = eight_player_tournament(service)
        response = service.add_participant(
            RegisterParticipantRequest(tournament_id=bracket.tournament_id, user_id="p9")
        )
        assert response.error_code == ErrorCode.BRACKET_FULL

    def test_explicit_position_taken(self, service):
        bracket = service.create_tournament(CreateTournamentRequest(name="Cup"))
        service.add_participant(RegisterParticipantRequest(bracket.tournament_id, "a", 5))
        response = service.add_participant(RegisterParticipantRequest(bracket.tournament_id, "b", 5))
        assert response.error_code == ErrorCode.POSITION_TAKEN

    def test_remove_after_start(self, service):
        bracket = eight_player_tournament(service)
        service.start_tournament(bracket.tournament_id)

        response = service.remove_participant(bracket.tournament_id, "p3")

        assert response.error_code == ErrorCode.TOURNAMENT_ALREADY_ACTIVE

    def test_start_match_creates_game(self, service):
        bracket = eight_player_tournament(service)
        service.start_tournament(bracket.tournament_id)

        outcome = service.start_match(bracket.tournament_id, "r1m1")

        assert outcome.session.player1_id == "p1"
        assert outcome.session.player2_id == "p2"
        assert outcome.session.status == SessionStatus.PLAYING
        assert outcome.session.match_id == "r1m1"
        match = outcome.bracket.get_match("r1m1")
        assert match.status == MatchStatus.PLAYING
        assert match.game_id == outcome.session.game_id

    def test_start_match_not_ready(self, service):
        bracket = eight_player_tournament(service)
        service.start_tournament(bracket.tournament_id)

        assert service.start_match(bracket.tournament_id, "r2m1").error_code == (
            ErrorCode.MATCH_NOT_READY
        )
        assert service.start_match(bracket.tournament_id, "r7m7").error_code == (
            ErrorCode.MATCH_NOT_FOUND
        )
        assert len(service.session_manager.list_games()) == 0

    def test_game_win_advances_bracket(self, service):
        """Finishing a match game records the result automatically."""
        bracket = eight_player_tournament(service)
        service.start_tournament(bracket.tournament_id)
        outcome = service.start_match(bracket.tournament_id, "r1m2")

        host_wins(service, outcome.session)

        bracket = service.get_tournament(bracket.tournament_id)
        assert bracket.get_match("r1m2").winner_id == "p3"
        assert bracket.get_match("r2m1").players == (None, "p3")

    def test_drawn_match_game_is_replayed(self, service, one_move_from_draw):
        """A draw decides nothing: the game restarts on a fresh board."""
        bracket = eight_player_tournament(service)
        service.start_tournament(bracket.tournament_id)
        outcome = service.start_match(bracket.tournament_id, "r1m1")
        session = service.session_manager.get_session(outcome.session.game_id)
        session.state = one_move_from_draw

        drawing = service.make_move(MoveRequest(session.game_id, "p2", 6))

        assert drawing.session.status == SessionStatus.FINISHED
        assert drawing.session.state.phase == GamePhase.DRAWN
        assert drawing.session.state.board.is_full
        session = service.get_game(session.game_id)
        assert session.status == SessionStatus.PLAYING
        assert session.state.board.disc_count == 0
        bracket = service.get_tournament(bracket.tournament_id)
        assert bracket.get_match("r1m1").status == MatchStatus.PLAYING

    def test_match_game_cannot_be_reset(self, service):
        bracket = eight_player_tournament(service)
        service.start_tournament(bracket.tournament_id)
        outcome = service.start_match(bracket.tournament_id, "r1m1")
        game_id = outcome.session.game_id
        service.make_move(MoveRequest(game_id, "p1", 3))

        response = service.reset_game(game_id, "p2")

        assert response.error_code == ErrorCode.ILLEGAL_MOVE
        assert service.get_game(game_id).state.move_count == 1

    def test_match_game_ends_only_when_decided(self, service):
        """Ending an undecided match game would strand the match."""
        bracket = eight_player_tournament(service)
        service.start_tournament(bracket.tournament_id)
        outcome = service.start_match(bracket.tournament_id, "r1m1")
        game_id = outcome.session.game_id

        response = service.end_game(game_id, "p2")

        assert response.error_code == ErrorCode.ILLEGAL_MOVE
        bracket = service.get_tournament(bracket.tournament_id)
        assert bracket.get_match("r1m1").status == MatchStatus.PLAYING

        host_wins(service, outcome.session)

        assert service.end_game(game_id, "p2").game_id == game_id

    def test_manual_result(self, service):
        bracket = eight_player_tournament(service)
        service.start_tournament(bracket.tournament_id)
        service.start_match(bracket.tournament_id, "r1m1")

        bracket = service.record_match_result(
            RecordResultRequest(bracket.tournament_id, "r1m1", "p2")
        )

        assert bracket.get_match("r2m1").player1_id == "p2"

    def test_full_tournament(self, service):
        """Every match is played as a game; hosts always win."""
        bracket = eight_player_tournament(service)
        tournament_id = bracket.tournament_id
        bracket = service.start_tournament(tournament_id)

        games = 0
        while bracket.status == TournamentStatus.ACTIVE:
            match = next(m for m in bracket.matches if m.is_ready)
            outcome = service.start_match(tournament_id, match.match_id)
            host_wins(service, outcome.session)
            games += 1
            bracket = service.get_tournament(tournament_id)

        assert games == 7
        assert bracket.status == TournamentStatus.FINISHED
        assert bracket.winner_id == "p1"
