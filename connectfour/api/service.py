"""
API Service - Business logic layer between API and engines.

The service:
1. Translates API requests to engine and session calls
2. Holds the tournament table
3. Starts tournament matches as games
4. Feeds finished tournament games back into their bracket

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
import threading
import time

from ..errors import ErrorCode
from ..bracket import (
    Bracket,
    BracketResult,
    begin_match,
    create_bracket,
    next_free_position,
    record_match_result,
    register_participant,
    remove_participant,
    start_tournament,
)
from ..session import (
    ChangeEvent,
    ChangeType,
    GameSession,
    GAMES_TABLE,
    Profile,
    ProfileStore,
    SessionManager,
    SessionResult,
    SessionStatus,
)
from .models import (
    CreateGameRequest,
    CreateTournamentRequest,
    ErrorResponse,
    MatchStartOutcome,
    MoveOutcome,
    MoveRequest,
    RecordResultRequest,
    RegisterParticipantRequest,
)

logger = logging.getLogger(__name__)


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        # Lobby
        game = service.create_game(CreateGameRequest(host_id="alice"))
        service.join_game(game.game_id, "bob")
        outcome = service.make_move(MoveRequest(game.game_id, "alice", 3))

        # Tournaments
        bracket = service.create_tournament(CreateTournamentRequest(name="Friday"))
    """
    session_manager: SessionManager = field(default_factory=SessionManager)
    profiles: ProfileStore = field(default_factory=ProfileStore)

    # Tournament table by id
    _tournaments: dict[str, Bracket] = field(default_factory=dict)
    _lock: threading.RLock = field(default_factory=threading.RLock)

    def __post_init__(self):
        self._unsubscribe = self.session_manager.change_feed.subscribe(
            GAMES_TABLE, self._on_game_change
        )

    # =========================================================================
    # Presence
    # =========================================================================

    def sign_in(self, user_id: str, username: str | None = None) -> Profile:
        profile = self.profiles.sign_in(user_id, username)
        logger.debug("%s is online", user_id)
        return profile

    def sign_out(self, user_id: str) -> Profile | ErrorResponse:
        profile = self.profiles.sign_out(user_id)
        if not profile:
            return ErrorResponse(
                error=f"Profile {user_id} not found",
                error_code=ErrorCode.PROFILE_NOT_FOUND,
            )
        return profile

    def online_users(self) -> list[Profile]:
        return self.profiles.online_profiles()

    # =========================================================================
    # Games
    # =========================================================================

    def create_game(self, request: CreateGameRequest) -> GameSession | ErrorResponse:
        try:
            return self.session_manager.create_game(
                host_id=request.host_id,
                invitee_id=request.invitee_id,
            )
        except ValueError as e:
            return ErrorResponse(error=str(e), error_code=ErrorCode.VALIDATION_ERROR)

    def get_game(self, game_id: str) -> GameSession | ErrorResponse:
        session = self.session_manager.get_session(game_id)
        if not session:
            return ErrorResponse(
                error=f"Game {game_id} not found",
                error_code=ErrorCode.GAME_NOT_FOUND,
            )
        return session

    def list_open_games(self, user_id: str | None = None) -> list[GameSession]:
        return self.session_manager.list_open_games(user_id)

    def list_invites(self, user_id: str) -> list[GameSession]:
        return self.session_manager.list_invites(user_id)

    def join_game(self, game_id: str, user_id: str) -> GameSession | ErrorResponse:
        return self._session_outcome(self.session_manager.join_game(game_id, user_id))

    def accept_invite(self, game_id: str, user_id: str) -> GameSession | ErrorResponse:
        return self._session_outcome(self.session_manager.accept_invite(game_id, user_id))

    def decline_invite(self, game_id: str, user_id: str) -> GameSession | ErrorResponse:
        return self._session_outcome(self.session_manager.decline_invite(game_id, user_id))

    def make_move(self, request: MoveRequest) -> MoveOutcome | ErrorResponse:
        result = self.session_manager.drop_disc(
            request.game_id,
            request.user_id,
            request.column,
            expected_version=request.expected_version,
        )
        if not result.success:
            return self._error_from(result)

        move = result.move
        return MoveOutcome(
            session=result.session,
            row=move.row,
            column=move.column,
            player=move.player,
            win=move.win,
        )

    def reset_game(self, game_id: str, user_id: str) -> GameSession | ErrorResponse:
        return self._session_outcome(self.session_manager.reset_game(game_id, user_id))

    def end_game(self, game_id: str, user_id: str) -> GameSession | ErrorResponse:
        return self._session_outcome(self.session_manager.leave_game(game_id, user_id))

    # =========================================================================
    # Tournaments
    # =========================================================================

    def create_tournament(self, request: CreateTournamentRequest) -> Bracket | ErrorResponse:
        result = create_bracket(
            request.bracket_size,
            name=request.name,
            description=request.description,
            admin_id=request.admin_id,
            created_at=time.time(),
        )
        if not result.success:
            return self._error_from(result)

        bracket = result.bracket
        with self._lock:
            self._tournaments[bracket.tournament_id] = bracket
        logger.info(
            "Tournament %s (%s) created with %d slots",
            bracket.tournament_id, bracket.name, bracket.bracket_size,
        )
        return bracket

    def get_tournament(self, tournament_id: str) -> Bracket | ErrorResponse:
        bracket = self._tournaments.get(tournament_id)
        if not bracket:
            return self._tournament_not_found(tournament_id)
        return bracket

    def list_tournaments(self) -> list[Bracket]:
        """Newest first."""
        return sorted(self._tournaments.values(), key=lambda b: b.created_at, reverse=True)

    def add_participant(self, request: RegisterParticipantRequest) -> Bracket | ErrorResponse:
        def register(bracket: Bracket) -> BracketResult:
            position = request.position
            if position is None:
                # A full bracket has no free slot; let the engine report it
                position = next_free_position(bracket) or bracket.bracket_size
            return register_participant(bracket, request.user_id, position)

        return self._update_tournament(request.tournament_id, register)

    def remove_participant(self, tournament_id: str, user_id: str) -> Bracket | ErrorResponse:
        return self._update_tournament(
            tournament_id, lambda bracket: remove_participant(bracket, user_id)
        )

    def start_tournament(self, tournament_id: str) -> Bracket | ErrorResponse:
        return self._update_tournament(tournament_id, start_tournament)

    def start_match(self, tournament_id: str, match_id: str) -> MatchStartOutcome | ErrorResponse:
        """
        Begin a ready match by creating the game that decides it.

        Player 1 of the match hosts the game and moves first.
        """
        with self._lock:
            bracket = self._tournaments.get(tournament_id)
            if not bracket:
                return self._tournament_not_found(tournament_id)

            match = bracket.get_match(match_id)
            if match is None or not match.is_ready:
                # Let the engine produce the typed failure
                return self._error_from(begin_match(bracket, match_id))

            session = self.session_manager.create_game(
                host_id=match.player1_id,
                invitee_id=match.player2_id,
                match_id=match_id,
                tournament_id=tournament_id,
            )
            result = begin_match(bracket, match_id, game_id=session.game_id)
            if not result.success:
                self.session_manager.end_game(session.game_id)
                return self._error_from(result)

            self._tournaments[tournament_id] = result.bracket

        for change in result.changes:
            logger.info("Tournament %s: %s", tournament_id, change)
        return MatchStartOutcome(
            bracket=result.bracket,
            session=session,
            match_id=match_id,
            changes=result.changes,
        )

    def record_match_result(self, request: RecordResultRequest) -> Bracket | ErrorResponse:
        return self._update_tournament(
            request.tournament_id,
            lambda bracket: record_match_result(bracket, request.match_id, request.winner_id),
        )

    # =========================================================================
    # Helper methods
    # =========================================================================

    def _on_game_change(self, event: ChangeEvent):
        """Advance the bracket when a tournament game finishes."""
        record = event.record
        if event.change_type != ChangeType.UPDATE or not record.get("match_id"):
            return
        if record.get("status") != SessionStatus.FINISHED.value:
            return

        tournament_id = record["tournament_id"]
        if record.get("winner") is None:
            # A tournament match needs a winner: replay drawn games
            result = self.session_manager.replay_drawn_game(event.record_id)
            if not result.success:
                logger.warning("Could not replay game %s: %s", event.record_id, result.error)
            return

        outcome = self.record_match_result(
            RecordResultRequest(
                tournament_id=tournament_id,
                match_id=record["match_id"],
                winner_id=record["winner"],
            )
        )
        if isinstance(outcome, ErrorResponse):
            logger.warning(
                "Could not record result of game %s: %s", event.record_id, outcome.error
            )

    def _update_tournament(self, tournament_id: str, operation) -> Bracket | ErrorResponse:
        """Run a bracket operation against the stored snapshot and keep the result."""
        with self._lock:
            bracket = self._tournaments.get(tournament_id)
            if not bracket:
                return self._tournament_not_found(tournament_id)

            result = operation(bracket)
            if not result.success:
                return self._error_from(result)

            self._tournaments[tournament_id] = result.bracket

        for change in result.changes:
            logger.info("Tournament %s: %s", tournament_id, change)
        return result.bracket

    def _session_outcome(self, result: SessionResult) -> GameSession | ErrorResponse:
        if not result.success:
            return self._error_from(result)
        return result.session

    def _error_from(self, result) -> ErrorResponse:
        return ErrorResponse(
            error=result.error or "Operation failed",
            error_code=result.error_code or ErrorCode.INTERNAL_ERROR,
        )

    def _tournament_not_found(self, tournament_id: str) -> ErrorResponse:
        return ErrorResponse(
            error=f"Tournament {tournament_id} not found",
            error_code=ErrorCode.TOURNAMENT_NOT_FOUND,
        )
