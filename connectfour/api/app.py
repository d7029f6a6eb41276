"""
FastAPI Application - REST API for the lobby, games and tournaments.

Endpoints:
    POST   /api/v1/profiles/{user_id}/online      Sign in (mark online)
    POST   /api/v1/profiles/{user_id}/offline     Sign out (mark offline)
    GET    /api/v1/profiles/online                List online users
    POST   /api/v1/games                          Create open game or invite
    GET    /api/v1/games/open                     List open games
    GET    /api/v1/games/invites                  List invites for a user
    GET    /api/v1/games/{id}                     Get game state
    POST   /api/v1/games/{id}/join                Join an open game
    POST   /api/v1/games/{id}/accept              Accept an invite
    POST   /api/v1/games/{id}/decline             Decline an invite
    POST   /api/v1/games/{id}/moves               Drop a disc
    POST   /api/v1/games/{id}/reset               Start over on a fresh board
    DELETE /api/v1/games/{id}?user_id=            End a game
    WS     /api/v1/games/{id}/ws                  Real-time game updates
    POST   /api/v1/tournaments                    Create tournament
    GET    /api/v1/tournaments                    List tournaments
    GET    /api/v1/tournaments/{id}               Get tournament and bracket
    POST   /api/v1/tournaments/{id}/participants  Register participant
    DELETE /api/v1/tournaments/{id}/participants/{user_id}  Remove participant
    POST   /api/v1/tournaments/{id}/start         Start tournament
    POST   /api/v1/tournaments/{id}/matches/{match_id}/start   Start match
    POST   /api/v1/tournaments/{id}/matches/{match_id}/result  Record result

Identity is passed explicitly as user_id; token handling belongs to the
hosting layer. All responses are JSON with explicit Pydantic schemas.
"""

from typing import Annotated, Optional, Union
import json
import logging
import os

from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..errors import ErrorCode
from ..bracket import Bracket, is_tournament_complete, ready_matches
from ..session import GameSession
from . import models
from .service import APIService
from .schemas import (
    # Request models
    SignInRequest,
    CreateGameRequest,
    PlayerRequest,
    MoveRequest,
    CreateTournamentRequest,
    RegisterParticipantRequest,
    RecordResultRequest,
    # Response models
    ErrorResponse,
    HealthResponse,
    ProfileListResponse,
    GameResponse,
    GameListResponse,
    MoveResponse,
    EndGameResponse,
    TournamentResponse,
    TournamentListResponse,
    MatchStartResponse,
    # Nested models
    ProfileInfo,
    GameInfo,
    ParticipantInfo,
    MatchInfo,
)

logger = logging.getLogger(__name__)

# Environment configuration
CONNECTFOUR_ENV = os.getenv("CONNECTFOUR_ENV", "development")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")
SESSION_TTL_SECONDS = int(os.getenv("CONNECTFOUR_SESSION_TTL", "3600"))


def status_for(error_code: ErrorCode) -> int:
    """HTTP status for a domain error code."""
    if error_code.value.endswith("_NOT_FOUND"):
        return 404
    if error_code == ErrorCode.NOT_A_PLAYER:
        return 403
    if error_code == ErrorCode.VALIDATION_ERROR:
        return 400
    if error_code == ErrorCode.INTERNAL_ERROR:
        return 500
    return 409


def create_app(service: Optional[APIService] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    app = FastAPI(
        title="Connect Four Arena API",
        description="""
Multiplayer Connect Four with a lobby and single-elimination tournaments.

## Game Flow

1. `POST /games` creates an open game (or an invite with `invitee_id`)
2. A second player calls `/join` (or `/accept` for an invite)
3. Players alternate `POST /moves`; the response carries the landing row
   and, when the move wins, the winning cells
4. `POST /reset` starts over on a fresh board

## Tournament Flow

1. `POST /tournaments` with `bracket_size` 8, 16, 32 or 64
2. Register exactly `bracket_size` participants, then `POST /start`
3. Start each ready match; its game result advances the bracket
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or APIService()
    app.state.service = api_service

    # WebSocket connections per game
    ws_connections: dict[str, list[WebSocket]] = {}

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(error: models.ErrorResponse) -> JSONResponse:
        """Create a standardized error response from a service error."""
        return JSONResponse(
            status_code=status_for(error.error_code),
            content=ErrorResponse(
                error=error.error,
                error_code=error.error_code,
                details=error.details,
            ).model_dump(mode="json"),
        )

    async def broadcast_to_game(game_id: str, message: dict):
        """Broadcast a message to all WebSocket connections for a game."""
        if game_id in ws_connections:
            dead_connections = []
            for ws in ws_connections[game_id]:
                try:
                    await ws.send_json(message)
                except Exception:
                    logger.debug("Dropping dead websocket for game %s", game_id)
                    dead_connections.append(ws)
            for ws in dead_connections:
                ws_connections[game_id].remove(ws)

    async def push_game(session: GameSession):
        await broadcast_to_game(session.game_id, {
            "type": "state_update",
            "payload": _game_info(session).model_dump(mode="json"),
        })

    # =========================================================================
    # Presence Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/profiles/{user_id}/online",
        response_model=ProfileInfo,
        tags=["Presence"],
        summary="Mark a user online",
    )
    async def sign_in(user_id: str, body: Optional[SignInRequest] = None) -> ProfileInfo:
        """Create or update the user's profile and mark it online."""
        profile = api_service.sign_in(user_id, body.username if body else None)
        return ProfileInfo.model_validate(profile)

    @app.post(
        "/api/v1/profiles/{user_id}/offline",
        response_model=ProfileInfo,
        responses={404: {"model": ErrorResponse}},
        tags=["Presence"],
        summary="Mark a user offline",
    )
    async def sign_out(user_id: str) -> Union[ProfileInfo, JSONResponse]:
        profile = api_service.sign_out(user_id)
        if isinstance(profile, models.ErrorResponse):
            return make_error_response(profile)
        return ProfileInfo.model_validate(profile)

    @app.get(
        "/api/v1/profiles/online",
        response_model=ProfileListResponse,
        tags=["Presence"],
        summary="List online users",
    )
    async def online_users() -> ProfileListResponse:
        profiles = [ProfileInfo.model_validate(p) for p in api_service.online_users()]
        return ProfileListResponse(profiles=profiles, count=len(profiles))

    # =========================================================================
    # Game Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/games",
        response_model=GameResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Create a game",
    )
    async def create_game(body: CreateGameRequest) -> Union[GameResponse, JSONResponse]:
        """
        Create a new game hosted by `host_id`.

        Without `invitee_id` the game is public and listed in `/games/open`;
        with it, the game shows up in the invitee's `/games/invites`.
        """
        stale = api_service.session_manager.cleanup_stale_sessions(SESSION_TTL_SECONDS)
        if stale:
            logger.info("Dropped %d stale games", len(stale))

        session = api_service.create_game(
            models.CreateGameRequest(host_id=body.host_id, invitee_id=body.invitee_id)
        )
        if isinstance(session, models.ErrorResponse):
            return make_error_response(session)
        return GameResponse(game=_game_info(session))

    @app.get(
        "/api/v1/games/open",
        response_model=GameListResponse,
        tags=["Games"],
        summary="List open games",
    )
    async def list_open_games(
        user_id: Annotated[Optional[str], Query(description="Hide games hosted by this user")] = None,
    ) -> GameListResponse:
        games = [_game_info(s) for s in api_service.list_open_games(user_id)]
        return GameListResponse(games=games, count=len(games))

    @app.get(
        "/api/v1/games/invites",
        response_model=GameListResponse,
        tags=["Games"],
        summary="List pending invites",
    )
    async def list_invites(
        user_id: Annotated[str, Query(description="Invited user")],
    ) -> GameListResponse:
        games = [_game_info(s) for s in api_service.list_invites(user_id)]
        return GameListResponse(games=games, count=len(games))

    @app.get(
        "/api/v1/games/{game_id}",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Get game state",
    )
    async def get_game(game_id: str) -> Union[GameResponse, JSONResponse]:
        session = api_service.get_game(game_id)
        if isinstance(session, models.ErrorResponse):
            return make_error_response(session)
        return GameResponse(game=_game_info(session))

    @app.post(
        "/api/v1/games/{game_id}/join",
        response_model=GameResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Join an open game",
    )
    async def join_game(game_id: str, body: PlayerRequest) -> Union[GameResponse, JSONResponse]:
        """
        Take the second seat of an open game.

        Only the first join succeeds; later ones get `GAME_NOT_JOINABLE`.
        """
        session = api_service.join_game(game_id, body.user_id)
        if isinstance(session, models.ErrorResponse):
            return make_error_response(session)
        await push_game(session)
        return GameResponse(game=_game_info(session))

    @app.post(
        "/api/v1/games/{game_id}/accept",
        response_model=GameResponse,
        responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Accept an invite",
    )
    async def accept_invite(game_id: str, body: PlayerRequest) -> Union[GameResponse, JSONResponse]:
        session = api_service.accept_invite(game_id, body.user_id)
        if isinstance(session, models.ErrorResponse):
            return make_error_response(session)
        await push_game(session)
        return GameResponse(game=_game_info(session))

    @app.post(
        "/api/v1/games/{game_id}/decline",
        response_model=EndGameResponse,
        responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Decline an invite",
    )
    async def decline_invite(game_id: str, body: PlayerRequest) -> Union[EndGameResponse, JSONResponse]:
        session = api_service.decline_invite(game_id, body.user_id)
        if isinstance(session, models.ErrorResponse):
            return make_error_response(session)
        return EndGameResponse(success=True, game_id=game_id)

    @app.post(
        "/api/v1/games/{game_id}/moves",
        response_model=MoveResponse,
        responses={
            403: {"model": ErrorResponse, "description": "User is not in this game"},
            404: {"model": ErrorResponse},
            409: {"model": ErrorResponse, "description": "Illegal move, wrong turn or stale version"},
        },
        tags=["Games"],
        summary="Drop a disc",
    )
    async def make_move(game_id: str, body: MoveRequest) -> Union[MoveResponse, JSONResponse]:
        """
        Drop a disc for `user_id` into `column` (0-6).

        The disc lands on the lowest empty row. A full column, a move out
        of turn or a move after the game ended is rejected and the board
        is left unchanged.
        """
        outcome = api_service.make_move(
            models.MoveRequest(
                game_id=game_id,
                user_id=body.user_id,
                column=body.column,
                expected_version=body.expected_version,
            )
        )
        if isinstance(outcome, models.ErrorResponse):
            return make_error_response(outcome)

        # outcome.session is the game as this move left it; a drawn
        # tournament game has already been restarted behind it
        await push_game(outcome.session)
        current = api_service.get_game(game_id)
        if isinstance(current, GameSession) and current.version != outcome.session.version:
            await push_game(current)
        return MoveResponse(
            game=_game_info(outcome.session),
            row=outcome.row,
            column=outcome.column,
            player=outcome.player,
            winning_axis=outcome.win.axis.name.lower() if outcome.win else None,
        )

    @app.post(
        "/api/v1/games/{game_id}/reset",
        response_model=GameResponse,
        responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
        tags=["Games"],
        summary="Reset the board",
    )
    async def reset_game(game_id: str, body: PlayerRequest) -> Union[GameResponse, JSONResponse]:
        session = api_service.reset_game(game_id, body.user_id)
        if isinstance(session, models.ErrorResponse):
            return make_error_response(session)
        await push_game(session)
        return GameResponse(game=_game_info(session))

    @app.delete(
        "/api/v1/games/{game_id}",
        response_model=EndGameResponse,
        responses={
            403: {"model": ErrorResponse},
            404: {"model": ErrorResponse},
            409: {"model": ErrorResponse, "description": "Undecided tournament game"},
        },
        tags=["Games"],
        summary="End a game",
    )
    async def end_game(
        game_id: str,
        user_id: Annotated[str, Query(min_length=1, description="Player ending the game")],
    ) -> Union[EndGameResponse, JSONResponse]:
        """
        Remove a game on behalf of one of its players.

        A tournament game cannot be removed before it has a winner.
        """
        session = api_service.end_game(game_id, user_id)
        if isinstance(session, models.ErrorResponse):
            return make_error_response(session)
        return EndGameResponse(success=True, game_id=game_id)

    # =========================================================================
    # Tournament Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/tournaments",
        response_model=TournamentResponse,
        responses={409: {"model": ErrorResponse, "description": "Invalid bracket size"}},
        tags=["Tournaments"],
        summary="Create a tournament",
    )
    async def create_tournament(body: CreateTournamentRequest) -> Union[TournamentResponse, JSONResponse]:
        bracket = api_service.create_tournament(
            models.CreateTournamentRequest(
                name=body.name,
                bracket_size=body.bracket_size,
                description=body.description,
                admin_id=body.admin_id,
            )
        )
        return _bracket_or_error(bracket)

    @app.get(
        "/api/v1/tournaments",
        response_model=TournamentListResponse,
        tags=["Tournaments"],
        summary="List tournaments",
    )
    async def list_tournaments() -> TournamentListResponse:
        tournaments = [_tournament_response(b) for b in api_service.list_tournaments()]
        return TournamentListResponse(tournaments=tournaments, count=len(tournaments))

    @app.get(
        "/api/v1/tournaments/{tournament_id}",
        response_model=TournamentResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Tournaments"],
        summary="Get a tournament",
    )
    async def get_tournament(tournament_id: str) -> Union[TournamentResponse, JSONResponse]:
        return _bracket_or_error(api_service.get_tournament(tournament_id))

    @app.post(
        "/api/v1/tournaments/{tournament_id}/participants",
        response_model=TournamentResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Tournaments"],
        summary="Register a participant",
    )
    async def add_participant(
        tournament_id: str,
        body: RegisterParticipantRequest,
    ) -> Union[TournamentResponse, JSONResponse]:
        """
        Register a participant at a bracket position.

        Round 1 match n pairs positions 2n-1 and 2n.
        """
        bracket = api_service.add_participant(
            models.RegisterParticipantRequest(
                tournament_id=tournament_id,
                user_id=body.user_id,
                position=body.position,
            )
        )
        return _bracket_or_error(bracket)

    @app.delete(
        "/api/v1/tournaments/{tournament_id}/participants/{user_id}",
        response_model=TournamentResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Tournaments"],
        summary="Remove a participant",
    )
    async def remove_participant(tournament_id: str, user_id: str) -> Union[TournamentResponse, JSONResponse]:
        return _bracket_or_error(api_service.remove_participant(tournament_id, user_id))

    @app.post(
        "/api/v1/tournaments/{tournament_id}/start",
        response_model=TournamentResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Tournaments"],
        summary="Start a tournament",
    )
    async def start_tournament(tournament_id: str) -> Union[TournamentResponse, JSONResponse]:
        return _bracket_or_error(api_service.start_tournament(tournament_id))

    @app.post(
        "/api/v1/tournaments/{tournament_id}/matches/{match_id}/start",
        response_model=MatchStartResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Tournaments"],
        summary="Start a ready match",
    )
    async def start_match(tournament_id: str, match_id: str) -> Union[MatchStartResponse, JSONResponse]:
        """
        Start a pending match whose two players are known.

        Creates the game that decides the match; when that game is won
        the winner advances automatically.
        """
        outcome = api_service.start_match(tournament_id, match_id)
        if isinstance(outcome, models.ErrorResponse):
            return make_error_response(outcome)
        return MatchStartResponse(
            tournament=_tournament_response(outcome.bracket),
            game=_game_info(outcome.session),
            match_id=outcome.match_id,
        )

    @app.post(
        "/api/v1/tournaments/{tournament_id}/matches/{match_id}/result",
        response_model=TournamentResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Tournaments"],
        summary="Record a match result",
    )
    async def record_result(
        tournament_id: str,
        match_id: str,
        body: RecordResultRequest,
    ) -> Union[TournamentResponse, JSONResponse]:
        bracket = api_service.record_match_result(
            models.RecordResultRequest(
                tournament_id=tournament_id,
                match_id=match_id,
                winner_id=body.winner_id,
            )
        )
        return _bracket_or_error(bracket)

    # =========================================================================
    # WebSocket Endpoint
    # =========================================================================

    @app.websocket("/api/v1/games/{game_id}/ws")
    async def websocket_endpoint(websocket: WebSocket, game_id: str):
        """
        WebSocket for real-time updates.

        Messages from server:
        - state_update: Game state changed
        - pong: Reply to ping
        - error: Malformed message

        Messages from client:
        - ping: Keep-alive
        """
        await websocket.accept()
        ws_connections.setdefault(game_id, []).append(websocket)

        try:
            # Send initial state
            session = api_service.get_game(game_id)
            if not isinstance(session, models.ErrorResponse):
                await websocket.send_json({
                    "type": "state_update",
                    "payload": _game_info(session).model_dump(mode="json"),
                })

            # Listen for messages
            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"message": "Invalid JSON"},
                    })
                    continue
                if isinstance(message, dict) and message.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})

        except WebSocketDisconnect:
            logger.debug("Websocket for game %s disconnected", game_id)
        finally:
            if websocket in ws_connections.get(game_id, []):
                ws_connections[game_id].remove(websocket)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="connectfour-arena",
            version=__version__,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Connect Four Arena API",
            "version": __version__,
            "environment": CONNECTFOUR_ENV,
            "docs": "/api/docs",
            "health": "/health",
        }

    # =========================================================================
    # Conversion Helpers
    # =========================================================================

    def _game_info(session: GameSession) -> GameInfo:
        return GameInfo(
            game_id=session.game_id,
            player1_id=session.player1_id,
            player2_id=session.player2_id,
            status=session.status.value,
            board=session.state.board.to_rows(),
            current_turn=session.current_turn,
            winner_id=session.winner_id,
            winning_cells=session.winning_cells,
            is_draw=session.state.is_over and session.state.winner is None,
            move_count=session.state.move_count,
            version=session.version,
            match_id=session.match_id,
            tournament_id=session.tournament_id,
            created_at=session.created_at,
            updated_at=session.updated_at,
        )

    def _tournament_response(bracket: Bracket) -> TournamentResponse:
        return TournamentResponse(
            tournament_id=bracket.tournament_id,
            name=bracket.name,
            description=bracket.description,
            admin_id=bracket.admin_id,
            bracket_size=bracket.bracket_size,
            rounds=bracket.rounds,
            current_round=bracket.current_round,
            status=bracket.status.value,
            participants=[
                ParticipantInfo(
                    user_id=p.user_id,
                    position=p.position,
                    status=p.status.value,
                )
                for p in bracket.participants
            ],
            matches=[
                MatchInfo(
                    match_id=m.match_id,
                    round=m.round,
                    match_number=m.match_number,
                    player1_id=m.player1_id,
                    player2_id=m.player2_id,
                    winner_id=m.winner_id,
                    status=m.status.value,
                    game_id=m.game_id,
                )
                for m in bracket.matches
            ],
            winner_id=bracket.winner_id,
            is_complete=is_tournament_complete(bracket),
            ready_match_ids=[m.match_id for m in ready_matches(bracket)],
            created_at=bracket.created_at,
        )

    def _bracket_or_error(bracket) -> Union[TournamentResponse, JSONResponse]:
        if isinstance(bracket, models.ErrorResponse):
            return make_error_response(bracket)
        return _tournament_response(bracket)

    return app


# For running directly: uvicorn connectfour.api.app:app
app = create_app()
