"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the exact contract between clients and the service.
All responses include explicit types for OpenAPI schema generation.

Error codes are the ErrorCode values; the HTTP status depends on the code:
- *_NOT_FOUND: 404
- NOT_A_PLAYER: 403
- VALIDATION_ERROR: 400
- everything else (illegal moves, bracket rule violations): 409
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field

from ..errors import ErrorCode


# =============================================================================
# Enums
# =============================================================================

class GameStatus(str, Enum):
    """Game session status values."""
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


class TournamentStatus(str, Enum):
    SETUP = "setup"
    REGISTRATION = "registration"
    ACTIVE = "active"
    FINISHED = "finished"


class MatchStatus(str, Enum):
    PENDING = "pending"
    PLAYING = "playing"
    FINISHED = "finished"


# =============================================================================
# Shared Models
# =============================================================================

class ProfileInfo(BaseModel):
    """Presence information for one user."""
    user_id: str
    username: str
    is_online: bool
    last_seen: float

    model_config = {"from_attributes": True}


class GameInfo(BaseModel):
    """Full state of one game."""
    game_id: str
    player1_id: str
    player2_id: Optional[str] = None
    status: GameStatus
    board: list[list[Optional[int]]] = Field(description="6 rows top to bottom, None is empty")
    current_turn: Optional[str] = Field(None, description="User id expected to move")
    winner_id: Optional[str] = None
    winning_cells: Optional[list[tuple[int, int]]] = None
    is_draw: bool = False
    move_count: int = 0
    version: int = 0
    match_id: Optional[str] = None
    tournament_id: Optional[str] = None
    created_at: float = 0.0
    updated_at: float = 0.0


class ParticipantInfo(BaseModel):
    user_id: str
    position: int
    status: str = "active"


class MatchInfo(BaseModel):
    """One bracket match."""
    match_id: str
    round: int
    match_number: int
    player1_id: Optional[str] = None
    player2_id: Optional[str] = None
    winner_id: Optional[str] = None
    status: MatchStatus
    game_id: Optional[str] = None


# =============================================================================
# Request Models
# =============================================================================

class SignInRequest(BaseModel):
    username: Optional[str] = None


class CreateGameRequest(BaseModel):
    """Create an open game, or an invite when invitee_id is set."""
    host_id: str = Field(min_length=1)
    invitee_id: Optional[str] = None


class PlayerRequest(BaseModel):
    """Body for actions that only need the acting user."""
    user_id: str = Field(min_length=1)


class MoveRequest(BaseModel):
    """Drop a disc in a column (0-6)."""
    user_id: str = Field(min_length=1)
    column: int
    expected_version: Optional[int] = Field(
        None, description="Reject the move if the game changed since this version"
    )


class CreateTournamentRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    bracket_size: int = Field(8, description="8, 16, 32 or 64")
    admin_id: Optional[str] = None


class RegisterParticipantRequest(BaseModel):
    user_id: str = Field(min_length=1)
    position: Optional[int] = Field(None, description="Bracket position; lowest free if omitted")


class RecordResultRequest(BaseModel):
    winner_id: str = Field(min_length=1)


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Error response for any 4xx or 5xx status."""
    error: str
    error_code: ErrorCode
    details: Optional[dict[str, Any]] = None
    api_version: str = "v1"


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str


class ProfileListResponse(BaseModel):
    profiles: list[ProfileInfo]
    count: int


class GameResponse(BaseModel):
    game: GameInfo
    api_version: str = "v1"


class GameListResponse(BaseModel):
    games: list[GameInfo]
    count: int
    api_version: str = "v1"


class MoveResponse(BaseModel):
    """A move that was applied, and the game after it."""
    game: GameInfo
    row: int
    column: int
    player: int = Field(description="Player number, 1 or 2")
    winning_axis: Optional[str] = None
    api_version: str = "v1"


class EndGameResponse(BaseModel):
    success: bool
    game_id: str


class TournamentResponse(BaseModel):
    """A tournament with its whole bracket."""
    tournament_id: str
    name: str
    description: str = ""
    admin_id: Optional[str] = None
    bracket_size: int
    rounds: int
    current_round: int
    status: TournamentStatus
    participants: list[ParticipantInfo] = Field(default_factory=list)
    matches: list[MatchInfo] = Field(default_factory=list)
    winner_id: Optional[str] = None
    is_complete: bool = False
    ready_match_ids: list[str] = Field(default_factory=list)
    created_at: float = 0.0
    api_version: str = "v1"


class TournamentListResponse(BaseModel):
    tournaments: list[TournamentResponse]
    count: int
    api_version: str = "v1"


class MatchStartResponse(BaseModel):
    tournament: TournamentResponse
    game: GameInfo
    match_id: str
    api_version: str = "v1"
