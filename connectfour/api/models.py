"""
API Models - Request and outcome records for the service layer.

These are framework-agnostic: the service takes and returns them, the
FastAPI app converts them to and from the Pydantic schemas.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import ErrorCode
from ..bracket import Bracket
from ..engine_core import WinResult
from ..session import GameSession


class APIVersion(Enum):
    V1 = "v1"


# =============================================================================
# Request Models
# =============================================================================

@dataclass
class CreateGameRequest:
    """
    Request to create a game.

    POST /api/v1/games
    """
    host_id: str
    invitee_id: str | None = None  # None creates a public game


@dataclass
class MoveRequest:
    """
    Request to drop a disc.

    POST /api/v1/games/{game_id}/moves
    """
    game_id: str
    user_id: str
    column: int
    expected_version: int | None = None


@dataclass
class CreateTournamentRequest:
    """
    Request to create a tournament with an empty bracket.

    POST /api/v1/tournaments
    """
    name: str
    bracket_size: int = 8
    description: str = ""
    admin_id: str | None = None


@dataclass
class RegisterParticipantRequest:
    """
    Request to add a participant.

    POST /api/v1/tournaments/{tournament_id}/participants
    """
    tournament_id: str
    user_id: str
    position: int | None = None  # None takes the lowest free position


@dataclass
class RecordResultRequest:
    """
    Request to record who won a match.

    POST /api/v1/tournaments/{tournament_id}/matches/{match_id}/result
    """
    tournament_id: str
    match_id: str
    winner_id: str


# =============================================================================
# Outcome Models
# =============================================================================

@dataclass
class ErrorResponse:
    """
    Error response.

    Returned by the service for any failed operation.
    """
    error: str
    error_code: ErrorCode
    details: dict[str, Any] | None = None
    api_version: str = APIVersion.V1.value


@dataclass
class MoveOutcome:
    """A successful move and the game it produced."""
    session: GameSession
    row: int
    column: int
    player: int
    win: WinResult | None = None


@dataclass
class MatchStartOutcome:
    """A tournament match that just began and the game deciding it."""
    bracket: Bracket
    session: GameSession
    match_id: str
    changes: list[str] = field(default_factory=list)
