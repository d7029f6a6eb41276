"""
API Module - Lobby, game and tournament interface.

Exposes the engines via REST API and a per-game WebSocket.
Clients:
1. Mark themselves online
2. Create, join or accept games
3. Drop discs and receive state updates
4. Run single-elimination tournaments

All state is in-memory. Identity is passed explicitly as user_id.
"""

from .models import (
    # Requests
    CreateGameRequest,
    MoveRequest,
    CreateTournamentRequest,
    RegisterParticipantRequest,
    RecordResultRequest,
    # Outcomes
    ErrorResponse,
    MoveOutcome,
    MatchStartOutcome,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateGameRequest",
    "MoveRequest",
    "CreateTournamentRequest",
    "RegisterParticipantRequest",
    "RecordResultRequest",
    # Outcomes
    "ErrorResponse",
    "MoveOutcome",
    "MatchStartOutcome",
    # Service
    "APIService",
    "create_app",
]
