"""
Error taxonomy shared by the engines and the service layer.

Every expected domain violation is reported as one of these codes on a
result object. Nothing in here is raised.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Structured error codes."""
    # Board engine
    ILLEGAL_MOVE = "ILLEGAL_MOVE"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"

    # Bracket engine
    INVALID_BRACKET_SIZE = "INVALID_BRACKET_SIZE"
    POSITION_TAKEN = "POSITION_TAKEN"
    INVALID_POSITION = "INVALID_POSITION"
    BRACKET_FULL = "BRACKET_FULL"
    DUPLICATE_PARTICIPANT = "DUPLICATE_PARTICIPANT"
    PARTICIPANT_NOT_FOUND = "PARTICIPANT_NOT_FOUND"
    INCOMPLETE_ROSTER = "INCOMPLETE_ROSTER"
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
    MATCH_NOT_READY = "MATCH_NOT_READY"
    MATCH_NOT_PLAYABLE = "MATCH_NOT_PLAYABLE"
    INVALID_WINNER = "INVALID_WINNER"
    TOURNAMENT_ALREADY_ACTIVE = "TOURNAMENT_ALREADY_ACTIVE"

    # Sessions and service
    GAME_NOT_FOUND = "GAME_NOT_FOUND"
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
    GAME_NOT_JOINABLE = "GAME_NOT_JOINABLE"
    NOT_A_PLAYER = "NOT_A_PLAYER"
    TOURNAMENT_NOT_FOUND = "TOURNAMENT_NOT_FOUND"
    STALE_VERSION = "STALE_VERSION"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
