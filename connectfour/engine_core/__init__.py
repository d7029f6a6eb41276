"""
Engine Core - Deterministic Connect Four rules.

The engine:
1. Holds the Board
2. Places discs by gravity drop
3. Detects wins through the last placed disc
4. Enforces turn order and the game-over policy
"""

from .board import (
    Board,
    ROWS,
    COLS,
    CONNECT,
    PLAYER_ONE,
    PLAYER_TWO,
    next_open_row,
    other_player,
)
from .move import Axis, Move, MoveResult, WinResult
from .rules import apply_move, detect_win, is_draw, legal_moves
from .game import GamePhase, GameState, play, reset

__all__ = [
    "Board",
    "ROWS",
    "COLS",
    "CONNECT",
    "PLAYER_ONE",
    "PLAYER_TWO",
    "next_open_row",
    "other_player",
    "Axis",
    "Move",
    "MoveResult",
    "WinResult",
    "apply_move",
    "detect_win",
    "is_draw",
    "legal_moves",
    "GamePhase",
    "GameState",
    "play",
    "reset",
]
