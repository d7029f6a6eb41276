"""
Move System - Moves, win results and move results.

All board changes flow through a Move and come back as a MoveResult.
Expected violations (full column, game over, wrong turn) are failures
on the result, never exceptions.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import ErrorCode
from .board import Board, Cell


class Axis(Enum):
    """Axes through a cell, in the order they are checked for a win."""
    HORIZONTAL = (0, 1)
    VERTICAL = (1, 0)
    DIAGONAL_DOWN_RIGHT = (1, 1)
    DIAGONAL_DOWN_LEFT = (1, -1)

    @property
    def delta(self) -> tuple[int, int]:
        return self.value


@dataclass
class Move:
    """A disc drop: the column plus the acting player."""
    column: int
    player: int


@dataclass
class WinResult:
    """
    A completed alignment.

    `line` runs from one end of the alignment to the other and always
    contains the cell that was just played.
    """
    winning_player: int
    line: list[Cell]
    axis: Axis

    @property
    def length(self) -> int:
        return len(self.line)


@dataclass
class MoveResult:
    """
    Result of applying a move.

    Contains:
    - Whether the move succeeded
    - The new board and landing row (if succeeded)
    - The win (if the move completed one)
    - Error and error code (if failed)
    """
    success: bool
    board: Board | None = None
    row: int | None = None
    column: int | None = None
    player: int | None = None
    win: WinResult | None = None
    state: Any | None = None  # GameState, when produced by the game reducer
    error: str | None = None
    error_code: ErrorCode | None = None

    @classmethod
    def failure(cls, error: str, error_code: ErrorCode = ErrorCode.ILLEGAL_MOVE) -> MoveResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def placed(cls, board: Board, row: int, column: int, player: int) -> MoveResult:
        """Create a success result for a placed disc."""
        return cls(success=True, board=board, row=row, column=column, player=player)
