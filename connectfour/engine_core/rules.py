"""
Rules - Move legality and win detection.

Pure functions, no I/O. The board passed in is never modified.
"""

from __future__ import annotations

from ..errors import ErrorCode
from .board import Board, COLS, CONNECT, PLAYERS, Cell, next_open_row
from .move import Axis, MoveResult, WinResult


def apply_move(board: Board, column: int, player: int) -> MoveResult:
    """
    Drop a disc for `player` into `column`.

    Returns a MoveResult carrying the new board and the landing row,
    or an ILLEGAL_MOVE failure when the column is full or does not exist.
    """
    if player not in PLAYERS:
        raise ValueError(f"Unknown player id: {player!r}")

    if not 0 <= column < COLS:
        return MoveResult.failure(f"Column {column} is off the board")

    row = next_open_row(board, column)
    if row is None:
        return MoveResult.failure(f"Column {column} is full")

    return MoveResult.placed(board.with_disc(row, column, player), row, column, player)


def _walk(board: Board, row: int, col: int, dr: int, dc: int, player: int) -> list[Cell]:
    """Cells owned by `player` stepping from (row, col), origin excluded."""
    cells = []
    r, c = row + dr, col + dc
    while board.in_bounds(r, c) and board.get(r, c) == player:
        cells.append((r, c))
        r += dr
        c += dc
    return cells


def detect_win(board: Board, row: int, col: int, player: int) -> WinResult | None:
    """
    Check whether the disc at (row, col) completes four in a row.

    Only the axes through the just-placed cell are examined: every earlier
    move was already checked, so any winning run must pass through it.
    Axes are tried in Axis order and the first one long enough is
    reported, even if the move also completes another axis.
    """
    for axis in Axis:
        dr, dc = axis.delta
        before = _walk(board, row, col, -dr, -dc, player)
        after = _walk(board, row, col, dr, dc, player)
        line = list(reversed(before)) + [(row, col)] + after
        if len(line) >= CONNECT:
            return WinResult(winning_player=player, line=line, axis=axis)
    return None


def is_draw(board: Board, win: WinResult | None = None) -> bool:
    """A full board without a win."""
    return win is None and board.is_full


def legal_moves(board: Board) -> list[int]:
    """Columns a disc can still be dropped into."""
    return board.legal_columns()
