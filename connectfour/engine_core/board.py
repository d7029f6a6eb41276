"""
Board - The 6x7 Connect Four grid.

Layout:
- Row 0 is the TOP of the board, row ROWS-1 the BOTTOM.
- A cell is None (empty) or a player id (1 or 2).

Design principles:
- Immutable-friendly: placing a disc returns a new board
- Gravity: discs in a column form a contiguous run from the bottom
- Monotonic: a disc never leaves the board (reset means a new board)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

ROWS = 6
COLS = 7
CONNECT = 4

PLAYER_ONE = 1
PLAYER_TWO = 2
PLAYERS = (PLAYER_ONE, PLAYER_TWO)

Cell = tuple[int, int]  # (row, col)


def _empty_cells() -> list[list[int | None]]:
    return [[None for _ in range(COLS)] for _ in range(ROWS)]


def other_player(player: int) -> int:
    """Return the opponent of `player`."""
    return PLAYER_TWO if player == PLAYER_ONE else PLAYER_ONE


@dataclass
class Board:
    """
    A Connect Four board snapshot.

    Callers never mutate `cells` directly; use `with_disc()`.
    """
    cells: list[list[int | None]] = field(default_factory=_empty_cells)

    @classmethod
    def empty(cls) -> Board:
        """Create an empty board."""
        return cls()

    @classmethod
    def from_rows(cls, rows: list[list[Any]]) -> Board:
        """
        Build a board from a stored snapshot.

        The persistence layer stores cells as 0|1|2 or null; both 0 and
        None mean empty. Malformed snapshots raise ValueError.
        """
        if len(rows) != ROWS or any(len(row) != COLS for row in rows):
            raise ValueError(f"Board must be {ROWS}x{COLS}")

        cells = _empty_cells()
        for r, row in enumerate(rows):
            for c, value in enumerate(row):
                if value is None or (type(value) is int and value == 0):
                    continue
                # bool and float compare equal to 1 and 2; only real ints are discs
                if type(value) is not int or value not in PLAYERS:
                    raise ValueError(f"Invalid cell value {value!r} at ({r}, {c})")
                cells[r][c] = value

        # Gravity: no disc may float above an empty cell
        for c in range(COLS):
            for r in range(ROWS - 1):
                if cells[r][c] is not None and cells[r + 1][c] is None:
                    raise ValueError(f"Floating disc at ({r}, {c})")

        return cls(cells=cells)

    def to_rows(self) -> list[list[int | None]]:
        """Snapshot for persistence (a fresh nested list)."""
        return [row.copy() for row in self.cells]

    def get(self, row: int, col: int) -> int | None:
        return self.cells[row][col]

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < ROWS and 0 <= col < COLS

    def with_disc(self, row: int, col: int, player: int) -> Board:
        """Return new board with a disc placed at (row, col)."""
        new_cells = [r.copy() for r in self.cells]
        new_cells[row][col] = player
        return Board(cells=new_cells)

    def legal_columns(self) -> list[int]:
        """Columns whose top row is still empty."""
        return [c for c in range(COLS) if self.cells[0][c] is None]

    @property
    def is_full(self) -> bool:
        return all(self.cells[0][c] is not None for c in range(COLS))

    @property
    def disc_count(self) -> int:
        return sum(1 for row in self.cells for cell in row if cell is not None)


def next_open_row(board: Board, col: int) -> int | None:
    """
    Find where a disc dropped into `col` lands.

    Scans from the bottom row upward and returns the first empty row,
    or None when the column is full.
    """
    for row in range(ROWS - 1, -1, -1):
        if board.get(row, col) is None:
            return row
    return None
