"""
Pytest fixtures for Connect Four tests.
"""

import pytest

from ..engine_core import Board, GameState, PLAYER_TWO
from ..bracket import Bracket, create_bracket, register_participant, start_tournament
from ..session import SessionManager
from ..api.service import APIService

# Full board without any four in a row: rows alternate P and its complement
_P = [1, 1, 2, 2, 1, 1, 2]
_Q = [2, 2, 1, 1, 2, 2, 1]
DRAWN_ROWS = [_P, _Q, _P, _Q, _P, _Q]


@pytest.fixture
def empty_board() -> Board:
    return Board.empty()


@pytest.fixture
def drawn_board() -> Board:
    """A full board with no winner."""
    return Board.from_rows(DRAWN_ROWS)


@pytest.fixture
def one_move_from_draw() -> GameState:
    """Player 2 to move; column 6 is the last free cell and fills the board."""
    rows = [row.copy() for row in DRAWN_ROWS]
    rows[0][6] = None
    return GameState(board=Board.from_rows(rows), current_player=PLAYER_TWO)


@pytest.fixture
def empty_bracket() -> Bracket:
    """An 8-player bracket in Setup."""
    return create_bracket(8, tournament_id="t1", name="Friday Cup").bracket


@pytest.fixture
def full_bracket(empty_bracket: Bracket) -> Bracket:
    """8-player bracket with p1..p8 registered at positions 1..8."""
    bracket = empty_bracket
    for position in range(1, 9):
        bracket = register_participant(bracket, f"p{position}", position).bracket
    return bracket


@pytest.fixture
def started_bracket(full_bracket: Bracket) -> Bracket:
    return start_tournament(full_bracket).bracket


@pytest.fixture
def manager() -> SessionManager:
    return SessionManager()


@pytest.fixture
def service() -> APIService:
    """Create a fresh API service."""
    return APIService()
