"""
Game State - Whose turn it is, whether the game is over, who won.

The reducer `play()` is the single point of state change for a game:
- Pure function: (state, column, player) -> MoveResult with new state
- Validates phase and turn before touching the board
- Delegates placement and win detection to the rules module
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum

from ..errors import ErrorCode
from .board import Board, PLAYER_ONE, PLAYERS, other_player
from .move import Move, MoveResult, WinResult
from .rules import apply_move, detect_win, is_draw


class GamePhase(Enum):
    """High-level game phases."""
    PLAYING = "playing"
    WON = "won"
    DRAWN = "drawn"


@dataclass
class GameState:
    """
    Complete game state at a point in time.

    Replaced wholesale on every move and on reset.
    """
    board: Board = field(default_factory=Board.empty)
    current_player: int = PLAYER_ONE
    first_player: int = PLAYER_ONE
    phase: GamePhase = GamePhase.PLAYING
    win: WinResult | None = None
    moves: list[Move] = field(default_factory=list)

    @classmethod
    def new(cls, first_player: int = PLAYER_ONE) -> GameState:
        if first_player not in PLAYERS:
            raise ValueError(f"Unknown player id: {first_player!r}")
        return cls(current_player=first_player, first_player=first_player)

    @property
    def is_over(self) -> bool:
        return self.phase != GamePhase.PLAYING

    @property
    def winner(self) -> int | None:
        return self.win.winning_player if self.win else None

    @property
    def move_count(self) -> int:
        return len(self.moves)

    def _copy_with(self, **kwargs) -> GameState:
        """Create a copy with some fields replaced."""
        return GameState(
            board=kwargs.get("board", self.board),
            current_player=kwargs.get("current_player", self.current_player),
            first_player=kwargs.get("first_player", self.first_player),
            phase=kwargs.get("phase", self.phase),
            win=kwargs.get("win", self.win),
            moves=kwargs.get("moves", self.moves),
        )


def play(state: GameState, column: int, player: int) -> MoveResult:
    """
    Apply a move to a game.

    Rejects moves after the game ended and moves out of turn; the input
    state is left untouched on every failure.
    """
    if state.is_over:
        return MoveResult.failure("Game is over - reset to play again")

    if player != state.current_player:
        return MoveResult.failure(f"Not player {player}'s turn", ErrorCode.NOT_YOUR_TURN)

    result = apply_move(state.board, column, player)
    if not result.success:
        return result

    win = detect_win(result.board, result.row, column, player)
    if win:
        phase = GamePhase.WON
    elif is_draw(result.board, win):
        phase = GamePhase.DRAWN
    else:
        phase = GamePhase.PLAYING

    result.win = win
    result.state = state._copy_with(
        board=result.board,
        current_player=player if phase != GamePhase.PLAYING else other_player(player),
        phase=phase,
        win=win,
        moves=state.moves + [Move(column=column, player=player)],
    )
    return result


def reset(state: GameState) -> GameState:
    """Fresh board, same opening player."""
    return GameState.new(first_player=state.first_player)
