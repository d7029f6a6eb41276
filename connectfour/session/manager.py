"""
Session Manager - Creates and manages game sessions.

LIFECYCLE:
1. A host creates a game: public (anyone may join) or an invite (player 2 preset)
2. A second player joins (public) or accepts (invite) -> game is playing
3. Players alternate moves; the engine decides legality and wins
4. The game finishes on a win or a full board; either player may reset it
5. Tournament games are created already playing, with both players set;
   they are only replayed after a draw and only ended once decided

CONCURRENCY:
- Every write is a conditional update on the session's version
- Two players racing to join the same open game: exactly one wins
- A move submitted against a stale version is rejected, never merged

The manager is the in-memory stand-in for the hosted backend tables.
Each committed change is published on the ChangeFeed.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any
import logging
import threading
import time
import uuid

from ..errors import ErrorCode
from ..engine_core import GameState, MoveResult, PLAYER_ONE, PLAYER_TWO, play, reset
from .events import ChangeEvent, ChangeFeed, ChangeType

logger = logging.getLogger(__name__)

GAMES_TABLE = "games"


class SessionStatus(Enum):
    """State of a game session."""
    WAITING = "waiting"  # Waiting for player 2
    PLAYING = "playing"  # Game in progress
    FINISHED = "finished"  # Won or drawn


@dataclass
class GameSession:
    """
    A multiplayer game between two users.

    Player 1 is the host and always opens. The engine works with player
    numbers; this record maps them to user ids.
    """
    game_id: str
    player1_id: str
    created_at: float
    player2_id: str | None = None
    status: SessionStatus = SessionStatus.WAITING
    state: GameState = field(default_factory=GameState.new)
    match_id: str | None = None
    tournament_id: str | None = None
    version: int = 0
    updated_at: float = 0.0

    @property
    def is_invite(self) -> bool:
        return self.status == SessionStatus.WAITING and self.player2_id is not None

    @property
    def current_turn(self) -> str | None:
        """User id whose move it is, None unless playing."""
        if self.status != SessionStatus.PLAYING:
            return None
        return self.user_for(self.state.current_player)

    @property
    def winner_id(self) -> str | None:
        if self.state.winner is None:
            return None
        return self.user_for(self.state.winner)

    @property
    def winning_cells(self) -> list[tuple[int, int]] | None:
        return list(self.state.win.line) if self.state.win else None

    def player_number(self, user_id: str) -> int | None:
        if user_id == self.player1_id:
            return PLAYER_ONE
        if user_id is not None and user_id == self.player2_id:
            return PLAYER_TWO
        return None

    def user_for(self, player: int) -> str | None:
        return self.player1_id if player == PLAYER_ONE else self.player2_id

    def snapshot(self) -> GameSession:
        """Copy of the session as it is now; GameState is replaced, never mutated."""
        return replace(self)

    def to_record(self) -> dict[str, Any]:
        """Row shape of the games table."""
        return {
            "id": self.game_id,
            "player1_id": self.player1_id,
            "player2_id": self.player2_id,
            "board_state": self.state.board.to_rows(),
            "current_turn": self.current_turn,
            "winner": self.winner_id,
            "winning_cells": self.winning_cells,
            "status": self.status.value,
            "match_id": self.match_id,
            "tournament_id": self.tournament_id,
            "version": self.version,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class SessionResult:
    """Result of a session operation."""
    success: bool
    session: GameSession | None = None
    move: MoveResult | None = None
    error: str | None = None
    error_code: ErrorCode | None = None

    @classmethod
    def failure(cls, error: str, error_code: ErrorCode) -> SessionResult:
        return cls(success=False, error=error, error_code=error_code)


class SessionManager:
    """
    Manages game sessions.

    Responsibilities:
    - Create open games and invites
    - Resolve join races with conditional updates
    - Route moves through the engine
    - Publish every change on the ChangeFeed

    No persistence - sessions are in-memory only.
    """

    def __init__(self, change_feed: ChangeFeed | None = None):
        self._sessions: dict[str, GameSession] = {}
        self._lock = threading.RLock()
        self.change_feed = change_feed or ChangeFeed()

    # =========================================================================
    # Queries
    # =========================================================================

    def get_session(self, game_id: str) -> GameSession | None:
        return self._sessions.get(game_id)

    def list_games(self) -> list[GameSession]:
        return list(self._sessions.values())

    def list_open_games(self, user_id: str | None = None) -> list[GameSession]:
        """Public games still waiting for a second player, newest first."""
        games = [
            s for s in self._sessions.values()
            if s.status == SessionStatus.WAITING
            and s.player2_id is None
            and s.player1_id != user_id
        ]
        return sorted(games, key=lambda s: s.created_at, reverse=True)

    def list_invites(self, user_id: str) -> list[GameSession]:
        """Waiting games where `user_id` was invited as player 2."""
        games = [
            s for s in self._sessions.values()
            if s.status == SessionStatus.WAITING and s.player2_id == user_id
        ]
        return sorted(games, key=lambda s: s.created_at, reverse=True)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def create_game(
        self,
        host_id: str,
        invitee_id: str | None = None,
        match_id: str | None = None,
        tournament_id: str | None = None,
    ) -> GameSession:
        """
        Create a new game.

        Args:
            host_id: User who becomes player 1 and moves first
            invitee_id: Preset player 2 (an invite); None for a public game
            match_id: Tournament match this game decides; such games
                start immediately since both players are known
        """
        if invitee_id is not None and invitee_id == host_id:
            raise ValueError("A player cannot invite themselves")
        if match_id is not None and invitee_id is None:
            raise ValueError("Tournament games need both players")

        now = time.time()
        session = GameSession(
            game_id=str(uuid.uuid4()),
            player1_id=host_id,
            player2_id=invitee_id,
            status=SessionStatus.PLAYING if match_id else SessionStatus.WAITING,
            match_id=match_id,
            tournament_id=tournament_id,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._sessions[session.game_id] = session

        logger.info(
            "Game %s created by %s (%s)",
            session.game_id, host_id,
            "match " + match_id if match_id else ("invite" if invitee_id else "open"),
        )
        self._publish(ChangeType.INSERT, session)
        return session

    def join_game(self, game_id: str, user_id: str) -> SessionResult:
        """
        Take the empty player 2 slot of a public game.

        Succeeds only if the game is still waiting with no player 2.
        """
        with self._lock:
            session = self._sessions.get(game_id)
            if not session:
                return self._not_found(game_id)
            if session.status != SessionStatus.WAITING or session.player2_id is not None:
                logger.debug("Join of %s by %s lost: game no longer open", game_id, user_id)
                return SessionResult.failure(
                    "Game is no longer open", ErrorCode.GAME_NOT_JOINABLE
                )
            if session.player1_id == user_id:
                return SessionResult.failure(
                    "Cannot join your own game", ErrorCode.GAME_NOT_JOINABLE
                )
            session.player2_id = user_id
            session.status = SessionStatus.PLAYING
            self._touch(session)

        logger.info("Game %s joined by %s", game_id, user_id)
        self._publish(ChangeType.UPDATE, session)
        return SessionResult(success=True, session=session)

    def accept_invite(self, game_id: str, user_id: str) -> SessionResult:
        with self._lock:
            session = self._sessions.get(game_id)
            if not session:
                return self._not_found(game_id)
            if session.player2_id != user_id:
                return SessionResult.failure(
                    f"{user_id} was not invited to this game", ErrorCode.NOT_A_PLAYER
                )
            if session.status != SessionStatus.WAITING:
                return SessionResult.failure(
                    "Invite is no longer pending", ErrorCode.GAME_NOT_JOINABLE
                )
            session.status = SessionStatus.PLAYING
            self._touch(session)

        logger.info("Invite %s accepted by %s", game_id, user_id)
        self._publish(ChangeType.UPDATE, session)
        return SessionResult(success=True, session=session)

    def decline_invite(self, game_id: str, user_id: str) -> SessionResult:
        with self._lock:
            session = self._sessions.get(game_id)
            if not session:
                return self._not_found(game_id)
            if session.player2_id != user_id or session.status != SessionStatus.WAITING:
                return SessionResult.failure(
                    f"No pending invite for {user_id}", ErrorCode.NOT_A_PLAYER
                )
            del self._sessions[game_id]

        logger.info("Invite %s declined by %s", game_id, user_id)
        self._publish(ChangeType.DELETE, session)
        return SessionResult(success=True, session=session)

    def drop_disc(
        self,
        game_id: str,
        user_id: str,
        column: int,
        expected_version: int | None = None,
    ) -> SessionResult:
        """
        Play a move for `user_id`.

        The engine is turn-agnostic; this is where the acting user is
        mapped to a player number and checked against the turn.
        """
        with self._lock:
            session = self._sessions.get(game_id)
            if not session:
                return self._not_found(game_id)
            if expected_version is not None and expected_version != session.version:
                return SessionResult.failure(
                    f"Game changed (version {session.version}, expected {expected_version})",
                    ErrorCode.STALE_VERSION,
                )
            player = session.player_number(user_id)
            if player is None:
                return SessionResult.failure(
                    f"{user_id} is not playing in this game", ErrorCode.NOT_A_PLAYER
                )
            if session.status != SessionStatus.PLAYING:
                return SessionResult.failure(
                    f"Game is {session.status.value}", ErrorCode.ILLEGAL_MOVE
                )

            move = play(session.state, column, player)
            if not move.success:
                return SessionResult(
                    success=False,
                    session=session,
                    move=move,
                    error=move.error,
                    error_code=move.error_code,
                )

            session.state = move.state
            if move.state.is_over:
                session.status = SessionStatus.FINISHED
            self._touch(session)
            played = session.snapshot()

        if played.status == SessionStatus.FINISHED:
            logger.info(
                "Game %s finished: %s",
                game_id, f"{played.winner_id} wins" if played.winner_id else "draw",
            )
        # Listeners may move the live session on (a drawn match is replayed);
        # the caller gets the game as this move left it.
        self._publish(ChangeType.UPDATE, played)
        return SessionResult(success=True, session=played, move=move)

    def reset_game(self, game_id: str, user_id: str) -> SessionResult:
        """
        Fresh board, player 1 to move, back to playing.

        Tournament games are decided by their result and are never reset
        by a player; see replay_drawn_game.
        """
        with self._lock:
            session = self._sessions.get(game_id)
            if not session:
                return self._not_found(game_id)
            if session.player_number(user_id) is None:
                return SessionResult.failure(
                    f"{user_id} is not playing in this game", ErrorCode.NOT_A_PLAYER
                )
            if session.player2_id is None:
                return SessionResult.failure(
                    "Cannot reset a game without an opponent", ErrorCode.ILLEGAL_MOVE
                )
            if session.match_id is not None:
                return SessionResult.failure(
                    "Tournament games cannot be reset", ErrorCode.ILLEGAL_MOVE
                )
            self._restart(session)

        logger.info("Game %s reset by %s", game_id, user_id)
        self._publish(ChangeType.UPDATE, session)
        return SessionResult(success=True, session=session)

    def replay_drawn_game(self, game_id: str) -> SessionResult:
        """Restart a tournament game that ended without a winner."""
        with self._lock:
            session = self._sessions.get(game_id)
            if not session:
                return self._not_found(game_id)
            if (
                session.match_id is None
                or session.status != SessionStatus.FINISHED
                or session.state.winner is not None
            ):
                return SessionResult.failure(
                    "Only a drawn tournament game can be replayed", ErrorCode.ILLEGAL_MOVE
                )
            self._restart(session)

        logger.info("Game %s drawn, replaying match %s", game_id, session.match_id)
        self._publish(ChangeType.UPDATE, session)
        return SessionResult(success=True, session=session)

    def leave_game(self, game_id: str, user_id: str) -> SessionResult:
        """
        End a game on behalf of one of its players.

        A tournament game can only be removed once it has a winner, since
        the match it decides would otherwise be left without a game.
        """
        with self._lock:
            session = self._sessions.get(game_id)
            if not session:
                return self._not_found(game_id)
            if session.player_number(user_id) is None:
                return SessionResult.failure(
                    f"{user_id} is not playing in this game", ErrorCode.NOT_A_PLAYER
                )
            if session.match_id is not None and session.winner_id is None:
                return SessionResult.failure(
                    f"Game decides match {session.match_id} and has no winner yet",
                    ErrorCode.ILLEGAL_MOVE,
                )
            del self._sessions[game_id]

        logger.info("Game %s ended by %s", game_id, user_id)
        self._publish(ChangeType.DELETE, session)
        return SessionResult(success=True, session=session)

    def end_game(self, game_id: str) -> bool:
        """Remove a game. Returns False if it did not exist."""
        with self._lock:
            session = self._sessions.pop(game_id, None)
        if session:
            logger.info("Game %s ended", game_id)
            self._publish(ChangeType.DELETE, session)
        return session is not None

    def cleanup_stale_sessions(self, max_age_seconds: int = 3600) -> list[str]:
        """
        Drop finished or never-joined games untouched for max_age_seconds.

        Called periodically to free memory.
        """
        current_time = time.time()
        with self._lock:
            stale = [
                game_id for game_id, session in self._sessions.items()
                if session.status != SessionStatus.PLAYING
                and current_time - session.updated_at > max_age_seconds
            ]
        for game_id in stale:
            self.end_game(game_id)
        return stale

    # =========================================================================
    # Helper methods
    # =========================================================================

    def _touch(self, session: GameSession):
        session.version += 1
        session.updated_at = time.time()

    def _restart(self, session: GameSession):
        session.state = reset(session.state)
        session.status = SessionStatus.PLAYING
        self._touch(session)

    def _publish(self, change_type: ChangeType, session: GameSession):
        self.change_feed.publish(
            ChangeEvent(
                table=GAMES_TABLE,
                change_type=change_type,
                record_id=session.game_id,
                record=session.to_record(),
            )
        )

    def _not_found(self, game_id: str) -> SessionResult:
        return SessionResult.failure(f"Game {game_id} not found", ErrorCode.GAME_NOT_FOUND)
