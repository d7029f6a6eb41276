"""
Session Module - Game sessions, lobby and presence.

A session is one game between two users:
- Created by a host as an open game or an invite
- Joined or accepted by the second player
- Driven move by move through the engine
- Finished on a win or a full board, and resettable

Sessions live in memory. Every committed change is published on the
ChangeFeed so observers (the service, websocket pushes) can react.
"""

from .events import ChangeEvent, ChangeFeed, ChangeType
from .manager import GameSession, SessionManager, SessionResult, SessionStatus, GAMES_TABLE
from .presence import Profile, ProfileStore

__all__ = [
    "ChangeEvent",
    "ChangeFeed",
    "ChangeType",
    "GameSession",
    "SessionManager",
    "SessionResult",
    "SessionStatus",
    "GAMES_TABLE",
    "Profile",
    "ProfileStore",
]
