"""
Connect Four Arena - Board engine, bracket engine and lobby service.

A deterministic engine for multiplayer Connect Four with tournaments.
The package provides:
- Gravity-drop move legality and win detection
- Single-elimination bracket management
- Game sessions, lobby and presence tracking
- A REST/WebSocket service over all of the above
"""

__version__ = "0.1.0"
