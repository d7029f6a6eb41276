"""
Bracket Module - Single-elimination tournaments.

A bracket is created with its full match tree, filled by registration,
seeded on start and advanced one match result at a time until the final
produces a champion.
"""

from .state import (
    Bracket,
    Match,
    MatchStatus,
    Participant,
    ParticipantStatus,
    TournamentStatus,
    VALID_BRACKET_SIZES,
)
from .engine import (
    BracketResult,
    create_bracket,
    open_registration,
    next_free_position,
    register_participant,
    remove_participant,
    start_tournament,
    begin_match,
    record_match_result,
    is_tournament_complete,
    ready_matches,
)

__all__ = [
    "Bracket",
    "Match",
    "MatchStatus",
    "Participant",
    "ParticipantStatus",
    "TournamentStatus",
    "VALID_BRACKET_SIZES",
    "BracketResult",
    "create_bracket",
    "open_registration",
    "next_free_position",
    "register_participant",
    "remove_participant",
    "start_tournament",
    "begin_match",
    "record_match_result",
    "is_tournament_complete",
    "ready_matches",
]
