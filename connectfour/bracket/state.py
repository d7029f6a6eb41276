"""
Bracket State - Single-elimination tournament records.

Design principles:
- Immutable-friendly: all mutations return a new Bracket
- Serializable: mirrors the tournament / participant / match rows
- The full match tree exists from creation; player slots fill over time
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

VALID_BRACKET_SIZES = (8, 16, 32, 64)


class TournamentStatus(Enum):
    SETUP = "setup"
    REGISTRATION = "registration"
    ACTIVE = "active"
    FINISHED = "finished"


class MatchStatus(Enum):
    PENDING = "pending"
    PLAYING = "playing"
    FINISHED = "finished"


class ParticipantStatus(Enum):
    ACTIVE = "active"
    ELIMINATED = "eliminated"


def match_id_for(round_number: int, match_number: int) -> str:
    return f"r{round_number}m{match_number}"


@dataclass
class Participant:
    """A registered player and the bracket position that seeds them."""
    user_id: str
    position: int
    status: ParticipantStatus = ParticipantStatus.ACTIVE


@dataclass
class Match:
    """
    One match of the bracket.

    The winner of (round, n) moves into match (round + 1, ceil(n / 2)):
    first slot when n is odd, second slot when n is even.
    """
    round: int
    match_number: int
    player1_id: str | None = None
    player2_id: str | None = None
    winner_id: str | None = None
    status: MatchStatus = MatchStatus.PENDING
    game_id: str | None = None

    @property
    def match_id(self) -> str:
        return match_id_for(self.round, self.match_number)

    @property
    def players(self) -> tuple[str | None, str | None]:
        return self.player1_id, self.player2_id

    @property
    def is_ready(self) -> bool:
        """Both slots filled and nobody has started it yet."""
        return (
            self.status == MatchStatus.PENDING
            and self.player1_id is not None
            and self.player2_id is not None
        )

    @property
    def loser_id(self) -> str | None:
        if self.winner_id is None:
            return None
        return self.player2_id if self.winner_id == self.player1_id else self.player1_id

    def next_match(self) -> tuple[int, int]:
        """(round, match_number) the winner advances into."""
        return self.round + 1, (self.match_number + 1) // 2

    def _copy_with(self, **kwargs) -> Match:
        return Match(
            round=kwargs.get("round", self.round),
            match_number=kwargs.get("match_number", self.match_number),
            player1_id=kwargs.get("player1_id", self.player1_id),
            player2_id=kwargs.get("player2_id", self.player2_id),
            winner_id=kwargs.get("winner_id", self.winner_id),
            status=kwargs.get("status", self.status),
            game_id=kwargs.get("game_id", self.game_id),
        )


@dataclass
class Bracket:
    """
    A tournament and its full match tree.

    Invariants:
    - len(participants) <= bracket_size
    - positions are unique integers in 1..bracket_size
    - round r holds bracket_size / 2**r matches
    """
    tournament_id: str
    bracket_size: int
    name: str = ""
    description: str = ""
    admin_id: str | None = None
    status: TournamentStatus = TournamentStatus.SETUP
    current_round: int = 0
    participants: list[Participant] = field(default_factory=list)
    matches: list[Match] = field(default_factory=list)
    winner_id: str | None = None
    created_at: float = 0.0

    # Metadata
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def rounds(self) -> int:
        """Number of rounds: log2(bracket_size)."""
        return self.bracket_size.bit_length() - 1

    @property
    def is_full(self) -> bool:
        return len(self.participants) >= self.bracket_size

    @property
    def final_match(self) -> Match | None:
        return self.get_match(match_id_for(self.rounds, 1))

    def get_match(self, match_id: str) -> Match | None:
        for m in self.matches:
            if m.match_id == match_id:
                return m
        return None

    def find_match(self, round_number: int, match_number: int) -> Match | None:
        return self.get_match(match_id_for(round_number, match_number))

    def matches_in_round(self, round_number: int) -> list[Match]:
        return [m for m in self.matches if m.round == round_number]

    def get_participant(self, user_id: str) -> Participant | None:
        for p in self.participants:
            if p.user_id == user_id:
                return p
        return None

    def participant_at(self, position: int) -> Participant | None:
        for p in self.participants:
            if p.position == position:
                return p
        return None

    def taken_positions(self) -> set[int]:
        return {p.position for p in self.participants}

    def with_match(self, match: Match) -> Bracket:
        """Return new bracket with one match replaced."""
        new_matches = [
            match if m.match_id == match.match_id else m
            for m in self.matches
        ]
        return self._copy_with(matches=new_matches)

    def _copy_with(self, **kwargs) -> Bracket:
        """Create a copy with some fields replaced."""
        return Bracket(
            tournament_id=kwargs.get("tournament_id", self.tournament_id),
            bracket_size=kwargs.get("bracket_size", self.bracket_size),
            name=kwargs.get("name", self.name),
            description=kwargs.get("description", self.description),
            admin_id=kwargs.get("admin_id", self.admin_id),
            status=kwargs.get("status", self.status),
            current_round=kwargs.get("current_round", self.current_round),
            participants=kwargs.get("participants", self.participants),
            matches=kwargs.get("matches", self.matches),
            winner_id=kwargs.get("winner_id", self.winner_id),
            created_at=kwargs.get("created_at", self.created_at),
            metadata=kwargs.get("metadata", self.metadata),
        )
