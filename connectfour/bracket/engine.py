"""
Bracket Engine - Single-elimination lifecycle.

Setup -> Registration -> Active -> Finished

Every operation takes a Bracket snapshot and returns a BracketResult with
either the new snapshot or a typed failure. The input is never modified.
Starting a match (creating the game behind it) is the caller's decision;
`begin_match` only records that it happened.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import uuid

from ..errors import ErrorCode
from .state import (
    Bracket,
    Match,
    MatchStatus,
    Participant,
    ParticipantStatus,
    TournamentStatus,
    VALID_BRACKET_SIZES,
)


@dataclass
class BracketResult:
    """
    Result of a bracket operation.

    Contains:
    - Whether the operation succeeded
    - New bracket (if succeeded)
    - Error and error code (if failed)
    - Human-readable changes
    """
    success: bool
    bracket: Bracket | None = None
    error: str | None = None
    error_code: ErrorCode | None = None
    changes: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str, error_code: ErrorCode) -> BracketResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def success_with_bracket(
        cls,
        bracket: Bracket,
        changes: list[str] | None = None,
    ) -> BracketResult:
        """Create a success result with new bracket."""
        return cls(success=True, bracket=bracket, changes=changes or [])


def _is_started(bracket: Bracket) -> bool:
    return bracket.status in {TournamentStatus.ACTIVE, TournamentStatus.FINISHED}


def create_bracket(
    bracket_size: int,
    tournament_id: str | None = None,
    name: str = "",
    description: str = "",
    admin_id: str | None = None,
    created_at: float = 0.0,
) -> BracketResult:
    """
    Allocate the full match tree for a bracket.

    bracket_size - 1 matches over log2(bracket_size) rounds, round 1
    holding bracket_size / 2 and each later round half the previous.
    """
    if bracket_size not in VALID_BRACKET_SIZES:
        return BracketResult.failure(
            f"Bracket size must be one of {VALID_BRACKET_SIZES}, got {bracket_size}",
            ErrorCode.INVALID_BRACKET_SIZE,
        )

    matches = []
    round_number = 1
    matches_in_round = bracket_size // 2
    while matches_in_round >= 1:
        for n in range(1, matches_in_round + 1):
            matches.append(Match(round=round_number, match_number=n))
        round_number += 1
        matches_in_round //= 2

    bracket = Bracket(
        tournament_id=tournament_id or str(uuid.uuid4()),
        bracket_size=bracket_size,
        name=name,
        description=description,
        admin_id=admin_id,
        status=TournamentStatus.SETUP,
        matches=matches,
        created_at=created_at,
    )
    return BracketResult.success_with_bracket(
        bracket,
        changes=[f"Created {bracket_size}-player bracket with {len(matches)} matches"],
    )


def open_registration(bracket: Bracket) -> BracketResult:
    """Move a bracket from Setup into Registration."""
    if _is_started(bracket):
        return BracketResult.failure(
            "Tournament already started", ErrorCode.TOURNAMENT_ALREADY_ACTIVE
        )
    if bracket.status == TournamentStatus.REGISTRATION:
        return BracketResult.success_with_bracket(bracket)
    return BracketResult.success_with_bracket(
        bracket._copy_with(status=TournamentStatus.REGISTRATION),
        changes=["Registration opened"],
    )


def next_free_position(bracket: Bracket) -> int | None:
    """Lowest unoccupied bracket position, or None when full."""
    taken = bracket.taken_positions()
    for position in range(1, bracket.bracket_size + 1):
        if position not in taken:
            return position
    return None


def register_participant(bracket: Bracket, user_id: str, position: int) -> BracketResult:
    """
    Register `user_id` at bracket `position`.

    Round 1 match n pairs positions 2n-1 and 2n.
    """
    if _is_started(bracket):
        return BracketResult.failure(
            "Tournament already started", ErrorCode.TOURNAMENT_ALREADY_ACTIVE
        )
    if bracket.is_full:
        return BracketResult.failure(
            f"Bracket already has {bracket.bracket_size} participants",
            ErrorCode.BRACKET_FULL,
        )
    if bracket.get_participant(user_id):
        return BracketResult.failure(
            f"{user_id} is already registered", ErrorCode.DUPLICATE_PARTICIPANT
        )
    if not 1 <= position <= bracket.bracket_size:
        return BracketResult.failure(
            f"Position must be between 1 and {bracket.bracket_size}",
            ErrorCode.INVALID_POSITION,
        )
    if bracket.participant_at(position):
        return BracketResult.failure(
            f"Position {position} is already taken", ErrorCode.POSITION_TAKEN
        )

    participants = bracket.participants + [Participant(user_id=user_id, position=position)]
    participants.sort(key=lambda p: p.position)
    return BracketResult.success_with_bracket(
        bracket._copy_with(
            participants=participants,
            status=TournamentStatus.REGISTRATION,
        ),
        changes=[f"{user_id} registered at position {position}"],
    )


def remove_participant(bracket: Bracket, user_id: str) -> BracketResult:
    """Withdraw a participant before the start, freeing their position."""
    if _is_started(bracket):
        return BracketResult.failure(
            "Cannot remove participants after the tournament started",
            ErrorCode.TOURNAMENT_ALREADY_ACTIVE,
        )
    participant = bracket.get_participant(user_id)
    if not participant:
        return BracketResult.failure(
            f"{user_id} is not registered", ErrorCode.PARTICIPANT_NOT_FOUND
        )

    participants = [p for p in bracket.participants if p.user_id != user_id]
    return BracketResult.success_with_bracket(
        bracket._copy_with(participants=participants),
        changes=[f"{user_id} removed, position {participant.position} is free"],
    )


def start_tournament(bracket: Bracket) -> BracketResult:
    """Seed round 1 from the registered positions and go Active."""
    if _is_started(bracket):
        return BracketResult.failure(
            "Tournament already started", ErrorCode.TOURNAMENT_ALREADY_ACTIVE
        )
    if len(bracket.participants) != bracket.bracket_size:
        return BracketResult.failure(
            f"Need {bracket.bracket_size} participants, have {len(bracket.participants)}",
            ErrorCode.INCOMPLETE_ROSTER,
        )

    new_matches = []
    for match in bracket.matches:
        if match.round == 1:
            first = bracket.participant_at(2 * match.match_number - 1)
            second = bracket.participant_at(2 * match.match_number)
            match = match._copy_with(player1_id=first.user_id, player2_id=second.user_id)
        new_matches.append(match)

    return BracketResult.success_with_bracket(
        bracket._copy_with(
            matches=new_matches,
            status=TournamentStatus.ACTIVE,
            current_round=1,
        ),
        changes=["Tournament started", f"Round 1: {bracket.bracket_size // 2} matches seeded"],
    )


def begin_match(bracket: Bracket, match_id: str, game_id: str | None = None) -> BracketResult:
    """Mark a ready match as Playing, linking the game that decides it."""
    match = bracket.get_match(match_id)
    if not match:
        return BracketResult.failure(f"Match {match_id} not found", ErrorCode.MATCH_NOT_FOUND)
    if bracket.status != TournamentStatus.ACTIVE or not match.is_ready:
        return BracketResult.failure(
            f"Match {match_id} is not ready to start", ErrorCode.MATCH_NOT_READY
        )

    return BracketResult.success_with_bracket(
        bracket.with_match(match._copy_with(status=MatchStatus.PLAYING, game_id=game_id)),
        changes=[f"Match {match_id} started: {match.player1_id} vs {match.player2_id}"],
    )


def record_match_result(bracket: Bracket, match_id: str, winner_id: str) -> BracketResult:
    """
    Finish a Playing match and advance its winner.

    The next-round match stays Pending even once both of its slots are
    filled; starting it is up to the caller.
    """
    match = bracket.get_match(match_id)
    if not match:
        return BracketResult.failure(f"Match {match_id} not found", ErrorCode.MATCH_NOT_FOUND)
    if match.status != MatchStatus.PLAYING:
        return BracketResult.failure(
            f"Match {match_id} is {match.status.value}, not playing",
            ErrorCode.MATCH_NOT_PLAYABLE,
        )
    if winner_id not in match.players:
        return BracketResult.failure(
            f"{winner_id} is not playing in match {match_id}", ErrorCode.INVALID_WINNER
        )

    finished = match._copy_with(winner_id=winner_id, status=MatchStatus.FINISHED)
    new_bracket = bracket.with_match(finished)
    changes = [f"{winner_id} won match {match_id}"]

    participants = [
        Participant(user_id=p.user_id, position=p.position, status=ParticipantStatus.ELIMINATED)
        if p.user_id == finished.loser_id else p
        for p in new_bracket.participants
    ]
    new_bracket = new_bracket._copy_with(participants=participants)

    if match.round == bracket.rounds:
        changes.append(f"{winner_id} wins the tournament")
        return BracketResult.success_with_bracket(
            new_bracket._copy_with(winner_id=winner_id, status=TournamentStatus.FINISHED),
            changes=changes,
        )

    next_round, next_number = finished.next_match()
    next_match = new_bracket.find_match(next_round, next_number)
    if match.match_number % 2 == 1:
        next_match = next_match._copy_with(player1_id=winner_id)
    else:
        next_match = next_match._copy_with(player2_id=winner_id)
    new_bracket = new_bracket.with_match(next_match)
    changes.append(f"{winner_id} advances to match {next_match.match_id}")

    if all(m.status == MatchStatus.FINISHED for m in new_bracket.matches_in_round(match.round)):
        new_bracket = new_bracket._copy_with(current_round=match.round + 1)
        changes.append(f"Round {match.round} complete")

    return BracketResult.success_with_bracket(new_bracket, changes=changes)


def is_tournament_complete(bracket: Bracket) -> bool:
    """True iff the final match has produced a winner."""
    final = bracket.final_match
    return final is not None and final.winner_id is not None


def ready_matches(bracket: Bracket) -> list[Match]:
    """Pending matches with both players known, in bracket order."""
    if bracket.status != TournamentStatus.ACTIVE:
        return []
    return [m for m in bracket.matches if m.is_ready]
