# river_tally/ledger.py
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import ConstraintViolation, SequenceError, ValidationError
from .rules import dealer_for_round, leaders, score_delta
from .state import RoundRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Standings:
    leaders: List[int]
    top_score: Optional[int]
    # Points between the sole leader and second place; None on a tie.
    lead: Optional[int]
    rounds_played: int
    message: str


def _copy_record(record: RoundRecord) -> RoundRecord:
    return replace(
        record,
        guesses=list(record.guesses),
        tricks=list(record.tricks),
        deltas=list(record.deltas),
        scores_after=list(record.scores_after),
    )


def totals(history: Sequence[RoundRecord], player_count: int) -> List[int]:
    """Current scores: the last record's running totals, or zeros."""
    if not history:
        return [0] * player_count
    return list(history[-1].scores_after)


def commit_round(
    history: Sequence[RoundRecord], record: RoundRecord
) -> List[RoundRecord]:
    """
    Return a new history with `record` appended and its running totals set.

    Rounds must arrive strictly in order, and the record must already satisfy
    the scoring rules; anything else is a caller bug.
    """
    if record.round_index != len(history):
        raise SequenceError(
            f"Expected round {len(history)}, got round {record.round_index}"
        )
    player_count = len(record.guesses)
    if history and len(history[-1].scores_after) != player_count:
        raise SequenceError(
            f"Round {record.round_index} has {player_count} players; "
            f"history has {len(history[-1].scores_after)}"
        )
    if len(record.tricks) != player_count or len(record.deltas) != player_count:
        raise SequenceError(f"Round {record.round_index} record is ragged")

    expected = [score_delta(g, t) for g, t in zip(record.guesses, record.tricks)]
    if list(record.deltas) != expected:
        raise SequenceError(
            f"Round {record.round_index} deltas {record.deltas} do not match "
            f"scoring {expected}"
        )
    if sum(record.guesses) == record.cards_this_round:
        dealer = dealer_for_round(record.round_index, player_count)
        raise ConstraintViolation(
            f"Total guesses cannot equal {record.cards_this_round}.",
            forbidden_value=record.guesses[dealer],
            cards_this_round=record.cards_this_round,
            dealer_index=dealer,
        )

    previous = totals(history, player_count)
    committed = _copy_record(record)
    committed.scores_after = [p + d for p, d in zip(previous, committed.deltas)]

    new_history = [_copy_record(r) for r in history]
    new_history.append(committed)
    logger.debug(
        "Committed round %d; totals now %s",
        record.round_index + 1,
        committed.scores_after,
    )
    return new_history


def recalculate(
    history: Sequence[RoundRecord], player_count: int
) -> Tuple[List[RoundRecord], List[int]]:
    """
    Replay the whole history from round 0.

    Deltas are rescored from the stored guesses and tricks and the running
    totals rebuilt, so every record is consistent afterwards.
    """
    running = [0] * player_count
    replayed: List[RoundRecord] = []
    for record in history:
        updated = _copy_record(record)
        updated.deltas = [
            score_delta(g, t) for g, t in zip(updated.guesses, updated.tricks)
        ]
        running = [s + d for s, d in zip(running, updated.deltas)]
        updated.scores_after = list(running)
        replayed.append(updated)
    return replayed, running


def _validate_tricks(
    record: RoundRecord, round_index: int, new_tricks: Sequence[Any]
) -> List[int]:
    player_count = len(record.guesses)
    if len(new_tricks) != player_count:
        raise ValidationError(
            f"Error in Round {round_index + 1}: expected {player_count} trick "
            f"counts, got {len(new_tricks)}.",
            round_index=round_index,
        )
    cleaned: List[int] = []
    for pid, value in enumerate(new_tricks):
        if (
            isinstance(value, bool)
            or not isinstance(value, int)
            or not 0 <= value <= record.cards_this_round
        ):
            raise ValidationError(
                f"Error in Round {round_index + 1}: Tricks must be between 0 "
                f"and {record.cards_this_round} (player {pid + 1}).",
                round_index=round_index,
                player_index=pid,
            )
        cleaned.append(value)
    return cleaned


def edit_history_tricks(
    history: Sequence[RoundRecord],
    edits: Mapping[int, Sequence[Any]],
) -> Tuple[List[RoundRecord], List[int]]:
    """
    Overwrite tricks for any number of rounds, then replay everything.

    Every edit is validated before any is applied; a single bad value aborts
    the whole edit and the input history is left as it was.
    """
    validated: Dict[int, List[int]] = {}
    for round_index in sorted(edits):
        if not 0 <= round_index < len(history):
            raise ValidationError(
                f"Error in Round {round_index + 1}: "
                f"only {len(history)} round(s) have been played.",
                round_index=round_index,
            )
        validated[round_index] = _validate_tricks(
            history[round_index], round_index, edits[round_index]
        )

    edited = [_copy_record(r) for r in history]
    for round_index, tricks in validated.items():
        edited[round_index].tricks = tricks

    player_count = len(history[0].guesses) if history else 0
    new_history, scores = recalculate(edited, player_count)
    if validated:
        logger.info(
            "Edited tricks for round(s) %s; totals now %s",
            ", ".join(str(r + 1) for r in validated),
            scores,
        )
    return new_history, scores


def edit_tricks_and_recalculate(
    history: Sequence[RoundRecord],
    round_index: int,
    new_tricks: Sequence[Any],
) -> Tuple[List[RoundRecord], List[int]]:
    """Correct one completed round's tricks and cascade the new scores."""
    return edit_history_tricks(history, {round_index: new_tricks})


def _plural_rounds(count: int) -> str:
    return f"{count} round{'s' if count > 1 else ''}"


def summarize_standings(
    player_names: Sequence[str],
    scores: Sequence[int],
    rounds_played: int,
) -> Standings:
    """Who is ahead and by how much, for the history summary line."""
    if rounds_played == 0 or not scores:
        return Standings(
            leaders=[],
            top_score=None,
            lead=None,
            rounds_played=rounds_played,
            message="No rounds played yet.",
        )

    top_ids = leaders(scores)
    top = scores[top_ids[0]]
    after = _plural_rounds(rounds_played)

    if len(top_ids) > 1:
        names = ", ".join(player_names[pid] for pid in top_ids)
        return Standings(
            leaders=top_ids,
            top_score=top,
            lead=None,
            rounds_played=rounds_played,
            message=f"It's a tie between {names} at {top} points after {after}.",
        )

    leader_name = player_names[top_ids[0]]
    ranked = sorted(scores, reverse=True)
    if len(ranked) < 2:
        return Standings(
            leaders=top_ids,
            top_score=top,
            lead=None,
            rounds_played=rounds_played,
            message=f"{leader_name} leads with {top} points after {after}.",
        )

    lead = top - ranked[1]
    return Standings(
        leaders=top_ids,
        top_score=top,
        lead=lead,
        rounds_played=rounds_played,
        message=(
            f"{leader_name} leads with {top} points, ahead by {lead} "
            f"after {after}."
        ),
    )


def winner_message(player_names: Sequence[str], scores: Sequence[int]) -> str:
    top_ids = leaders(scores)
    if not top_ids:
        return "No scores recorded."
    top = scores[top_ids[0]]
    if len(top_ids) == 1:
        return f"{player_names[top_ids[0]]} wins with {top} points!"
    names = ", ".join(player_names[pid] for pid in top_ids)
    return f"It's a tie between {names} with {top} points!"
