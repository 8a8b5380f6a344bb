# river_tally/round_engine.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, List, Optional, Sequence

from .errors import (
    ConstraintViolation,
    GameComplete,
    SequenceError,
    SoftWarning,
    ValidationError,
)
from .rules import (
    MAX_PLAYERS,
    MIN_PLAYERS,
    NUM_ROUNDS,
    cards_for_round,
    dealer_for_round,
    forbidden_dealer_guess,
    score_delta,
)
from .state import RoundRecord, RoundState

MISSING_GUESS = "missing_guess"
DEALER_FORBIDDEN = "dealer_forbidden"


@dataclass(frozen=True)
class Issue:
    """Something the UI should show before guesses can be submitted."""

    code: str
    message: str
    player_index: int
    value: Optional[int] = None


def coerce_count(value: Any, cards_this_round: int) -> Optional[int]:
    """
    Turn raw form input into a guess/trick count, or None.

    Accepts ints and integer strings within [0, cards_this_round]. Anything
    else (bools, floats, junk text, out-of-range numbers) reads as unset.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            return None
    if not isinstance(value, int):
        return None
    if value < 0 or value > cards_this_round:
        return None
    return value


def _seed(
    values: Optional[Sequence[Any]],
    player_count: int,
    cards_this_round: int,
) -> tuple[Optional[int], ...]:
    if values is None:
        return (None,) * player_count
    seeded = [coerce_count(v, cards_this_round) for v in list(values)[:player_count]]
    seeded.extend([None] * (player_count - len(seeded)))
    return tuple(seeded)


def setup_round(
    round_index: int,
    player_count: int,
    prior_guesses: Optional[Sequence[Any]] = None,
    prior_tricks: Optional[Sequence[Any]] = None,
    guesses_locked: bool = False,
) -> RoundState:
    """
    Build the RoundState for `round_index`.

    Prior guesses/tricks restore a round that was interrupted mid-way; they go
    through the same coercion as live input.
    """
    if round_index >= NUM_ROUNDS:
        raise GameComplete(f"All {NUM_ROUNDS} rounds have been played")
    if round_index < 0:
        raise ValidationError(f"Invalid round index {round_index}")
    if not MIN_PLAYERS <= player_count <= MAX_PLAYERS:
        raise ValidationError(
            f"Player count must be between {MIN_PLAYERS} and {MAX_PLAYERS}; "
            f"got {player_count}"
        )

    cards = cards_for_round(round_index)
    guesses = _seed(prior_guesses, player_count, cards)
    tricks = _seed(prior_tricks, player_count, cards)
    state = RoundState(
        round_index=round_index,
        player_count=player_count,
        cards_this_round=cards,
        dealer_index=dealer_for_round(round_index, player_count),
        guesses=guesses,
        tricks=tricks,
    )
    # A restored lock only stands if the guesses it locked are still legal.
    if guesses_locked and all_guesses_valid(state):
        state = replace(state, guesses_locked=True)
    return state


def _check_player(state: RoundState, player_index: int) -> None:
    if not 0 <= player_index < state.player_count:
        raise SequenceError(
            f"Player index {player_index} out of range for "
            f"{state.player_count} players"
        )


def _with_value(
    values: tuple[Optional[int], ...], player_index: int, value: Optional[int]
) -> tuple[Optional[int], ...]:
    updated = list(values)
    updated[player_index] = value
    return tuple(updated)


# --------------------------------------------------------------------------- #
# Guesses                                                                     #
# --------------------------------------------------------------------------- #


def record_guess(state: RoundState, player_index: int, value: Any) -> RoundState:
    """Record a guess; invalid values are stored as unset, not rejected."""
    _check_player(state, player_index)
    if state.guesses_locked:
        raise SequenceError("Guesses are locked for this round")
    guess = coerce_count(value, state.cards_this_round)
    return replace(state, guesses=_with_value(state.guesses, player_index, guess))


def dealer_forbidden_value(state: RoundState) -> int:
    return forbidden_dealer_guess(
        state.guesses, state.dealer_index, state.cards_this_round
    )


def _dealer_conflict(state: RoundState) -> Optional[int]:
    """The forbidden value if the dealer's current guess hits it."""
    dealer_guess = state.guesses[state.dealer_index]
    forbidden = dealer_forbidden_value(state)
    if dealer_guess is not None and dealer_guess == forbidden:
        return forbidden
    return None


def dealer_warning(state: RoundState, dealer_name: Optional[str] = None) -> str:
    forbidden = dealer_forbidden_value(state)
    name = dealer_name or f"Player {state.dealer_index + 1}"
    return (
        f"{name} cannot guess {forbidden} "
        f"(total guesses cannot equal {state.cards_this_round})."
    )


def guess_issues(
    state: RoundState, player_names: Optional[Sequence[str]] = None
) -> List[Issue]:
    """
    Everything blocking guess submission, in guessing order.

    Missing guesses come first; a dealer-constraint issue is reported only once
    the dealer has actually guessed the forbidden value.
    """

    def name(pid: int) -> str:
        if player_names is not None and pid < len(player_names):
            return player_names[pid]
        return f"Player {pid + 1}"

    issues: List[Issue] = []
    for pid in state.guess_order:
        if state.guesses[pid] is None:
            issues.append(
                Issue(
                    code=MISSING_GUESS,
                    message=(
                        f"Please enter a valid guess (0-{state.cards_this_round}) "
                        f"for {name(pid)}."
                    ),
                    player_index=pid,
                )
            )

    forbidden = _dealer_conflict(state)
    if forbidden is not None:
        issues.append(
            Issue(
                code=DEALER_FORBIDDEN,
                message=dealer_warning(state, name(state.dealer_index)),
                player_index=state.dealer_index,
                value=forbidden,
            )
        )
    return issues


def all_guesses_valid(state: RoundState) -> bool:
    # With every guess set, "dealer != forbidden" is exactly "total != cards".
    if any(g is None for g in state.guesses):
        return False
    return _dealer_conflict(state) is None


def _raise_first_issue(
    state: RoundState, player_names: Optional[Sequence[str]] = None
) -> None:
    for issue in guess_issues(state, player_names):
        if issue.code == MISSING_GUESS:
            raise ValidationError(
                issue.message,
                round_index=state.round_index,
                player_index=issue.player_index,
            )
        raise ConstraintViolation(
            issue.message,
            forbidden_value=issue.value,
            cards_this_round=state.cards_this_round,
            dealer_index=state.dealer_index,
        )


def lock_guesses(
    state: RoundState, player_names: Optional[Sequence[str]] = None
) -> RoundState:
    """Validate the guesses and move the round on to trick entry."""
    if state.guesses_locked:
        return state
    _raise_first_issue(state, player_names)
    return replace(state, guesses_locked=True)


# --------------------------------------------------------------------------- #
# Tricks                                                                      #
# --------------------------------------------------------------------------- #


def record_tricks(state: RoundState, player_index: int, value: Any) -> RoundState:
    """Record tricks won; invalid values are stored as unset, not rejected."""
    _check_player(state, player_index)
    if not state.guesses_locked:
        raise SequenceError("Tricks cannot be recorded before guesses are submitted")
    won = coerce_count(value, state.cards_this_round)
    return replace(state, tricks=_with_value(state.tricks, player_index, won))


def all_tricks_valid(state: RoundState) -> bool:
    return all(t is not None for t in state.tricks)


def trick_total_warning(state: RoundState) -> Optional[SoftWarning]:
    """
    A SoftWarning when the recorded tricks do not add up to the cards dealt.

    Returned rather than raised: the mismatch must never block a round.
    """
    total = sum(t for t in state.tricks if t is not None)
    if total == state.cards_this_round:
        return None
    return SoftWarning(
        f"Total tricks recorded ({total}) should equal cards this round "
        f"({state.cards_this_round}).",
        total=total,
        cards_this_round=state.cards_this_round,
    )


def finalize_round(state: RoundState) -> RoundRecord:
    """
    Score the round. `scores_after` is left for the ledger to fill in.

    Raises ValidationError / ConstraintViolation if guesses or tricks are not
    complete and legal.
    """
    _raise_first_issue(state)
    for pid, won in enumerate(state.tricks):
        if won is None:
            raise ValidationError(
                f"Please enter a valid tricks count (0-{state.cards_this_round}) "
                f"for Player {pid + 1}.",
                round_index=state.round_index,
                player_index=pid,
            )

    guesses = [int(g) for g in state.guesses]
    tricks = [int(t) for t in state.tricks]
    return RoundRecord(
        round_index=state.round_index,
        cards_this_round=state.cards_this_round,
        guesses=guesses,
        tricks=tricks,
        deltas=[score_delta(g, t) for g, t in zip(guesses, tricks)],
    )
