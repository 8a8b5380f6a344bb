# river_tally/rules.py
from __future__ import annotations

from typing import List, Optional, Sequence

# Cards dealt to each player, round by round: down the river and back up.
ROUND_SPEC: tuple[int, ...] = (7, 6, 5, 4, 3, 2, 3, 4, 5, 6, 7)
NUM_ROUNDS = len(ROUND_SPEC)

MIN_PLAYERS = 2
MAX_PLAYERS = 7

EXACT_GUESS_BONUS = 10
POINTS_PER_TRICK = 2


def score_delta(guess: int, tricks_won: int) -> int:
    """
    Score one player's round:

    - Exact guess: 10 + 2 * guess
    - Otherwise: -2 * abs(guess - tricks_won)
    """
    if guess == tricks_won:
        return EXACT_GUESS_BONUS + POINTS_PER_TRICK * guess
    return -POINTS_PER_TRICK * abs(guess - tricks_won)


def cards_for_round(round_index: int) -> int:
    return ROUND_SPEC[round_index]


def dealer_for_round(round_index: int, player_count: int) -> int:
    """The deal rotates one seat per round, starting with player 0."""
    return round_index % player_count


def guess_order(dealer_index: int, player_count: int) -> List[int]:
    """
    Seats in the order they announce guesses.

    Guessing starts left of the dealer and goes round the table so the dealer
    guesses last.
    """
    first = (dealer_index + 1) % player_count
    order = [(first + offset) % player_count for offset in range(player_count - 1)]
    order.append(dealer_index)
    return order


def forbidden_dealer_guess(
    guesses: Sequence[Optional[int]],
    dealer_index: int,
    cards_this_round: int,
) -> int:
    """
    The one value the dealer may not guess.

    Unset guesses count as zero. The result can fall outside
    [0, cards_this_round], in which case the dealer is unconstrained.
    """
    rest_total = sum(
        g for pid, g in enumerate(guesses) if pid != dealer_index and g is not None
    )
    return cards_this_round - rest_total


def leaders(scores: Sequence[int]) -> List[int]:
    """Indices of every player sharing the top score (empty for no scores)."""
    if not scores:
        return []
    top = max(scores)
    return [pid for pid, s in enumerate(scores) if s == top]
