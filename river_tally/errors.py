# river_tally/errors.py
from __future__ import annotations

from typing import Optional


class ScoreKeeperError(Exception):
    """Base exception for everything the scoring engine raises."""


class ValidationError(ScoreKeeperError):
    """A guess or trick count is missing or out of range."""

    def __init__(
        self,
        message: str,
        *,
        round_index: Optional[int] = None,
        player_index: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.round_index = round_index
        self.player_index = player_index


class ConstraintViolation(ScoreKeeperError):
    """The dealer's guess makes the total equal to the cards dealt."""

    def __init__(
        self,
        message: str,
        *,
        forbidden_value: int,
        cards_this_round: int,
        dealer_index: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.forbidden_value = forbidden_value
        self.cards_this_round = cards_this_round
        self.dealer_index = dealer_index


class SoftWarning(ScoreKeeperError):
    """
    Tricks won do not add up to the cards dealt.

    The round engine hands these back as values; the ScoreKeeper raises one
    only when the caller has not confirmed the mismatch.
    """

    def __init__(self, message: str, *, total: int, cards_this_round: int) -> None:
        super().__init__(message)
        self.total = total
        self.cards_this_round = cards_this_round


class SequenceError(ScoreKeeperError):
    """Engine misuse, e.g. committing rounds out of order."""


class PersistenceFailure(ScoreKeeperError):
    """Reading or writing the snapshot store failed."""


class GameComplete(ScoreKeeperError):
    """All rounds have been played; there is no round to set up."""
