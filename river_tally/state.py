# river_tally/state.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .rules import guess_order


@dataclass(frozen=True)
class RoundState:
    """
    The round currently being played.

    Round engine operations return a new RoundState instead of mutating this
    one; a committed round has no RoundState left.
    """

    round_index: int
    player_count: int
    cards_this_round: int
    dealer_index: int
    guesses: tuple[Optional[int], ...]
    tricks: tuple[Optional[int], ...]
    # Set once guesses were submitted and play moved on to trick entry.
    guesses_locked: bool = False

    @property
    def first_guesser_index(self) -> int:
        return (self.dealer_index + 1) % self.player_count

    @property
    def guess_order(self) -> List[int]:
        return guess_order(self.dealer_index, self.player_count)


@dataclass
class RoundRecord:
    round_index: int
    cards_this_round: int
    guesses: List[int]
    tricks: List[int]
    deltas: List[int]
    # Running totals right after this round; filled in by the ledger.
    scores_after: List[int] = field(default_factory=list)


@dataclass
class GameState:
    player_names: List[str]
    history: List[RoundRecord] = field(default_factory=list)
    scores: List[int] = field(default_factory=list)
    current_round_index: int = 0
    current_round: Optional[RoundState] = None

    def __post_init__(self) -> None:
        if not self.scores:
            self.scores = [0] * len(self.player_names)

    @property
    def player_count(self) -> int:
        return len(self.player_names)
