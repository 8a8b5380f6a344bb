# river_tally/engine.py
from __future__ import annotations

import enum
import logging
from typing import Any, List, Mapping, Optional, Sequence

from . import ledger
from . import round_engine
from .errors import PersistenceFailure, SequenceError, ValidationError
from .ledger import Standings
from .round_engine import Issue
from .rules import MAX_PLAYERS, MIN_PLAYERS, NUM_ROUNDS, leaders
from .snapshot import InvalidSnapshot, deserialize, serialize
from .state import GameState, RoundRecord, RoundState
from .store import SnapshotStore

logger = logging.getLogger(__name__)


class Phase(enum.Enum):
    SETUP = "setup"
    NAMING_PLAYERS = "naming_players"
    GUESSING = "guessing"
    TRICKING = "tricking"
    GAME_OVER = "game_over"
    EDITING_HISTORY = "editing_history"


def _check_player_count(player_count: int) -> None:
    if not MIN_PLAYERS <= player_count <= MAX_PLAYERS:
        raise ValidationError(
            f"Please enter a number of players between {MIN_PLAYERS} and "
            f"{MAX_PLAYERS}."
        )


def default_player_names(
    player_count: int, names: Optional[Sequence[Optional[str]]] = None
) -> List[str]:
    """Fill blank or missing names with "Player N"."""
    names = list(names or [])
    if len(names) > player_count:
        raise ValidationError(
            f"Got {len(names)} names for {player_count} players"
        )
    names.extend([None] * (player_count - len(names)))
    return [
        (name or "").strip() or f"Player {i + 1}" for i, name in enumerate(names)
    ]


def start_game(
    player_count: int, names: Optional[Sequence[Optional[str]]] = None
) -> GameState:
    """Fresh game: names finalized, scores zeroed, round 0 ready for guesses."""
    _check_player_count(player_count)
    game_state = GameState(player_names=default_player_names(player_count, names))
    game_state.current_round = round_engine.setup_round(0, player_count)
    return game_state


class ScoreKeeper:
    """
    Drives one game through its rounds for a UI.

    Wraps a single GameState: the round engine handles the round in progress,
    the ledger owns completed rounds. After every committing step the game is
    handed to the store; storage trouble is logged and never interrupts play.
    """

    def __init__(
        self,
        store: Optional[SnapshotStore] = None,
        game_state: Optional[GameState] = None,
    ) -> None:
        self.store = store
        self.game_state = game_state
        self._pending_player_count: Optional[int] = None
        self._editing = False

    @classmethod
    def resume(cls, store: SnapshotStore) -> "ScoreKeeper":
        """Pick up the saved game, or start from setup if there is none."""
        try:
            snapshot = store.load()
        except PersistenceFailure as exc:
            logger.error("Failed to load saved game: %s", exc)
            return cls(store=store)
        if snapshot is None:
            return cls(store=store)

        restored = deserialize(snapshot)
        if isinstance(restored, InvalidSnapshot):
            logger.warning("Ignoring saved game: %s", restored.reason)
            return cls(store=store)

        logger.info(
            "Resumed game with %d players at round %d",
            restored.player_count,
            restored.current_round_index + 1,
        )
        return cls(store=store, game_state=restored)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        if self.game_state is None:
            if self._pending_player_count is None:
                return Phase.SETUP
            return Phase.NAMING_PLAYERS
        if self._editing:
            return Phase.EDITING_HISTORY
        if self.game_state.current_round_index >= NUM_ROUNDS:
            return Phase.GAME_OVER
        round_state = self.game_state.current_round
        if round_state is not None and round_state.guesses_locked:
            return Phase.TRICKING
        return Phase.GUESSING

    @property
    def round(self) -> RoundState:
        """The round in progress."""
        if self.game_state is None or self.game_state.current_round is None:
            raise SequenceError("No round in progress")
        return self.game_state.current_round

    @property
    def player_names(self) -> List[str]:
        if self.game_state is None:
            return []
        return self.game_state.player_names

    @property
    def history(self) -> List[RoundRecord]:
        if self.game_state is None:
            return []
        return self.game_state.history

    @property
    def scores(self) -> List[int]:
        if self.game_state is None:
            return []
        return self.game_state.scores

    def _require(self, *phases: Phase) -> None:
        phase = self.phase
        if phase not in phases:
            raise SequenceError(
                f"Not allowed during {phase.value}; expected "
                + " or ".join(p.value for p in phases)
            )

    def _active(self, *phases: Phase) -> GameState:
        self._require(*phases)
        if self.game_state is None:
            raise SequenceError("No game in progress")
        return self.game_state

    def _persist(self) -> None:
        if self.store is None or self.game_state is None:
            return
        try:
            self.store.save(serialize(self.game_state))
        except PersistenceFailure as exc:
            logger.error("Failed to save game: %s", exc)

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def choose_player_count(self, player_count: int) -> None:
        self._require(Phase.SETUP, Phase.NAMING_PLAYERS)
        _check_player_count(player_count)
        self._pending_player_count = player_count

    def back_to_count(self) -> None:
        self._require(Phase.NAMING_PLAYERS)
        self._pending_player_count = None

    def start_game(self, names: Optional[Sequence[Optional[str]]] = None) -> GameState:
        """
        Begin play. With a player count already chosen, `names` may be short
        or blank; straight from setup the names decide the player count.
        """
        self._require(Phase.SETUP, Phase.NAMING_PLAYERS)
        if self._pending_player_count is not None:
            player_count = self._pending_player_count
        else:
            player_count = len(names or [])
        self.game_state = start_game(player_count, names)
        self._pending_player_count = None
        self._editing = False
        logger.info(
            "Started game for %d players: %s",
            player_count,
            ", ".join(self.game_state.player_names),
        )
        self._persist()
        return self.game_state

    # -------------------------------------------------------------------------
    # Guessing
    # -------------------------------------------------------------------------

    def enter_guess(self, player_index: int, value: Any) -> None:
        game_state = self._active(Phase.GUESSING)
        game_state.current_round = round_engine.record_guess(
            self.round, player_index, value
        )

    def forbidden_dealer_value(self) -> int:
        return round_engine.dealer_forbidden_value(self.round)

    def guess_issues(self) -> List[Issue]:
        return round_engine.guess_issues(self.round, self.player_names)

    def submit_guesses(self) -> RoundState:
        """Lock in this round's guesses, or raise ValidationError / ConstraintViolation."""
        game_state = self._active(Phase.GUESSING)
        game_state.current_round = round_engine.lock_guesses(
            self.round, self.player_names
        )
        self._persist()
        return game_state.current_round

    # -------------------------------------------------------------------------
    # Tricks
    # -------------------------------------------------------------------------

    def enter_tricks(self, player_index: int, value: Any) -> None:
        game_state = self._active(Phase.TRICKING)
        game_state.current_round = round_engine.record_tricks(
            self.round, player_index, value
        )

    def trick_warning(self) -> Optional[str]:
        warning = round_engine.trick_total_warning(self.round)
        return str(warning) if warning is not None else None

    def submit_tricks(self, confirm_mismatch: bool = False) -> RoundRecord:
        """
        Score and commit the round, then set up the next one.

        If the tricks do not add up to the cards dealt the SoftWarning is
        raised unless `confirm_mismatch` is set, in which case the round is
        scored as entered.
        """
        game_state = self._active(Phase.TRICKING)
        round_state = self.round

        record = round_engine.finalize_round(round_state)
        warning = round_engine.trick_total_warning(round_state)
        if warning is not None:
            if not confirm_mismatch:
                raise warning
            logger.warning(
                "Round %d committed with mismatched tricks: %s",
                round_state.round_index + 1,
                warning,
            )

        game_state.history = ledger.commit_round(game_state.history, record)
        game_state.scores = ledger.totals(game_state.history, game_state.player_count)
        game_state.current_round_index = len(game_state.history)
        committed = game_state.history[-1]
        logger.info(
            "Finished round %d/%d; deltas %s",
            committed.round_index + 1,
            NUM_ROUNDS,
            committed.deltas,
        )

        if game_state.current_round_index >= NUM_ROUNDS:
            game_state.current_round = None
            logger.info("Game over: %s", self.winner_message())
        else:
            game_state.current_round = round_engine.setup_round(
                game_state.current_round_index, game_state.player_count
            )
        self._persist()
        return committed

    # -------------------------------------------------------------------------
    # History edits
    # -------------------------------------------------------------------------

    def begin_history_edit(self) -> None:
        game_state = self._active(Phase.GUESSING, Phase.TRICKING, Phase.GAME_OVER)
        if not game_state.history:
            raise ValidationError("No rounds have been completed yet to edit.")
        self._editing = True

    def cancel_history_edit(self) -> None:
        self._require(Phase.EDITING_HISTORY)
        self._editing = False

    def save_history_edit(self, edits: Mapping[int, Sequence[Any]]) -> List[int]:
        """Apply trick corrections for any rounds and return the new totals."""
        game_state = self._active(Phase.EDITING_HISTORY)
        game_state.history, game_state.scores = ledger.edit_history_tricks(
            game_state.history, edits
        )
        self._editing = False
        self._persist()
        return list(game_state.scores)

    def edit_tricks(self, round_index: int, tricks: Sequence[Any]) -> List[int]:
        """Correct one completed round outside of an edit session."""
        game_state = self._active(Phase.GUESSING, Phase.TRICKING, Phase.GAME_OVER)
        game_state.history, game_state.scores = ledger.edit_tricks_and_recalculate(
            game_state.history, round_index, tricks
        )
        self._persist()
        return list(game_state.scores)

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def standings(self) -> Standings:
        return ledger.summarize_standings(
            self.player_names, self.scores, len(self.history)
        )

    def winners(self) -> List[int]:
        self._require(Phase.GAME_OVER)
        return leaders(self.scores)

    def winner_message(self) -> str:
        self._require(Phase.GAME_OVER)
        return ledger.winner_message(self.player_names, self.scores)

    def new_game(self) -> None:
        """Forget the current game, including its saved copy."""
        self.game_state = None
        self._pending_player_count = None
        self._editing = False
        if self.store is not None:
            try:
                self.store.clear()
            except PersistenceFailure as exc:
                logger.error("Failed to clear saved game: %s", exc)
        logger.info("Started over")
