# river_tally/snapshot.py
"""
Snapshot serialization for the persistence collaborator.

A snapshot is a JSON-compatible dict holding everything needed to resume a
game exactly where it paused, including half-entered guesses and tricks.
Decoding never raises: anything that does not look like a snapshot comes back
as an InvalidSnapshot, and the caller starts a fresh game instead.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .errors import GameComplete, ScoreKeeperError
from .ledger import recalculate
from .round_engine import setup_round
from .rules import MAX_PLAYERS, MIN_PLAYERS, NUM_ROUNDS, ROUND_SPEC
from .state import GameState, RoundRecord

SCHEMA_VERSION = 1


@dataclass(frozen=True)
class InvalidSnapshot:
    reason: str


class _Malformed(Exception):
    pass


def _record_to_dict(record: RoundRecord) -> Dict[str, Any]:
    return {
        "round_index": record.round_index,
        "cards_this_round": record.cards_this_round,
        "guesses": list(record.guesses),
        "tricks": list(record.tricks),
        "deltas": list(record.deltas),
        "scores_after": list(record.scores_after),
    }


def serialize(game_state: GameState) -> Dict[str, Any]:
    """Convert a GameState to plain data."""
    current = game_state.current_round
    return {
        "schema_version": SCHEMA_VERSION,
        "player_count": game_state.player_count,
        "player_names": list(game_state.player_names),
        "current_round_index": game_state.current_round_index,
        "scores": list(game_state.scores),
        "history": [_record_to_dict(r) for r in game_state.history],
        "current_round_guesses": list(current.guesses) if current else None,
        "current_round_tricks": list(current.tricks) if current else None,
        "guesses_locked": current.guesses_locked if current else False,
    }


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _int_list(data: Dict[str, Any], key: str, length: int) -> List[int]:
    values = data.get(key)
    if not isinstance(values, list) or len(values) != length:
        raise _Malformed(f"{key} must be a list of {length} integers")
    if not all(_is_int(v) for v in values):
        raise _Malformed(f"{key} must contain only integers")
    return list(values)


def _record_from_dict(d: Any, position: int, player_count: int) -> RoundRecord:
    if not isinstance(d, dict):
        raise _Malformed(f"history[{position}] is not an object")
    round_index = d.get("round_index", position)
    if round_index != position:
        raise _Malformed(f"history[{position}] has round_index {round_index}")
    cards = d.get("cards_this_round")
    if cards != ROUND_SPEC[position] or not _is_int(cards):
        raise _Malformed(
            f"history[{position}] must have {ROUND_SPEC[position]} cards, got {cards!r}"
        )
    guesses = _int_list(d, "guesses", player_count)
    tricks = _int_list(d, "tricks", player_count)
    if not all(0 <= v <= cards for v in guesses + tricks):
        raise _Malformed(f"history[{position}] has counts outside 0..{cards}")
    if sum(guesses) == cards:
        raise _Malformed(f"history[{position}] guesses add up to the {cards} cards dealt")
    return RoundRecord(
        round_index=position,
        cards_this_round=cards,
        guesses=guesses,
        tricks=tricks,
        deltas=_int_list(d, "deltas", player_count),
        scores_after=_int_list(d, "scores_after", player_count),
    )


def _optional_list(data: Dict[str, Any], key: str) -> Optional[List[Any]]:
    values = data.get(key)
    return values if isinstance(values, list) else None


def deserialize(data: Any) -> Union[GameState, InvalidSnapshot]:
    """
    Rebuild a GameState from plain data.

    `player_count` (int) and `player_names` (list) are required. Scores are
    rebuilt by replaying the stored history so the running totals always
    match the recorded rounds.
    """
    if not isinstance(data, dict):
        return InvalidSnapshot("snapshot is not an object")
    player_count = data.get("player_count")
    if not _is_int(player_count):
        return InvalidSnapshot("player_count missing or not a number")
    names = data.get("player_names")
    if not isinstance(names, list):
        return InvalidSnapshot("player_names missing or not a list")
    if not MIN_PLAYERS <= player_count <= MAX_PLAYERS:
        return InvalidSnapshot(f"player_count {player_count} out of range")
    if len(names) != player_count or not all(isinstance(n, str) for n in names):
        return InvalidSnapshot("player_names does not match player_count")

    raw_history = data.get("history", [])
    if not isinstance(raw_history, list) or len(raw_history) > NUM_ROUNDS:
        return InvalidSnapshot("history must be a list of at most 11 rounds")
    try:
        records = [
            _record_from_dict(d, i, player_count) for i, d in enumerate(raw_history)
        ]
    except _Malformed as exc:
        return InvalidSnapshot(str(exc))

    history, scores = recalculate(records, player_count)

    current_round_index = data.get("current_round_index", len(history))
    if current_round_index != len(history):
        return InvalidSnapshot(
            f"current_round_index {current_round_index} does not follow "
            f"{len(history)} completed round(s)"
        )

    game_state = GameState(
        player_names=list(names),
        history=history,
        scores=scores,
        current_round_index=current_round_index,
    )
    try:
        game_state.current_round = setup_round(
            current_round_index,
            player_count,
            prior_guesses=_optional_list(data, "current_round_guesses"),
            prior_tricks=_optional_list(data, "current_round_tricks"),
            guesses_locked=bool(data.get("guesses_locked", False)),
        )
    except GameComplete:
        game_state.current_round = None
    except ScoreKeeperError as exc:
        return InvalidSnapshot(str(exc))
    return game_state


def to_json(game_state: GameState) -> str:
    return json.dumps(serialize(game_state), indent=2)


def from_json(s: str) -> Union[GameState, InvalidSnapshot]:
    try:
        data = json.loads(s)
    except ValueError as exc:
        return InvalidSnapshot(f"not valid JSON: {exc}")
    return deserialize(data)


__all__ = [
    "InvalidSnapshot",
    "SCHEMA_VERSION",
    "deserialize",
    "from_json",
    "serialize",
    "to_json",
]
