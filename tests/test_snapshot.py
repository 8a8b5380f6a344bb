import json

import pytest

from river_tally.engine import start_game
from river_tally.ledger import commit_round
from river_tally.round_engine import (
    finalize_round,
    lock_guesses,
    record_guess,
    record_tricks,
    setup_round,
)
from river_tally.snapshot import (
    SCHEMA_VERSION,
    InvalidSnapshot,
    deserialize,
    from_json,
    serialize,
    to_json,
)
from river_tally.state import GameState


def _game_after_two_rounds() -> GameState:
    game_state = start_game(3, ["Ann", "Bob", "Cat"])
    for guesses, tricks in [([2, 2, 2], [3, 2, 2]), ([1, 0, 2], [1, 3, 2])]:
        state = game_state.current_round
        for pid, g in enumerate(guesses):
            state = record_guess(state, pid, g)
        state = lock_guesses(state)
        for pid, t in enumerate(tricks):
            state = record_tricks(state, pid, t)
        game_state.history = commit_round(game_state.history, finalize_round(state))
        game_state.scores = list(game_state.history[-1].scores_after)
        game_state.current_round_index = len(game_state.history)
        game_state.current_round = setup_round(game_state.current_round_index, 3)

    # Half-entered guesses for round 3
    game_state.current_round = record_guess(game_state.current_round, 0, 4)
    return game_state


def test_serialize_contains_everything_needed_to_resume():
    data = serialize(_game_after_two_rounds())
    assert data["schema_version"] == SCHEMA_VERSION
    assert data["player_count"] == 3
    assert data["player_names"] == ["Ann", "Bob", "Cat"]
    assert data["current_round_index"] == 2
    assert data["scores"] == [10, 8, 28]
    assert len(data["history"]) == 2
    assert data["history"][1]["scores_after"] == [10, 8, 28]
    assert data["current_round_guesses"] == [4, None, None]
    assert data["current_round_tricks"] == [None, None, None]
    assert data["guesses_locked"] is False
    # Plain data all the way down
    json.dumps(data)


def test_round_trip_preserves_game():
    game_state = _game_after_two_rounds()
    restored = deserialize(serialize(game_state))
    assert restored == game_state

    restored = from_json(to_json(game_state))
    assert restored == game_state
    assert serialize(restored) == serialize(game_state)


def test_round_trip_of_finished_game_has_no_round():
    game_state = start_game(2)
    game_state.current_round = None
    for r in range(11):
        state = setup_round(r, 2)
        state = lock_guesses(record_guess(record_guess(state, 0, 0), 1, 0))
        state = record_tricks(record_tricks(state, 0, 0), 1, state.cards_this_round)
        game_state.history = commit_round(game_state.history, finalize_round(state))
    game_state.scores = list(game_state.history[-1].scores_after)
    game_state.current_round_index = 11

    data = serialize(game_state)
    assert data["current_round_guesses"] is None
    restored = deserialize(data)
    assert restored == game_state
    assert restored.current_round is None


@pytest.mark.parametrize(
    "data",
    [
        None,
        [],
        {},
        {"player_names": ["A", "B"]},
        {"player_count": "2", "player_names": ["A", "B"]},
        {"player_count": True, "player_names": ["A", "B"]},
        {"player_count": 2},
        {"player_count": 2, "player_names": "A,B"},
    ],
)
def test_missing_player_count_or_names_is_invalid(data):
    assert isinstance(deserialize(data), InvalidSnapshot)


def test_inconsistent_snapshots_are_invalid():
    good = serialize(_game_after_two_rounds())

    too_many_players = dict(good, player_count=9, player_names=["x"] * 9)
    assert isinstance(deserialize(too_many_players), InvalidSnapshot)

    names_mismatch = dict(good, player_names=["Ann", "Bob"])
    assert isinstance(deserialize(names_mismatch), InvalidSnapshot)

    ragged = json.loads(json.dumps(good))
    ragged["history"][0]["tricks"] = [1, 2]
    assert isinstance(deserialize(ragged), InvalidSnapshot)

    wrong_round = dict(good, current_round_index=5)
    assert isinstance(deserialize(wrong_round), InvalidSnapshot)

    wrong_cards = json.loads(json.dumps(good))
    wrong_cards["history"][0]["cards_this_round"] = 99
    assert isinstance(deserialize(wrong_cards), InvalidSnapshot)

    impossible_tricks = json.loads(json.dumps(good))
    impossible_tricks["history"][0]["tricks"] = [50, -4, 0]
    assert isinstance(deserialize(impossible_tricks), InvalidSnapshot)

    negative_guess = json.loads(json.dumps(good))
    negative_guess["history"][1]["guesses"] = [-1, 0, 2]
    assert isinstance(deserialize(negative_guess), InvalidSnapshot)

    # Round 1 deals 7 cards, so the dealer could never have made this total
    guesses_fill_round = json.loads(json.dumps(good))
    guesses_fill_round["history"][0]["guesses"] = [3, 2, 2]
    result = deserialize(guesses_fill_round)
    assert isinstance(result, InvalidSnapshot)
    assert "history[0]" in result.reason

    assert isinstance(from_json("{not json"), InvalidSnapshot)


def test_minimal_snapshot_starts_at_round_one():
    restored = deserialize({"player_count": 3, "player_names": ["A", "B", "C"]})
    assert isinstance(restored, GameState)
    assert restored.scores == [0, 0, 0]
    assert restored.history == []
    assert restored.current_round.round_index == 0
    assert restored.current_round.guesses == (None, None, None)


def test_scores_are_rebuilt_from_history():
    data = serialize(_game_after_two_rounds())
    data["scores"] = [999, 999, 999]
    data["history"][0]["deltas"] = [0, 0, 0]

    restored = deserialize(data)
    assert restored.scores == [10, 8, 28]
    assert restored.history[0].deltas == [-2, 14, 14]


def test_locked_guesses_survive_round_trip():
    game_state = start_game(3)
    state = game_state.current_round
    for pid, g in enumerate([2, 2, 2]):
        state = record_guess(state, pid, g)
    state = record_tricks(lock_guesses(state), 0, 3)
    game_state.current_round = state

    restored = deserialize(serialize(game_state))
    assert restored.current_round.guesses_locked
    assert restored.current_round.tricks == (3, None, None)
