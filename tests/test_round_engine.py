import pytest

from river_tally.errors import (
    ConstraintViolation,
    GameComplete,
    SequenceError,
    ValidationError,
)
from river_tally.round_engine import (
    DEALER_FORBIDDEN,
    MISSING_GUESS,
    all_guesses_valid,
    all_tricks_valid,
    dealer_forbidden_value,
    finalize_round,
    guess_issues,
    lock_guesses,
    record_guess,
    record_tricks,
    setup_round,
    trick_total_warning,
)


def _with_guesses(state, guesses):
    for pid, g in enumerate(guesses):
        state = record_guess(state, pid, g)
    return state


def _with_tricks(state, tricks):
    for pid, t in enumerate(tricks):
        state = record_tricks(state, pid, t)
    return state


def test_setup_round_basics():
    state = setup_round(1, 4)
    assert state.cards_this_round == 6
    assert state.dealer_index == 1
    assert state.first_guesser_index == 2
    assert state.guess_order == [2, 3, 0, 1]
    assert state.guesses == (None, None, None, None)
    assert state.tricks == (None, None, None, None)
    assert not state.guesses_locked


def test_setup_round_past_last_round_signals_game_complete():
    with pytest.raises(GameComplete):
        setup_round(11, 3)


def test_setup_round_rejects_bad_player_count():
    with pytest.raises(ValidationError):
        setup_round(0, 1)
    with pytest.raises(ValidationError):
        setup_round(0, 8)


def test_setup_round_seeds_prior_progress():
    state = setup_round(5, 3, prior_guesses=[1, None, 0])
    assert state.cards_this_round == 2
    assert state.guesses == (1, None, 0)

    # Corrupt or out-of-range values are dropped, short lists are padded
    state = setup_round(5, 3, prior_guesses=[9, "x"])
    assert state.guesses == (None, None, None)


def test_setup_round_restores_lock_only_for_legal_guesses():
    locked = setup_round(
        0, 3, prior_guesses=[1, 1, 1], prior_tricks=[2, None, 4], guesses_locked=True
    )
    assert locked.guesses_locked
    assert locked.tricks == (2, None, 4)

    # Guesses summing to the cards dealt cannot have been submitted
    unlocked = setup_round(0, 3, prior_guesses=[3, 3, 1], guesses_locked=True)
    assert not unlocked.guesses_locked


def test_record_guess_treats_invalid_input_as_unset():
    state = setup_round(0, 3)
    state = record_guess(state, 0, 8)
    assert state.guesses[0] is None
    state = record_guess(state, 0, -1)
    assert state.guesses[0] is None
    state = record_guess(state, 0, "abc")
    assert state.guesses[0] is None
    state = record_guess(state, 0, True)
    assert state.guesses[0] is None
    state = record_guess(state, 0, 2.0)
    assert state.guesses[0] is None

    state = record_guess(state, 0, " 3 ")
    assert state.guesses[0] == 3
    state = record_guess(state, 1, 7)
    assert state.guesses[1] == 7


def test_record_guess_returns_new_state():
    state = setup_round(0, 3)
    updated = record_guess(state, 1, 2)
    assert state.guesses == (None, None, None)
    assert updated.guesses == (None, 2, None)


def test_record_guess_rejects_unknown_player():
    state = setup_round(0, 3)
    with pytest.raises(SequenceError):
        record_guess(state, 3, 1)


def test_dealer_constraint_example():
    # 4 players, round with 6 cards: dealer is seat 1
    state = setup_round(1, 4)
    assert state.cards_this_round == 6
    assert state.dealer_index == 1

    state = record_guess(state, 2, 2)
    state = record_guess(state, 3, 1)
    state = record_guess(state, 0, 1)
    assert dealer_forbidden_value(state) == 2

    rejected = record_guess(state, 1, 2)
    assert not all_guesses_valid(rejected)
    with pytest.raises(ConstraintViolation) as excinfo:
        lock_guesses(rejected)
    assert excinfo.value.forbidden_value == 2
    assert excinfo.value.dealer_index == 1

    for value in (0, 1, 3, 4, 5, 6):
        accepted = record_guess(state, 1, value)
        assert all_guesses_valid(accepted)
        assert sum(accepted.guesses) != 6


def test_dealer_constraint_vacuous_when_out_of_range():
    state = setup_round(4, 3)  # 3 cards, dealer is seat 1
    state = record_guess(state, 0, 3)
    state = record_guess(state, 2, 3)
    assert dealer_forbidden_value(state) == -3
    for value in range(4):
        assert all_guesses_valid(record_guess(state, 1, value))


def test_guess_issues_lists_missing_in_guess_order():
    state = setup_round(2, 3)  # dealer is seat 2, order 0, 1, 2
    state = record_guess(state, 1, 2)
    issues = guess_issues(state, ["Ann", "Bob", "Cat"])
    assert [i.code for i in issues] == [MISSING_GUESS, MISSING_GUESS]
    assert [i.player_index for i in issues] == [0, 2]
    assert "Ann" in issues[0].message


def test_guess_issues_names_forbidden_value():
    state = _with_guesses(setup_round(2, 3), [2, 1, 2])  # 5 cards
    issues = guess_issues(state, ["Ann", "Bob", "Cat"])
    assert len(issues) == 1
    assert issues[0].code == DEALER_FORBIDDEN
    assert issues[0].value == 2
    assert issues[0].message == "Cat cannot guess 2 (total guesses cannot equal 5)."


def test_lock_guesses_requires_every_guess():
    state = record_guess(setup_round(0, 3), 0, 1)
    with pytest.raises(ValidationError) as excinfo:
        lock_guesses(state)
    assert excinfo.value.player_index == 1


def test_tricks_only_after_guesses_locked():
    state = _with_guesses(setup_round(0, 3), [2, 2, 2])
    with pytest.raises(SequenceError):
        record_tricks(state, 0, 1)
    with pytest.raises(SequenceError):
        record_guess(lock_guesses(state), 0, 1)


def test_trick_total_mismatch_is_only_a_warning():
    state = lock_guesses(_with_guesses(setup_round(0, 3), [2, 2, 2]))
    state = _with_tricks(state, [2, 2, 2])
    assert all_tricks_valid(state)

    warning = trick_total_warning(state)
    assert warning is not None
    assert warning.total == 6
    assert warning.cards_this_round == 7
    assert "(6)" in str(warning) and "(7)" in str(warning)

    # The round can still be finalized as entered
    record = finalize_round(state)
    assert record.deltas == [14, 14, 14]


def test_trick_total_match_has_no_warning():
    state = lock_guesses(_with_guesses(setup_round(0, 3), [2, 2, 2]))
    state = _with_tricks(state, [3, 2, 2])
    assert trick_total_warning(state) is None


def test_all_tricks_valid_needs_every_count():
    state = lock_guesses(_with_guesses(setup_round(0, 3), [2, 2, 2]))
    state = _with_tricks(state, [3, 9, 2])
    assert state.tricks == (3, None, 2)
    assert not all_tricks_valid(state)
    with pytest.raises(ValidationError) as excinfo:
        finalize_round(state)
    assert excinfo.value.player_index == 1


def test_finalize_round_scores_every_player():
    state = lock_guesses(_with_guesses(setup_round(1, 3), [3, 0, 2]))  # 6 cards
    state = _with_tricks(state, [3, 1, 2])
    record = finalize_round(state)

    assert record.round_index == 1
    assert record.cards_this_round == 6
    assert record.guesses == [3, 0, 2]
    assert record.tricks == [3, 1, 2]
    assert record.deltas == [16, -2, 14]
    assert record.scores_after == []

    # Pure: same input, same output
    assert finalize_round(state) == record


def test_finalize_round_rejects_forbidden_dealer_guess():
    state = _with_guesses(setup_round(0, 2), [4, 3])
    with pytest.raises(ConstraintViolation):
        finalize_round(state)
