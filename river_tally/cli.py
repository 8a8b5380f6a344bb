# river_tally/cli.py
from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from .config import load_settings, output_path
from .engine import Phase, ScoreKeeper
from .errors import ScoreKeeperError, SoftWarning
from .game_log import write_round_scores_csv
from .rules import NUM_ROUNDS
from .store import JsonFileStore

DEFAULT_CSV = "river_tally_scores.csv"


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Keep score for an up-and-down-the-river trick-taking game "
            "(2-7 players, 11 rounds). The game is saved between commands."
        )
    )
    parser.add_argument(
        "--state-file",
        type=str,
        default=None,
        help="Where the game is saved (default: $RIVER_TALLY_STATE_FILE or the results folder).",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ...). Default: INFO.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    start = sub.add_parser("start", help="Start a new game.")
    start.add_argument(
        "names",
        nargs="*",
        help="Player names in seating order; player 1 deals first.",
    )
    start.add_argument(
        "--players",
        type=int,
        default=None,
        help="Number of players when fewer names are given (default: number of names).",
    )

    sub.add_parser("status", help="Show the current round and scores.")

    guess = sub.add_parser("guess", help="Submit this round's guesses.")
    guess.add_argument(
        "values",
        nargs="+",
        help="One guess per player, in seating order.",
    )

    tricks = sub.add_parser("tricks", help="Submit tricks won and score the round.")
    tricks.add_argument(
        "values",
        nargs="+",
        help="Tricks won per player, in seating order.",
    )
    tricks.add_argument(
        "--force",
        action="store_true",
        help="Accept tricks that do not add up to the cards dealt.",
    )

    edit = sub.add_parser("edit", help="Correct tricks for a completed round.")
    edit.add_argument("round", type=int, help="Round number (1-based).")
    edit.add_argument(
        "values",
        nargs="+",
        help="Corrected tricks won per player, in seating order.",
    )

    sub.add_parser("history", help="Show every completed round.")

    export = sub.add_parser("export", help="Write per-round scores to CSV.")
    export.add_argument(
        "--csv",
        type=str,
        default=DEFAULT_CSV,
        help="Output CSV path (default: %(default)s in the results folder).",
    )

    plot = sub.add_parser("plot", help="Chart running totals from an exported CSV.")
    plot.add_argument(
        "--csv",
        type=str,
        default=DEFAULT_CSV,
        help="CSV written by 'export' (default: %(default)s).",
    )
    plot.add_argument(
        "--out",
        type=str,
        default=None,
        help="Image path (default: next to the CSV, with a .png suffix).",
    )

    sub.add_parser("reset", help="Discard the saved game.")

    return parser.parse_args(argv)


# --------------------------------------------------------------------------- #
# Rendering                                                                   #
# --------------------------------------------------------------------------- #


def _fmt(value: Optional[int]) -> str:
    return "-" if value is None else str(value)


def _fmt_delta(delta: int) -> str:
    return f"+{delta}" if delta > 0 else str(delta)


def format_status(keeper: ScoreKeeper) -> str:
    phase = keeper.phase
    if phase is Phase.SETUP:
        return "No game in progress. Start one with: river-tally start NAME NAME ..."

    names = keeper.player_names
    lines: List[str] = []
    if phase is Phase.GAME_OVER:
        lines.append(keeper.winner_message())
        order = list(range(len(names)))
        guesses: List[Optional[int]] = [None] * len(names)
        tricks: List[Optional[int]] = [None] * len(names)
        dealer = None
    else:
        round_state = keeper.round
        dealer = round_state.dealer_index
        order = round_state.guess_order
        guesses = list(round_state.guesses)
        tricks = list(round_state.tricks)
        lines.append(
            f"Round {round_state.round_index + 1}/{NUM_ROUNDS}: "
            f"{round_state.cards_this_round} cards, dealer {names[dealer]}, "
            f"first guess {names[round_state.first_guesser_index]}"
        )
        if phase is Phase.GUESSING:
            lines.append("Waiting for guesses.")
            forbidden = keeper.forbidden_dealer_value()
            if 0 <= forbidden <= round_state.cards_this_round:
                lines.append(f"{names[dealer]} (dealer) cannot guess {forbidden}.")
        else:
            lines.append("Waiting for tricks won.")

    lines.append("")
    lines.append(f"{'Player':<16} {'Guess':>5} {'Tricks':>6} {'Score':>6}")
    for pid in order:
        marker = "*" if pid == dealer else " "
        lines.append(
            f"{marker}{names[pid]:<15} {_fmt(guesses[pid]):>5} "
            f"{_fmt(tricks[pid]):>6} {keeper.scores[pid]:>6}"
        )
    lines.append("")
    lines.append(keeper.standings().message)
    return "\n".join(lines)


def format_history(keeper: ScoreKeeper) -> str:
    if not keeper.history:
        return "No rounds played yet."
    names = keeper.player_names
    header = f"{'Round':<8}" + "".join(f"{name:>16}" for name in names)
    lines = [header]
    for record in keeper.history:
        cells = [
            f"{g}/{t} ({_fmt_delta(d)})"
            for g, t, d in zip(record.guesses, record.tricks, record.deltas)
        ]
        label = f"{record.round_index + 1} ({record.cards_this_round})"
        lines.append(f"{label:<8}" + "".join(f"{c:>16}" for c in cells))
    lines.append(f"{'Total':<8}" + "".join(f"{s:>16}" for s in keeper.scores))
    return "\n".join(lines)


# --------------------------------------------------------------------------- #
# Commands                                                                    #
# --------------------------------------------------------------------------- #


def _seat_values(keeper: ScoreKeeper, values: List[str]) -> List[str]:
    if len(values) != len(keeper.player_names):
        raise SystemExit(
            f"Expected {len(keeper.player_names)} values (one per player), "
            f"got {len(values)}."
        )
    return values


def _parse_counts(values: List[str]) -> List[object]:
    # Non-numeric input is passed through as text; the engine treats it as unset.
    parsed: List[object] = []
    for value in values:
        try:
            parsed.append(int(value))
        except ValueError:
            parsed.append(value)
    return parsed


def run_command(args: argparse.Namespace, keeper: ScoreKeeper) -> str:
    command = args.command

    if command == "reset":
        keeper.new_game()
        return "Saved game discarded."

    if command == "start":
        if keeper.phase not in (Phase.SETUP, Phase.NAMING_PLAYERS):
            keeper.new_game()
        if args.players is not None:
            keeper.choose_player_count(args.players)
        keeper.start_game(args.names)
        return format_status(keeper)

    if keeper.phase is Phase.SETUP:
        raise SystemExit(format_status(keeper))

    if command == "status":
        return format_status(keeper)

    if command == "history":
        return format_history(keeper)

    if command == "guess":
        values = _seat_values(keeper, args.values)
        for pid, value in enumerate(values):
            keeper.enter_guess(pid, value)
        keeper.submit_guesses()
        return format_status(keeper)

    if command == "tricks":
        values = _seat_values(keeper, args.values)
        for pid, value in enumerate(values):
            keeper.enter_tricks(pid, value)
        try:
            keeper.submit_tricks(confirm_mismatch=args.force)
        except SoftWarning as warning:
            raise SystemExit(f"{warning} Rerun with --force to keep these counts.")
        return format_status(keeper)

    if command == "edit":
        values = _seat_values(keeper, args.values)
        keeper.edit_tricks(args.round - 1, _parse_counts(values))
        return format_history(keeper)

    if command == "export":
        csv_path = output_path(args.csv)
        count = write_round_scores_csv(keeper.game_state, csv_path)
        return f"Wrote {count} rows to {csv_path}"

    if command == "plot":
        # Imported lazily so the rest of the CLI works without plotting libs loaded.
        from .results.score_progression import plot_score_progression

        csv_path = output_path(args.csv)
        out = output_path(args.out) if args.out else None
        image = plot_score_progression(csv_path, out)
        return f"Wrote chart to {image}"

    raise SystemExit(f"Unknown command {command!r}")


def main(argv: List[str] | None = None) -> None:
    args = parse_args(argv)
    settings = load_settings(state_file=args.state_file, log_level=args.log_level)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    keeper = ScoreKeeper.resume(JsonFileStore(settings.state_file))
    try:
        output = run_command(args, keeper)
    except ScoreKeeperError as exc:
        raise SystemExit(str(exc))
    print(output)


if __name__ == "__main__":
    main()

'''
python3 -m river_tally.cli start Ann Bob Cat Dan
python3 -m river_tally.cli guess 2 1 1 2
python3 -m river_tally.cli tricks 2 2 1 2
python3 -m river_tally.cli edit 1 3 1 1 2
python3 -m river_tally.cli export --csv game1.csv
python3 -m river_tally.cli plot --csv game1.csv
'''
