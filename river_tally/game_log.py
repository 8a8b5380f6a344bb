# river_tally/game_log.py
from __future__ import annotations

import csv
from typing import Any, Dict, List, Optional

from .rules import dealer_for_round
from .state import GameState

FIELDNAMES = [
    "game_id",
    "round_index",
    "cards_this_round",
    "dealer_id",
    "player_id",
    "player_name",
    "guess",
    "tricks_won",
    "round_delta",
    "total_score",
]


def build_round_score_rows(
    game_state: GameState,
    game_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Build one row per (completed round, player) for CSV export.

    Totals come straight from each record's `scores_after`, so an export taken
    after a history edit reflects the corrected scores. The round still being
    played is not exported.
    """
    rows: List[Dict[str, Any]] = []
    num_players = game_state.player_count

    for record in game_state.history:
        dealer_id = dealer_for_round(record.round_index, num_players)
        for pid, name in enumerate(game_state.player_names):
            rows.append(
                {
                    "game_id": game_id,
                    "round_index": record.round_index,
                    "cards_this_round": record.cards_this_round,
                    "dealer_id": dealer_id,
                    "player_id": pid,
                    "player_name": name,
                    "guess": record.guesses[pid],
                    "tricks_won": record.tricks[pid],
                    "round_delta": record.deltas[pid],
                    "total_score": record.scores_after[pid],
                }
            )

    return rows


def write_round_scores_csv(
    game_state: GameState,
    path,
    game_id: Optional[str] = None,
) -> int:
    """
    Write per-round scores to a CSV file and return the number of data rows.

    `path` can be a string or any path-like object accepted by `open`.
    """
    rows = build_round_score_rows(game_state, game_id=game_id)

    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        writer.writeheader()
        for row in rows:
            writer.writerow({field: row.get(field) for field in FIELDNAMES})
    return len(rows)
