# river_tally/results/score_progression.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402


def load_round_scores(csv_path: str | Path) -> pd.DataFrame:
    """
    Load an exported round-score CSV.

    Expects at least 'round_index', 'cards_this_round', 'player_name' and
    'total_score'.
    """
    df = pd.read_csv(csv_path)
    required = {"round_index", "cards_this_round", "player_name", "total_score"}
    missing = required - set(df.columns)
    if missing:
        raise ValueError(f"CSV is missing columns: {', '.join(sorted(missing))}")
    return df


def plot_score_progression(
    csv_path: str | Path,
    out_path: Optional[str | Path] = None,
) -> Path:
    """
    Plot each player's running total after every round and save it as an image.

    The x axis is labelled with round number and cards dealt, e.g. "3 (5)".
    Returns the path of the written image (next to the CSV by default).
    """
    df = load_round_scores(csv_path)
    if out_path is None:
        out_path = Path(csv_path).with_suffix(".png")
    out_path = Path(out_path)

    rounds = (
        df[["round_index", "cards_this_round"]]
        .drop_duplicates()
        .sort_values("round_index")
    )

    fig, ax = plt.subplots(figsize=(10, 6))
    for name in df["player_name"].drop_duplicates():
        sub = df[df["player_name"] == name].sort_values("round_index")
        ax.plot(sub["round_index"], sub["total_score"], marker="o", label=name)

    ax.axhline(0, linestyle="--", linewidth=0.8)
    ax.set_xticks(list(rounds["round_index"]))
    ax.set_xticklabels(
        [f"{r + 1} ({c})" for r, c in zip(rounds["round_index"], rounds["cards_this_round"])]
    )
    ax.set_xlabel("Round (cards dealt)")
    ax.set_ylabel("Total score")
    ax.set_title("Running total score by round")
    ax.grid(True, linestyle=":", alpha=0.5)
    ax.legend()
    fig.tight_layout()

    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, dpi=150)
    plt.close(fig)
    return out_path
