# river_tally/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

# Load environment variables from a .env file if present.
load_dotenv()

DEFAULT_STATE_FILENAME = "river_tally_state.json"

# Saved game, CSV exports and charts land here unless given an absolute path.
OUTPUT_DIR = Path(__file__).resolve().parent / "results"


@dataclass(frozen=True)
class Settings:
    state_file: Path
    log_level: str = "INFO"


def output_path(path_like: Union[str, Path]) -> Path:
    """Anchor a relative export or chart path in OUTPUT_DIR, creating it."""
    path = Path(path_like)
    if path.is_absolute():
        return path
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    return OUTPUT_DIR / path


def load_settings(
    state_file: Optional[str] = None,
    log_level: Optional[str] = None,
) -> Settings:
    """
    Resolve settings from explicit overrides, then the environment.

    - RIVER_TALLY_STATE_FILE: where the in-progress game is saved.
    - RIVER_TALLY_LOG_LEVEL: logging level name (DEBUG, INFO, ...).
    """
    path = state_file or os.getenv("RIVER_TALLY_STATE_FILE")
    level = log_level or os.getenv("RIVER_TALLY_LOG_LEVEL") or "INFO"
    return Settings(
        state_file=Path(path) if path else OUTPUT_DIR / DEFAULT_STATE_FILENAME,
        log_level=level.upper(),
    )
