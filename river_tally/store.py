# river_tally/store.py
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from .errors import PersistenceFailure

logger = logging.getLogger(__name__)


@runtime_checkable
class SnapshotStore(Protocol):
    """
    Interface for wherever snapshots are kept.

    Every method raises PersistenceFailure when the backing storage fails.
    """

    def load(self) -> Optional[Dict[str, Any]]:
        """Return the saved snapshot, or None if there is none."""
        raise NotImplementedError

    def save(self, snapshot: Dict[str, Any]) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class JsonFileStore:
    """
    Keeps the latest game snapshot in a single JSON file.

    Writes go through a temporary file in the same directory and are swapped
    in with os.replace, so the file on disk is always a whole snapshot.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored snapshot, or None if nothing has been saved."""
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceFailure(f"Failed to read {self.path}: {exc}") from exc
        # UnicodeDecodeError is a ValueError
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise PersistenceFailure(f"Corrupt snapshot in {self.path}: {exc}") from exc

    def save(self, snapshot: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(snapshot, f, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceFailure(f"Failed to save {self.path}: {exc}") from exc
        logger.debug("Saved game snapshot to %s", self.path)

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceFailure(f"Failed to clear {self.path}: {exc}") from exc
