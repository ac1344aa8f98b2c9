"""On-disk persistence of browser storage state and fingerprint sidecars."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger

from gsearch.search.errors import PersistenceFailure
from gsearch.search.models import SavedState

FINGERPRINT_SUFFIX = "-fingerprint.json"


def fingerprint_path_for(state_file: str | Path) -> Path:
    """Sidecar path: browser-state.json -> browser-state-fingerprint.json."""
    path = Path(state_file)
    if path.suffix == ".json":
        return path.with_name(f"{path.stem}{FINGERPRINT_SUFFIX}")
    return path.with_name(f"{path.name}{FINGERPRINT_SUFFIX}")


def state_file_for_index(state_file: str | Path, index: int) -> str:
    """Per-query state file; index 0 keeps the base identifier."""
    if index <= 0:
        return str(state_file)
    path = Path(state_file)
    return str(path.with_name(f"{path.stem}-{index}{path.suffix}"))


class StateStore:
    """Load and save the storage snapshot plus the fingerprint sidecar.

    Not safe for concurrent writers of the same state file; callers must
    serialise queries that share an identifier.
    """

    def load(self, state_file: str | Path) -> tuple[str | None, SavedState]:
        """Return (snapshot path or None, saved state). Never raises."""
        snapshot_path = Path(state_file)
        sidecar_path = fingerprint_path_for(snapshot_path)

        if not snapshot_path.is_file() or not sidecar_path.is_file():
            return None, SavedState()

        if self._read_object(snapshot_path) is None:
            return None, SavedState()

        payload = self._read_object(sidecar_path)
        if payload is None:
            return None, SavedState()

        try:
            saved = SavedState.from_dict(payload)
        except (TypeError, ValueError) as e:
            logger.warning("Ignoring invalid fingerprint file {}: {}", sidecar_path, e)
            return None, SavedState()

        return str(snapshot_path), saved

    async def save(self, context: Any, state_file: str | Path, saved_state: SavedState) -> None:
        """Write snapshot and sidecar independently; raise PersistenceFailure after both."""
        snapshot_path = Path(state_file)
        sidecar_path = fingerprint_path_for(snapshot_path)
        failures: list[str] = []

        try:
            snapshot_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceFailure([f"cannot create {snapshot_path.parent}: {e}"]) from e

        try:
            await context.storage_state(path=str(snapshot_path))
        except Exception as e:
            failures.append(f"storage snapshot {snapshot_path}: {e}")

        try:
            self._write_atomic(
                sidecar_path,
                json.dumps(saved_state.to_dict(), ensure_ascii=False, indent=2),
            )
        except OSError as e:
            failures.append(f"fingerprint file {sidecar_path}: {e}")

        if failures:
            raise PersistenceFailure(failures)

    def _read_object(self, path: Path) -> dict[str, Any] | None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Cannot load browser state file {}: {}", path, e)
            return None
        if not isinstance(data, dict):
            logger.warning("Cannot load browser state file {}: root is not an object", path)
            return None
        return data

    @staticmethod
    def _write_atomic(path: Path, text: str) -> None:
        tmp_path = path.with_name(f"{path.name}.tmp")
        tmp_path.write_text(text, encoding="utf-8")
        tmp_path.replace(path)
