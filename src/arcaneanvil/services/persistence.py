from __future__ import annotations

import json
from pathlib import Path


class PersistenceError(RuntimeError):
    pass


HIGH_SCORE_KEY = "high_score"


class JsonPersistence:
    """Key/value store backed by a single JSON file. Last write wins."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._data = self._load()

    def _load(self) -> dict[str, object]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read save file {self._path}: {e}") from e
        if not isinstance(raw, dict):
            return {}
        return raw

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._data, indent=2, sort_keys=True), encoding="utf-8")

    # -------- High score --------
    def load_high_score(self) -> int:
        v = self._data.get(HIGH_SCORE_KEY, 0)
        return v if isinstance(v, int) else 0

    def save_high_score(self, score: int) -> None:
        self._data[HIGH_SCORE_KEY] = int(score)
        self._save()

    # -------- Opaque blobs (achievements, daily challenges, ...) --------
    def load_blob(self, key: str) -> object | None:
        return self._data.get(f"blob:{key}")

    def save_blob(self, key: str, data: object) -> None:
        self._data[f"blob:{key}"] = data
        self._save()
