from __future__ import annotations

from pathlib import Path

import pytest

from arcaneanvil.engine.actions import ChooseStarterAction
from arcaneanvil.engine.ai import AISpec, ai_play_run
from arcaneanvil.engine.run import new_run, step
from arcaneanvil.paths import get_paths
from arcaneanvil.services.content import ContentService
from arcaneanvil.services.persistence import JsonPersistence, PersistenceError
from arcaneanvil.services.telemetry import TelemetryService


def _load_catalog():
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return content.load_enchantments()


def test_json_persistence_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "save" / "save.json"
    store = JsonPersistence(path)
    assert store.load_high_score() == 0
    assert store.load_blob("achievements") is None

    store.save_high_score(420)
    store.save_blob("achievements", {"bomb_maker": 3})
    store.save_blob("achievements", {"bomb_maker": 4})

    reopened = JsonPersistence(path)
    assert reopened.load_high_score() == 420
    assert reopened.load_blob("achievements") == {"bomb_maker": 4}


def test_corrupt_save_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "save.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(PersistenceError):
        JsonPersistence(path)


def test_high_score_survives_between_runs(tmp_path: Path) -> None:
    catalog = _load_catalog()
    store = JsonPersistence(tmp_path / "save.json")
    run = ai_play_run(new_run(catalog, seed=3, persistence=store), AISpec(difficulty=2))
    assert run.state == "game_over"
    assert run.score > 0

    fresh = new_run(catalog, seed=4, persistence=JsonPersistence(tmp_path / "save.json"))
    assert fresh.high_score == run.score


def test_telemetry_records_feedback_and_progress(tmp_path: Path) -> None:
    catalog = _load_catalog()
    telemetry = TelemetryService(tmp_path / "telemetry.jsonl")
    run = new_run(catalog, seed=11, feedback=telemetry, progress=telemetry)
    step(run, ChooseStarterAction(enchantment_id=run.starter_selection[0].id))
    ai_play_run(run, AISpec(difficulty=2), max_actions=5)

    records = telemetry.read_records()
    types = {r["type"] for r in records}
    assert {"sound", "haptic", "progress"} <= types
    cues = [r["payload"]["cue"] for r in records if r["type"] == "sound"]
    assert cues[0] == "button_click"
    assert "swap" in cues
    progress = [r["payload"] for r in records if r["type"] == "progress"]
    assert progress[-1]["active_cards"] >= 1
    assert all(p["max_combo"] >= 1 for p in progress)
