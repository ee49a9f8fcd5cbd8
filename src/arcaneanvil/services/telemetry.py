from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

from arcaneanvil.engine.sinks import HapticCue, ProgressSnapshot, SoundCue


@dataclass
class TelemetryService:
    """Append-only JSONL log. Also serves as the engine's feedback and progress sink."""

    path: Path

    def log(self, event_type: str, payload: Mapping[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        rec = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "type": event_type,
            "payload": dict(payload),
        }
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")

    def play_sound(self, cue: SoundCue, combo_count: int | None = None) -> None:
        payload: dict[str, object] = {"cue": cue}
        if combo_count is not None:
            payload["combo"] = combo_count
        self.log("sound", payload)

    def trigger_haptic(self, cue: HapticCue) -> None:
        self.log("haptic", {"cue": cue})

    def report_progress(self, progress: ProgressSnapshot) -> None:
        self.log("progress", asdict(progress))

    def read_records(self) -> list[dict[str, object]]:
        if not self.path.exists():
            return []
        out: list[dict[str, object]] = []
        for line in self.path.read_text(encoding="utf-8").splitlines():
            if line.strip():
                out.append(json.loads(line))
        return out
