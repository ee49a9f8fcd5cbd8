"""Collaborator boundaries the engine talks to.

The engine only depends on these protocols; real implementations live in
`arcaneanvil.services`. The null versions are the defaults for headless use.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

SoundCue = Literal[
    "swap",
    "match",
    "bomb_explode",
    "lightning",
    "buy_card",
    "level_complete",
    "game_over",
    "button_click",
]

HapticCue = Literal["light", "medium", "heavy", "success", "error", "selection"]


@dataclass(frozen=True)
class ProgressSnapshot:
    total_matches: int
    max_combo: int
    special_rune_types: int
    active_cards: int
    score: int
    levels_completed: int


class FeedbackSink(Protocol):
    # For "match", combo_count is the number of cascade steps already
    # resolved in this move: 0 on the first match, 1 on the next, ...
    def play_sound(self, cue: SoundCue, combo_count: int | None = None) -> None: ...

    def trigger_haptic(self, cue: HapticCue) -> None: ...


class PersistenceSink(Protocol):
    def load_high_score(self) -> int: ...

    def save_high_score(self, score: int) -> None: ...

    def load_blob(self, key: str) -> object | None: ...

    def save_blob(self, key: str, data: object) -> None: ...


class ProgressSink(Protocol):
    def report_progress(self, progress: ProgressSnapshot) -> None: ...


class NullFeedback:
    def play_sound(self, cue: SoundCue, combo_count: int | None = None) -> None:
        return None

    def trigger_haptic(self, cue: HapticCue) -> None:
        return None


class MemoryPersistence:
    """In-process store; what the engine uses when nothing is injected."""

    def __init__(self, high_score: int = 0) -> None:
        self.high_score = high_score
        self.blobs: dict[str, object] = {}

    def load_high_score(self) -> int:
        return self.high_score

    def save_high_score(self, score: int) -> None:
        self.high_score = score

    def load_blob(self, key: str) -> object | None:
        return self.blobs.get(key)

    def save_blob(self, key: str, data: object) -> None:
        self.blobs[key] = data


class NullProgress:
    def report_progress(self, progress: ProgressSnapshot) -> None:
        return None
