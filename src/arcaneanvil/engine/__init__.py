"""Deterministic, headless rules engine for Arcane Anvil.

IMPORTANT: This package must never import presentation, audio or storage code.
"""

from .actions import (
    BuyAction,
    ChooseStarterAction,
    NewRunAction,
    NextLevelAction,
    RerollAction,
    SellAction,
    SwapAction,
    UpgradeAction,
)
from .board import Board
from .resolver import TurnResult, resolve_matches
from .run import GameState, RunConfig, RunState, StepResult, new_run, replay, step
from .types import Coordinate, EnchantmentCard, Rarity, Rune, RuneKind, upgrade_cost

__all__ = [
    "Board",
    "BuyAction",
    "ChooseStarterAction",
    "Coordinate",
    "EnchantmentCard",
    "GameState",
    "NewRunAction",
    "NextLevelAction",
    "Rarity",
    "RerollAction",
    "Rune",
    "RuneKind",
    "RunConfig",
    "RunState",
    "SellAction",
    "StepResult",
    "SwapAction",
    "TurnResult",
    "UpgradeAction",
    "new_run",
    "replay",
    "resolve_matches",
    "step",
    "upgrade_cost",
]
