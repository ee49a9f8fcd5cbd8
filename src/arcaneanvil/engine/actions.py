from __future__ import annotations

from dataclasses import dataclass

from .types import Coordinate


@dataclass(frozen=True)
class ChooseStarterAction:
    enchantment_id: str


@dataclass(frozen=True)
class SwapAction:
    a: Coordinate
    b: Coordinate

    @staticmethod
    def between(x1: int, y1: int, x2: int, y2: int) -> "SwapAction":
        return SwapAction(a=Coordinate(x1, y1), b=Coordinate(x2, y2))


@dataclass(frozen=True)
class BuyAction:
    enchantment_id: str


@dataclass(frozen=True)
class SellAction:
    enchantment_id: str


@dataclass(frozen=True)
class UpgradeAction:
    enchantment_id: str


@dataclass(frozen=True)
class RerollAction:
    pass


@dataclass(frozen=True)
class NextLevelAction:
    pass


@dataclass(frozen=True)
class NewRunAction:
    pass


Action = (
    ChooseStarterAction
    | SwapAction
    | BuyAction
    | SellAction
    | UpgradeAction
    | RerollAction
    | NextLevelAction
    | NewRunAction
)
