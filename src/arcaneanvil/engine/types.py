from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Literal

RuneKind = Literal["fire", "water", "earth", "air", "light"]
RUNE_KINDS: tuple[RuneKind, ...] = ("fire", "water", "earth", "air", "light")

LineAxis = Literal["horizontal", "vertical", "cross"]

Rarity = Literal["common", "rare", "epic", "legendary"]

RARITY_MULTIPLIERS: dict[Rarity, float] = {
    "common": 1.0,
    "rare": 1.5,
    "epic": 2.0,
    "legendary": 3.0,
}

EnchantmentKind = Literal[
    "chain_reaction",
    "volcanic_heart",
    "tidal_affinity",
    "stonemasons_secret",
    "line_master",
    "color_weaver",
    "blast_radius",
    "multiplier_mage",
    "earthen_pact",
    "gale_force",
]


@dataclass(frozen=True)
class Coordinate:
    x: int
    y: int


def row_major(coords: Iterable[Coordinate]) -> list[Coordinate]:
    """Canonical ordering for coordinate sets: by row, then column."""
    return sorted(coords, key=lambda c: (c.y, c.x))


@dataclass(frozen=True)
class BombEffect:
    type: Literal["bomb"] = "bomb"


@dataclass(frozen=True)
class LineClearEffect:
    axis: LineAxis
    type: Literal["line_clear"] = "line_clear"


@dataclass(frozen=True)
class ColorChangeEffect:
    type: Literal["color_change"] = "color_change"


@dataclass(frozen=True)
class AreaClearEffect:
    radius: int
    type: Literal["area_clear"] = "area_clear"

    def __post_init__(self) -> None:
        if self.radius < 1:
            raise ValueError("Area clear radius must be at least 1.")


@dataclass(frozen=True)
class MultiplierEffect:
    type: Literal["multiplier"] = "multiplier"


SpecialEffect = BombEffect | LineClearEffect | ColorChangeEffect | AreaClearEffect | MultiplierEffect


@dataclass(frozen=True, eq=False)
class Rune:
    """A single tile. Identity is the id; kind and effect never take part in equality."""

    id: int
    kind: RuneKind
    effect: SpecialEffect | None = None
    power_level: int = 1

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Rune):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @staticmethod
    def basic(rune_id: int, kind: RuneKind) -> "Rune":
        return Rune(id=rune_id, kind=kind, effect=None, power_level=1)

    @staticmethod
    def special(rune_id: int, kind: RuneKind, effect: SpecialEffect) -> "Rune":
        return Rune(id=rune_id, kind=kind, effect=effect, power_level=2)


@dataclass(frozen=True)
class EnchantmentDefinition:
    id: str
    kind: EnchantmentKind
    name: str
    description: str
    cost: int
    rarity: Rarity


@dataclass(frozen=True)
class EnchantmentCatalog:
    """Immutable list of purchasable enchantments, in catalog order."""

    enchantments: dict[str, EnchantmentDefinition]

    def get(self, enchantment_id: str) -> EnchantmentDefinition:
        return self.enchantments[enchantment_id]

    def all_ids(self) -> Sequence[str]:
        return list(self.enchantments.keys())


@dataclass
class EnchantmentCard:
    """An owned (or offered) copy of a catalog entry, with its own level."""

    definition: EnchantmentDefinition
    level: int = 1

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def kind(self) -> EnchantmentKind:
        return self.definition.kind

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def cost(self) -> int:
        return self.definition.cost

    @property
    def rarity(self) -> Rarity:
        return self.definition.rarity

    @property
    def max_level(self) -> int:
        return 5 if self.definition.rarity == "legendary" else 3

    @property
    def display_name(self) -> str:
        if self.level > 1:
            return f"{self.name} Lvl. {self.level}"
        return self.name


def upgrade_cost(card: EnchantmentCard) -> int | None:
    if card.level >= card.max_level:
        return None
    return int(card.cost * (card.level + 1) * RARITY_MULTIPLIERS[card.rarity])
