"""Turn/synergy resolution: converts one cascade step's matches into score and requests.

The resolver never mutates the board. Special-effect changes come back as an
ordered tuple of EffectRequest values that the move pipeline applies before
removal; when two requests target the same cell the later one wins.

Every enchantment in the player's list is evaluated against the same total
multiplier. Multiplier bonuses granted during a step only take effect on the
next cascade step of the move.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

from .board import Board
from .types import (
    AreaClearEffect,
    BombEffect,
    ColorChangeEffect,
    Coordinate,
    EnchantmentCard,
    EnchantmentKind,
    LineClearEffect,
    MultiplierEffect,
    RuneKind,
    SpecialEffect,
    row_major,
)

BASE_POINTS_PER_RUNE = 10


def combo_multiplier(combo_count: int) -> float:
    return 1.0 + (combo_count - 1) * 0.5


@dataclass(frozen=True)
class EffectRequest:
    coord: Coordinate
    effect: SpecialEffect
    source: str


@dataclass(frozen=True)
class TurnResult:
    score: int
    gold: int
    requests: tuple[EffectRequest, ...]
    lightning_strikes: int
    match_center: Coordinate | None
    new_multiplier_bonus: float
    details: tuple[str, ...] = ()

    @property
    def new_bombs(self) -> frozenset[Coordinate]:
        return frozenset(r.coord for r in self.requests if isinstance(r.effect, BombEffect))


@dataclass
class ResolutionContext:
    """Working state for one resolution step, shared by the enchantment effects."""

    matches: tuple[Coordinate, ...]
    kinds: dict[Coordinate, RuneKind]
    effects: dict[Coordinate, SpecialEffect]
    combo_count: int
    total_multiplier: float
    multiplier_bonus: float
    score: int = 0
    lightning_strikes: int = 0
    requests: list[EffectRequest] = field(default_factory=list)
    details: list[str] = field(default_factory=list)

    def of_kind(self, kind: RuneKind) -> list[Coordinate]:
        return [c for c in self.matches if self.kinds.get(c) == kind]

    def add_score(self, amount: int, source: str) -> None:
        self.score += amount
        if amount:
            self.details.append(f"+{amount} ({source})")

    def request(self, coord: Coordinate, effect: SpecialEffect, source: str) -> None:
        self.requests.append(EffectRequest(coord=coord, effect=effect, source=source))
        self.details.append(f"{effect.type} at ({coord.x},{coord.y}) ({source})")


EffectFn = Callable[[ResolutionContext, EnchantmentCard], None]


def _chain_reaction(ctx: ResolutionContext, card: EnchantmentCard) -> None:
    if ctx.combo_count == 1:
        ctx.lightning_strikes += 1
        ctx.details.append(f"lightning ({card.name})")


def _volcanic_heart(ctx: ResolutionContext, card: EnchantmentCard) -> None:
    fire = ctx.of_kind("fire")
    if fire and len(fire) >= 6 - card.level:
        ctx.request(fire[0], BombEffect(), card.name)


def _tidal_affinity(ctx: ResolutionContext, card: EnchantmentCard) -> None:
    water = len(ctx.of_kind("water"))
    if water > 0:
        ctx.add_score(int(water * BASE_POINTS_PER_RUNE * ctx.total_multiplier * card.level), card.name)


def _stonemasons_secret(ctx: ResolutionContext, card: EnchantmentCard) -> None:
    if ctx.of_kind("earth"):
        bonus = 0.5 + 0.5 * card.level
        ctx.multiplier_bonus += bonus
        ctx.details.append(f"+{bonus} next multiplier ({card.name})")


def _line_master(ctx: ResolutionContext, card: EnchantmentCard) -> None:
    if len(ctx.matches) < 4:
        return
    first = ctx.matches[0]
    if all(c.y == first.y for c in ctx.matches):
        ctx.request(first, LineClearEffect(axis="horizontal"), card.name)
    elif all(c.x == first.x for c in ctx.matches):
        ctx.request(first, LineClearEffect(axis="vertical"), card.name)


def _color_weaver(ctx: ResolutionContext, card: EnchantmentCard) -> None:
    if len(ctx.matches) >= 6:
        ctx.request(ctx.matches[0], ColorChangeEffect(), card.name)


def _blast_radius(ctx: ResolutionContext, card: EnchantmentCard) -> None:
    for c in ctx.matches:
        if isinstance(ctx.effects.get(c), BombEffect):
            ctx.request(c, AreaClearEffect(radius=2), card.name)


def _multiplier_mage(ctx: ResolutionContext, card: EnchantmentCard) -> None:
    light = ctx.of_kind("light")
    for c in light:
        ctx.request(c, MultiplierEffect(), card.name)
    if light:
        ctx.add_score(int(len(light) * 15 * ctx.total_multiplier), card.name)


# Kinds without an entry (e.g. earthen_pact, gale_force) resolve as no-ops.
ENCHANTMENT_EFFECTS: dict[EnchantmentKind, EffectFn] = {
    "chain_reaction": _chain_reaction,
    "volcanic_heart": _volcanic_heart,
    "tidal_affinity": _tidal_affinity,
    "stonemasons_secret": _stonemasons_secret,
    "line_master": _line_master,
    "color_weaver": _color_weaver,
    "blast_radius": _blast_radius,
    "multiplier_mage": _multiplier_mage,
}


def resolve_matches(
    matches: Iterable[Coordinate],
    board: Board,
    enchantments: Sequence[EnchantmentCard],
    combo_count: int,
    carried_bonus: float = 0.0,
    *,
    gold_divisor: int = 100,
) -> TurnResult:
    """Score one cascade step.

    Matched coordinates pointing at empty or out-of-range cells are skipped.
    """
    ordered = tuple(c for c in row_major(set(matches)) if board.rune_at(c) is not None)
    kinds: dict[Coordinate, RuneKind] = {}
    effects: dict[Coordinate, SpecialEffect] = {}
    for c in ordered:
        rune = board.rune_at(c)
        assert rune is not None
        kinds[c] = rune.kind
        if rune.effect is not None:
            effects[c] = rune.effect

    total = combo_multiplier(combo_count) + carried_bonus
    ctx = ResolutionContext(
        matches=ordered,
        kinds=kinds,
        effects=effects,
        combo_count=combo_count,
        total_multiplier=total,
        multiplier_bonus=carried_bonus,
    )
    ctx.add_score(int(len(ordered) * BASE_POINTS_PER_RUNE * total), "base")

    if ordered:
        for card in enchantments:
            effect_fn = ENCHANTMENT_EFFECTS.get(card.kind)
            if effect_fn is not None:
                effect_fn(ctx, card)

    return TurnResult(
        score=ctx.score,
        gold=ctx.score // gold_divisor,
        requests=tuple(ctx.requests),
        lightning_strikes=ctx.lightning_strikes,
        match_center=ordered[0] if ordered else None,
        new_multiplier_bonus=ctx.multiplier_bonus,
        details=tuple(ctx.details),
    )
