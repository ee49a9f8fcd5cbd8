from __future__ import annotations


from .actions import (
    Action,
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
from .run import RunState
from .types import EnchantmentCard, Rune, SpecialEffect


def effect_to_dict(effect: SpecialEffect | None) -> dict[str, object] | None:
    if effect is None:
        return None
    d: dict[str, object] = {"type": effect.type}
    axis = getattr(effect, "axis", None)
    if axis is not None:
        d["axis"] = axis
    radius = getattr(effect, "radius", None)
    if radius is not None:
        d["radius"] = radius
    return d


def action_to_dict(a: Action) -> dict[str, object]:
    if isinstance(a, SwapAction):
        return {"type": "swap", "a": [a.a.x, a.a.y], "b": [a.b.x, a.b.y]}
    if isinstance(a, ChooseStarterAction):
        return {"type": "choose_starter", "enchantment_id": a.enchantment_id}
    if isinstance(a, BuyAction):
        return {"type": "buy", "enchantment_id": a.enchantment_id}
    if isinstance(a, SellAction):
        return {"type": "sell", "enchantment_id": a.enchantment_id}
    if isinstance(a, UpgradeAction):
        return {"type": "upgrade", "enchantment_id": a.enchantment_id}
    if isinstance(a, RerollAction):
        return {"type": "reroll"}
    if isinstance(a, NextLevelAction):
        return {"type": "next_level"}
    if isinstance(a, NewRunAction):
        return {"type": "new_run"}
    # should be unreachable
    return {"type": "unknown"}


def _rune_to_dict(r: Rune | None) -> dict[str, object] | None:
    if r is None:
        return None
    return {"id": r.id, "kind": r.kind, "effect": effect_to_dict(r.effect), "power_level": r.power_level}


def board_to_dict(board: Board) -> dict[str, object]:
    return {
        "width": board.width,
        "height": board.height,
        "rows": [[_rune_to_dict(r) for r in row] for row in board.rows()],
    }


def _card_to_dict(c: EnchantmentCard) -> dict[str, object]:
    return {"id": c.id, "level": c.level}


def snapshot(run: RunState) -> dict[str, object]:
    """Return a JSON-serializable canonical snapshot of the current run."""
    return {
        "seed": run.seed,
        "state": run.state,
        "score": run.score,
        "gold": run.gold,
        "level": run.level,
        "score_target": run.score_target,
        "moves_remaining": run.moves_remaining,
        "high_score": run.high_score,
        "active_enchantments": [_card_to_dict(c) for c in run.active_enchantments],
        "shop_selection": [_card_to_dict(c) for c in run.shop_selection],
        "starter_selection": [_card_to_dict(c) for c in run.starter_selection],
        "board": board_to_dict(run.board),
        "action_log": [action_to_dict(a) for a in run.action_log],
    }
