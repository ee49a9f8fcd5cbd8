from __future__ import annotations

from dataclasses import dataclass

from .actions import BuyAction, ChooseStarterAction, NextLevelAction, SwapAction, UpgradeAction
from .board import Board
from .resolver import ENCHANTMENT_EFFECTS
from .run import RunState, step
from .types import Coordinate, EnchantmentCard, upgrade_cost


@dataclass(frozen=True)
class AISpec:
    """Autoplayer tuning parameters.

    difficulty:
      0 = easy (often plays a random valid swap)
      1 = normal
      2 = hard (always the largest immediate match, spends gold on upgrades)
    """

    difficulty: int = 1


def _swap_value(board: Board, a: Coordinate, b: Coordinate) -> int:
    board.swap_runes(a, b)
    matched = board.find_matches()
    value = len(matched)
    for c in matched:
        rune = board.rune_at(c)
        if rune is not None and rune.effect is not None:
            value += 3
    board.swap_runes(a, b)
    return value


def choose_swap(run: RunState, spec: AISpec | None = None) -> SwapAction:
    """Pick a swap for the current board.

    Falls back to swapping the top-left pair when no move creates a match, which
    still spends a move like any rejected swap.
    """
    spec = spec or AISpec()
    board = run.board
    moves = board.find_possible_moves()
    if not moves:
        return SwapAction.between(0, 0, 1, 0)

    if spec.difficulty <= 0 and run.rng.random() < 0.5:
        a, b = moves[run.rng.randrange(len(moves))]
        return SwapAction(a=a, b=b)
    if spec.difficulty == 1 and run.rng.random() < 0.10:
        a, b = moves[run.rng.randrange(len(moves))]
        return SwapAction(a=a, b=b)

    best: tuple[int, Coordinate, Coordinate] | None = None
    for a, b in moves:
        value = _swap_value(board, a, b)
        if best is None or value > best[0]:
            best = (value, a, b)
    assert best is not None
    return SwapAction(a=best[1], b=best[2])


def choose_starter(run: RunState) -> ChooseStarterAction:
    # cheapest card that does something, catalog id as tie-break
    options = sorted(
        run.starter_selection,
        key=lambda c: (c.kind not in ENCHANTMENT_EFFECTS, c.cost, c.id),
    )
    return ChooseStarterAction(enchantment_id=options[0].id)


def _affordable_upgrade(run: RunState) -> EnchantmentCard | None:
    best: tuple[int, EnchantmentCard] | None = None
    for card in run.active_enchantments:
        cost = upgrade_cost(card)
        if cost is None or cost > run.gold:
            continue
        if best is None or cost < best[0]:
            best = (cost, card)
    return best[1] if best is not None else None


def ai_shop(run: RunState, spec: AISpec | None = None) -> None:
    """Spend gold in the shop, then start the next level."""
    spec = spec or AISpec()
    while run.state == "shop":
        affordable = [c for c in run.shop_selection if c.cost <= run.gold]
        if affordable:
            card = max(affordable, key=lambda c: (c.cost, c.id))
            step(run, BuyAction(enchantment_id=card.id))
            continue
        if spec.difficulty >= 2:
            up = _affordable_upgrade(run)
            if up is not None:
                step(run, UpgradeAction(enchantment_id=up.id))
                continue
        step(run, NextLevelAction())


def ai_play_run(run: RunState, spec: AISpec | None = None, max_actions: int = 10_000) -> RunState:
    """Play from the current state until game over (or the action budget runs out).

    Uses the run's own RNG so a given seed always produces the same run.
    """
    spec = spec or AISpec()
    for _ in range(max_actions):
        if run.state == "game_over":
            break
        if run.state == "choosing_starter":
            step(run, choose_starter(run))
        elif run.state == "playing":
            step(run, choose_swap(run, spec))
        elif run.state == "shop":
            ai_shop(run, spec)
    return run
