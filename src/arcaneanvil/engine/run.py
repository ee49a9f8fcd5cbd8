from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Iterable, Literal, Sequence

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
from .resolver import TurnResult, combo_multiplier, resolve_matches
from .sinks import (
    FeedbackSink,
    HapticCue,
    MemoryPersistence,
    NullFeedback,
    NullProgress,
    PersistenceSink,
    ProgressSink,
    ProgressSnapshot,
    SoundCue,
)
from .types import (
    Coordinate,
    EnchantmentCard,
    EnchantmentCatalog,
    MultiplierEffect,
    upgrade_cost,
)

GameState = Literal["choosing_starter", "playing", "shop", "game_over"]

Event = dict[str, object]


@dataclass(frozen=True)
class RunConfig:
    board_width: int = 8
    board_height: int = 8
    starting_score_target: int = 1000
    starting_moves: int = 20
    starting_gold: int = 15
    shop_size: int = 3
    starter_count: int = 3
    starter_max_cost: int = 25
    reroll_cost: int = 10
    min_moves: int = 10
    gold_divisor: int = 100
    smart_fill: bool = True


@dataclass
class StepResult:
    ok: bool
    events: list[Event]
    error: str | None = None


@dataclass(frozen=True)
class CascadeStep:
    combo: int
    multiplier: float
    matches: frozenset[Coordinate]
    result: TurnResult
    cleared: frozenset[Coordinate]
    lightning_rows: tuple[int, ...]


@dataclass
class RunState:
    catalog: EnchantmentCatalog
    config: RunConfig
    seed: int
    rng: random.Random
    board: Board
    feedback: FeedbackSink
    persistence: PersistenceSink
    progress: ProgressSink
    score: int = 0
    gold: int = 0
    level: int = 1
    score_target: int = 1000
    moves_remaining: int = 20
    high_score: int = 0
    state: GameState = "choosing_starter"
    active_enchantments: list[EnchantmentCard] = field(default_factory=list)
    shop_selection: list[EnchantmentCard] = field(default_factory=list)
    starter_selection: list[EnchantmentCard] = field(default_factory=list)
    total_matches: int = 0
    max_combo: int = 0
    levels_completed: int = 0
    special_types: set[str] = field(default_factory=set)
    last_move: list[CascadeStep] = field(default_factory=list)
    action_log: list[Action] = field(default_factory=list)
    event_log: list[Event] = field(default_factory=list)

    def owns(self, enchantment_id: str) -> bool:
        return any(c.id == enchantment_id for c in self.active_enchantments)

    def find_owned(self, enchantment_id: str) -> EnchantmentCard | None:
        for c in self.active_enchantments:
            if c.id == enchantment_id:
                return c
        return None


def is_adjacent(a: Coordinate, b: Coordinate) -> bool:
    return abs(a.x - b.x) + abs(a.y - b.y) == 1


# -------- Collaborator calls --------
def _emit(run: RunState, event: Event) -> None:
    run.event_log.append(event)


def _sound(run: RunState, cue: SoundCue, combo_count: int | None = None) -> None:
    try:
        run.feedback.play_sound(cue, combo_count)
    except Exception as e:  # sink failures never abort a move
        _emit(run, {"type": "FEEDBACK_FAILED", "cue": cue, "error": repr(e)})


def _haptic(run: RunState, cue: HapticCue) -> None:
    try:
        run.feedback.trigger_haptic(cue)
    except Exception as e:
        _emit(run, {"type": "FEEDBACK_FAILED", "cue": cue, "error": repr(e)})


def progress_snapshot(run: RunState) -> ProgressSnapshot:
    return ProgressSnapshot(
        total_matches=run.total_matches,
        max_combo=run.max_combo,
        special_rune_types=len(run.special_types),
        active_cards=len(run.active_enchantments),
        score=run.score,
        levels_completed=run.levels_completed,
    )


def _report_progress(run: RunState) -> None:
    run.progress.report_progress(progress_snapshot(run))


# -------- Card selection --------
def _sample_cards(run: RunState, candidates: Sequence[str], count: int) -> list[EnchantmentCard]:
    picked = run.rng.sample(list(candidates), min(count, len(candidates)))
    return [EnchantmentCard(definition=run.catalog.get(cid)) for cid in picked]


def _prepare_shop(run: RunState) -> None:
    owned_names = {c.name for c in run.active_enchantments}
    available = [
        cid for cid in run.catalog.all_ids() if run.catalog.get(cid).name not in owned_names
    ]
    run.shop_selection = _sample_cards(run, available, run.config.shop_size)


def _prepare_starters(run: RunState) -> None:
    cheap = [
        cid
        for cid in run.catalog.all_ids()
        if run.catalog.get(cid).cost <= run.config.starter_max_cost
    ]
    run.starter_selection = _sample_cards(run, cheap, run.config.starter_count)


# -------- State transitions --------
def complete_level(run: RunState) -> None:
    if run.state != "playing":
        return
    run.state = "shop"
    run.levels_completed += 1
    _prepare_shop(run)
    _sound(run, "level_complete")
    _haptic(run, "success")
    _emit(
        run,
        {
            "type": "LEVEL_COMPLETE",
            "level": run.level,
            "score": run.score,
            "shop": [c.id for c in run.shop_selection],
        },
    )
    _report_progress(run)


def game_over(run: RunState) -> None:
    if run.state != "playing":
        return
    if run.score > run.high_score:
        run.high_score = run.score
        run.persistence.save_high_score(run.score)
        _emit(run, {"type": "HIGH_SCORE", "score": run.score})
    run.state = "game_over"
    _sound(run, "game_over")
    _haptic(run, "error")
    _emit(run, {"type": "GAME_OVER", "score": run.score, "level": run.level})


def _check_thresholds(run: RunState) -> None:
    if run.score >= run.score_target:
        complete_level(run)
    elif run.moves_remaining <= 0:
        game_over(run)


def _reset_run(run: RunState) -> None:
    cfg = run.config
    run.score = 0
    run.gold = 0
    run.level = 1
    run.score_target = cfg.starting_score_target
    run.moves_remaining = cfg.starting_moves
    run.active_enchantments = []
    run.shop_selection = []
    run.total_matches = 0
    run.max_combo = 0
    run.levels_completed = 0
    run.special_types = set()
    run.last_move = []
    run.state = "choosing_starter"
    _prepare_starters(run)


def _choose_starter(run: RunState, action: ChooseStarterAction) -> StepResult:
    if run.state != "choosing_starter":
        return StepResult(ok=False, events=[], error="Not choosing a starter.")
    chosen = None
    for card in run.starter_selection:
        if card.id == action.enchantment_id:
            chosen = card
            break
    if chosen is None:
        return StepResult(ok=False, events=[], error="Card is not a starter option.")

    run.active_enchantments = [chosen]
    run.starter_selection = []
    run.gold += run.config.starting_gold
    run.board.fill_board()
    run.state = "playing"
    _sound(run, "button_click")
    _haptic(run, "selection")
    _emit(run, {"type": "STARTER_CHOSEN", "card_id": chosen.id, "gold": run.gold})
    return StepResult(ok=True, events=[])


# -------- Move pipeline --------
def _strike_lightning(run: RunState) -> int:
    row = run.rng.randrange(run.board.height)
    cleared = run.board.clear_row(row)
    _sound(run, "lightning")
    _haptic(run, "heavy")
    _emit(run, {"type": "LIGHTNING", "row": row, "cleared": len(cleared)})
    return row


def _resolve_cascade_step(run: RunState, matches: set[Coordinate], combo: int, bonus: float) -> CascadeStep:
    board = run.board
    multiplier = combo_multiplier(combo)
    _sound(run, "match", combo - 1)
    _haptic(run, "medium")

    result = resolve_matches(
        matches,
        board,
        run.active_enchantments,
        combo,
        bonus,
        gold_divisor=run.config.gold_divisor,
    )
    run.score += result.score
    run.gold += result.gold

    for req in result.requests:
        board.set_special_effect(req.coord, req.effect)
        run.special_types.add(req.effect.type)

    for coord in sorted(matches, key=lambda c: (c.y, c.x)):
        rune = board.rune_at(coord)
        if rune is None or rune.effect is None or isinstance(rune.effect, MultiplierEffect):
            continue
        _sound(run, "bomb_explode")
        _haptic(run, "heavy")
        _emit(
            run,
            {"type": "BOMB_DETONATED", "x": coord.x, "y": coord.y, "effect": rune.effect.type},
        )

    cleared = board.remove_matches(matches)
    rows = tuple(_strike_lightning(run) for _ in range(result.lightning_strikes))
    board.shift_runes_down()
    board.refill_board()

    run.total_matches += 1
    run.max_combo = max(run.max_combo, combo)
    _emit(
        run,
        {
            "type": "CASCADE_STEP",
            "combo": combo,
            "matched": len(matches),
            "score": result.score,
            "gold": result.gold,
            "multiplier_bonus": result.new_multiplier_bonus,
        },
    )
    _report_progress(run)
    return CascadeStep(
        combo=combo,
        multiplier=multiplier + bonus,
        matches=frozenset(matches),
        result=result,
        cleared=frozenset(cleared),
        lightning_rows=rows,
    )


def _swap(run: RunState, action: SwapAction) -> StepResult:
    if run.state != "playing":
        return StepResult(ok=False, events=[], error="Not currently playing.")
    if not run.board.is_valid(action.a) or not run.board.is_valid(action.b):
        return StepResult(ok=False, events=[], error="Coordinate out of range.")
    if not is_adjacent(action.a, action.b):
        return StepResult(ok=False, events=[], error="Runes must be adjacent.")

    board = run.board
    run.moves_remaining = max(0, run.moves_remaining - 1)
    run.last_move = []
    _sound(run, "swap")
    _haptic(run, "light")
    _emit(
        run,
        {
            "type": "MOVE_STARTED",
            "a": [action.a.x, action.a.y],
            "b": [action.b.x, action.b.y],
            "moves_remaining": run.moves_remaining,
        },
    )

    board.swap_runes(action.a, action.b)
    matches = board.find_matches()
    if not matches:
        board.swap_runes(action.a, action.b)
        _sound(run, "swap")
        _haptic(run, "error")
        _emit(run, {"type": "SWAP_REJECTED"})
        _check_thresholds(run)
        return StepResult(ok=True, events=[])

    combo = 0
    bonus = 0.0
    while matches:
        combo += 1
        cascade = _resolve_cascade_step(run, matches, combo, bonus)
        run.last_move.append(cascade)
        bonus = cascade.result.new_multiplier_bonus
        matches = board.find_matches()

    _check_thresholds(run)
    return StepResult(ok=True, events=[])


# -------- Shop --------
def _buy(run: RunState, action: BuyAction) -> StepResult:
    if run.state != "shop":
        return StepResult(ok=False, events=[], error="Shop is closed.")
    card = None
    for c in run.shop_selection:
        if c.id == action.enchantment_id:
            card = c
            break
    if card is None:
        return StepResult(ok=False, events=[], error="Card is not for sale.")
    if run.gold < card.cost:
        return StepResult(ok=False, events=[], error="Not enough gold.")

    run.gold -= card.cost
    run.active_enchantments.append(card)
    run.shop_selection = [c for c in run.shop_selection if c.id != card.id]
    _sound(run, "buy_card")
    _haptic(run, "success")
    _emit(run, {"type": "CARD_BOUGHT", "card_id": card.id, "cost": card.cost, "gold": run.gold})
    return StepResult(ok=True, events=[])


def _sell(run: RunState, action: SellAction) -> StepResult:
    if run.state != "shop":
        return StepResult(ok=False, events=[], error="Shop is closed.")
    card = run.find_owned(action.enchantment_id)
    if card is None:
        return StepResult(ok=False, events=[], error="Card is not owned.")

    refund = card.cost // 2
    run.active_enchantments = [c for c in run.active_enchantments if c.id != card.id]
    run.gold += refund
    _prepare_shop(run)
    _sound(run, "button_click")
    _haptic(run, "light")
    _emit(run, {"type": "CARD_SOLD", "card_id": card.id, "refund": refund, "gold": run.gold})
    return StepResult(ok=True, events=[])


def _upgrade(run: RunState, action: UpgradeAction) -> StepResult:
    if run.state != "shop":
        return StepResult(ok=False, events=[], error="Shop is closed.")
    card = run.find_owned(action.enchantment_id)
    if card is None:
        return StepResult(ok=False, events=[], error="Card is not owned.")
    cost = upgrade_cost(card)
    if cost is None:
        return StepResult(ok=False, events=[], error="Card is already at max level.")
    if run.gold < cost:
        return StepResult(ok=False, events=[], error="Not enough gold.")

    run.gold -= cost
    card.level += 1
    _sound(run, "button_click")
    _haptic(run, "success")
    _emit(run, {"type": "CARD_UPGRADED", "card_id": card.id, "level": card.level, "cost": cost})
    return StepResult(ok=True, events=[])


def _reroll(run: RunState) -> StepResult:
    if run.state != "shop":
        return StepResult(ok=False, events=[], error="Shop is closed.")
    if run.gold < run.config.reroll_cost:
        return StepResult(ok=False, events=[], error="Not enough gold.")

    run.gold -= run.config.reroll_cost
    _prepare_shop(run)
    _sound(run, "button_click")
    _haptic(run, "light")
    _emit(run, {"type": "SHOP_REROLLED", "shop": [c.id for c in run.shop_selection], "gold": run.gold})
    return StepResult(ok=True, events=[])


def _next_level(run: RunState) -> StepResult:
    if run.state != "shop":
        return StepResult(ok=False, events=[], error="Shop is closed.")
    run.level += 1
    run.moves_remaining = max(run.config.min_moves, run.config.starting_moves - run.level // 2)
    run.score_target += 500 + run.level * 150
    run.shop_selection = []
    run.state = "playing"
    _sound(run, "button_click")
    _haptic(run, "light")
    _emit(
        run,
        {
            "type": "LEVEL_STARTED",
            "level": run.level,
            "score_target": run.score_target,
            "moves": run.moves_remaining,
        },
    )
    return StepResult(ok=True, events=[])


def _new_run(run: RunState) -> StepResult:
    if run.state != "game_over":
        return StepResult(ok=False, events=[], error="Run is still in progress.")
    _reset_run(run)
    _sound(run, "button_click")
    _haptic(run, "light")
    _emit(run, {"type": "RUN_STARTED", "starters": [c.id for c in run.starter_selection]})
    return StepResult(ok=True, events=[])


def _dispatch(run: RunState, action: Action) -> StepResult:
    if isinstance(action, SwapAction):
        return _swap(run, action)
    if isinstance(action, ChooseStarterAction):
        return _choose_starter(run, action)
    if isinstance(action, BuyAction):
        return _buy(run, action)
    if isinstance(action, SellAction):
        return _sell(run, action)
    if isinstance(action, UpgradeAction):
        return _upgrade(run, action)
    if isinstance(action, RerollAction):
        return _reroll(run)
    if isinstance(action, NextLevelAction):
        return _next_level(run)
    if isinstance(action, NewRunAction):
        return _new_run(run)
    return StepResult(ok=False, events=[], error="Unknown action.")


def step(run: RunState, action: Action) -> StepResult:
    """Apply a single player action.

    Rejected actions leave the run untouched and report why in `error`.
    Accepted actions return the events they produced. The whole move
    (swap, cascade loop, threshold check) completes inside one call, so a
    new action can never interleave with a resolving cascade.
    """
    # Log first so a replay sees every attempted action
    run.action_log.append(action)
    start = len(run.event_log)
    result = _dispatch(run, action)
    if result.ok:
        result.events = run.event_log[start:]
    return result


def new_run(
    catalog: EnchantmentCatalog,
    seed: int,
    config: RunConfig | None = None,
    *,
    feedback: FeedbackSink | None = None,
    persistence: PersistenceSink | None = None,
    progress: ProgressSink | None = None,
) -> RunState:
    cfg = config or RunConfig()
    if not catalog.enchantments:
        raise ValueError("Catalog must contain at least one enchantment.")
    rng = random.Random(seed)
    store = persistence if persistence is not None else MemoryPersistence()
    run = RunState(
        catalog=catalog,
        config=cfg,
        seed=seed,
        rng=rng,
        board=Board(cfg.board_width, cfg.board_height, rng, smart_fill=cfg.smart_fill),
        feedback=feedback or NullFeedback(),
        persistence=store,
        progress=progress or NullProgress(),
        high_score=store.load_high_score(),
    )
    _reset_run(run)
    _emit(run, {"type": "RUN_STARTED", "starters": [c.id for c in run.starter_selection]})
    return run


def replay(
    catalog: EnchantmentCatalog,
    seed: int,
    actions: Iterable[Action],
    config: RunConfig | None = None,
) -> RunState:
    run = new_run(catalog, seed, config)
    for a in actions:
        step(run, a)
    return run
