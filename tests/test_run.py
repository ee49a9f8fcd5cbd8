from __future__ import annotations

from arcaneanvil.engine.actions import (
    BuyAction,
    ChooseStarterAction,
    NewRunAction,
    NextLevelAction,
    RerollAction,
    SellAction,
    SwapAction,
    UpgradeAction,
)
from arcaneanvil.engine.ai import choose_starter
from arcaneanvil.engine.board import Board
from arcaneanvil.engine.run import RunState, complete_level, game_over, new_run, step
from arcaneanvil.engine.sinks import MemoryPersistence
from arcaneanvil.engine.types import RUNE_KINDS, BombEffect, Coordinate, EnchantmentCard, upgrade_cost
from arcaneanvil.paths import get_paths
from arcaneanvil.services.content import ContentService


def _load_catalog():
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return content.load_enchantments()


def _quiet_rows() -> list[list[str]]:
    return [[RUNE_KINDS[(x + 2 * y) % 5] for x in range(8)] for y in range(8)]


def _playing_run(starter: str = "tidal_affinity", seed: int = 7, high_score: int = 0) -> RunState:
    catalog = _load_catalog()
    run = new_run(catalog, seed=seed, persistence=MemoryPersistence(high_score=high_score))
    # starters are sampled; force a known one for the test
    run.starter_selection = [EnchantmentCard(definition=catalog.get(starter))]
    res = step(run, ChooseStarterAction(enchantment_id=starter))
    assert res.ok
    return run


def _use_matchable_board(run: RunState) -> SwapAction:
    rows = _quiet_rows()
    rows[0][0] = rows[0][1] = "fire"
    rows[0][2] = "water"
    rows[0][3] = "fire"
    run.board = Board.from_kinds(rows, run.rng)
    return SwapAction.between(2, 0, 3, 0)


def _shop_run(gold: int = 100) -> RunState:
    run = _playing_run()
    complete_level(run)
    assert run.state == "shop"
    run.gold = gold
    return run


def test_new_run_offers_cheap_starters() -> None:
    catalog = _load_catalog()
    run = new_run(catalog, seed=1, persistence=MemoryPersistence(high_score=500))
    assert run.state == "choosing_starter"
    assert run.high_score == 500
    assert (run.score, run.gold, run.level, run.score_target, run.moves_remaining) == (0, 0, 1, 1000, 20)
    assert len(run.starter_selection) == 3
    assert all(c.cost <= run.config.starter_max_cost for c in run.starter_selection)


def test_choose_starter_enters_playing() -> None:
    catalog = _load_catalog()
    run = new_run(catalog, seed=2)
    bad = step(run, ChooseStarterAction(enchantment_id="multiplier_mage"))
    assert not bad.ok
    assert run.state == "choosing_starter"

    pick = run.starter_selection[0].id
    res = step(run, ChooseStarterAction(enchantment_id=pick))
    assert res.ok
    assert run.state == "playing"
    assert [c.id for c in run.active_enchantments] == [pick]
    assert run.gold == 15
    assert run.board.is_full()
    assert run.board.find_matches() == set()

    again = step(run, ChooseStarterAction(enchantment_id=pick))
    assert not again.ok


def test_rejected_swap_consumes_a_move_and_restores_board() -> None:
    run = _playing_run()
    run.board = Board.from_kinds(_quiet_rows(), run.rng)
    before = run.board.rows()
    res = step(run, SwapAction.between(0, 0, 1, 0))
    assert res.ok
    assert run.moves_remaining == 19
    assert run.board.rows() == before
    assert any(e["type"] == "SWAP_REJECTED" for e in res.events)


def test_non_adjacent_or_out_of_range_swap_is_refused() -> None:
    run = _playing_run()
    assert not step(run, SwapAction.between(0, 0, 2, 0)).ok
    assert not step(run, SwapAction.between(7, 7, 8, 7)).ok
    assert run.moves_remaining == 20


def test_valid_swap_runs_cascade_to_fixed_point() -> None:
    run = _playing_run()
    swap = _use_matchable_board(run)
    res = step(run, swap)
    assert res.ok
    assert run.moves_remaining == 19
    assert run.score >= 30
    assert run.last_move
    first = run.last_move[0]
    assert first.combo == 1
    assert {(0, 0), (1, 0), (2, 0)} <= {(c.x, c.y) for c in first.matches}
    assert [s.combo for s in run.last_move] == list(range(1, len(run.last_move) + 1))
    assert run.board.is_full()
    assert run.board.find_matches() == set()
    assert run.score == sum(s.result.score for s in run.last_move)
    assert run.gold == 15 + sum(s.result.gold for s in run.last_move)


def test_chain_reaction_strikes_lightning_once_per_move() -> None:
    run = _playing_run(starter="chain_reaction")
    swap = _use_matchable_board(run)
    res = step(run, swap)
    assert res.ok
    strikes = [e for e in res.events if e["type"] == "LIGHTNING"]
    assert len(strikes) == 1
    assert run.last_move[0].lightning_rows
    assert all(not s.lightning_rows for s in run.last_move[1:])


def test_reaching_target_opens_shop_without_owned_cards() -> None:
    run = _playing_run()
    swap = _use_matchable_board(run)
    run.score = 990
    res = step(run, swap)
    assert res.ok
    assert run.state == "shop"
    assert len(run.shop_selection) == 3
    owned = {c.name for c in run.active_enchantments}
    assert all(c.name not in owned for c in run.shop_selection)
    assert any(e["type"] == "LEVEL_COMPLETE" for e in res.events)


def test_complete_level_outside_playing_is_noop() -> None:
    run = _shop_run()
    shop = [c.id for c in run.shop_selection]
    complete_level(run)
    assert run.state == "shop"
    assert [c.id for c in run.shop_selection] == shop
    assert run.levels_completed == 1


def test_out_of_moves_ends_run_and_saves_high_score() -> None:
    run = _playing_run(high_score=500)
    run.board = Board.from_kinds(_quiet_rows(), run.rng)
    run.moves_remaining = 1
    run.score = 700
    res = step(run, SwapAction.between(0, 0, 1, 0))
    assert res.ok
    assert run.state == "game_over"
    assert run.high_score == 700
    assert run.persistence.load_high_score() == 700
    assert not step(run, SwapAction.between(0, 0, 1, 0)).ok


def test_game_over_keeps_better_high_score() -> None:
    run = _playing_run(high_score=5000)
    run.score = 700
    game_over(run)
    assert run.state == "game_over"
    assert run.persistence.load_high_score() == 5000


def test_buy_rejected_without_enough_gold() -> None:
    run = _shop_run(gold=5)
    card = run.shop_selection[0]
    res = step(run, BuyAction(enchantment_id=card.id))
    assert not res.ok
    assert run.gold == 5
    assert len(run.active_enchantments) == 1
    assert card in run.shop_selection


def test_buy_moves_card_from_shop_to_owned() -> None:
    run = _shop_run(gold=100)
    card = run.shop_selection[0]
    res = step(run, BuyAction(enchantment_id=card.id))
    assert res.ok
    assert run.gold == 100 - card.cost
    assert run.active_enchantments[-1] is card
    assert all(c.id != card.id for c in run.shop_selection)
    assert len(run.shop_selection) == 2


def test_shop_actions_refused_while_playing() -> None:
    run = _playing_run()
    run.gold = 1000
    assert not step(run, RerollAction()).ok
    assert not step(run, UpgradeAction(enchantment_id="tidal_affinity")).ok
    assert not step(run, SellAction(enchantment_id="tidal_affinity")).ok
    assert not step(run, NextLevelAction()).ok
    assert run.gold == 1000


def test_sell_refunds_half_and_makes_card_eligible() -> None:
    run = _shop_run(gold=0)
    res = step(run, SellAction(enchantment_id="tidal_affinity"))
    assert res.ok
    assert run.gold == 10
    assert run.active_enchantments == []
    assert len(run.shop_selection) == 3
    assert not step(run, SellAction(enchantment_id="tidal_affinity")).ok


def test_upgrade_costs_gold_and_stops_at_max_level() -> None:
    run = _shop_run(gold=1000)
    card = run.active_enchantments[0]
    assert upgrade_cost(card) == 40
    assert step(run, UpgradeAction(enchantment_id=card.id)).ok
    assert card.level == 2
    assert run.gold == 960
    assert step(run, UpgradeAction(enchantment_id=card.id)).ok
    assert card.level == 3
    assert run.gold == 900
    res = step(run, UpgradeAction(enchantment_id=card.id))
    assert not res.ok
    assert card.level == 3
    assert run.gold == 900


def test_upgrade_rejected_without_enough_gold() -> None:
    run = _shop_run(gold=39)
    assert not step(run, UpgradeAction(enchantment_id="tidal_affinity")).ok
    assert run.active_enchantments[0].level == 1
    assert run.gold == 39


def test_reroll() -> None:
    run = _shop_run(gold=9)
    assert not step(run, RerollAction()).ok
    assert run.gold == 9

    run.gold = 25
    assert step(run, RerollAction()).ok
    assert run.gold == 15
    assert len(run.shop_selection) == 3
    owned = {c.id for c in run.active_enchantments}
    assert all(c.id not in owned for c in run.shop_selection)


def test_next_level_updates_moves_and_cumulative_target() -> None:
    run = _shop_run()
    assert step(run, NextLevelAction()).ok
    assert run.state == "playing"
    assert run.level == 2
    assert run.moves_remaining == 19
    assert run.score_target == 1000 + 500 + 2 * 150

    for _ in range(30):
        complete_level(run)
        step(run, NextLevelAction())
    assert run.moves_remaining == 10


def test_new_run_only_after_game_over() -> None:
    run = _playing_run(high_score=0)
    run.score = 1234
    assert not step(run, NewRunAction()).ok

    game_over(run)
    assert step(run, NewRunAction()).ok
    assert run.state == "choosing_starter"
    assert (run.score, run.gold, run.level, run.score_target, run.moves_remaining) == (0, 0, 1, 1000, 20)
    assert run.active_enchantments == []
    assert len(run.starter_selection) == 3
    assert run.high_score == 1234


class _BrokenSpeaker:
    def play_sound(self, cue, combo_count=None) -> None:
        raise RuntimeError("audio device gone")

    def trigger_haptic(self, cue) -> None:
        return None


def test_feedback_failures_do_not_abort_moves() -> None:
    run = _playing_run()
    run.feedback = _BrokenSpeaker()
    swap = _use_matchable_board(run)
    res = step(run, swap)
    assert res.ok
    assert run.board.find_matches() == set()
    assert any(e["type"] == "FEEDBACK_FAILED" for e in res.events)


def test_upgrade_ceiling_for_every_rarity() -> None:
    catalog = _load_catalog()
    for cid in catalog.all_ids():
        card = EnchantmentCard(definition=catalog.get(cid))
        expected_max = 5 if card.rarity == "legendary" else 3
        assert card.max_level == expected_max
        while card.level < card.max_level:
            assert upgrade_cost(card) is not None
            card.level += 1
        assert upgrade_cost(card) is None

    mage = EnchantmentCard(definition=catalog.get("multiplier_mage"), level=4)
    assert upgrade_cost(mage) == 50 * 5 * 3
    secret = EnchantmentCard(definition=catalog.get("stonemasons_secret"))
    assert upgrade_cost(secret) == 90


class _RecordingSpeaker:
    def __init__(self) -> None:
        self.sounds: list[tuple[str, int | None]] = []

    def play_sound(self, cue, combo_count=None) -> None:
        self.sounds.append((cue, combo_count))

    def trigger_haptic(self, cue) -> None:
        return None


def _five_fire_board(run: RunState) -> SwapAction:
    rows = _quiet_rows()
    rows[4][0] = rows[4][1] = rows[4][3] = rows[4][4] = "fire"
    rows[4][2] = "water"
    rows[5][2] = "fire"
    run.board = Board.from_kinds(rows, run.rng)
    return SwapAction.between(2, 4, 2, 5)


def _two_step_earth_board(run: RunState) -> SwapAction:
    # earth clears the bottom-left, then water drops into a row of three
    rows = _quiet_rows()
    rows[7][:5] = ["earth", "earth", "water", "earth", "water"]
    rows[6][2] = "water"
    run.board = Board.from_kinds(rows, run.rng)
    return SwapAction.between(2, 7, 3, 7)


def test_volcanic_heart_bomb_detonates_in_same_step() -> None:
    run = _playing_run(starter="volcanic_heart")
    swap = _five_fire_board(run)
    assert run.board.find_matches() == set()

    res = step(run, swap)
    assert res.ok
    first = run.last_move[0]
    assert first.matches == frozenset(Coordinate(x, 4) for x in range(5))
    assert first.result.new_bombs == frozenset({Coordinate(0, 4)})
    blast = {Coordinate(x, y) for x in (0, 1) for y in (3, 4, 5)}
    assert first.cleared == first.matches | blast
    assert len(first.cleared) == 9
    assert "bomb" in run.special_types
    detonations = [e for e in res.events if e["type"] == "BOMB_DETONATED"]
    assert detonations[0] == {"type": "BOMB_DETONATED", "x": 0, "y": 4, "effect": "bomb"}


def test_blast_radius_turns_matched_bomb_into_area_clear() -> None:
    run = _playing_run(starter="blast_radius")
    swap = _use_matchable_board(run)
    run.board.set_special_effect(Coordinate(1, 0), BombEffect())

    res = step(run, swap)
    assert res.ok
    first = run.last_move[0]
    diamond = {Coordinate(x, y) for x in range(8) for y in range(8) if abs(x - 1) + y <= 2}
    assert first.cleared == diamond
    assert "area_clear" in run.special_types
    assert any(e["type"] == "BOMB_DETONATED" and e["effect"] == "area_clear" for e in res.events)


def test_stonemason_bonus_carries_into_next_cascade_step() -> None:
    run = _playing_run(starter="stonemasons_secret")
    swap = _two_step_earth_board(run)
    assert run.board.find_matches() == set()

    assert step(run, swap).ok
    assert len(run.last_move) >= 2
    first, second = run.last_move[0], run.last_move[1]
    assert first.matches == frozenset(Coordinate(x, 7) for x in range(3))
    assert first.multiplier == 1.0
    assert first.result.new_multiplier_bonus == 1.0
    assert {Coordinate(2, 7), Coordinate(3, 7), Coordinate(4, 7)} <= second.matches
    assert second.multiplier == 1.5 + 1.0


def test_match_sound_counts_steps_already_resolved() -> None:
    run = _playing_run(starter="stonemasons_secret")
    speaker = _RecordingSpeaker()
    run.feedback = speaker
    swap = _two_step_earth_board(run)

    assert step(run, swap).ok
    combos = [n for cue, n in speaker.sounds if cue == "match"]
    assert combos == list(range(len(run.last_move)))
    assert combos[:2] == [0, 1]


def test_starter_pool_includes_cheap_cards_without_effects() -> None:
    catalog = _load_catalog()
    cheap = {cid for cid in catalog.all_ids() if catalog.get(cid).cost <= 25}
    assert cheap == {"chain_reaction", "volcanic_heart", "tidal_affinity", "earthen_pact", "gale_force"}

    run = new_run(catalog, seed=5)
    run.starter_selection = [
        EnchantmentCard(definition=catalog.get("earthen_pact")),
        EnchantmentCard(definition=catalog.get("gale_force")),
        EnchantmentCard(definition=catalog.get("tidal_affinity")),
    ]
    assert choose_starter(run).enchantment_id == "tidal_affinity"
