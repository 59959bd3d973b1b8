from __future__ import annotations

import pytest

from citadels.engine.abilities import destroy_cost, income_bonus, start_of_turn
from citadels.engine.actions import (
    ArmoryAction,
    BuildAction,
    DestroyAction,
    EndTurnAction,
    KillAction,
    LaboratoryAction,
    RedrawAction,
    SmithyAction,
    SwapHandsAction,
)
from citadels.engine.city import draw_and_keep, end_of_turn
from citadels.engine.decisions import Decision
from citadels.engine.draft import run_draft
from citadels.engine.session import GameSession
from citadels.engine.state import GameConfig, RoundContext, new_game
from citadels.engine.turns import apply_action, new_turn, resolve_slot, run_turns


def _fresh(catalog, players: int = 4, seed: int = 7):
    state = new_game(catalog, players, seed)
    for p in state.players:
        p.hand = []
        p.gold = 0
    return state


def _card(catalog, name: str):
    card = catalog.district_named(name)
    assert card is not None, name
    return card


def _types(state) -> list[str]:
    return [str(e["type"]) for e in state.event_log]


def test_new_game_rejects_bad_player_counts(catalog) -> None:
    with pytest.raises(ValueError):
        new_game(catalog, 3, seed=1)
    with pytest.raises(ValueError):
        new_game(catalog, 8, seed=1)


def test_new_game_deals_gold_and_cards(catalog) -> None:
    state = new_game(catalog, 5, seed=3)
    assert all(p.gold == 2 and len(p.hand) == 4 for p in state.players)
    assert sum(1 for p in state.players if p.has_crown) == 1
    assert len(state.draw_pile) == catalog.deck_size() - 5 * 4


@pytest.mark.parametrize("players", [4, 5, 6, 7])
def test_draft_assigns_unique_characters_and_never_shows_king(catalog, players: int) -> None:
    for seed in range(25):
        state = new_game(catalog, players, seed)
        ctx = run_draft(state)
        numbers = [p.character.number for p in state.players if p.character is not None]
        assert len(numbers) == players
        assert len(set(numbers)) == players
        assert all(c.power != "crown" for c in ctx.face_up_removed)
        assert len(ctx.face_down_removed) == 1


def test_draft_starts_with_crown_holder(catalog) -> None:
    state = _fresh(catalog)
    for p in state.players:
        p.has_crown = p.number == 3
    run_draft(state)
    started = next(e for e in state.event_log if e["type"] == "draft_started")
    assert started["order"] == [3, 4, 1, 2]


def test_draft_falls_back_to_first_character(catalog, scripted) -> None:
    state = _fresh(catalog)
    silent = scripted()
    state.players[0].decisions = silent
    run_draft(state)
    assert state.players[0].character is not None
    assert any(e["type"] == "decision_fallback" and e["choice"] == "character" for e in state.event_log)


def test_draft_logs_a_character_outside_the_pool(catalog, scripted) -> None:
    state = _fresh(catalog)
    chooser = scripted()
    chooser.choose_character = lambda state, p, pool: Decision.accept(
        next(c for c in catalog.characters if c not in pool)
    )
    state.players[0].decisions = chooser
    run_draft(state)
    fallback = [e for e in state.event_log if e["type"] == "decision_fallback" and e["player"] == 1]
    assert [e["reason"] for e in fallback] == ["invalid"]
    assert state.players[0].character is not None


def test_build_rejects_duplicate_without_changing_state(catalog) -> None:
    state = _fresh(catalog)
    p = state.players[0]
    manor = _card(catalog, "Manor")
    p.gold = 10
    p.hand = [manor, manor]

    res = apply_action(state, new_turn(state, RoundContext(), p), BuildAction(hand_index=0))
    assert res.ok
    assert p.city == [manor]
    assert p.gold == 7

    res2 = apply_action(state, new_turn(state, RoundContext(), p), BuildAction(hand_index=0))
    assert not res2.ok
    assert res2.error is not None
    assert "already" in res2.error
    assert p.gold == 7
    assert p.hand == [manor]
    assert p.city == [manor]


def test_build_rejects_unaffordable_and_second_build(catalog) -> None:
    state = _fresh(catalog)
    p = state.players[0]
    p.gold = 3
    p.hand = [_card(catalog, "Palace"), _card(catalog, "Temple"), _card(catalog, "Tavern")]
    turn = new_turn(state, RoundContext(), p)

    res = apply_action(state, turn, BuildAction(hand_index=0))
    assert not res.ok
    assert "gold" in (res.error or "")

    assert apply_action(state, turn, BuildAction(hand_index=1)).ok
    res = apply_action(state, turn, BuildAction(hand_index=1))
    assert not res.ok
    assert [c.name for c in p.city] == ["Temple"]


def test_architect_draws_two_and_builds_three(catalog) -> None:
    state = _fresh(catalog)
    p = state.players[0]
    p.character = catalog.character(7)
    p.gold = 10
    p.hand = [_card(catalog, "Temple"), _card(catalog, "Tavern"), _card(catalog, "Watchtower"), _card(catalog, "Manor")]
    turn = new_turn(state, RoundContext(), p)
    start_of_turn(state, turn)
    assert len(p.hand) == 6

    for _ in range(3):
        assert apply_action(state, turn, BuildAction(hand_index=0)).ok
    assert not apply_action(state, turn, BuildAction(hand_index=0)).ok
    assert len(p.city) == 3


def test_destroy_cost_with_and_without_great_wall(catalog) -> None:
    state = _fresh(catalog)
    target = state.players[1]
    target.city = [_card(catalog, "Castle")]
    assert destroy_cost(target, 0) == 3
    target.city.append(_card(catalog, "Great Wall"))
    assert destroy_cost(target, 0) == 4


def test_warlord_destroys_district_into_discard(catalog) -> None:
    state = _fresh(catalog)
    warlord, target = state.players[0], state.players[1]
    warlord.character = catalog.character(8)
    warlord.gold = 5
    castle = _card(catalog, "Castle")
    target.city = [castle]

    res = apply_action(state, new_turn(state, RoundContext(), warlord), DestroyAction(target_player=2, city_index=0))
    assert res.ok
    assert warlord.gold == 2
    assert target.city == []
    assert state.discard_pile[-1] == castle


def test_keep_cannot_be_destroyed(catalog) -> None:
    state = _fresh(catalog)
    warlord, target = state.players[0], state.players[1]
    warlord.character = catalog.character(8)
    warlord.gold = 10
    target.city = [_card(catalog, "Keep")]

    res = apply_action(state, new_turn(state, RoundContext(), warlord), DestroyAction(target_player=2, city_index=0))
    assert not res.ok
    assert warlord.gold == 10
    assert len(target.city) == 1


def test_only_warlord_may_destroy(catalog) -> None:
    state = _fresh(catalog)
    king = state.players[0]
    king.character = catalog.character(4)
    king.gold = 10
    state.players[1].city = [_card(catalog, "Temple")]
    res = apply_action(state, new_turn(state, RoundContext(), king), DestroyAction(target_player=2, city_index=0))
    assert not res.ok
    assert len(state.players[1].city) == 1


@pytest.mark.parametrize("pays, in_hand", [(True, True), (False, False)])
def test_graveyard_recovers_destroyed_district(catalog, scripted, pays: bool, in_hand: bool) -> None:
    state = _fresh(catalog)
    warlord, target = state.players[0], state.players[1]
    warlord.character = catalog.character(8)
    warlord.gold = 5
    target.character = catalog.character(4)
    target.gold = 3
    castle = _card(catalog, "Castle")
    target.city = [castle, _card(catalog, "Graveyard")]
    target.decisions = scripted(targets=[pays])

    res = apply_action(state, new_turn(state, RoundContext(), warlord), DestroyAction(target_player=2, city_index=0))
    assert res.ok
    assert (castle in target.hand) is in_hand
    assert target.gold == (2 if pays else 3)
    assert (castle in state.discard_pile) is not in_hand


def test_robbery_moves_all_gold_to_thief(catalog, scripted) -> None:
    state = _fresh(catalog)
    thief, victim = state.players[0], state.players[1]
    thief.character = catalog.character(2)
    thief.gold = 1
    victim.character = catalog.character(5)
    victim.gold = 5
    victim.decisions = scripted(income=["cards"], keep=[0])
    ctx = RoundContext(robbed=catalog.character(5))

    resolve_slot(state, ctx, 5)
    assert thief.gold == 6
    assert victim.gold == 0
    stolen = next(e for e in state.event_log if e["type"] == "gold_stolen")
    assert stolen["amount"] == 5


def test_killed_character_loses_turn(catalog, scripted) -> None:
    state = _fresh(catalog)
    victim = state.players[1]
    victim.character = catalog.character(5)
    victim.gold = 4
    victim.decisions = scripted(income=["gold"])
    ctx = RoundContext(killed=catalog.character(5), robbed=catalog.character(5))

    resolve_slot(state, ctx, 5)
    assert victim.gold == 4
    assert "character_killed" in _types(state)
    assert "turn_started" not in _types(state)
    assert "gold_stolen" not in _types(state)


def test_hospital_gives_killed_character_income_only(catalog, scripted) -> None:
    state = _fresh(catalog)
    victim = state.players[1]
    victim.character = catalog.character(6)
    victim.city = [_card(catalog, "Hospital")]
    victim.decisions = scripted(income=["gold"], actions=[BuildAction(hand_index=0)])
    victim.hand = [_card(catalog, "Tavern")]
    ctx = RoundContext(killed=catalog.character(6))

    resolve_slot(state, ctx, 6)
    assert victim.gold == 2
    assert len(victim.city) == 1
    assert "hospital_turn" in _types(state)
    assert "action" not in victim.decisions.asked


def test_killed_king_still_takes_crown(catalog) -> None:
    state = _fresh(catalog)
    for p in state.players:
        p.has_crown = p.number == 1
    king = state.players[1]
    king.character = catalog.character(4)
    resolve_slot(state, RoundContext(killed=catalog.character(4)), 4)
    assert king.has_crown
    assert not state.players[0].has_crown


def test_assassin_cannot_target_itself_or_out_of_range(catalog) -> None:
    state = _fresh(catalog)
    assassin = state.players[0]
    assassin.character = catalog.character(1)
    ctx = RoundContext()
    turn = new_turn(state, ctx, assassin)
    assert not apply_action(state, turn, KillAction(character_number=1)).ok
    assert not apply_action(state, turn, KillAction(character_number=9)).ok
    assert apply_action(state, turn, KillAction(character_number=4)).ok
    assert ctx.killed == catalog.character(4)


def test_swapping_twice_restores_hands(catalog) -> None:
    state = _fresh(catalog)
    magician, other = state.players[0], state.players[1]
    magician.character = catalog.character(3)
    magician.hand = [_card(catalog, "Temple")]
    other.hand = [_card(catalog, "Palace"), _card(catalog, "Castle")]
    before_mine, before_theirs = list(magician.hand), list(other.hand)
    turn = new_turn(state, RoundContext(), magician)

    assert apply_action(state, turn, SwapHandsAction(target_player=2)).ok
    assert magician.hand == before_theirs
    assert apply_action(state, turn, SwapHandsAction(target_player=2)).ok
    assert magician.hand == before_mine
    assert other.hand == before_theirs


def test_swap_with_self_is_rejected(catalog) -> None:
    state = _fresh(catalog)
    magician = state.players[0]
    magician.character = catalog.character(3)
    res = apply_action(state, new_turn(state, RoundContext(), magician), SwapHandsAction(target_player=1))
    assert not res.ok


def test_redraw_replaces_chosen_cards(catalog) -> None:
    state = _fresh(catalog)
    magician = state.players[0]
    magician.character = catalog.character(3)
    manor, temple, tavern = _card(catalog, "Manor"), _card(catalog, "Temple"), _card(catalog, "Tavern")
    castle, palace = _card(catalog, "Castle"), _card(catalog, "Palace")
    magician.hand = [manor, temple, tavern]
    state.draw_pile = [castle, palace]
    state.discard_pile = []

    res = apply_action(state, new_turn(state, RoundContext(), magician), RedrawAction(hand_indices=(0, 2)))
    assert res.ok
    assert magician.hand == [temple, castle, palace]
    assert state.discard_pile == [tavern, manor]


def test_redraw_with_empty_draw_pile_keeps_hand(catalog) -> None:
    state = _fresh(catalog)
    magician = state.players[0]
    magician.character = catalog.character(3)
    magician.hand = [_card(catalog, "Manor")]
    state.draw_pile = []
    apply_action(state, new_turn(state, RoundContext(), magician), RedrawAction(hand_indices=(0,)))
    assert magician.hand == [_card(catalog, "Manor")]


def test_laboratory_and_smithy_once_per_round(catalog) -> None:
    state = _fresh(catalog)
    p = state.players[0]
    p.city = [_card(catalog, "Laboratory"), _card(catalog, "Smithy")]
    p.hand = [_card(catalog, "Manor"), _card(catalog, "Temple")]
    p.gold = 4
    ctx = RoundContext()
    turn = new_turn(state, ctx, p)

    assert apply_action(state, turn, LaboratoryAction(hand_index=0)).ok
    assert p.gold == 5
    assert state.discard_pile[-1] == _card(catalog, "Manor")
    assert not apply_action(state, turn, LaboratoryAction(hand_index=0)).ok

    assert apply_action(state, turn, SmithyAction()).ok
    assert p.gold == 3
    assert len(p.hand) == 4
    assert not apply_action(state, new_turn(state, ctx, p), SmithyAction()).ok


def test_armory_is_consumed_with_its_target(catalog) -> None:
    state = _fresh(catalog)
    p, target = state.players[0], state.players[1]
    armory, castle = _card(catalog, "Armory"), _card(catalog, "Castle")
    p.city = [armory]
    target.city = [castle]

    res = apply_action(state, new_turn(state, RoundContext(), p), ArmoryAction(target_player=2, city_index=0))
    assert res.ok
    assert p.city == []
    assert target.city == []
    assert armory in state.discard_pile
    assert castle in state.discard_pile


def test_armory_cannot_touch_keep(catalog) -> None:
    state = _fresh(catalog)
    p, target = state.players[0], state.players[1]
    p.city = [_card(catalog, "Armory")]
    target.city = [_card(catalog, "Keep")]
    res = apply_action(state, new_turn(state, RoundContext(), p), ArmoryAction(target_player=2, city_index=0))
    assert not res.ok
    assert len(p.city) == 1


def test_poor_house_and_park_fire_at_end_of_turn(catalog) -> None:
    state = _fresh(catalog)
    p = state.players[0]
    p.city = [_card(catalog, "Poor House"), _card(catalog, "Park")]
    end_of_turn(state, p)
    assert p.gold == 1
    assert len(p.hand) == 2


def test_observatory_draws_three_and_returns_the_rest(catalog, scripted) -> None:
    state = _fresh(catalog)
    p = state.players[0]
    p.city = [_card(catalog, "Observatory")]
    p.decisions = scripted(keep=[2])
    a, b, c, d = (_card(catalog, n) for n in ("Manor", "Temple", "Tavern", "Prison"))
    state.draw_pile = [a, b, c, d]

    draw_and_keep(state, p)
    assert p.hand == [c]
    assert state.draw_pile == [d, a, b]


def test_library_keeps_every_drawn_card(catalog) -> None:
    state = _fresh(catalog)
    p = state.players[0]
    p.city = [_card(catalog, "Library")]
    a, b, c = (_card(catalog, n) for n in ("Manor", "Temple", "Tavern"))
    state.draw_pile = [a, b, c]

    draw_and_keep(state, p)
    assert p.hand == [a, b]
    assert state.draw_pile == [c]


def test_library_with_observatory_keeps_one_of_three(catalog, scripted) -> None:
    state = _fresh(catalog)
    p = state.players[0]
    p.city = [_card(catalog, "Library"), _card(catalog, "Observatory")]
    p.decisions = scripted(keep=[1])
    a, b, c = (_card(catalog, n) for n in ("Manor", "Temple", "Tavern"))
    state.draw_pile = [a, b, c]

    draw_and_keep(state, p)
    assert p.hand == [b]
    assert state.draw_pile == [a, c]
    assert p.decisions.asked == ["keep"]


def test_income_bonus_counts_colors_and_school_of_magic(catalog) -> None:
    state = _fresh(catalog)
    p = state.players[0]
    p.character = catalog.character(4)
    p.city = [_card(catalog, "Manor"), _card(catalog, "Castle"), _card(catalog, "Temple")]
    assert income_bonus(p) == 2
    p.city.append(_card(catalog, "School of Magic"))
    assert income_bonus(p) == 3

    merchant = state.players[1]
    merchant.character = catalog.character(6)
    merchant.city = [_card(catalog, "Market")]
    assert income_bonus(merchant) == 2


def test_color_income_starts_in_round_two(catalog) -> None:
    state = _fresh(catalog)
    p = state.players[0]
    p.character = catalog.character(5)
    p.city = [_card(catalog, "Temple")]
    start_of_turn(state, new_turn(state, RoundContext(), p))
    assert p.gold == 0
    state.round = 2
    start_of_turn(state, new_turn(state, RoundContext(), p))
    assert p.gold == 1


def test_throne_room_pays_after_the_draft(catalog) -> None:
    state = _fresh(catalog)
    p = state.players[2]
    p.city = [_card(catalog, "Throne Room")]
    run_draft(state)
    assert p.gold == 1


def test_museum_stores_a_card_when_built(catalog, scripted) -> None:
    state = _fresh(catalog)
    p = state.players[0]
    p.gold = 4
    museum, temple = _card(catalog, "Museum"), _card(catalog, "Temple")
    p.hand = [museum, temple]
    p.decisions = scripted(targets=[0])

    assert apply_action(state, new_turn(state, RoundContext(), p), BuildAction(hand_index=0)).ok
    assert p.hand == []
    assert state.museum_storage[p.number] == [temple]


def test_reaching_city_goal_is_recorded(catalog) -> None:
    state = _fresh(catalog)
    p = state.players[0]
    names = ["Manor", "Castle", "Palace", "Temple", "Church", "Monastery", "Tavern"]
    p.city = [_card(catalog, n) for n in names]
    p.hand = [_card(catalog, "Market")]
    p.gold = 2
    assert apply_action(state, new_turn(state, RoundContext(), p), BuildAction(hand_index=0)).ok
    assert state.completed_by == [1]
    assert "city_completed" in _types(state)


def test_ended_turn_rejects_further_actions(catalog) -> None:
    state = _fresh(catalog)
    p = state.players[0]
    turn = new_turn(state, RoundContext(), p)
    assert apply_action(state, turn, EndTurnAction()).ok
    assert not apply_action(state, turn, EndTurnAction()).ok


class _Broken:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise RuntimeError("decision source exploded")

        return fail


def test_error_in_one_slot_does_not_stop_the_round(catalog, scripted) -> None:
    state = _fresh(catalog)
    broken, fine = state.players[0], state.players[1]
    broken.character = catalog.character(3)
    broken.decisions = _Broken()
    fine.character = catalog.character(5)
    fine.decisions = scripted(income=["gold"])

    run_turns(state, RoundContext())
    errors = [e for e in state.event_log if e["type"] == "slot_error"]
    assert [e["number"] for e in errors] == [3]
    assert fine.gold == 2


def test_fatal_error_ends_session_and_still_scores(catalog) -> None:
    state = _fresh(catalog)
    state.players[0].decisions = _Broken()
    result = GameSession(state).run()
    assert result.fatal_error == "decision source exploded"
    assert state.ended
    assert len(result.scores) == 4
    assert "fatal_error" in _types(state)


def test_session_stops_at_round_limit(catalog) -> None:
    state = new_game(catalog, 4, seed=11, config=GameConfig(max_rounds=2))
    result = GameSession(state).run()
    assert result.rounds <= 2
    assert state.ended
