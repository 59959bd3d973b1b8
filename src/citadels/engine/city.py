from __future__ import annotations

from .actions import IncomeChoice
from .decisions import Decision
from .state import ActionResult, GameState, Participant, TurnContext, draw_cards, emit, give_gold
from .types import DistrictCard

SMITHY_COST = 2
SMITHY_DRAW = 3
OBSERVATORY_DRAW = 3
PARK_DRAW = 2


def _reject(message: str) -> ActionResult:
    return ActionResult(ok=False, events=[], error=message)


def _accept(state: GameState, mark: int) -> ActionResult:
    return ActionResult(ok=True, events=state.event_log[mark:])


def build_problem(player: Participant, card: DistrictCard) -> str | None:
    """Why `card` cannot go into the player's city right now, or None."""
    if player.gold < card.cost:
        return "Not enough gold to build this district."
    if player.has_built(card.name):
        return f"You already have a {card.name} in your city."
    return None


# -------- Income --------


def take_income(state: GameState, player: Participant) -> IncomeChoice:
    if player.decisions is not None:
        decision = player.decisions.choose_income(state, player)
    else:
        decision = Decision.fail("absent")
    if not decision.ok:
        emit(state, "decision_fallback", player=player.number, choice="income", reason=decision.reason)
    choice: IncomeChoice = decision.or_default("gold")
    if choice not in ("gold", "cards"):
        choice = "gold"

    if choice == "gold":
        give_gold(state, player, state.config.income_gold, "income")
    else:
        draw_and_keep(state, player)
    return choice


def draw_and_keep(state: GameState, player: Participant) -> list[DistrictCard]:
    """Draw the income cards and keep one of them.

    A Library keeps both cards of the normal draw. With an Observatory the draw is three
    cards and only one is kept, Library or not.
    """
    observatory = player.has("observatory")
    count = OBSERVATORY_DRAW if observatory else state.config.income_draw
    drawn = draw_cards(state, count)
    if not drawn:
        emit(state, "draw_pile_empty", player=player.number)
        return []

    if player.has("library") and not observatory:
        player.hand.extend(drawn)
        emit(state, "cards_kept", player=player.number, count=len(drawn), reason="library")
        return drawn

    keep = 0
    if len(drawn) > 1 and player.decisions is not None:
        decision = player.decisions.choose_card_to_keep(state, player, list(drawn))
        if decision.ok and isinstance(decision.value, int) and 0 <= decision.value < len(drawn):
            keep = decision.value
        else:
            emit(state, "decision_fallback", player=player.number, choice="keep", reason=decision.reason)

    kept = drawn[keep]
    player.hand.append(kept)
    rest = [c for i, c in enumerate(drawn) if i != keep]
    state.draw_pile.extend(rest)
    emit(state, "cards_kept", player=player.number, count=1, returned=len(rest))
    return [kept]


# -------- Building --------


def build(state: GameState, turn: TurnContext, hand_index: int) -> ActionResult:
    player = turn.player
    if turn.restricted:
        return _reject("You cannot build this turn.")
    if turn.builds_made >= turn.builds_allowed:
        return _reject(f"You can only build {turn.builds_allowed} district(s) this turn.")
    if hand_index < 0 or hand_index >= len(player.hand):
        return _reject("Invalid card number.")
    card = player.hand[hand_index]
    problem = build_problem(player, card)
    if problem is not None:
        return _reject(problem)

    mark = len(state.event_log)
    player.gold -= card.cost
    player.hand.pop(hand_index)
    player.city.append(card)
    turn.builds_made += 1
    emit(state, "district_built", player=player.number, name=card.name, color=card.color, cost=card.cost)

    if card.power == "museum":
        _museum_on_build(state, player)

    if len(player.city) >= state.config.city_goal and player.number not in state.completed_by:
        state.completed_by.append(player.number)
        emit(state, "city_completed", player=player.number, districts=len(player.city))
    return _accept(state, mark)


def _museum_on_build(state: GameState, player: Participant) -> None:
    if not player.hand:
        emit(state, "museum_nothing_to_store", player=player.number)
        return
    if player.decisions is None:
        return
    decision = player.decisions.choose_ability_target(state, player, "museum")
    if not decision.ok or not isinstance(decision.value, int):
        emit(state, "museum_declined", player=player.number, reason=decision.reason)
        return
    store_in_museum(state, player, decision.value)


def store_in_museum(state: GameState, player: Participant, hand_index: int) -> ActionResult:
    if not player.has("museum"):
        return _reject("You don't have the Museum in your city.")
    if hand_index < 0 or hand_index >= len(player.hand):
        return _reject("Invalid card number.")
    mark = len(state.event_log)
    card = player.hand.pop(hand_index)
    state.museum_storage.setdefault(player.number, []).append(card)
    emit(state, "museum_stored", player=player.number, name=card.name)
    return _accept(state, mark)


# -------- Purple actions --------


def use_laboratory(state: GameState, turn: TurnContext, hand_index: int) -> ActionResult:
    player = turn.player
    if not player.has("laboratory"):
        return _reject("You don't have the Laboratory.")
    if player.number in turn.round.laboratory_used:
        return _reject("You have already used the Laboratory this round.")
    if hand_index < 0 or hand_index >= len(player.hand):
        return _reject("Invalid card number.")
    mark = len(state.event_log)
    card = player.hand.pop(hand_index)
    state.discard_pile.append(card)
    turn.round.laboratory_used.add(player.number)
    emit(state, "laboratory_used", player=player.number, name=card.name)
    give_gold(state, player, 1, "laboratory")
    return _accept(state, mark)


def use_smithy(state: GameState, turn: TurnContext) -> ActionResult:
    player = turn.player
    if not player.has("smithy"):
        return _reject("You don't have the Smithy.")
    if player.number in turn.round.smithy_used:
        return _reject("You have already used the Smithy this round.")
    if player.gold < SMITHY_COST:
        return _reject(f"Not enough gold for the Smithy (need {SMITHY_COST}).")
    mark = len(state.event_log)
    player.gold -= SMITHY_COST
    drawn = draw_cards(state, SMITHY_DRAW)
    player.hand.extend(drawn)
    turn.round.smithy_used.add(player.number)
    emit(state, "smithy_used", player=player.number, drawn=len(drawn))
    return _accept(state, mark)


def use_armory(state: GameState, turn: TurnContext, target_player: int, city_index: int) -> ActionResult:
    player = turn.player
    armory = next((c for c in player.city if c.power == "armory"), None)
    if armory is None:
        return _reject("You don't have the Armory in your city.")
    if target_player == player.number or not state.has_player(target_player):
        return _reject("Invalid player number or cannot destroy your own districts.")
    target = state.player(target_player)
    if city_index < 0 or city_index >= len(target.city):
        return _reject("Invalid district number.")
    victim = target.city[city_index]
    if victim.power == "keep":
        return _reject(f"{victim.name} cannot be destroyed.")

    mark = len(state.event_log)
    player.city.remove(armory)
    state.discard_pile.append(armory)
    target.city.pop(city_index)
    state.discard_pile.append(victim)
    emit(state, "armory_used", player=player.number, target=target.number, name=victim.name)
    return _accept(state, mark)


# -------- End of turn --------


def end_of_turn(state: GameState, player: Participant) -> None:
    if player.has("poor_house") and player.gold == 0:
        give_gold(state, player, 1, "poor_house")
    if player.has("park") and not player.hand:
        drawn = draw_cards(state, PARK_DRAW)
        player.hand.extend(drawn)
        emit(state, "park_draw", player=player.number, drawn=len(drawn))
