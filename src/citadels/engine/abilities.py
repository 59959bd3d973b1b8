from __future__ import annotations

from .actions import TargetKind
from .decisions import Decision
from .state import ActionResult, GameState, Participant, RoundContext, TurnContext, draw_cards, emit, give_gold
from .types import INCOME_COLORS, INCOME_FLAT_BONUS, Color

# Inclusive character-number ranges each targeting role may aim at.
TARGET_RANGES: dict[TargetKind, tuple[int, int]] = {
    "kill": (2, 8),
    "rob": (3, 8),
}


def _reject(message: str) -> ActionResult:
    return ActionResult(ok=False, events=[], error=message)


def valid_targets(kind: TargetKind, own_number: int) -> list[int]:
    low, high = TARGET_RANGES[kind]
    return [n for n in range(low, high + 1) if n != own_number]


def color_count(player: Participant, color: Color) -> int:
    """Districts of `color` for income, counting a School of Magic once more."""
    count = sum(1 for c in player.city if c.color == color)
    if player.has("school_of_magic"):
        count += 1
    return count


def income_bonus(player: Participant) -> int:
    if player.character is None:
        return 0
    color = INCOME_COLORS.get(player.character.name)
    if color is None:
        return 0
    return color_count(player, color) + INCOME_FLAT_BONUS.get(player.character.name, 0)


# -------- Kill / rob --------


def set_kill_target(state: GameState, ctx: RoundContext, player: Participant, number: int) -> ActionResult:
    own = player.character.number if player.character is not None else 0
    if number not in valid_targets("kill", own):
        low, high = TARGET_RANGES["kill"]
        return _reject(f"Invalid character number. Choose between {low} and {high}.")
    mark = len(state.event_log)
    ctx.killed = state.catalog.character(number)
    emit(state, "kill_target_set", player=player.number, number=number)
    return ActionResult(ok=True, events=state.event_log[mark:])


def set_rob_target(state: GameState, ctx: RoundContext, player: Participant, number: int) -> ActionResult:
    own = player.character.number if player.character is not None else 0
    if number not in valid_targets("rob", own):
        low, high = TARGET_RANGES["rob"]
        return _reject(f"Invalid character number. Choose between {low} and {high}.")
    mark = len(state.event_log)
    ctx.robbed = state.catalog.character(number)
    emit(state, "rob_target_set", player=player.number, number=number)
    return ActionResult(ok=True, events=state.event_log[mark:])


def _ask_target(state: GameState, player: Participant, kind: TargetKind) -> int | None:
    if player.decisions is None:
        return None
    decision: Decision[object] = player.decisions.choose_ability_target(state, player, kind)
    if not decision.ok or not isinstance(decision.value, int):
        emit(state, "decision_fallback", player=player.number, choice=kind, reason=decision.reason)
        return None
    return decision.value


def start_of_turn(state: GameState, turn: TurnContext) -> None:
    """Character power that fires automatically when the turn opens."""
    player = turn.player
    character = player.character
    if character is None:
        return
    power = character.power

    if power == "kill":
        number = _ask_target(state, player, "kill")
        if number is not None and not set_kill_target(state, turn.round, player, number).ok:
            emit(state, "no_kill", player=player.number)
    elif power == "rob":
        number = _ask_target(state, player, "rob")
        if number is not None and not set_rob_target(state, turn.round, player, number).ok:
            emit(state, "no_robbery", player=player.number)
    elif power == "build":
        drawn = draw_cards(state, state.config.architect_extra_draw)
        player.hand.extend(drawn)
        emit(state, "architect_draw", player=player.number, drawn=len(drawn))

    if state.round > 1:
        give_gold(state, player, income_bonus(player), "character_income")


# -------- Magician --------


def swap_hands(state: GameState, turn: TurnContext, target_player: int) -> ActionResult:
    player = turn.player
    if player.character is None or player.character.power != "magic":
        return _reject("Only the Magician can swap hands.")
    if target_player == player.number or not state.has_player(target_player):
        return _reject("Invalid player number or cannot swap with yourself.")
    target = state.player(target_player)
    mark = len(state.event_log)
    player.hand, target.hand = target.hand, player.hand
    emit(state, "hands_swapped", player=player.number, target=target.number)
    return ActionResult(ok=True, events=state.event_log[mark:])


def redraw(state: GameState, turn: TurnContext, hand_indices: tuple[int, ...]) -> ActionResult:
    player = turn.player
    if player.character is None or player.character.power != "magic":
        return _reject("Only the Magician can redraw cards.")
    indices = sorted({i for i in hand_indices if 0 <= i < len(player.hand)}, reverse=True)
    if not indices:
        return _reject("Invalid card number.")
    mark = len(state.event_log)
    replaced = 0
    for index in indices:
        if not state.draw_pile:
            break
        state.discard_pile.append(player.hand.pop(index))
        player.hand.extend(draw_cards(state, 1))
        replaced += 1
    emit(state, "cards_redrawn", player=player.number, count=replaced)
    return ActionResult(ok=True, events=state.event_log[mark:])


# -------- Warlord --------


def destroy_cost(target: Participant, city_index: int) -> int:
    card = target.city[city_index]
    cost = max(0, card.cost - 1)
    if target.has("great_wall"):
        cost += 1
    return cost


def destroy(state: GameState, turn: TurnContext, target_player: int, city_index: int) -> ActionResult:
    player = turn.player
    if player.character is None or not player.character.can_destroy:
        return _reject("Only the Warlord can destroy districts.")
    if target_player == player.number or not state.has_player(target_player):
        return _reject("Invalid player number or cannot destroy your own districts.")
    target = state.player(target_player)
    if city_index < 0 or city_index >= len(target.city):
        return _reject("Invalid district number.")
    victim = target.city[city_index]
    if victim.power == "keep":
        return _reject(f"{victim.name} cannot be destroyed by the Warlord.")
    cost = destroy_cost(target, city_index)
    if player.gold < cost:
        return _reject("Not enough gold to destroy this district.")

    mark = len(state.event_log)
    player.gold -= cost
    target.city.pop(city_index)
    emit(state, "district_destroyed", player=player.number, target=target.number, name=victim.name, cost=cost)

    if _offer_graveyard(state, target):
        target.gold -= 1
        target.hand.append(victim)
        emit(state, "graveyard_recovered", player=target.number, name=victim.name)
    else:
        state.discard_pile.append(victim)
    return ActionResult(ok=True, events=state.event_log[mark:])


def _offer_graveyard(state: GameState, target: Participant) -> bool:
    if not target.has("graveyard") or target.gold < 1:
        return False
    if target.character is not None and target.character.can_destroy:
        return False
    if target.decisions is None:
        return False
    decision = target.decisions.choose_ability_target(state, target, "graveyard")
    return decision.ok and decision.value is True
