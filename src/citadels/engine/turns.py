from __future__ import annotations

import traceback
from typing import Callable

from . import abilities, city
from .actions import (
    Action,
    ArmoryAction,
    BuildAction,
    DestroyAction,
    EndTurnAction,
    KillAction,
    LaboratoryAction,
    MuseumAction,
    RedrawAction,
    SmithyAction,
    StealAction,
    SwapHandsAction,
)
from .decisions import Decision
from .state import ActionResult, GameState, Participant, RoundContext, TurnContext, emit, set_crown

SLOTS = range(1, 9)

ActionHandler = Callable[[GameState, TurnContext, Action], ActionResult]


def _build(state: GameState, turn: TurnContext, action: Action) -> ActionResult:
    assert isinstance(action, BuildAction)
    return city.build(state, turn, action.hand_index)


def _swap(state: GameState, turn: TurnContext, action: Action) -> ActionResult:
    assert isinstance(action, SwapHandsAction)
    return abilities.swap_hands(state, turn, action.target_player)


def _redraw(state: GameState, turn: TurnContext, action: Action) -> ActionResult:
    assert isinstance(action, RedrawAction)
    return abilities.redraw(state, turn, action.hand_indices)


def _kill(state: GameState, turn: TurnContext, action: Action) -> ActionResult:
    assert isinstance(action, KillAction)
    if turn.player.character is None or turn.player.character.power != "kill":
        return ActionResult(ok=False, events=[], error="Only the Assassin can kill characters.")
    return abilities.set_kill_target(state, turn.round, turn.player, action.character_number)


def _steal(state: GameState, turn: TurnContext, action: Action) -> ActionResult:
    assert isinstance(action, StealAction)
    if turn.player.character is None or turn.player.character.power != "rob":
        return ActionResult(ok=False, events=[], error="Only the Thief can steal from characters.")
    return abilities.set_rob_target(state, turn.round, turn.player, action.character_number)


def _destroy(state: GameState, turn: TurnContext, action: Action) -> ActionResult:
    assert isinstance(action, DestroyAction)
    return abilities.destroy(state, turn, action.target_player, action.city_index)


def _museum(state: GameState, turn: TurnContext, action: Action) -> ActionResult:
    assert isinstance(action, MuseumAction)
    return city.store_in_museum(state, turn.player, action.hand_index)


def _armory(state: GameState, turn: TurnContext, action: Action) -> ActionResult:
    assert isinstance(action, ArmoryAction)
    return city.use_armory(state, turn, action.target_player, action.city_index)


def _laboratory(state: GameState, turn: TurnContext, action: Action) -> ActionResult:
    assert isinstance(action, LaboratoryAction)
    return city.use_laboratory(state, turn, action.hand_index)


def _smithy(state: GameState, turn: TurnContext, action: Action) -> ActionResult:
    return city.use_smithy(state, turn)


def _end_turn(state: GameState, turn: TurnContext, action: Action) -> ActionResult:
    turn.ended = True
    return ActionResult(ok=True, events=[emit(state, "turn_ended", player=turn.player.number)])


ACTION_HANDLERS: dict[type, ActionHandler] = {
    BuildAction: _build,
    SwapHandsAction: _swap,
    RedrawAction: _redraw,
    KillAction: _kill,
    StealAction: _steal,
    DestroyAction: _destroy,
    MuseumAction: _museum,
    ArmoryAction: _armory,
    LaboratoryAction: _laboratory,
    SmithyAction: _smithy,
    EndTurnAction: _end_turn,
}


def apply_action(state: GameState, turn: TurnContext, action: Action) -> ActionResult:
    """Apply one in-turn action. Rejected actions leave the state untouched."""
    if turn.ended:
        return ActionResult(ok=False, events=[], error="Turn already ended.")
    if turn.restricted and not isinstance(action, EndTurnAction):
        return ActionResult(ok=False, events=[], error="You may only collect income this turn.")
    handler = ACTION_HANDLERS.get(type(action))
    if handler is None:
        return ActionResult(ok=False, events=[], error="Unknown action.")
    return handler(state, turn, action)


def new_turn(state: GameState, ctx: RoundContext, player: Participant) -> TurnContext:
    allowed = state.config.max_builds
    if player.character is not None and player.character.power == "build":
        allowed = state.config.architect_max_builds
    return TurnContext(player=player, round=ctx, builds_allowed=allowed)


def play_full_turn(state: GameState, ctx: RoundContext, player: Participant) -> TurnContext:
    turn = new_turn(state, ctx, player)
    generation = state.generation
    emit(state, "turn_started", player=player.number, character=player.character.name if player.character else None)

    abilities.start_of_turn(state, turn)
    city.take_income(state, player)

    for _ in range(state.config.max_actions_per_turn):
        if turn.ended or player.decisions is None or state.generation != generation:
            break
        decision: Decision[Action] = player.decisions.choose_action(state, turn)
        if not decision.ok:
            emit(state, "decision_fallback", player=player.number, choice="action", reason=decision.reason)
            break
        assert decision.value is not None
        result = apply_action(state, turn, decision.value)
        if not result.ok:
            emit(state, "action_rejected", player=player.number, error=result.error)
            if not player.is_human:
                break
        if turn.ended:
            break

    turn.ended = True
    if state.generation == generation:
        city.end_of_turn(state, player)
    return turn


def play_restricted_turn(state: GameState, ctx: RoundContext, player: Participant) -> TurnContext:
    """Killed, but a Hospital still pays out the basic income."""
    turn = new_turn(state, ctx, player)
    turn.restricted = True
    emit(state, "hospital_turn", player=player.number)
    city.take_income(state, player)
    turn.ended = True
    return turn


def resolve_slot(state: GameState, ctx: RoundContext, number: int) -> None:
    player = state.holder_of_number(number)
    if player is None:
        emit(state, "slot_empty", number=number, character=state.catalog.character(number).name)
        return
    assert player.character is not None
    emit(state, "character_revealed", number=number, character=player.character.name, player=player.number)

    if player.character.power == "crown":
        set_crown(state, player)

    if ctx.killed is not None and player.character.number == ctx.killed.number:
        emit(state, "character_killed", player=player.number, character=player.character.name)
        if player.has("hospital"):
            play_restricted_turn(state, ctx, player)
        return

    if ctx.robbed is not None and player.character.number == ctx.robbed.number:
        thief = next((p for p in state.players if p.character is not None and p.character.power == "rob"), None)
        if thief is not None and thief is not player:
            stolen = player.gold
            player.gold = 0
            thief.gold += stolen
            emit(state, "gold_stolen", player=player.number, thief=thief.number, amount=stolen)

    play_full_turn(state, ctx, player)


def run_turns(state: GameState, ctx: RoundContext) -> None:
    """Resolve every character slot in number order.

    A failure inside one slot is logged and the next slot still runs.
    """
    generation = state.generation
    for number in SLOTS:
        if state.generation != generation:
            emit(state, "round_abandoned", number=number)
            return
        try:
            resolve_slot(state, ctx, number)
        except Exception as e:
            emit(
                state,
                "slot_error",
                number=number,
                error=str(e) or type(e).__name__,
                traceback=traceback.format_exc(limit=4),
            )
