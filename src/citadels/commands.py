from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from citadels.engine.actions import (
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
from citadels.engine.state import GameState, Participant, TurnContext
from citadels.services.saves import SaveError, SaveService


class CommandError(ValueError):
    """Bad verb or argument; nothing was changed."""


@dataclass
class CommandResult:
    lines: list[str] = field(default_factory=list)
    # An in-turn action for the engine to apply.
    action: Action | None = None
    loaded: bool = False


HELP_LINES = [
    "Available commands:",
    "info <H|name> : show information about a card in your hand or any card by name",
    "t : show whose turn it is",
    "all : show everyone's gold, hand size and city",
    "citadel/list/city [p] : show the districts built by a player",
    "hand : show your hand and gold",
    "gold [p] : show the gold of a player",
    "build <n> : build the n-th card of your hand",
    "action : show the special actions available to your character and city",
    "action <sub> ... : use a character or district power",
    "save <file> : save the game",
    "load <file> : load a saved game",
    "end : end your turn",
    "debug : toggle showing the computer players' hands",
]

ACTION_LINES: dict[str, str] = {
    "swap": "action swap <p> : (Magician) exchange your hand with player p",
    "redraw": "action redraw <n,n,...> : (Magician) discard those cards and draw as many",
    "kill": "action kill <n> : (Assassin) kill character number n",
    "steal": "action steal <n> : (Thief) rob character number n",
    "destroy": "action destroy <p> <n> : (Warlord) destroy the n-th district of player p",
    "museum": "action museum <n> : (Museum) place the n-th card of your hand under the Museum",
    "armory": "action armory <p> <n> : (Armory) sacrifice the Armory to destroy a district",
    "laboratory": "action laboratory <n> : (Laboratory) discard a card for 1 gold",
    "smithy": "action smithy : (Smithy) pay 2 gold to draw 3 cards",
}


def _card_number(raw: str, what: str = "card") -> int:
    """1-based number from the command line, returned 0-based."""
    try:
        n = int(raw)
    except ValueError:
        raise CommandError(f"Invalid {what} number: {raw}") from None
    if n < 1:
        raise CommandError(f"Invalid {what} number: {raw}")
    return n - 1


def _arg(args: list[str], i: int, usage: str) -> str:
    if len(args) <= i:
        raise CommandError(f"Usage: {usage}")
    return args[i]


class CommandInterpreter:
    """Turns one line of console input into output lines or an engine action.

    Query verbs only read the state. Action verbs build an `Action` and leave it to
    the engine to accept or reject it.
    """

    def __init__(self, state: GameState, saves: SaveService | None = None) -> None:
        self.state = state
        self.saves = saves

    # -------- helpers --------

    def viewer(self, turn: TurnContext | None) -> Participant:
        if turn is not None and turn.player.is_human:
            return turn.player
        for p in self.state.players:
            if p.is_human:
                return p
        return self.state.players[0]

    def player_arg(self, raw: str) -> int:
        try:
            n = int(raw)
        except ValueError:
            raise CommandError(f"Invalid player number: {raw}") from None
        if not self.state.has_player(n):
            raise CommandError(f"Invalid player number: {raw}")
        return n

    def _player_or_viewer(self, args: list[str], turn: TurnContext | None) -> Participant:
        if args:
            return self.state.player(self.player_arg(args[0]))
        return self.viewer(turn)

    @staticmethod
    def _require_turn(turn: TurnContext | None) -> TurnContext:
        if turn is None or not turn.player.is_human:
            raise CommandError("You can only do that during your turn.")
        return turn

    # -------- entry point --------

    def execute(self, line: str, turn: TurnContext | None = None) -> CommandResult:
        parts = line.strip().split()
        if not parts:
            raise CommandError("Type 'help' for available commands.")
        verb, args = parts[0].lower(), parts[1:]
        handler = VERBS.get(verb)
        if handler is None:
            raise CommandError("Unknown command. Type 'help' for available commands.")
        return handler(self, args, turn)


# -------- query verbs --------


def _hand(interp: CommandInterpreter, args: list[str], turn: TurnContext | None) -> CommandResult:
    p = interp.viewer(turn)
    lines = [f"You have {p.gold} gold. Cards in hand:"]
    lines += [f"  {i}. {card}" for i, card in enumerate(p.hand, start=1)]
    return CommandResult(lines=lines)


def _gold(interp: CommandInterpreter, args: list[str], turn: TurnContext | None) -> CommandResult:
    p = interp._player_or_viewer(args, turn)
    return CommandResult(lines=[f"Player {p.number} has {p.gold} gold."])


def _city(interp: CommandInterpreter, args: list[str], turn: TurnContext | None) -> CommandResult:
    p = interp._player_or_viewer(args, turn)
    lines = [f"Player {p.number} has built:"]
    lines += [f"  {i}. {card.name} [{card.color}{card.cost}]" for i, card in enumerate(p.city, start=1)]
    stored = interp.state.museum_storage.get(p.number, [])
    if stored:
        lines.append(f"  ({len(stored)} card(s) under the Museum)")
    return CommandResult(lines=lines)


def _all(interp: CommandInterpreter, args: list[str], turn: TurnContext | None) -> CommandResult:
    state = interp.state
    viewer = interp.viewer(turn)
    lines: list[str] = []
    for p in state.players:
        you = " (you)" if p is viewer else ""
        crown = " [crown]" if p.has_crown else ""
        city = ", ".join(f"{c.name} [{c.color}{c.cost}]" for c in p.city)
        lines.append(f"Player {p.number}{you}{crown}: cards={len(p.hand)} gold={p.gold} city={city}")
        if state.debug_mode and p is not viewer:
            lines.append("  hand: " + ", ".join(c.name for c in p.hand))
    return CommandResult(lines=lines)


def _info(interp: CommandInterpreter, args: list[str], turn: TurnContext | None) -> CommandResult:
    if not args:
        raise CommandError("Usage: info <H|name>")
    catalog = interp.state.catalog
    raw = " ".join(args)
    if raw.isdigit():
        hand = interp.viewer(turn).hand
        index = _card_number(raw)
        if index >= len(hand):
            raise CommandError(f"Invalid card number: {raw}")
        card = hand[index]
        return CommandResult(lines=[card.ability or f"{card.name} has no special ability."])
    character = catalog.character_named(raw)
    if character is not None:
        return CommandResult(lines=[str(character)])
    district = catalog.district_named(raw)
    if district is not None:
        return CommandResult(lines=[district.ability or f"{district.name} has no special ability."])
    raise CommandError(f"No card named {raw!r}.")


def _help(interp: CommandInterpreter, args: list[str], turn: TurnContext | None) -> CommandResult:
    return CommandResult(lines=list(HELP_LINES))


def _debug(interp: CommandInterpreter, args: list[str], turn: TurnContext | None) -> CommandResult:
    interp.state.debug_mode = not interp.state.debug_mode
    return CommandResult(lines=[f"Debug mode is now {'ON' if interp.state.debug_mode else 'OFF'}"])


def _whose_turn(interp: CommandInterpreter, args: list[str], turn: TurnContext | None) -> CommandResult:
    if turn is not None and turn.player.is_human:
        return CommandResult(lines=["Your turn."])
    return CommandResult(lines=["It is not your turn."])


# -------- persistence verbs --------


def _save(interp: CommandInterpreter, args: list[str], turn: TurnContext | None) -> CommandResult:
    path = Path(_arg(args, 0, "save <file>"))
    if interp.saves is None:
        raise CommandError("Saving is not available.")
    try:
        written = interp.saves.save(interp.state, path)
    except SaveError as e:
        raise CommandError(str(e)) from e
    return CommandResult(lines=[f"Game saved to {written}."])


def _load(interp: CommandInterpreter, args: list[str], turn: TurnContext | None) -> CommandResult:
    path = Path(_arg(args, 0, "load <file>"))
    if interp.saves is None:
        raise CommandError("Loading is not available.")
    try:
        interp.saves.load_into(interp.state, path)
    except SaveError as e:
        raise CommandError(f"Error loading game: {e}") from e
    # The restored game starts its round afresh; whatever turn was running is over.
    action = EndTurnAction() if turn is not None else None
    return CommandResult(lines=[f"Game loaded from {path}."], action=action, loaded=True)


# -------- turn verbs --------


def _build(interp: CommandInterpreter, args: list[str], turn: TurnContext | None) -> CommandResult:
    interp._require_turn(turn)
    index = _card_number(_arg(args, 0, "build <n>"))
    return CommandResult(action=BuildAction(hand_index=index))


def _end(interp: CommandInterpreter, args: list[str], turn: TurnContext | None) -> CommandResult:
    interp._require_turn(turn)
    return CommandResult(lines=["You ended your turn."], action=EndTurnAction())


def _action(interp: CommandInterpreter, args: list[str], turn: TurnContext | None) -> CommandResult:
    current = interp._require_turn(turn)
    if not args:
        return CommandResult(lines=_available_actions(current))
    sub = args[0].lower()
    parser = ACTION_SUBVERBS.get(sub)
    if parser is None:
        lines = ["Unknown action command. Available actions:"] + _available_actions(current)
        raise CommandError("\n".join(lines))
    return CommandResult(action=parser(interp, args[1:]))


def _available_actions(turn: TurnContext) -> list[str]:
    player = turn.player
    power = player.character.power if player.character is not None else None
    keys: list[str] = []
    if power == "magic":
        keys += ["swap", "redraw"]
    if power == "kill":
        keys.append("kill")
    if power == "rob":
        keys.append("steal")
    if player.character is not None and player.character.can_destroy:
        keys.append("destroy")
    for district in ("museum", "armory", "laboratory", "smithy"):
        if player.has(district):  # type: ignore[arg-type]
            keys.append(district)
    if not keys:
        return ["You have no special actions this turn."]
    return [ACTION_LINES[k] for k in keys]


def _parse_swap(interp: CommandInterpreter, args: list[str]) -> Action:
    return SwapHandsAction(target_player=interp.player_arg(_arg(args, 0, "action swap <p>")))


def _parse_redraw(interp: CommandInterpreter, args: list[str]) -> Action:
    raw = ",".join(args)
    ids = [part for part in raw.split(",") if part.strip()]
    if not ids:
        raise CommandError("Usage: action redraw <n,n,...>")
    return RedrawAction(hand_indices=tuple(_card_number(part.strip()) for part in ids))


def _character_arg(args: list[str], usage: str) -> int:
    raw = _arg(args, 0, usage)
    try:
        return int(raw)
    except ValueError:
        raise CommandError(f"Invalid character number: {raw}") from None


def _parse_kill(interp: CommandInterpreter, args: list[str]) -> Action:
    return KillAction(character_number=_character_arg(args, "action kill <n>"))


def _parse_steal(interp: CommandInterpreter, args: list[str]) -> Action:
    return StealAction(character_number=_character_arg(args, "action steal <n>"))


def _parse_destroy(interp: CommandInterpreter, args: list[str]) -> Action:
    target = interp.player_arg(_arg(args, 0, "action destroy <p> <n>"))
    index = _card_number(_arg(args, 1, "action destroy <p> <n>"), "district")
    return DestroyAction(target_player=target, city_index=index)


def _parse_museum(interp: CommandInterpreter, args: list[str]) -> Action:
    return MuseumAction(hand_index=_card_number(_arg(args, 0, "action museum <n>")))


def _parse_armory(interp: CommandInterpreter, args: list[str]) -> Action:
    target = interp.player_arg(_arg(args, 0, "action armory <p> <n>"))
    index = _card_number(_arg(args, 1, "action armory <p> <n>"), "district")
    return ArmoryAction(target_player=target, city_index=index)


def _parse_laboratory(interp: CommandInterpreter, args: list[str]) -> Action:
    return LaboratoryAction(hand_index=_card_number(_arg(args, 0, "action laboratory <n>")))


def _parse_smithy(interp: CommandInterpreter, args: list[str]) -> Action:
    return SmithyAction()


CommandHandler = Callable[[CommandInterpreter, list[str], "TurnContext | None"], CommandResult]
ActionParser = Callable[[CommandInterpreter, list[str]], Action]

VERBS: dict[str, CommandHandler] = {
    "hand": _hand,
    "gold": _gold,
    "build": _build,
    "city": _city,
    "citadel": _city,
    "list": _city,
    "action": _action,
    "info": _info,
    "all": _all,
    "save": _save,
    "load": _load,
    "end": _end,
    "help": _help,
    "debug": _debug,
    "t": _whose_turn,
}

ACTION_SUBVERBS: dict[str, ActionParser] = {
    "swap": _parse_swap,
    "redraw": _parse_redraw,
    "kill": _parse_kill,
    "steal": _parse_steal,
    "destroy": _parse_destroy,
    "museum": _parse_museum,
    "armory": _parse_armory,
    "laboratory": _parse_laboratory,
    "smithy": _parse_smithy,
}
