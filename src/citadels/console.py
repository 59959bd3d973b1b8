from __future__ import annotations

from collections.abc import Sequence
from typing import Callable

from citadels.commands import CommandError, CommandInterpreter
from citadels.engine.actions import Action, EndTurnAction, IncomeChoice, TargetKind
from citadels.engine.abilities import TARGET_RANGES
from citadels.engine.decisions import Decision
from citadels.engine.state import Event, GameState, Participant, TurnContext
from citadels.engine.types import CharacterCard, DistrictCard
from citadels.services.saves import SaveService

MAX_ATTEMPTS = 3

ReadLine = Callable[[str], str]
WriteLine = Callable[[str], None]


class InputExhausted(RuntimeError):
    """The console ran out of input in the middle of a turn."""


def describe_event(event: Event) -> str | None:
    """Text for the console, or None for events that are only logged."""
    t = event.get("type")
    p = event.get("player")
    if t == "round_started":
        return f"\n======== ROUND {event.get('round')} ========"
    if t == "crown_assigned":
        return f"Player {p} starts with the crown."
    if t == "draft_started":
        return "Character selection: " + " -> ".join(f"Player {n}" for n in event.get("order", []))  # type: ignore[union-attr]
    if t == "character_removed_face_up":
        return f"{event.get('character')} was removed face up."
    if t == "character_removed_face_down":
        return "A mystery character was removed face down."
    if t == "character_chosen":
        return f"Player {p} chose a character."
    if t == "character_revealed":
        return f"{event.get('number')}: {event.get('character')} is Player {p}."
    if t == "slot_empty":
        return f"{event.get('number')}: No one is the {event.get('character')}."
    if t == "character_killed":
        return f"Player {p} was killed by the Assassin and loses the turn."
    if t == "gold_stolen":
        return f"The Thief (Player {event.get('thief')}) stole {event.get('amount')} gold from Player {p}."
    if t == "crown_moved":
        return f"Player {p} takes the crown."
    if t == "gold_gained":
        return f"Player {p} gains {event.get('amount')} gold ({event.get('reason')})."
    if t == "cards_kept":
        return f"Player {p} adds {event.get('count')} card(s) to their hand."
    if t == "district_built":
        return f"Player {p} built {event.get('name')} [{event.get('color')}{event.get('cost')}]."
    if t == "district_destroyed":
        return f"Player {p} destroyed {event.get('name')} of Player {event.get('target')} for {event.get('cost')} gold."
    if t == "graveyard_recovered":
        return f"Player {p} recovered {event.get('name')} with the Graveyard."
    if t == "hands_swapped":
        return f"Player {p} swapped hands with Player {event.get('target')}."
    if t == "cards_redrawn":
        return f"Player {p} redrew {event.get('count')} card(s)."
    if t in ("kill_target_set", "rob_target_set"):
        verb = "kill" if t == "kill_target_set" else "rob"
        return f"Player {p} chose to {verb} character {event.get('number')}."
    if t == "armory_used":
        return f"Player {p} sacrificed the Armory to destroy {event.get('name')} of Player {event.get('target')}."
    if t == "museum_stored":
        return f"Player {p} placed a card under the Museum."
    if t == "laboratory_used":
        return f"Player {p} discarded a card with the Laboratory."
    if t == "smithy_used":
        return f"Player {p} used the Smithy."
    if t == "city_completed":
        return f"Player {p} has completed their city!"
    if t == "action_rejected":
        return str(event.get("error"))
    if t == "slot_error":
        return f"Error during character {event.get('number')}'s turn: {event.get('error')}"
    if t == "fatal_error":
        return f"The game stopped: {event.get('error')}"
    if t == "final_score":
        return f"Player {p}: {event.get('total')} points ({event.get('bonus')} from purple districts)."
    if t == "winner":
        return "The game is a tie." if p is None else f"Player {p} wins!"
    return None


class ConsoleDecisions:
    """Decision source for the human seat, reading from a line-based console."""

    def __init__(
        self,
        read: ReadLine = input,
        write: WriteLine = print,
        saves: SaveService | None = None,
    ) -> None:
        self._read = read
        self._write = write
        self.saves = saves
        self.exhausted = False

    def show_event(self, event: Event) -> None:
        text = describe_event(event)
        if text is not None:
            self._write(text)

    def _ask(self, prompt: str) -> str | None:
        try:
            return self._read(prompt).strip()
        except EOFError:
            self.exhausted = True
            return None

    def _ask_until(self, prompt: str, parse: Callable[[str], object | None]) -> Decision[object]:
        for _ in range(MAX_ATTEMPTS):
            raw = self._ask(prompt)
            if raw is None:
                return Decision.fail("exhausted")
            value = parse(raw)
            if value is not None:
                return Decision.accept(value)
            self._write("Invalid choice, try again.")
        return Decision.fail("invalid")

    # -------- choices --------

    def choose_character(
        self, state: GameState, participant: Participant, pool: Sequence[CharacterCard]
    ) -> Decision[CharacterCard]:
        self._write("Choose your character. Available characters:")
        for c in pool:
            self._write(f"  {c}")

        def parse(raw: str) -> CharacterCard | None:
            key = raw.lower()
            for c in pool:
                if c.name.lower() == key or str(c.number) == key:
                    return c
            return None

        return self._ask_until("> ", parse)  # type: ignore[return-value]

    def choose_income(self, state: GameState, participant: Participant) -> Decision[IncomeChoice]:
        def parse(raw: str) -> IncomeChoice | None:
            key = raw.lower()
            if key in ("gold", "g"):
                return "gold"
            if key in ("cards", "card", "c", "draw"):
                return "cards"
            return None

        prompt = f"Collect {state.config.income_gold} gold or draw cards and pick one [gold/cards]: "
        return self._ask_until(prompt, parse)  # type: ignore[return-value]

    def choose_card_to_keep(
        self, state: GameState, participant: Participant, drawn: Sequence[DistrictCard]
    ) -> Decision[int]:
        self._write("Pick one of the following cards to keep:")
        for i, card in enumerate(drawn, start=1):
            self._write(f"  {i}. {card}")

        def parse(raw: str) -> int | None:
            if raw.isdigit() and 1 <= int(raw) <= len(drawn):
                return int(raw) - 1
            return None

        return self._ask_until("> ", parse)  # type: ignore[return-value]

    def choose_ability_target(
        self, state: GameState, participant: Participant, kind: TargetKind
    ) -> Decision[object]:
        if kind in ("kill", "rob"):
            low, high = TARGET_RANGES[kind]
            verb = "kill" if kind == "kill" else "steal from"
            own = participant.character.number if participant.character is not None else 0
            raw = self._ask(f"Who do you want to {verb}? Choose a character from {low}-{high}: ")
            if raw is None:
                return Decision.fail("exhausted")
            if raw.isdigit() and low <= int(raw) <= high and int(raw) != own:
                return Decision.accept(int(raw))
            self._write(f"Invalid choice, no one will be {'killed' if kind == 'kill' else 'robbed'} this round.")
            return Decision.fail("invalid")

        if kind == "museum":
            self._write("You may place a card from your hand under the Museum:")
            for i, card in enumerate(participant.hand, start=1):
                self._write(f"  {i}. {card}")
            raw = self._ask("Card number, or press enter to skip: ")
            if raw is None:
                return Decision.fail("exhausted")
            if not raw:
                return Decision.fail("declined")
            if raw.isdigit() and 1 <= int(raw) <= len(participant.hand):
                return Decision.accept(int(raw) - 1)
            return Decision.fail("invalid")

        if kind == "graveyard":
            last = state.event_log[-1] if state.event_log else {}
            name = last.get("name", "the district")
            raw = self._ask(f"Pay 1 gold to take {name} into your hand with the Graveyard? [y/n]: ")
            if raw is None:
                return Decision.fail("exhausted")
            return Decision.accept(raw.lower() in ("y", "yes"))
        return Decision.fail("declined")

    # -------- free-form turn commands --------

    def choose_action(self, state: GameState, turn: TurnContext) -> Decision[Action]:
        """Read commands until one of them is an in-turn action.

        Query commands print and keep reading. Running out of input here raises
        InputExhausted, which aborts the rest of this turn.
        """
        interp = CommandInterpreter(state, self.saves)
        if turn.restricted:
            return Decision.accept(EndTurnAction())
        if self.exhausted:
            return Decision.fail("exhausted")
        while True:
            try:
                line = self._read("> ")
            except EOFError:
                self.exhausted = True
                raise InputExhausted("No more input while waiting for a command.") from None
            if not line.strip():
                continue
            try:
                result = interp.execute(line, turn)
            except CommandError as e:
                self._write(str(e))
                continue
            for text in result.lines:
                self._write(text)
            if result.action is not None:
                return Decision.accept(result.action)
