from __future__ import annotations

import random
from dataclasses import dataclass, field, fields
from typing import Iterable

from .decisions import DecisionSource
from .types import CardCatalog, CharacterCard, DistrictCard, DistrictPower

Event = dict[str, object]

MIN_PLAYERS = 4
MAX_PLAYERS = 7


@dataclass(frozen=True)
class GameConfig:
    starting_gold: int = 2
    starting_hand: int = 4
    city_goal: int = 8
    income_gold: int = 2
    income_draw: int = 2
    architect_extra_draw: int = 2
    max_builds: int = 1
    architect_max_builds: int = 3
    max_rounds: int | None = None
    max_actions_per_turn: int = 50  # stops a misbehaving decision source from looping forever


@dataclass
class Participant:
    number: int
    is_human: bool
    gold: int = 0
    hand: list[DistrictCard] = field(default_factory=list)
    city: list[DistrictCard] = field(default_factory=list)
    character: CharacterCard | None = None
    has_crown: bool = False
    decisions: DecisionSource | None = field(default=None, compare=False, repr=False)

    def has(self, power: DistrictPower) -> bool:
        return any(c.power == power for c in self.city)

    def has_built(self, name: str) -> bool:
        key = name.lower()
        return any(c.name.lower() == key for c in self.city)


@dataclass
class RoundContext:
    """Flags that live for exactly one round."""

    pool: list[CharacterCard] = field(default_factory=list)
    face_up_removed: list[CharacterCard] = field(default_factory=list)
    face_down_removed: list[CharacterCard] = field(default_factory=list)
    killed: CharacterCard | None = None
    robbed: CharacterCard | None = None
    laboratory_used: set[int] = field(default_factory=set)
    smithy_used: set[int] = field(default_factory=set)


@dataclass
class TurnContext:
    player: Participant
    round: RoundContext
    builds_allowed: int = 1
    builds_made: int = 0
    restricted: bool = False
    ended: bool = False


@dataclass
class ActionResult:
    ok: bool
    events: list[Event]
    error: str | None = None


@dataclass
class GameState:
    catalog: CardCatalog
    config: GameConfig
    seed: int
    rng: random.Random
    players: list[Participant]
    round: int = 1
    ended: bool = False
    debug_mode: bool = False
    draw_pile: list[DistrictCard] = field(default_factory=list)
    discard_pile: list[DistrictCard] = field(default_factory=list)
    museum_storage: dict[int, list[DistrictCard]] = field(default_factory=dict)
    completed_by: list[int] = field(default_factory=list)
    event_log: list[Event] = field(default_factory=list)
    fatal_error: str | None = None
    # Bumped whenever a restore replaces the contents of this object.
    generation: int = 0

    def player(self, number: int) -> Participant:
        for p in self.players:
            if p.number == number:
                return p
        raise KeyError(number)

    def has_player(self, number: int) -> bool:
        return any(p.number == number for p in self.players)

    def crown_holder(self) -> Participant | None:
        for p in self.players:
            if p.has_crown:
                return p
        return None

    def holder_of(self, character: CharacterCard | None) -> Participant | None:
        if character is None:
            return None
        for p in self.players:
            if p.character is not None and p.character.number == character.number:
                return p
        return None

    def holder_of_number(self, number: int) -> Participant | None:
        for p in self.players:
            if p.character is not None and p.character.number == number:
                return p
        return None

    def seating_from_crown(self) -> list[Participant]:
        holder = self.crown_holder()
        start = self.players.index(holder) if holder is not None else 0
        return self.players[start:] + self.players[:start]

    def replace_with(self, other: "GameState") -> None:
        """Commit a fully built state into this object, field by field."""
        for f in fields(self):
            if f.name in ("event_log", "generation"):
                continue
            setattr(self, f.name, getattr(other, f.name))
        self.generation += 1


def emit(state: GameState, event_type: str, **payload: object) -> Event:
    event: Event = {"type": event_type, "round": state.round}
    event.update(payload)
    state.event_log.append(event)
    return event


def draw_cards(state: GameState, count: int) -> list[DistrictCard]:
    drawn: list[DistrictCard] = []
    for _ in range(max(0, count)):
        if not state.draw_pile:
            break
        drawn.append(state.draw_pile.pop(0))
    return drawn


def give_gold(state: GameState, player: Participant, amount: int, reason: str) -> None:
    if amount <= 0:
        return
    player.gold += amount
    emit(state, "gold_gained", player=player.number, amount=amount, reason=reason)


def set_crown(state: GameState, player: Participant) -> None:
    previous = state.crown_holder()
    if previous is player:
        return
    for p in state.players:
        p.has_crown = p is player
    emit(
        state,
        "crown_moved",
        player=player.number,
        previous=previous.number if previous is not None else None,
    )


def cards_in_circulation(state: GameState) -> int:
    """Every district card the state currently knows about, wherever it sits."""
    total = len(state.draw_pile) + len(state.discard_pile)
    for p in state.players:
        total += len(p.hand) + len(p.city)
    for stored in state.museum_storage.values():
        total += len(stored)
    return total


def all_held_cards(players: Iterable[Participant], storage: dict[int, list[DistrictCard]]) -> list[DistrictCard]:
    held: list[DistrictCard] = []
    for p in players:
        held.extend(p.hand)
        held.extend(p.city)
    for stored in storage.values():
        held.extend(stored)
    return held


def new_game(
    catalog: CardCatalog,
    num_players: int,
    seed: int,
    human: DecisionSource | None = None,
    automated: DecisionSource | None = None,
    config: GameConfig | None = None,
) -> GameState:
    """Create a seated, dealt game.

    Player 1 is human when a human decision source is given; every other seat is
    driven by the automated source.
    """
    cfg = config or GameConfig()
    if num_players < MIN_PLAYERS or num_players > MAX_PLAYERS:
        raise ValueError(f"Number of players must be between {MIN_PLAYERS} and {MAX_PLAYERS}")

    if automated is None:
        from .ai import AutomatedDecisions

        automated = AutomatedDecisions()

    rng = random.Random(seed)
    players: list[Participant] = []
    for i in range(num_players):
        is_human = human is not None and i == 0
        players.append(
            Participant(number=i + 1, is_human=is_human, decisions=human if is_human else automated)
        )

    deck = list(catalog.expand())
    rng.shuffle(deck)

    state = GameState(catalog=catalog, config=cfg, seed=seed, rng=rng, players=players, draw_pile=deck)

    crowned = players[rng.randrange(num_players)]
    crowned.has_crown = True
    emit(state, "crown_assigned", player=crowned.number)

    for p in players:
        p.gold = cfg.starting_gold
        p.hand.extend(draw_cards(state, cfg.starting_hand))
    emit(state, "game_started", players=num_players, seed=seed)
    return state
