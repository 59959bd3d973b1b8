from __future__ import annotations

import random
from collections import Counter
from typing import Callable, Mapping

from .decisions import DecisionSource
from .state import GameConfig, GameState, Participant, all_held_cards
from .types import CardCatalog, CharacterCard, DistrictCard, normalize_color


class RestoreError(ValueError):
    pass


def _card_to_dict(card: DistrictCard) -> dict[str, object]:
    return {
        "name": card.name,
        "color": card.color,
        "cost": card.cost,
        "specialAbility": card.ability,
    }


def _character_to_dict(c: CharacterCard) -> dict[str, object]:
    return {"name": c.name, "number": c.number, "specialAbility": c.ability}


def _player_to_dict(p: Participant) -> dict[str, object]:
    d: dict[str, object] = {
        "playerNumber": p.number,
        "isHuman": p.is_human,
        "hasCrown": p.has_crown,
        "gold": p.gold,
    }
    if p.character is not None:
        d["character"] = _character_to_dict(p.character)
    d["hand"] = [_card_to_dict(c) for c in p.hand]
    d["city"] = [_card_to_dict(c) for c in p.city]
    return d


def snapshot(state: GameState) -> dict[str, object]:
    """Return a JSON-serializable save document for the current game.

    Reads only; the live state is never touched.
    """
    return {
        "currentRound": state.round,
        "gameEnded": state.ended,
        "debugMode": state.debug_mode,
        "seed": state.seed,
        "players": [_player_to_dict(p) for p in state.players],
        "drawPile": [_card_to_dict(c) for c in state.draw_pile],
        "discardPile": [_card_to_dict(c) for c in state.discard_pile],
        "museumStorage": {
            str(number): [_card_to_dict(c) for c in cards]
            for number, cards in sorted(state.museum_storage.items())
            if cards
        },
    }


# -------- Restore --------


def _require(obj: Mapping[str, object], key: str, kind: type, context: str) -> object:
    v = obj.get(key)
    # bool is an int subclass; keep them apart
    if not isinstance(v, kind) or (kind is int and isinstance(v, bool)):
        raise RestoreError(f"Expected {kind.__name__} for {context}.{key}")
    return v


def _parse_card(raw: object, context: str) -> DistrictCard:
    if not isinstance(raw, dict):
        raise RestoreError(f"Expected object for {context}")
    name = _require(raw, "name", str, context)
    color = _require(raw, "color", str, context)
    cost = _require(raw, "cost", int, context)
    ability = raw.get("specialAbility", "")
    if not isinstance(ability, str):
        raise RestoreError(f"Expected str for {context}.specialAbility")
    if cost < 0:  # type: ignore[operator]
        raise RestoreError(f"Negative cost for {context}")
    try:
        canonical = normalize_color(color)  # type: ignore[arg-type]
    except ValueError as e:
        raise RestoreError(f"{context}: {e}") from e
    return DistrictCard(name=name, color=canonical, cost=cost, ability=ability)  # type: ignore[arg-type]


def _parse_cards(raw: object, context: str) -> list[DistrictCard]:
    if not isinstance(raw, list):
        raise RestoreError(f"Expected list for {context}")
    return [_parse_card(item, f"{context}[{i}]") for i, item in enumerate(raw)]


def _parse_character(raw: object, catalog: CardCatalog, context: str) -> CharacterCard:
    if not isinstance(raw, dict):
        raise RestoreError(f"Expected object for {context}")
    number = _require(raw, "number", int, context)
    name = _require(raw, "name", str, context)
    try:
        card = catalog.character(number)  # type: ignore[arg-type]
    except KeyError:
        raise RestoreError(f"Unknown character number {number} in {context}") from None
    if card.name.lower() != str(name).lower():
        raise RestoreError(f"Character {number} is {card.name}, not {name}, in {context}")
    return card


def _parse_player(
    raw: object, index: int, catalog: CardCatalog, decisions_for: Callable[[bool], DecisionSource | None]
) -> Participant:
    context = f"players[{index}]"
    if not isinstance(raw, dict):
        raise RestoreError(f"Expected object for {context}")
    number = _require(raw, "playerNumber", int, context)
    is_human = _require(raw, "isHuman", bool, context)
    has_crown = _require(raw, "hasCrown", bool, context)
    gold = _require(raw, "gold", int, context)
    if gold < 0:  # type: ignore[operator]
        raise RestoreError(f"Negative gold for {context}")
    character = None
    if raw.get("character") is not None:
        character = _parse_character(raw["character"], catalog, f"{context}.character")
    hand = _parse_cards(raw.get("hand"), f"{context}.hand")
    city = _parse_cards(raw.get("city"), f"{context}.city")
    names = [c.name.lower() for c in city]
    if len(names) != len(set(names)):
        raise RestoreError(f"Duplicate district in {context}.city")
    return Participant(
        number=number,  # type: ignore[arg-type]
        is_human=bool(is_human),
        gold=gold,  # type: ignore[arg-type]
        hand=hand,
        city=city,
        character=character,
        has_crown=bool(has_crown),
        decisions=decisions_for(bool(is_human)),
    )


def _rebuild_draw_pile(catalog: CardCatalog, held: list[DistrictCard], rng: random.Random) -> list[DistrictCard]:
    """The catalog expansion minus every card somebody already holds."""
    remaining = Counter(catalog.expand())
    for card in held:
        if remaining[card] > 0:
            remaining[card] -= 1
    pile = list(remaining.elements())
    rng.shuffle(pile)
    return pile


def restore(
    doc: Mapping[str, object],
    catalog: CardCatalog,
    *,
    decisions_for: Callable[[bool], DecisionSource | None],
    config: GameConfig | None = None,
) -> GameState:
    """Build a brand-new GameState from a save document.

    Nothing outside the returned object is touched, so a RestoreError leaves the
    caller's live game exactly as it was. Round flags are not saved: the restored
    game resumes at a fresh round boundary.
    """
    current_round = _require(doc, "currentRound", int, "save")
    ended = _require(doc, "gameEnded", bool, "save")
    debug = doc.get("debugMode", False)
    if not isinstance(debug, bool):
        raise RestoreError("Expected bool for save.debugMode")
    if current_round < 1:  # type: ignore[operator]
        raise RestoreError("currentRound must be at least 1")
    seed = doc.get("seed", 0)
    if not isinstance(seed, int) or isinstance(seed, bool):
        raise RestoreError("Expected int for save.seed")

    raw_players = doc.get("players")
    if not isinstance(raw_players, list) or not raw_players:
        raise RestoreError("Expected a non-empty list for save.players")
    players = [_parse_player(p, i, catalog, decisions_for) for i, p in enumerate(raw_players)]

    numbers = [p.number for p in players]
    if len(set(numbers)) != len(numbers):
        raise RestoreError("Duplicate playerNumber in save")
    crowned = [p for p in players if p.has_crown]
    if len(crowned) != 1:
        raise RestoreError(f"Exactly one player must hold the crown, found {len(crowned)}")
    held_characters = [p.character.number for p in players if p.character is not None]
    if len(set(held_characters)) != len(held_characters):
        raise RestoreError("Two players hold the same character")

    storage: dict[int, list[DistrictCard]] = {}
    raw_storage = doc.get("museumStorage", {})
    if not isinstance(raw_storage, dict):
        raise RestoreError("Expected object for save.museumStorage")
    for key, cards in raw_storage.items():
        try:
            owner = int(key)
        except ValueError:
            raise RestoreError(f"Bad player key {key!r} in save.museumStorage") from None
        if owner not in numbers:
            raise RestoreError(f"Unknown player {owner} in save.museumStorage")
        storage[owner] = _parse_cards(cards, f"museumStorage[{key}]")

    rng = random.Random(seed)
    discard = _parse_cards(doc.get("discardPile", []), "discardPile")
    if "drawPile" in doc:
        draw = _parse_cards(doc["drawPile"], "drawPile")
    else:
        draw = _rebuild_draw_pile(catalog, all_held_cards(players, storage) + discard, rng)

    cfg = config or GameConfig()
    return GameState(
        catalog=catalog,
        config=cfg,
        seed=seed,
        rng=rng,
        players=players,
        round=current_round,  # type: ignore[arg-type]
        ended=bool(ended),
        debug_mode=debug,
        draw_pile=draw,
        discard_pile=discard,
        museum_storage=storage,
        completed_by=[p.number for p in players if len(p.city) >= cfg.city_goal],
    )
