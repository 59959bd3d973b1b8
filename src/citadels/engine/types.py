from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Literal

Color = Literal["yellow", "blue", "green", "red", "purple"]

COLORS: tuple[Color, ...] = ("yellow", "blue", "green", "red", "purple")

# Older save files spell colors by category.
COLOR_ALIASES: dict[str, Color] = {
    "noble": "yellow",
    "religious": "blue",
    "trade": "green",
    "military": "red",
    "special": "purple",
}

CharacterPower = Literal["kill", "rob", "magic", "crown", "income", "build"]

DistrictPower = Literal[
    "throne_room",
    "hospital",
    "observatory",
    "library",
    "keep",
    "great_wall",
    "graveyard",
    "museum",
    "armory",
    "laboratory",
    "smithy",
    "poor_house",
    "park",
    "school_of_magic",
    "dragon_gate",
    "university",
    "imperial_treasury",
    "map_room",
    "wishing_well",
]

CHARACTER_POWERS: dict[str, CharacterPower] = {
    "Assassin": "kill",
    "Thief": "rob",
    "Magician": "magic",
    "King": "crown",
    "Bishop": "income",
    "Merchant": "income",
    "Architect": "build",
    "Warlord": "income",
}

# Color whose districts pay the character at the start of its turn.
INCOME_COLORS: dict[str, Color] = {
    "King": "yellow",
    "Bishop": "blue",
    "Merchant": "green",
    "Warlord": "red",
}

# Flat gold paid on top of the color count.
INCOME_FLAT_BONUS: dict[str, int] = {"Merchant": 1}

# Characters that may pay to destroy districts on top of their main power.
DESTROY_ROLES = frozenset({"Warlord"})

DISTRICT_POWERS: dict[str, DistrictPower] = {
    "Throne Room": "throne_room",
    "Hospital": "hospital",
    "Observatory": "observatory",
    "Library": "library",
    "Keep": "keep",
    "Great Wall": "great_wall",
    "Graveyard": "graveyard",
    "Museum": "museum",
    "Armory": "armory",
    "Laboratory": "laboratory",
    "Smithy": "smithy",
    "Poor House": "poor_house",
    "Park": "park",
    "School of Magic": "school_of_magic",
    "Dragon Gate": "dragon_gate",
    "University": "university",
    "Imperial Treasury": "imperial_treasury",
    "Map Room": "map_room",
    "Wishing Well": "wishing_well",
}

# Lower-cased so "School Of Magic" from old saves still resolves.
_DISTRICT_POWERS_BY_KEY = {name.lower(): power for name, power in DISTRICT_POWERS.items()}


def normalize_color(raw: str) -> Color:
    key = raw.strip().lower()
    if key in COLORS:
        return key  # type: ignore[return-value]
    if key in COLOR_ALIASES:
        return COLOR_ALIASES[key]
    raise ValueError(f"Unknown district color: {raw!r}")


@dataclass(frozen=True)
class DistrictCard:
    name: str
    color: Color
    cost: int
    ability: str = ""

    @property
    def power(self) -> DistrictPower | None:
        return _DISTRICT_POWERS_BY_KEY.get(self.name.lower())

    def __str__(self) -> str:
        text = f"{self.name} [{self.color}{self.cost}]"
        if self.ability:
            text += f" - {self.ability}"
        return text


@dataclass(frozen=True)
class CharacterCard:
    name: str
    number: int
    ability: str = ""

    @property
    def power(self) -> CharacterPower | None:
        return CHARACTER_POWERS.get(self.name)

    @property
    def can_destroy(self) -> bool:
        return self.name in DESTROY_ROLES

    def __str__(self) -> str:
        return f"{self.name} ({self.number}) - {self.ability}"


@dataclass(frozen=True)
class DistrictEntry:
    card: DistrictCard
    quantity: int


@dataclass(frozen=True)
class CardCatalog:
    """Immutable card catalog used by the engine."""

    characters: tuple[CharacterCard, ...]
    districts: tuple[DistrictEntry, ...]

    def character(self, number: int) -> CharacterCard:
        for c in self.characters:
            if c.number == number:
                return c
        raise KeyError(number)

    def character_named(self, name: str) -> CharacterCard | None:
        key = name.strip().lower()
        for c in self.characters:
            if c.name.lower() == key:
                return c
        return None

    def head_of_state(self) -> CharacterCard | None:
        for c in self.characters:
            if c.power == "crown":
                return c
        return None

    def expand(self) -> Iterator[DistrictCard]:
        for entry in self.districts:
            for _ in range(entry.quantity):
                yield entry.card

    def deck_size(self) -> int:
        return sum(entry.quantity for entry in self.districts)

    def district_named(self, name: str) -> DistrictCard | None:
        key = name.strip().lower()
        for entry in self.districts:
            if entry.card.name.lower() == key:
                return entry.card
        return None
