from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .state import GameState, Participant
from .types import COLORS, DistrictCard

COMPLETION_BONUS = 2
COLOR_BONUS = 2
# Dragon Gate and University are worth this much in total, whatever they cost to build.
FIXED_VALUE_DISTRICT = 8


@dataclass(frozen=True)
class ScoreCard:
    player: int
    base: int
    completion_bonus: int
    color_bonus: int
    purple_bonus: int

    @property
    def ranking(self) -> int:
        """Score the winner is decided on: everything except the purple bonuses."""
        return self.base + self.completion_bonus + self.color_bonus

    @property
    def total(self) -> int:
        return self.ranking + self.purple_bonus


def completion_bonus(city: Sequence[DistrictCard], city_goal: int = 8) -> int:
    # Every city that reaches the goal gets it, not only the first.
    return COMPLETION_BONUS if len(city) >= city_goal else 0


def color_bonus(city: Sequence[DistrictCard]) -> int:
    return COLOR_BONUS if all_colors(city) else 0


def all_colors(city: Sequence[DistrictCard]) -> bool:
    present = {c.color for c in city}
    return all(color in present for color in COLORS)


def purple_bonus(player: Participant, stored: int = 0) -> int:
    bonus = 0
    for card in player.city:
        power = card.power
        if power in ("dragon_gate", "university"):
            bonus += FIXED_VALUE_DISTRICT - card.cost
        elif power == "imperial_treasury":
            bonus += player.gold
        elif power == "map_room":
            bonus += len(player.hand)
        elif power == "wishing_well":
            bonus += sum(1 for c in player.city if c.color == "purple" and c.name != card.name)
        elif power == "museum":
            bonus += stored
    return bonus


def score_player(state: GameState, player: Participant) -> ScoreCard:
    return ScoreCard(
        player=player.number,
        base=sum(c.cost for c in player.city),
        completion_bonus=completion_bonus(player.city, state.config.city_goal),
        color_bonus=color_bonus(player.city),
        purple_bonus=purple_bonus(player, len(state.museum_storage.get(player.number, []))),
    )


def score_game(state: GameState) -> list[ScoreCard]:
    return [score_player(state, p) for p in state.players]


def winner(cards: Sequence[ScoreCard]) -> int | None:
    """Player with the strictly highest score before purple bonuses, or None on a tie."""
    if not cards:
        return None
    best = max(c.ranking for c in cards)
    leaders = [c for c in cards if c.ranking == best]
    if len(leaders) != 1:
        return None
    return leaders[0].player
