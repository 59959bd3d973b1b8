from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

IncomeChoice = Literal["gold", "cards"]

TargetKind = Literal["kill", "rob", "museum", "graveyard"]


@dataclass(frozen=True)
class BuildAction:
    hand_index: int


@dataclass(frozen=True)
class SwapHandsAction:
    target_player: int


@dataclass(frozen=True)
class RedrawAction:
    hand_indices: tuple[int, ...]


@dataclass(frozen=True)
class KillAction:
    character_number: int


@dataclass(frozen=True)
class StealAction:
    character_number: int


@dataclass(frozen=True)
class DestroyAction:
    target_player: int
    city_index: int


@dataclass(frozen=True)
class MuseumAction:
    hand_index: int


@dataclass(frozen=True)
class ArmoryAction:
    target_player: int
    city_index: int


@dataclass(frozen=True)
class LaboratoryAction:
    hand_index: int


@dataclass(frozen=True)
class SmithyAction:
    pass


@dataclass(frozen=True)
class EndTurnAction:
    pass


Action = (
    BuildAction
    | SwapHandsAction
    | RedrawAction
    | KillAction
    | StealAction
    | DestroyAction
    | MuseumAction
    | ArmoryAction
    | LaboratoryAction
    | SmithyAction
    | EndTurnAction
)
