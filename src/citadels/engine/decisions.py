from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, Literal, Protocol, TypeVar

from .actions import Action, IncomeChoice, TargetKind
from .types import CharacterCard, DistrictCard

if TYPE_CHECKING:
    from .state import GameState, Participant, TurnContext

T = TypeVar("T")

DecisionReason = Literal["ok", "invalid", "absent", "exhausted", "declined"]


@dataclass(frozen=True)
class Decision(Generic[T]):
    """Outcome of asking a participant for a choice.

    A failed decision carries the reason instead of raising; the resolver applies
    its default policy (first character, gold, first card, no target, end turn).
    """

    value: T | None = None
    reason: DecisionReason = "ok"

    @property
    def ok(self) -> bool:
        return self.reason == "ok" and self.value is not None

    @staticmethod
    def accept(value: T) -> "Decision[T]":
        return Decision(value=value, reason="ok")

    @staticmethod
    def fail(reason: DecisionReason) -> "Decision[T]":
        return Decision(value=None, reason=reason)

    def or_default(self, default: T) -> T:
        if self.ok:
            assert self.value is not None
            return self.value
        return default


class DecisionSource(Protocol):
    def choose_character(
        self, state: "GameState", participant: "Participant", pool: Sequence[CharacterCard]
    ) -> Decision[CharacterCard]: ...

    def choose_income(self, state: "GameState", participant: "Participant") -> Decision[IncomeChoice]: ...

    def choose_card_to_keep(
        self, state: "GameState", participant: "Participant", drawn: Sequence[DistrictCard]
    ) -> Decision[int]: ...

    def choose_ability_target(
        self, state: "GameState", participant: "Participant", kind: TargetKind
    ) -> Decision[object]: ...

    def choose_action(self, state: "GameState", turn: "TurnContext") -> Decision[Action]: ...
