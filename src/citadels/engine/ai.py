from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .abilities import destroy_cost, valid_targets
from .actions import (
    Action,
    BuildAction,
    DestroyAction,
    EndTurnAction,
    IncomeChoice,
    LaboratoryAction,
    SmithyAction,
    SwapHandsAction,
    TargetKind,
)
from .city import SMITHY_COST, build_problem
from .decisions import Decision
from .state import GameState, Participant, TurnContext
from .types import CharacterCard, DistrictCard


@dataclass(frozen=True)
class AISpec:
    """Simple AI tuning parameters.

    difficulty:
      0 = easy (sometimes skips a build)
      1 = normal
      2 = hard (also uses district and character powers aggressively)
    """

    difficulty: int = 1


def _card_value(card: DistrictCard) -> float:
    v = float(card.cost)
    if card.color == "purple":
        v += 0.5
    return v


def _did_this_turn(state: GameState, player: Participant, event_type: str) -> bool:
    for event in reversed(state.event_log):
        if event.get("type") == "turn_started" and event.get("player") == player.number:
            return False
        if event.get("type") == event_type and event.get("player") == player.number:
            return True
    return False


class AutomatedDecisions:
    """Decision source for computer-controlled seats.

    Every random choice goes through `state.rng` so a seeded game replays exactly.
    """

    def __init__(self, spec: AISpec | None = None) -> None:
        self.spec = spec or AISpec()

    def choose_character(
        self, state: GameState, participant: Participant, pool: Sequence[CharacterCard]
    ) -> Decision[CharacterCard]:
        if not pool:
            return Decision.fail("absent")
        return Decision.accept(pool[state.rng.randrange(len(pool))])

    def choose_income(self, state: GameState, participant: Participant) -> Decision[IncomeChoice]:
        if not participant.hand:
            return Decision.accept("cards")
        if self.choose_build_target(state, participant) is not None:
            return Decision.accept("gold")
        if participant.gold < 3:
            return Decision.accept("gold")
        return Decision.accept("gold" if state.rng.random() < 0.4 else "cards")

    def choose_card_to_keep(
        self, state: GameState, participant: Participant, drawn: Sequence[DistrictCard]
    ) -> Decision[int]:
        if not drawn:
            return Decision.fail("absent")
        best: tuple[float, int] | None = None
        for i, card in enumerate(drawn):
            score = _card_value(card)
            if participant.has_built(card.name) or any(c.name == card.name for c in participant.hand):
                score -= 10
            if best is None or score > best[0]:
                best = (score, i)
        assert best is not None
        return Decision.accept(best[1])

    def choose_ability_target(
        self, state: GameState, participant: Participant, kind: TargetKind
    ) -> Decision[object]:
        if kind in ("kill", "rob"):
            own = participant.character.number if participant.character is not None else 0
            options = valid_targets(kind, own)
            return Decision.accept(options[state.rng.randrange(len(options))])
        if kind == "museum":
            if not participant.hand:
                return Decision.fail("absent")
            cheapest = min(range(len(participant.hand)), key=lambda i: participant.hand[i].cost)
            return Decision.accept(cheapest)
        if kind == "graveyard":
            return Decision.accept(True)
        return Decision.fail("declined")

    def choose_build_target(self, state: GameState, participant: Participant) -> int | None:
        """Hand index of the most expensive district that can be built now."""
        best: tuple[float, int] | None = None
        for i, card in enumerate(participant.hand):
            if build_problem(participant, card) is not None:
                continue
            score = _card_value(card)
            if best is None or score > best[0]:
                best = (score, i)
        return best[1] if best is not None else None

    def choose_action(self, state: GameState, turn: TurnContext) -> Decision[Action]:
        player = turn.player
        if not turn.restricted and turn.builds_made < turn.builds_allowed:
            index = self.choose_build_target(state, player)
            if index is not None:
                if self.spec.difficulty <= 0 and state.rng.random() < 0.25:
                    return Decision.accept(EndTurnAction())
                return Decision.accept(BuildAction(hand_index=index))

        power_play = self._pick_power(state, turn)
        if power_play is not None:
            return Decision.accept(power_play)
        return Decision.accept(EndTurnAction())

    def _pick_power(self, state: GameState, turn: TurnContext) -> Action | None:
        player = turn.player
        character = player.character
        if character is None or turn.restricted:
            return None

        if character.power == "magic" and not _did_this_turn(state, player, "hands_swapped"):
            weak_hand = not player.hand or all(c.cost < 3 for c in player.hand)
            if weak_hand:
                richest = max(
                    (p for p in state.players if p is not player), key=lambda p: len(p.hand), default=None
                )
                if richest is not None and len(richest.hand) > len(player.hand):
                    return SwapHandsAction(target_player=richest.number)

        if character.can_destroy and not _did_this_turn(state, player, "district_destroyed"):
            target = self._pick_destroy_target(state, player)
            if target is not None:
                return target

        if player.has("laboratory") and player.number not in turn.round.laboratory_used:
            for i, card in enumerate(player.hand):
                if player.has_built(card.name):
                    return LaboratoryAction(hand_index=i)

        if (
            player.has("smithy")
            and player.number not in turn.round.smithy_used
            and player.gold >= SMITHY_COST + 2
            and len(player.hand) <= 1
        ):
            return SmithyAction()
        return None

    def _pick_destroy_target(self, state: GameState, player: Participant) -> DestroyAction | None:
        if self.spec.difficulty < 1 or player.gold < 3:
            return None
        # Hit the biggest city, cheapest district first.
        rivals = sorted(
            (p for p in state.players if p is not player and p.city),
            key=lambda p: len(p.city),
            reverse=True,
        )
        for rival in rivals:
            options = [
                (destroy_cost(rival, i), i)
                for i, card in enumerate(rival.city)
                if card.power != "keep"
            ]
            affordable = [o for o in options if o[0] <= player.gold - 2]
            if affordable:
                _, index = min(affordable)
                return DestroyAction(target_player=rival.number, city_index=index)
        return None
