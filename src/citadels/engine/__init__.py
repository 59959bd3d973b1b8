"""Deterministic, headless rules engine for Citadels.

IMPORTANT: This package never reads the console and never touches files.
Loading content and saves lives in `citadels.services`.
"""

from .actions import (
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
from .ai import AISpec, AutomatedDecisions
from .decisions import Decision, DecisionSource
from .scoring import ScoreCard, score_game, winner
from .session import GameResult, GameSession
from .state import GameConfig, GameState, Participant, new_game
from .types import CardCatalog, CharacterCard, DistrictCard, DistrictEntry

__all__ = [
    "AISpec",
    "ArmoryAction",
    "AutomatedDecisions",
    "BuildAction",
    "CardCatalog",
    "CharacterCard",
    "Decision",
    "DecisionSource",
    "DestroyAction",
    "DistrictCard",
    "DistrictEntry",
    "EndTurnAction",
    "GameConfig",
    "GameResult",
    "GameSession",
    "GameState",
    "KillAction",
    "LaboratoryAction",
    "MuseumAction",
    "Participant",
    "RedrawAction",
    "ScoreCard",
    "SmithyAction",
    "StealAction",
    "SwapHandsAction",
    "new_game",
    "score_game",
    "winner",
]
