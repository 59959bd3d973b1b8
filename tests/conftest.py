from __future__ import annotations

from collections import deque
from collections.abc import Iterable

import pytest

from citadels.engine.actions import EndTurnAction
from citadels.engine.decisions import Decision
from citadels.engine.types import CardCatalog
from citadels.paths import get_paths
from citadels.services.content import ContentService


class ScriptedDecisions:
    """Plays back canned answers; an empty queue answers like a silent player."""

    def __init__(
        self,
        characters: Iterable[object] = (),
        income: Iterable[object] = (),
        keep: Iterable[int] = (),
        targets: Iterable[object] = (),
        actions: Iterable[object] = (),
    ) -> None:
        self.characters = deque(characters)
        self.income = deque(income)
        self.keep = deque(keep)
        self.targets = deque(targets)
        self.actions = deque(actions)
        self.asked: list[str] = []

    def choose_character(self, state, participant, pool):
        self.asked.append("character")
        if not self.characters:
            return Decision.fail("absent")
        wanted = self.characters.popleft()
        for c in pool:
            if c.name == wanted or c.number == wanted:
                return Decision.accept(c)
        return Decision.fail("invalid")

    def choose_income(self, state, participant):
        self.asked.append("income")
        return Decision.accept(self.income.popleft()) if self.income else Decision.fail("absent")

    def choose_card_to_keep(self, state, participant, drawn):
        self.asked.append("keep")
        return Decision.accept(self.keep.popleft()) if self.keep else Decision.fail("absent")

    def choose_ability_target(self, state, participant, kind):
        self.asked.append(kind)
        return Decision.accept(self.targets.popleft()) if self.targets else Decision.fail("absent")

    def choose_action(self, state, turn):
        self.asked.append("action")
        return Decision.accept(self.actions.popleft() if self.actions else EndTurnAction())


@pytest.fixture(scope="session")
def catalog() -> CardCatalog:
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return content.load_catalog()


@pytest.fixture
def scripted():
    return ScriptedDecisions
