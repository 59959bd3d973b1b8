from __future__ import annotations

import json
from pathlib import Path

from citadels.engine.ai import AutomatedDecisions
from citadels.engine.decisions import DecisionSource
from citadels.engine.serialize import RestoreError, restore, snapshot
from citadels.engine.state import GameState, emit
from citadels.services.content import schema_errors


class SaveError(RuntimeError):
    pass


def _sources_from(state: GameState) -> tuple[DecisionSource | None, DecisionSource]:
    human = next((p.decisions for p in state.players if p.is_human), None)
    automated = next((p.decisions for p in state.players if not p.is_human and p.decisions), None)
    return human, automated or AutomatedDecisions()


class SaveService:
    """Writes and reads saved games.

    `save` only reads the live state. `load_into` parses and validates the whole
    file into a fresh state before anything in the live game changes.
    """

    def __init__(self, schema: object, base_dir: Path | None = None) -> None:
        self._schema = schema
        self._base_dir = base_dir

    def resolve(self, path: Path) -> Path:
        """Relative save names live under the user-data directory when one is set."""
        if self._base_dir is None or path.is_absolute():
            return path
        return self._base_dir / path

    def save(self, state: GameState, path: Path) -> Path:
        path = self.resolve(path)
        doc = snapshot(state)
        errors = schema_errors(doc, self._schema)
        if errors:
            raise SaveError(f"Refusing to write an invalid save: {errors[0]}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(doc, indent=2), encoding="utf-8")
        except OSError as e:
            raise SaveError(f"Could not write {path}: {e}") from e
        emit(state, "game_saved", path=str(path))
        return path

    def read(self, path: Path) -> dict[str, object]:
        path = self.resolve(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise SaveError(f"No save file at {path}") from e
        except OSError as e:
            raise SaveError(f"Could not read {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise SaveError(f"Invalid JSON in {path}: {e}") from e
        errors = schema_errors(raw, self._schema)
        if errors:
            raise SaveError(f"{path} is not a valid save: {errors[0]}")
        if not isinstance(raw, dict):
            raise SaveError(f"{path} must contain an object")
        return raw

    def load(self, path: Path, like: GameState) -> GameState:
        """Parse a save into a new state that reuses `like`'s catalog, config and decision sources."""
        doc = self.read(path)
        human, automated = _sources_from(like)

        def decisions_for(is_human: bool) -> DecisionSource | None:
            if is_human and human is not None:
                return human
            return automated

        try:
            return restore(doc, like.catalog, decisions_for=decisions_for, config=like.config)
        except RestoreError as e:
            raise SaveError(f"{path}: {e}") from e

    def load_into(self, state: GameState, path: Path) -> None:
        fresh = self.load(path, like=state)
        state.replace_with(fresh)
        emit(state, "game_loaded", path=str(path), current_round=state.round)
