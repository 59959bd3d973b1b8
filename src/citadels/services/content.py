from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

from jsonschema import Draft202012Validator

from citadels.engine.types import (
    CardCatalog,
    CharacterCard,
    DistrictCard,
    DistrictEntry,
    normalize_color,
)


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def _load_schema(path: Path) -> object:
    return _load_json(path)


def schema_errors(instance: object, schema: object) -> list[str]:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.absolute_path))
    return [f"{'/'.join(str(p) for p in err.absolute_path)}: {err.message}" for err in errors]


def validate_json(instance: object, schema: object, *, context: str) -> None:
    errors = schema_errors(instance, schema)
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            lines.append(f"- {err}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int) or isinstance(v, bool):
        raise ContentError(f"Expected int for {key}")
    return v


def _require_list(obj: Mapping[str, object], key: str) -> list[object]:
    v = obj.get(key)
    if not isinstance(v, list):
        raise ContentError(f"Expected list for {key}")
    return v


def _parse_character(raw: Mapping[str, object]) -> CharacterCard:
    return CharacterCard(
        name=_require_str(raw, "name"),
        number=_require_int(raw, "number"),
        ability=str(raw.get("specialAbility", "")),
    )


def _parse_district(raw: Mapping[str, object]) -> DistrictEntry:
    try:
        color = normalize_color(_require_str(raw, "color"))
    except ValueError as e:
        raise ContentError(str(e)) from e
    card = DistrictCard(
        name=_require_str(raw, "name"),
        color=color,
        cost=_require_int(raw, "cost"),
        ability=str(raw.get("specialAbility", "")),
    )
    return DistrictEntry(card=card, quantity=_require_int(raw, "quantity"))


class ContentService:
    """Loads the card catalog shipped in the package data directory."""

    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def _load_validated(self, filename: str, schema_name: str) -> dict[str, object]:
        path = self._data_dir / filename
        raw = _load_json(path)
        validate_json(raw, self.schema(schema_name), context=str(path))
        if not isinstance(raw, dict):
            raise ContentError(f"{filename} must be an object")
        return raw

    def schema(self, name: str) -> object:
        return _load_schema(self._schema_dir / f"{name}.schema.json")

    def load_characters(self) -> tuple[CharacterCard, ...]:
        raw = self._load_validated("characters.json", "characters")
        characters: list[CharacterCard] = []
        for item in _require_list(raw, "characters"):
            if isinstance(item, dict):
                characters.append(_parse_character(item))
        numbers = [c.number for c in characters]
        if sorted(numbers) != list(range(1, 9)):
            raise ContentError(f"characters.json must number its characters 1-8, got {sorted(numbers)}")
        heads = [c for c in characters if c.power == "crown"]
        if len(heads) != 1:
            raise ContentError("characters.json must contain exactly one King")
        return tuple(sorted(characters, key=lambda c: c.number))

    def load_districts(self) -> tuple[DistrictEntry, ...]:
        raw = self._load_validated("districts.json", "districts")
        entries: list[DistrictEntry] = []
        seen: set[str] = set()
        for item in _require_list(raw, "districts"):
            if not isinstance(item, dict):
                continue
            entry = _parse_district(item)
            key = entry.card.name.lower()
            if key in seen:
                raise ContentError(f"Duplicate district definition: {entry.card.name}")
            seen.add(key)
            entries.append(entry)
        return tuple(entries)

    def load_catalog(self) -> CardCatalog:
        return CardCatalog(characters=self.load_characters(), districts=self.load_districts())

    def validate_all(self) -> None:
        # Load is validation (schema + parse)
        _ = self.load_catalog()
