from __future__ import annotations

import json

import pytest

from citadels.paths import get_paths
from citadels.services.content import ContentError, ContentService


def test_content_schemas_validate() -> None:
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    content.validate_all()


def test_catalog_has_eight_characters_and_full_deck(catalog) -> None:
    assert [c.number for c in catalog.characters] == list(range(1, 9))
    assert catalog.head_of_state() is not None
    assert catalog.head_of_state().name == "King"
    assert catalog.deck_size() == 73
    purples = [e for e in catalog.districts if e.card.color == "purple"]
    assert all(e.quantity == 1 for e in purples)
    assert all(e.card.power is not None for e in purples)


def test_lookup_is_case_insensitive(catalog) -> None:
    assert catalog.district_named("school of magic") == catalog.district_named("School of Magic")
    assert catalog.character_named("warlord").number == 8


def test_bad_district_file_is_rejected(tmp_path) -> None:
    paths = get_paths()
    (tmp_path / "districts.json").write_text(
        json.dumps({"districts": [{"name": "Manor", "color": "yellow", "cost": -1, "quantity": 1}]}),
        encoding="utf-8",
    )
    content = ContentService(tmp_path, paths.schema_dir)
    with pytest.raises(ContentError):
        content.load_districts()


def test_unknown_color_is_rejected(tmp_path) -> None:
    paths = get_paths()
    (tmp_path / "districts.json").write_text(
        json.dumps({"districts": [{"name": "Manor", "color": "orange", "cost": 3, "quantity": 1}]}),
        encoding="utf-8",
    )
    with pytest.raises(ContentError):
        ContentService(tmp_path, paths.schema_dir).load_districts()


def test_color_aliases_are_normalized(tmp_path) -> None:
    paths = get_paths()
    (tmp_path / "districts.json").write_text(
        json.dumps({"districts": [{"name": "Manor", "color": "Noble", "cost": 3, "quantity": 2}]}),
        encoding="utf-8",
    )
    entries = ContentService(tmp_path, paths.schema_dir).load_districts()
    assert entries[0].card.color == "yellow"


def test_missing_file_is_a_content_error(tmp_path) -> None:
    with pytest.raises(ContentError):
        ContentService(tmp_path, get_paths().schema_dir).load_characters()
