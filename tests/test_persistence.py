from __future__ import annotations

import json
from pathlib import Path

import pytest

from citadels.engine.serialize import RestoreError, restore, snapshot
from citadels.engine.session import GameSession
from citadels.engine.state import GameConfig, cards_in_circulation, new_game
from citadels.paths import get_paths
from citadels.services.content import ContentService
from citadels.services.saves import SaveError, SaveService


def _saves() -> SaveService:
    paths = get_paths()
    return SaveService(ContentService(paths.data_dir, paths.schema_dir).schema("save"))


def _played(catalog, seed: int = 17, rounds: int = 3):
    state = new_game(catalog, 5, seed, config=GameConfig(max_rounds=rounds))
    GameSession(state).run()
    state.ended = False
    return state


def test_save_and_load_round_trip(catalog, tmp_path) -> None:
    saves = _saves()
    original = _played(catalog)
    path = saves.save(original, tmp_path / "game.json")

    other = new_game(catalog, 4, seed=99)
    saves.load_into(other, path)
    assert snapshot(other) == snapshot(original)
    assert other.generation == 1
    assert other.event_log[-1]["type"] == "game_loaded"


def test_save_does_not_change_the_game(catalog, tmp_path) -> None:
    saves = _saves()
    state = _played(catalog)
    before = snapshot(state)
    saves.save(state, tmp_path / "game.json")
    assert snapshot(state) == before


def test_save_document_uses_camel_case_layout(catalog, tmp_path) -> None:
    state = _played(catalog)
    path = _saves().save(state, tmp_path / "game.json")
    doc = json.loads(path.read_text(encoding="utf-8"))
    assert set(doc) >= {"currentRound", "gameEnded", "debugMode", "players"}
    player = doc["players"][0]
    assert set(player) >= {"playerNumber", "isHuman", "hasCrown", "gold", "hand", "city"}
    if player["hand"]:
        assert set(player["hand"][0]) == {"name", "color", "cost", "specialAbility"}


def test_failed_load_leaves_state_intact(catalog, tmp_path) -> None:
    saves = _saves()
    state = _played(catalog)
    before = snapshot(state)

    garbage = tmp_path / "garbage.json"
    garbage.write_text("{not json", encoding="utf-8")
    with pytest.raises(SaveError):
        saves.load_into(state, garbage)

    doc = snapshot(state)
    for p in doc["players"]:  # type: ignore[union-attr]
        p["hasCrown"] = True
    two_crowns = tmp_path / "two_crowns.json"
    two_crowns.write_text(json.dumps(doc), encoding="utf-8")
    with pytest.raises(SaveError):
        saves.load_into(state, two_crowns)

    with pytest.raises(SaveError):
        saves.load_into(state, tmp_path / "missing.json")

    assert snapshot(state) == before
    assert state.generation == 0


def test_schema_rejects_wrong_types(catalog, tmp_path) -> None:
    saves = _saves()
    state = _played(catalog)
    doc = snapshot(state)
    doc["players"][0]["gold"] = "lots"  # type: ignore[index]
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps(doc), encoding="utf-8")
    with pytest.raises(SaveError):
        saves.read(bad)


def test_restore_rejects_unknown_character(catalog) -> None:
    state = _played(catalog)
    doc = snapshot(state)
    doc["players"][0]["character"] = {"name": "Jester", "number": 9}  # type: ignore[index]
    with pytest.raises(RestoreError):
        restore(doc, catalog, decisions_for=lambda is_human: None)


def test_restore_rejects_duplicate_city_districts(catalog) -> None:
    state = _played(catalog)
    doc = snapshot(state)
    manor = {"name": "Manor", "color": "yellow", "cost": 3, "specialAbility": ""}
    doc["players"][0]["city"] = [manor, manor]  # type: ignore[index]
    with pytest.raises(RestoreError):
        restore(doc, catalog, decisions_for=lambda is_human: None)


def test_restore_accepts_color_aliases(catalog) -> None:
    state = _played(catalog)
    doc = snapshot(state)
    doc["players"][0]["city"] = [{"name": "Manor", "color": "Noble", "cost": 3}]  # type: ignore[index]
    restored = restore(doc, catalog, decisions_for=lambda is_human: None)
    assert restored.players[0].city[0].color == "yellow"


def test_legacy_save_rebuilds_draw_pile(catalog) -> None:
    state = _played(catalog)
    doc = snapshot(state)
    for key in ("drawPile", "discardPile", "museumStorage", "seed"):
        doc.pop(key)

    restored = restore(doc, catalog, decisions_for=lambda is_human: None)
    assert restored.discard_pile == []
    assert cards_in_circulation(restored) == catalog.deck_size()


def test_restored_game_resumes_at_round_boundary(catalog, tmp_path) -> None:
    saves = _saves()
    state = _played(catalog, rounds=2)
    round_saved = state.round
    path = saves.save(state, tmp_path / "game.json")

    fresh = new_game(catalog, 5, seed=3, config=GameConfig(max_rounds=round_saved + 1))
    saves.load_into(fresh, path)
    assert fresh.round == round_saved
    result = GameSession(fresh).run()
    assert result.fatal_error is None
    assert any(e["type"] == "round_started" and e["round"] == round_saved for e in fresh.event_log)


def test_relative_names_land_in_the_save_dir(catalog, tmp_path) -> None:
    paths = get_paths()
    saves = SaveService(ContentService(paths.data_dir, paths.schema_dir).schema("save"), base_dir=tmp_path)
    state = new_game(catalog, 4, seed=4)
    written = saves.save(state, Path("slot1.json"))
    assert written == tmp_path / "slot1.json"
    assert written.exists()
    assert saves.read(Path("slot1.json"))["currentRound"] == 1
