from __future__ import annotations

from citadels.engine.serialize import snapshot
from citadels.engine.session import GameSession
from citadels.engine.state import GameConfig, cards_in_circulation, new_game


def _play(catalog, seed: int, players: int = 5):
    state = new_game(catalog, players, seed, config=GameConfig(max_rounds=8))
    result = GameSession(state).run()
    return state, result


def test_same_seed_replays_exactly(catalog) -> None:
    state1, result1 = _play(catalog, seed=424242)
    state2, result2 = _play(catalog, seed=424242)

    assert snapshot(state1) == snapshot(state2)
    assert [e["type"] for e in state1.event_log] == [e["type"] for e in state2.event_log]
    assert result1.winner == result2.winner


def test_different_seeds_diverge(catalog) -> None:
    state1, _ = _play(catalog, seed=1)
    state2, _ = _play(catalog, seed=2)
    assert snapshot(state1) != snapshot(state2)


def test_cards_are_conserved_through_a_whole_game(catalog) -> None:
    for players in (4, 7):
        state = new_game(catalog, players, seed=players * 31, config=GameConfig(max_rounds=12))
        seen: list[int] = []

        def check(event) -> None:
            seen.append(cards_in_circulation(state))

        result = GameSession(state, on_event=check).run()
        assert result.fatal_error is None
        assert seen
        assert set(seen) == {catalog.deck_size()}
        assert not any(e["type"] == "slot_error" for e in state.event_log)
