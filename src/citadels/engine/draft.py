from __future__ import annotations

from .state import GameState, RoundContext, emit, give_gold
from .types import CharacterCard

FACE_DOWN_REMOVALS = 1

# Face-up removals by table size.
FACE_UP_REMOVALS: dict[int, int] = {4: 2, 5: 1, 6: 0, 7: 0}


def _remove_face_up(state: GameState, pool: list[CharacterCard]) -> CharacterCard:
    # The head of state may never be shown and discarded; put it back and try again.
    while True:
        removed = pool.pop(0)
        if removed.power != "crown":
            return removed
        emit(state, "face_up_retry", character=removed.name)
        pool.append(removed)
        if len(pool) == 1:
            raise RuntimeError("No character other than the head of state is left to remove face up")
        state.rng.shuffle(pool)


def build_pool(state: GameState) -> RoundContext:
    ctx = RoundContext()
    pool = list(state.catalog.characters)
    state.rng.shuffle(pool)

    for _ in range(FACE_DOWN_REMOVALS):
        if pool:
            ctx.face_down_removed.append(pool.pop(0))
            emit(state, "character_removed_face_down")

    for _ in range(FACE_UP_REMOVALS.get(len(state.players), 0)):
        if not pool:
            break
        removed = _remove_face_up(state, pool)
        ctx.face_up_removed.append(removed)
        emit(state, "character_removed_face_up", character=removed.name, number=removed.number)

    ctx.pool = pool
    return ctx


def run_draft(state: GameState) -> RoundContext:
    """Deal out this round's characters, starting with the crown holder."""
    for p in state.players:
        p.character = None

    ctx = build_pool(state)
    order = state.seating_from_crown()
    emit(state, "draft_started", order=[p.number for p in order])

    for p in order:
        if not ctx.pool:
            emit(state, "character_unassigned", player=p.number)
            continue
        chosen: CharacterCard | None = None
        if p.decisions is not None:
            decision = p.decisions.choose_character(state, p, list(ctx.pool))
            if decision.ok and decision.value in ctx.pool:
                chosen = decision.value
            else:
                reason = decision.reason if not decision.ok else "invalid"
                emit(state, "decision_fallback", player=p.number, choice="character", reason=reason)
        if chosen is None:
            chosen = ctx.pool[0]
        ctx.pool.remove(chosen)
        p.character = chosen
        emit(state, "character_chosen", player=p.number)

    for p in state.players:
        if p.has("throne_room"):
            give_gold(state, p, 1, "throne_room")

    return ctx
