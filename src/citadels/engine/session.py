from __future__ import annotations

import traceback
from dataclasses import dataclass
from typing import Callable, Protocol

from .draft import run_draft
from .scoring import ScoreCard, score_game, winner
from .state import Event, GameState, emit
from .turns import run_turns


class EventSink(Protocol):
    def log(self, event_type: str, payload: dict[str, object]) -> None: ...


@dataclass(frozen=True)
class GameResult:
    scores: list[ScoreCard]
    winner: int | None
    rounds: int
    fatal_error: str | None = None


class GameSession:
    """Plays rounds until a city is complete, then scores the table once."""

    def __init__(
        self,
        state: GameState,
        telemetry: EventSink | None = None,
        on_event: Callable[[Event], None] | None = None,
    ) -> None:
        self.state = state
        self.telemetry = telemetry
        self.on_event = on_event
        self._forwarded = 0

    def flush_events(self) -> None:
        log = self.state.event_log
        for event in log[self._forwarded :]:
            if self.telemetry is not None:
                payload = {k: v for k, v in event.items() if k != "type"}
                self.telemetry.log(str(event["type"]), payload)
            if self.on_event is not None:
                self.on_event(event)
        self._forwarded = len(log)

    def play_round(self) -> None:
        state = self.state
        emit(state, "round_started")
        ctx = run_draft(state)
        self.flush_events()
        run_turns(state, ctx)
        self.flush_events()
        # ctx goes out of scope here; nothing from this round carries over.

    def _should_stop(self) -> bool:
        state = self.state
        if state.ended:
            return True
        if state.completed_by:
            state.ended = True
            emit(state, "game_over", reason="city_completed", completed_by=list(state.completed_by))
            return True
        limit = state.config.max_rounds
        if limit is not None and state.round >= limit:
            state.ended = True
            emit(state, "game_over", reason="round_limit")
            return True
        return False

    def run(self) -> GameResult:
        state = self.state
        while not state.ended:
            generation = state.generation
            try:
                self.play_round()
            except Exception as e:
                state.fatal_error = str(e) or type(e).__name__
                state.ended = True
                emit(
                    state,
                    "fatal_error",
                    error=state.fatal_error,
                    traceback=traceback.format_exc(limit=6),
                )
                break
            if self._should_stop():
                break
            # A restore mid-round already put the game on the round it should play next.
            if state.generation == generation:
                state.round += 1
        return self.finish()

    def finish(self) -> GameResult:
        state = self.state
        scores = score_game(state)
        best = winner(scores)
        for card in scores:
            emit(
                state,
                "final_score",
                player=card.player,
                base=card.ranking,
                bonus=card.purple_bonus,
                total=card.total,
            )
        emit(state, "winner", player=best)
        self.flush_events()
        return GameResult(scores=scores, winner=best, rounds=state.round, fatal_error=state.fatal_error)
