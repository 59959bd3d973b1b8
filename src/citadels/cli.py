from __future__ import annotations

import argparse
import random
from pathlib import Path

from citadels.console import ConsoleDecisions
from citadels.engine.ai import AISpec, AutomatedDecisions
from citadels.engine.session import GameSession
from citadels.engine.state import MAX_PLAYERS, MIN_PLAYERS, GameConfig, new_game
from citadels.paths import get_paths
from citadels.services.content import ContentError, ContentService
from citadels.services.saves import SaveError, SaveService
from citadels.services.telemetry import TelemetryService


def _ask_players() -> int:
    for _ in range(3):
        try:
            raw = input(f"Enter how many players [{MIN_PLAYERS}-{MAX_PLAYERS}]: ").strip()
        except EOFError:
            break
        if raw.isdigit() and MIN_PLAYERS <= int(raw) <= MAX_PLAYERS:
            return int(raw)
        print(f"Please enter a number between {MIN_PLAYERS} and {MAX_PLAYERS}.")
    return MIN_PLAYERS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="citadels", description="Play Citadels against the computer.")
    parser.add_argument("--players", type=int, default=None, help=f"{MIN_PLAYERS}-{MAX_PLAYERS} players")
    parser.add_argument("--seed", type=int, default=None, help="seed for a reproducible game")
    parser.add_argument("--max-rounds", type=int, default=None, help="stop after this many rounds")
    parser.add_argument("--difficulty", type=int, choices=(0, 1, 2), default=1)
    parser.add_argument("--telemetry", type=Path, default=None, help="append game events to this JSONL file")
    parser.add_argument("--load", type=Path, default=None, help="resume a saved game")
    parser.add_argument("--auto", action="store_true", help="computer players only")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    paths = get_paths()

    content = ContentService(data_dir=paths.data_dir, schema_dir=paths.schema_dir)
    try:
        catalog = content.load_catalog()
        saves = SaveService(content.schema("save"), base_dir=paths.userdata_dir / "saves")
    except ContentError as e:
        print(f"Could not load card data: {e}")
        return 2

    console = ConsoleDecisions(saves=saves)
    players = args.players if args.players is not None else _ask_players()
    seed = args.seed if args.seed is not None else random.randrange(2**31)
    config = GameConfig(max_rounds=args.max_rounds)
    automated = AutomatedDecisions(AISpec(difficulty=args.difficulty))

    try:
        state = new_game(
            catalog,
            players,
            seed,
            human=None if args.auto else console,
            automated=automated,
            config=config,
        )
    except ValueError as e:
        print(str(e))
        return 2

    if args.load is not None:
        try:
            saves.load_into(state, args.load)
        except SaveError as e:
            print(f"Error loading game: {e}")
            return 2

    telemetry = TelemetryService(args.telemetry) if args.telemetry is not None else None
    print(f"Starting Citadels with {len(state.players)} players (seed {seed}).")
    if not args.auto:
        print("You are player 1. Type 'help' during your turn for commands.")

    result = GameSession(state, telemetry=telemetry, on_event=console.show_event).run()
    return 1 if result.fatal_error else 0
