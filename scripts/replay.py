#!/usr/bin/env python3
"""
Replay a stored game through a fresh engine from one seat's point of view.

Accepts either a saved episode record or a bare JSON list of actions. At each of the
seat's turns, prints what the seat believes about its own hand and the action the bot
would choose.

Usage:
    python scripts/replay.py episodes/hanabi_episode_ab12cd34_20250101_120000.json --seat 1
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment before importing src modules
load_dotenv(Path(__file__).parent.parent / ".env")

from src.hanabi.conventions import take_action
from src.hanabi.game import Game
from src.hanabi.logs import log_action, log_identities, log_perform_action
from src.hanabi.models import ACTION_LOG_ADAPTER, ConventionConfig, HanabiEpisodeRecord
from src.hanabi.visibility import seat_stream


def load_log(path: Path):
    """Return (actions, player_names, suits) from an episode record or a bare action log."""
    with open(path, "r") as f:
        data = json.load(f)

    if isinstance(data, dict):
        episode = HanabiEpisodeRecord.model_validate(data)
        return episode.actions, episode.player_names, episode.config.suits

    return ACTION_LOG_ADAPTER.validate_python(data), None, None


def print_beliefs(game: Game) -> None:
    state = game.state
    for slot, order in enumerate(state.hands[state.our_player_index], start=1):
        card = game.me.thoughts[order]
        flags = [
            name
            for name, value in (("clued", card.clued), ("finessed", card.finessed), ("chop_moved", card.chop_moved))
            if value
        ]
        print(
            f"    slot {slot} (order {order}): inferred [{log_identities(card.inferred)}] "
            f"possible [{log_identities(card.possible)}] {' '.join(flags)}"
        )


def main():
    parser = argparse.ArgumentParser(description="Replay a Hanabi action log through the engine")
    parser.add_argument("log", type=str, help="Episode record or action log JSON")
    parser.add_argument("--seat", type=int, default=0, help="Seat to replay as (default: 0)")
    parser.add_argument("--level", type=int, default=int(os.getenv("HANABI_LEVEL", "5")), help="Convention level 1-11")
    parser.add_argument(
        "--solver-timeout",
        type=float,
        default=float(os.getenv("HANABI_SOLVER_TIMEOUT", "2.0")),
        help="Endgame solver time limit in seconds",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    if args.verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, os.getenv("HANABI_LOG_LEVEL", "WARNING").upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(name)s - %(levelname)s - %(message)s")

    actions, player_names, suits = load_log(Path(args.log))
    num_players = len(player_names) if player_names else 1 + max(a.player_index for a in actions if a.type == "draw")
    conventions = ConventionConfig(level=args.level, solver_timeout=args.solver_timeout)
    game = Game(args.seat, num_players, player_names, suits, conventions)

    for action in seat_stream(actions, args.seat):
        if action.type not in ("draw", "turn"):
            print(log_action(game.state, action))
        game.handle_action(action)

        if action.type == "turn" and action.current_player_index == args.seat and game.state.in_progress:
            print(f"\n== Turn {game.state.turn_count}: {game.state.player_names[args.seat]} to act ==")
            print_beliefs(game)
            perform, rationale = take_action(game)
            print(f"  suggested: {log_perform_action(game.state, perform)} ({rationale})\n")

    print(f"\nFinal score: {game.state.score}, strikes: {game.state.strikes}, rewinds: {game.rewinds}")


if __name__ == "__main__":
    main()
