#!/usr/bin/env python3
"""
Run local self-play games between convention bots.

Each game seats one bot per player. Bots only see their own redacted action stream;
the table is the only place that knows every card.

Usage:
    # Ten 3-player games from seed 0, records saved to ./episodes
    python scripts/self_play.py --games 10 --seed 0

    # Two players, bluffs enabled, verbose engine logging
    python scripts/self_play.py --players 2 --level 11 -v

    # Two players on the playful sieve
    python scripts/self_play.py --players 2 --convention playful_sieve
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment before importing src modules
load_dotenv(Path(__file__).parent.parent / ".env")

from src.hanabi.metrics import compute_clue_utilization, compute_episode_metrics, score_category
from src.hanabi.models import ConventionConfig, TableConfig
from src.hanabi.orchestrator import run_episode


def configure_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = getattr(logging, os.getenv("HANABI_LOG_LEVEL", "WARNING").upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def main():
    parser = argparse.ArgumentParser(description="Run self-play Hanabi games between convention bots")
    parser.add_argument("--games", type=int, default=1, help="Number of games to play (default: 1)")
    parser.add_argument("--players", type=int, default=3, help="Players per game (default: 3)")
    parser.add_argument("--seed", type=int, default=None, help="Seed of the first game; later games use seed+1, seed+2, ...")
    parser.add_argument(
        "--convention",
        choices=["hgroup", "playful_sieve"],
        default="hgroup",
        help="Convention set (playful_sieve needs --players 2)",
    )
    parser.add_argument("--level", type=int, default=int(os.getenv("HANABI_LEVEL", "5")), help="Convention level 1-11")
    parser.add_argument("--positional-discards", action="store_true", help="Enable positional discards")
    parser.add_argument(
        "--solver-timeout",
        type=float,
        default=float(os.getenv("HANABI_SOLVER_TIMEOUT", "2.0")),
        help="Endgame solver time limit in seconds",
    )
    parser.add_argument("--output", type=str, default="episodes", help="Directory for episode records")
    parser.add_argument("--no-save", action="store_true", help="Do not write episode records")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    args = parser.parse_args()

    configure_logging(args.verbose, args.quiet)

    if args.convention == "playful_sieve" and args.players != 2:
        parser.error("--convention playful_sieve needs --players 2")

    conventions = ConventionConfig(
        convention=args.convention,
        level=args.level,
        positional_discards=args.positional_discards,
        solver_timeout=args.solver_timeout,
    )

    scores = []
    for game_number in range(args.games):
        seed = args.seed + game_number if args.seed is not None else None
        config = TableConfig(num_players=args.players, seed=seed)

        episode = run_episode(config, conventions, metadata={"game_number": game_number})
        metrics = compute_episode_metrics(episode)
        utilization = compute_clue_utilization(episode)
        scores.append(episode.final_score)

        print(
            f"Game {game_number + 1}/{args.games} (seed {episode.seed}): "
            f"{episode.final_score}/{episode.max_score} [{score_category(episode.final_score)}] "
            f"{metrics['total_turns']} turns, {episode.strikes} strikes, "
            f"{metrics['clues_given']} clues ({utilization['play_rate']:.0%} followed by a play), "
            f"{metrics['rewinds']} rewinds - {episode.game_over_reason}"
        )

        if not args.no_save:
            path = episode.save(args.output)
            print(f"  saved {path}")

    if len(scores) > 1:
        average = sum(scores) / len(scores)
        perfect = sum(1 for score in scores if score == 25)
        print(f"\nAverage score: {average:.2f} over {len(scores)} games, {perfect} perfect")


if __name__ == "__main__":
    main()
