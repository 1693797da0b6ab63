"""Metrics calculation for self-play Hanabi games."""

from __future__ import annotations

from typing import Any

from .models import (
    ClueAction,
    DiscardAction,
    HanabiEpisodeRecord,
    PlayAction,
    TurnLog,
)


def _play_outcome(turn: TurnLog) -> bool | None:
    """True for a successful play, False for a misplay, None for anything else."""
    if turn.perform.type != "play":
        return None
    for action in turn.actions:
        if isinstance(action, PlayAction):
            return True
        if isinstance(action, DiscardAction) and action.failed:
            return False
    return None


def compute_episode_metrics(episode: HanabiEpisodeRecord) -> dict[str, Any]:
    """
    Compute metrics for a completed episode.

    Returns dict with:
    - score: Final score
    - score_percentage: Score as percentage of a perfect score
    - total_turns: Number of turns played
    - clues_given: Total clue actions
    - plays_attempted / plays_successful / plays_failed
    - discards: Total deliberate discards
    - clue_efficiency: Successful plays per clue given
    - solver_turns: Turns decided by the endgame solver
    - blind_plays: Plays of cards no clue ever touched
    - rewinds: Rewinds performed across every seat
    - per_player: Per-seat breakdown
    """
    turns = episode.turns
    perfect = 5 * len(episode.config.suits)

    clues_given = 0
    plays_attempted = 0
    plays_successful = 0
    plays_failed = 0
    discards = 0
    solver_turns = 0

    per_player: dict[str, dict[str, int]] = {
        name: {
            "clues": 0, "plays": 0, "plays_successful": 0, "plays_failed": 0, "discards": 0,
            "rewinds": episode.rewinds.get(seat, 0),
        }
        for seat, name in enumerate(episode.player_names)
    }

    for turn in turns:
        stats = per_player[episode.player_names[turn.player_index]]
        if turn.solver_used:
            solver_turns += 1

        if turn.perform.type in ("clue_color", "clue_rank"):
            clues_given += 1
            stats["clues"] += 1
        elif turn.perform.type == "play":
            plays_attempted += 1
            stats["plays"] += 1
            if _play_outcome(turn):
                plays_successful += 1
                stats["plays_successful"] += 1
            else:
                plays_failed += 1
                stats["plays_failed"] += 1
        else:
            discards += 1
            stats["discards"] += 1

    clue_efficiency = plays_successful / clues_given if clues_given > 0 else 0.0
    play_success_rate = plays_successful / plays_attempted if plays_attempted > 0 else 0.0
    latencies = [turn.latency_ms for turn in turns]

    final_stacks = [0] * len(episode.config.suits)
    clued_orders: set[int] = set()
    blind_plays = 0
    for action in episode.actions:
        if isinstance(action, ClueAction):
            clued_orders.update(action.touched)
        elif isinstance(action, PlayAction):
            final_stacks[action.suit_index] = max(final_stacks[action.suit_index], action.rank)
            if action.order not in clued_orders:
                blind_plays += 1

    return {
        "score": episode.final_score,
        "score_percentage": round(episode.final_score / perfect * 100, 1),
        "max_possible_score": episode.max_score,
        "score_category": score_category(episode.final_score, perfect),
        "total_turns": len(turns),
        "game_over_reason": episode.game_over_reason,

        # Action counts
        "clues_given": clues_given,
        "plays_attempted": plays_attempted,
        "plays_successful": plays_successful,
        "plays_failed": plays_failed,
        "discards": discards,

        # Derived metrics
        "clue_efficiency": round(clue_efficiency, 3),
        "play_success_rate": round(play_success_rate, 3),
        "strikes": episode.strikes,
        "solver_turns": solver_turns,
        "blind_plays": blind_plays,
        "rewinds": sum(episode.rewinds.values()),
        "mean_latency_ms": round(sum(latencies) / len(latencies), 2) if latencies else 0.0,

        # Per-suit breakdown
        "stacks_completed": sum(1 for rank in final_stacks if rank == 5),
        "per_suit": dict(zip(episode.config.suits, final_stacks)),

        # Per-player breakdown
        "per_player": per_player,
    }


def compute_clue_utilization(episode: HanabiEpisodeRecord, window: int | None = None) -> dict[str, Any]:
    """
    Analyze what clue receivers did on their next turn.

    Tracks:
    - Clues followed by a play from the receiver
    - Clues followed by a discard from the receiver
    - Clues with no follow-up inside the window
    """
    turns = episode.turns
    window = window if window is not None else episode.config.num_players

    clue_outcomes: list[dict[str, Any]] = []

    for i, turn in enumerate(turns):
        if turn.perform.type not in ("clue_color", "clue_rank"):
            continue

        target = turn.perform.target
        follow_up_turns = None
        follow_up_type = None

        for j in range(i + 1, min(i + 1 + window, len(turns))):
            if turns[j].player_index == target:
                follow_up_turns = j - i
                follow_up_type = turns[j].perform.type
                break

        clue_outcomes.append({
            "turn": turn.turn_number,
            "giver": turn.player_index,
            "target": target,
            "clue_type": turn.perform.type,
            "clue_value": turn.perform.value,
            "follow_up_turns": follow_up_turns,
            "follow_up_type": follow_up_type,
        })

    total_clues = len(clue_outcomes)
    clues_to_plays = sum(1 for c in clue_outcomes if c["follow_up_type"] == "play")
    clues_to_discards = sum(1 for c in clue_outcomes if c["follow_up_type"] == "discard")

    return {
        "total_clues": total_clues,
        "clues_to_plays": clues_to_plays,
        "clues_to_discards": clues_to_discards,
        "play_rate": round(clues_to_plays / total_clues, 3) if total_clues > 0 else 0.0,
        "details": clue_outcomes,
    }


def score_category(score: int, perfect: int = 25) -> str:
    """Categorize a Hanabi score relative to a perfect score."""
    fraction = score / perfect if perfect > 0 else 0.0
    if score == perfect:
        return "perfect"
    elif fraction >= 0.84:
        return "excellent"
    elif fraction >= 0.64:
        return "good"
    elif fraction >= 0.44:
        return "mediocre"
    elif fraction >= 0.24:
        return "poor"
    else:
        return "terrible"
