"""Orchestrator for running self-play Hanabi games between bots."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Callable

from .agents.bot import HanabiBot
from .logs import log_perform_action
from .metrics import compute_episode_metrics
from .models import (
    Action,
    ConventionConfig,
    GameOverAction,
    HanabiEpisodeRecord,
    TableConfig,
    TurnAction,
    TurnLog,
)
from .table import TableState, apply_perform, create_table
from .visibility import redact_for_seat

logger = logging.getLogger(__name__)


def broadcast(bots: list[HanabiBot], actions: list[Action]) -> None:
    """Send actions to every bot, each redacted for its own seat."""
    for action in actions:
        for bot in bots:
            bot.observe(redact_for_seat(action, bot.seat))


def run_turn(
    table: TableState,
    bot: HanabiBot,
    emit_fn: Callable[[str, dict[str, Any]], None] | None = None,
) -> tuple[TurnLog, list[Action]]:
    """
    Execute a single turn.

    Args:
        table: Current table state, updated in place
        bot: The bot whose turn it is
        emit_fn: Optional callback for emitting events

    Returns:
        (turn_log, public actions the turn produced)
    """
    turn_number = table.turn_number
    perform, trace = bot.decide()
    actions = apply_perform(table, bot.seat, perform)

    turn_log = TurnLog(
        turn_number=turn_number,
        player_index=bot.seat,
        perform=perform,
        actions=actions,
        rationale=trace.rationale,
        latency_ms=trace.latency_ms,
        solver_used=trace.solver_used,
        clue_tokens_after=table.clue_tokens,
        strikes_after=table.strikes,
        score_after=table.score,
    )

    if emit_fn is not None:
        # Observer event: full table state
        emit_fn("turn", {
            "turn_number": turn_number,
            "player_index": bot.seat,
            "perform": perform.model_dump(),
            "actions": [action.model_dump() for action in actions],
            "rationale": trace.rationale,
            "clue_tokens": table.clue_tokens,
            "strikes": table.strikes,
            "score": table.score,
            "hands": [
                [str(table.deck[order]) for order in hand]
                for hand in table.hands
            ],
            "play_stacks": list(table.play_stacks),
            "cards_left": table.cards_left,
            "notes": trace.notes,
        })

    return turn_log, actions


def run_episode(
    config: TableConfig,
    conventions: ConventionConfig | None = None,
    player_names: list[str] | None = None,
    emit_fn: Callable[[str, dict[str, Any]], None] | None = None,
    episode_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> HanabiEpisodeRecord:
    """
    Run a complete self-play episode.

    Args:
        config: Table configuration
        conventions: Convention settings shared by every bot
        player_names: Optional seat names
        emit_fn: Optional callback for emitting events
        episode_id: Optional episode ID (generated if not provided)
        metadata: Optional metadata to include in record

    Returns:
        Complete episode record
    """
    conventions = conventions or ConventionConfig()
    if episode_id is None:
        episode_id = str(uuid.uuid4())[:8]

    table, deal = create_table(config, player_names)
    names = table.player_names
    bots = [
        HanabiBot(seat, config.num_players, names, config.suits, conventions)
        for seat in range(config.num_players)
    ]

    if emit_fn is not None:
        emit_fn("init", {
            "game_type": "hanabi",
            "config": table.config.model_dump(),
            "conventions": conventions.model_dump(),
            "player_order": names,
            "episode_id": episode_id,
            "hands": [
                [str(table.deck[order]) for order in hand]
                for hand in table.hands
            ],
            "clue_tokens": table.clue_tokens,
            "cards_left": table.cards_left,
        })

    log: list[Action] = list(deal)
    broadcast(bots, deal)

    start = TurnAction(num=0, current_player_index=table.current_player_idx)
    log.append(start)
    broadcast(bots, [start])

    turns: list[TurnLog] = []

    while not table.game_over:
        # Safety limit
        if table.turn_number >= config.max_turns:
            table.game_over = True
            table.game_over_reason = "turn_limit"
            break

        bot = bots[table.current_player_idx]
        turn_log, actions = run_turn(table, bot, emit_fn)
        turns.append(turn_log)
        logger.debug(f"Turn {turn_log.turn_number}: {bot.name} {log_perform_action(bot.game.state, turn_log.perform)}")

        log.extend(actions)
        broadcast(bots, actions)

        if not table.game_over:
            turn = TurnAction(num=table.turn_number, current_player_index=table.current_player_idx)
            log.append(turn)
            broadcast(bots, [turn])

    game_over = GameOverAction()
    log.append(game_over)
    broadcast(bots, [game_over])

    logger.info(
        f"Episode {episode_id} finished: score {table.score}/{table.max_score}, "
        f"{table.strikes} strikes ({table.game_over_reason})"
    )

    episode = HanabiEpisodeRecord(
        episode_id=episode_id,
        timestamp=datetime.utcnow(),
        config=table.config,
        conventions=conventions,
        seed=table.config.seed,
        player_names=names,
        deck=list(table.deck),
        actions=log,
        turns=turns,
        final_score=table.score,
        max_score=table.max_score,
        strikes=table.strikes,
        game_over_reason=table.game_over_reason or "unknown",
        rewinds={bot.seat: bot.game.rewinds for bot in bots},
        metadata=metadata or {},
    )

    if emit_fn is not None:
        emit_fn("done", {
            "episode_id": episode_id,
            "final_score": table.score,
            "game_over_reason": episode.game_over_reason,
            "total_turns": len(turns),
            "metrics": compute_episode_metrics(episode),
        })

    return episode
