"""Action selection: a fixed priority ladder over the clue finder and the bot's own hand."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..endgame import find_unseen_identities, solve_game
from ..errors import UnsolvedGame
from ..logs import log_clue, log_perform_action
from ..models import MAX_CLUES, PerformAction
from .clue_finder import (
    HARD_BURN,
    LOCKED_SAVE,
    ClueCandidate,
    ClueOptions,
    endgame_clues,
    find_clues,
    find_stall_clue,
)

if TYPE_CHECKING:
    from ..game import Game

logger = logging.getLogger(__name__)


def _urgent_save(game: Game, options: ClueOptions, player_index: int) -> ClueCandidate | None:
    """A save clue for a player who would otherwise discard a card that needs saving."""
    state, common = game.state, game.common
    save = options.save_clues[player_index]
    if save is None or common.thinks_loaded(state, player_index):
        return None
    return save


def determine_playable_card(game: Game, playables: list[int]) -> int:
    """Choose which known playable to play first.

    Blind plays come first since other players are waiting on them, then cards that
    unlock another known card, then the lowest rank.
    """
    state, me = game.state, game.me

    def priority(order: int) -> tuple[int, int, int]:
        card = me.thoughts[order]
        identity = card.identity(infer=True)
        if card.finessed:
            return (0, 0, -order)

        unlocks = 0
        if identity is not None:
            unlocks = len(me.visible_find(state, identity.model_copy(update={"rank": identity.rank + 1}), infer=True))
        rank = identity.rank if identity is not None else min(inf.rank for inf in card.inferred)
        return (1, -unlocks, rank)

    return min(playables, key=priority)


def _minimum_clue_value(game: Game) -> float:
    state, conventions = game.state, game.conventions
    value = conventions.minimum_clue_value
    if state.num_players == 2:
        value -= conventions.two_player_clue_adjustment
    if state.in_endgame:
        value -= conventions.endgame_clue_adjustment
    return value


def _chop_discard(game: Game) -> int:
    """The card to discard when there is nothing better to do."""
    state, common, me = game.state, game.common, game.me
    hand = state.hands[state.our_player_index]

    chop = common.chop(hand, after_clue=True)
    if chop is not None:
        return chop

    # Locked: give up the card least likely to be critical
    def risk(order: int) -> tuple[int, int]:
        card = me.thoughts[order]
        critical = sum(1 for inf in card.inferred if state.is_critical(inf))
        return (critical, -hand.index(order))

    return min(hand, key=risk)


def take_action(game: Game) -> tuple[PerformAction, str]:
    """Decide what to do on our turn.

    Returns:
        (the action, a one-line rationale)
    """
    state, me = game.state, game.me
    us = state.our_player_index
    hand = state.hands[us]
    next_player = (us + 1) % state.num_players

    if state.in_endgame and len(find_unseen_identities(game)) <= game.conventions.max_unseen_identities:
        try:
            perform = solve_game(game, us, endgame_clues)
            return perform, "endgame solver found a winning line"
        except UnsolvedGame as e:
            logger.info(f"Endgame not solved: {e}")

    options = find_clues(game)

    trash = me.thinks_trash(state, us)
    playables = [order for order in me.thinks_playables(state, us) if order not in trash]

    # Fixes and saves for the next player come before anything else
    if state.clue_tokens > 0:
        if options.fix_clues[next_player]:
            candidate = options.fix_clues[next_player][0]
            return candidate.to_perform(), f"urgent fix {log_clue(state, candidate.clue, next_player)}"

        save = _urgent_save(game, options, next_player)
        if save is not None and not playables:
            return save.to_perform(), f"urgent save {log_clue(state, save.clue, next_player)}"

    if playables:
        order = determine_playable_card(game, playables)
        return PerformAction(type="play", target=order), "known playable"

    if state.clue_tokens > 0:
        for offset in range(1, state.num_players):
            player_index = (us + offset) % state.num_players
            if options.fix_clues[player_index]:
                candidate = options.fix_clues[player_index][0]
                return candidate.to_perform(), f"fix {log_clue(state, candidate.clue, player_index)}"

            save = _urgent_save(game, options, player_index)
            if save is not None:
                return save.to_perform(), f"save {log_clue(state, save.clue, player_index)}"

        all_play_clues = [c for clues in options.play_clues for c in clues]
        if all_play_clues:
            best = max(all_play_clues, key=lambda c: c.result.value)
            minimum = _minimum_clue_value(game)
            if best.result.value >= minimum:
                return best.to_perform(), f"play clue {log_clue(state, best.clue, best.target)} worth {best.result.value:.2f}"
            logger.info(f"Clue too low value {log_clue(state, best.clue, best.target)} {best.result.value:.2f}")

    # Discarding is not allowed at max clues
    if state.clue_tokens == MAX_CLUES:
        stall = find_stall_clue(options, HARD_BURN)
        if stall is not None:
            return stall.to_perform(), f"8 clue stall {log_clue(state, stall.clue, stall.target)}"
        target = next_player
        clue = state.all_valid_clues(target)[0]
        perform = PerformAction(
            type="clue_color" if clue.type == "color" else "clue_rank",
            target=target,
            value=clue.value,
        )
        return perform, "8 clue burn"

    if trash:
        return PerformAction(type="discard", target=trash[0]), "known trash"

    if state.clue_tokens > 0:
        if me.thinks_locked(state, us):
            stall = find_stall_clue(options, LOCKED_SAVE)
            if stall is not None:
                return stall.to_perform(), f"locked hand stall {log_clue(state, stall.clue, stall.target)}"

        if state.in_endgame and any(
            hypo > stack for hypo, stack in zip(game.common.hypo_stacks, state.play_stacks)
        ):
            stall = find_stall_clue(options, HARD_BURN)
            if stall is not None:
                return stall.to_perform(), f"endgame stall {log_clue(state, stall.clue, stall.target)}"

    order = _chop_discard(game)
    perform = PerformAction(type="discard", target=order)
    logger.debug(f"Discarding chop: {log_perform_action(state, perform)}")
    return perform, "chop discard" if order == game.common.chop(hand, after_clue=True) else "locked discard"
