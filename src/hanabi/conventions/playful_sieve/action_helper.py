"""Clue scoring for the playful sieve."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...clue_result import elim_result, playables_result
from ...logs import log_clue
from ...models import Clue, ClueAction, PerformAction
from .interpret_clue import sieve_locked

if TYPE_CHECKING:
    from ...game import Game

logger = logging.getLogger(__name__)

MISREAD_VALUE = -1.0
LOCK_VALUE = -2.0


def clue_to_perform(target: int, clue: Clue) -> PerformAction:
    return PerformAction(
        type="clue_color" if clue.type == "color" else "clue_rank",
        target=target,
        value=clue.value,
    )


def misread(game: Game, player_index: int, order: int) -> bool:
    """Whether the common view is wrong about a card in a way its holder would act on.

    A touched card must keep its true identity among its inferences unless it is
    trash, and a card believed playable must really be playable.
    """
    state, common = game.state, game.common
    card = common.thoughts[order]
    actual = state.deck[order].identity()
    if actual is None or not card.touched:
        return False

    if actual not in card.inferred and not state.is_basic_trash(actual):
        return True
    return order in common.thinks_playables(state, player_index) and not state.is_playable(actual)


def simulate_partner_clue(game: Game, clue: Clue) -> Game:
    state = game.state
    us = state.our_player_index
    partner = (us + 1) % state.num_players
    touched = state.clue_touched(state.hands[partner], clue)
    return game.simulate_clue(ClueAction(giver=us, target=partner, clue=clue, touched=touched))


def clue_value(game: Game, clue: Clue) -> float:
    """Score a clue to our partner.

    One new playable, one newly touched card and one card that learnt something is
    worth 2. A clue that would be misread scores MISREAD_VALUE and a clue that locks
    the partner scores LOCK_VALUE.
    """
    state, common = game.state, game.common
    us = state.our_player_index
    partner = (us + 1) % state.num_players
    hand = state.hands[partner]

    hypo_game = simulate_partner_clue(game, clue)
    hypo_state, hypo_common = hypo_game.state, hypo_game.common

    for order in hand:
        hypo_card = hypo_common.thoughts[order]
        actual = state.deck[order].identity()
        newly_called = hypo_card.called_to_discard and not common.thoughts[order].called_to_discard
        if misread(hypo_game, partner, order) or (
            newly_called and actual is not None and (state.is_critical(actual) or state.is_playable(actual))
        ):
            logger.debug(f"{log_clue(state, clue, partner)} would be misread on order {order}")
            return MISREAD_VALUE

    if sieve_locked(hypo_common, hypo_state, partner) and not sieve_locked(common, state, partner):
        return LOCK_VALUE

    touched = state.clue_touched(hand, clue)
    new_touched, fill, elim = elim_result(common, hypo_common, hand, touched)
    _, playables, _ = playables_result(hypo_state, common, hypo_common, partner)

    # Referred cards play without knowing their identity
    referred = [
        order for order in hand
        if hypo_common.thoughts[order].finessed and not common.thoughts[order].finessed and order not in playables
    ]
    playables = playables + referred

    old_trash = set(common.thinks_trash(state, partner))
    revealed_trash = [order for order in hypo_common.thinks_trash(hypo_state, partner) if order not in old_trash]

    value = len(playables) + 0.5 * (new_touched + fill) + 0.5 * elim + 0.5 * len(revealed_trash)
    logger.debug(
        f"{log_clue(state, clue, partner)}: playables {len(playables)} new {new_touched} fill {fill} "
        f"elim {elim} trash {len(revealed_trash)} value {value:.2f}"
    )
    return value
