"""Fix clues for the playful sieve."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...logs import log_clue
from ...models import PerformAction
from .action_helper import MISREAD_VALUE, clue_to_perform, clue_value, misread, simulate_partner_clue

if TYPE_CHECKING:
    from ...game import Game

logger = logging.getLogger(__name__)


def find_fix_clue(game: Game) -> PerformAction | None:
    """Find a clue that corrects every card our partner is wrong about.

    A card needs fixing when it is touched and either its true identity was inferred
    away or it looks playable but isn't, typically after we played its duplicate.
    Among the clues that leave nothing misread, the most valuable one is chosen.
    """
    state = game.state
    us = state.our_player_index
    partner = (us + 1) % state.num_players
    hand = state.hands[partner]

    broken = [order for order in hand if misread(game, partner, order)]
    if not broken:
        return None

    logger.info(f"Cards needing a fix in {state.player_names[partner]}'s hand: {broken}")

    best: PerformAction | None = None
    best_value = MISREAD_VALUE
    for clue in state.all_valid_clues(partner):
        hypo_game = simulate_partner_clue(game, clue)
        if any(misread(hypo_game, partner, order) for order in hand):
            continue

        value = clue_value(game, clue)
        logger.debug(f"Fix clue {log_clue(state, clue, partner)} has value {value:.2f}")
        if best is None or value > best_value:
            best = clue_to_perform(partner, clue)
            best_value = value

    if best is None:
        logger.warning(f"No clue fixes {state.player_names[partner]}'s hand")
    return best
