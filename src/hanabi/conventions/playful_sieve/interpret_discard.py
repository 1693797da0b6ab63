"""Discard interpretation for the two-player playful sieve."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...basics import on_discard
from ...models import DiscardAction
from ..interpret_discard import undo_hypo_stacks

if TYPE_CHECKING:
    from ...game import Game

logger = logging.getLogger(__name__)


def interpret_discard(game: Game, action: DiscardAction) -> None:
    """Apply a discard or misplay.

    Discarding a touched, still useful card sends it to the partner's chop: the
    leftmost card nothing protects is that identity and plays next.
    """
    state, common = game.state, game.common
    identity = action.identity
    suit = identity.suit_index
    partner = (action.player_index + 1) % state.num_players

    card = common.thoughts.get(action.order)
    useful = (
        card is not None
        and card.touched
        and state.play_stacks[suit] < identity.rank <= state.max_ranks[suit]
    )

    on_discard(game, action)

    if useful and action.failed:
        undo_hypo_stacks(game, action.player_index, identity)
    elif useful:
        chop = next(
            (
                order for order in state.hands[partner]
                if not common.thoughts[order].saved and not common.thoughts[order].called_to_discard
            ),
            None,
        )
        if chop is not None and identity in common.thoughts[chop].possible:
            target = common.thoughts[chop]
            target.assign_inferred({identity})
            target.finessed = True
            logger.info(f"Sarcastic discard of {identity} onto {state.player_names[partner]}'s chop, order {chop}")
        else:
            logger.warning(f"Couldn't find a target for sarcastic discard of {identity}")
            undo_hypo_stacks(game, action.player_index, identity)

    common.update_hypo_stacks(state, game.waiting_connections)
    game.team_elim()
