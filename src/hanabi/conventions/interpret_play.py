"""Play interpretation and contradiction detection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..basics import on_play
from ..logs import log_identities
from ..models import DiscardAction, PlayAction, RewindRequest

if TYPE_CHECKING:
    from ..game import Game

logger = logging.getLogger(__name__)


def find_contradiction(game: Game, action: PlayAction | DiscardAction) -> RewindRequest | None:
    """Check whether one of our cards was revealed as something we never believed it was.

    A misplay always contradicts. A play or discard contradicts when the revealed
    identity is outside the card's inferences and the card was not trash. The rewind
    point is the oldest action that narrowed the card's inferences, or the draw.

    Returns:
        A rewind request, or None if the reveal is consistent
    """
    state, me = game.state, game.me
    if action.player_index != state.our_player_index:
        return None

    common_card = game.common.thoughts.get(action.order)
    card = me.thoughts.get(action.order)
    if card is None or common_card is None or common_card.rewinded:
        return None

    identity = action.identity
    failed = action.type == "discard" and action.failed
    if not failed:
        if identity in card.inferred or me.is_trash(state, identity, action.order):
            return None

    logger.info(f"Card {action.order} revealed as {identity}, inferences were [{log_identities(card.inferred)}]")

    reasoning = common_card.reasoning or card.reasoning
    action_index = min(reasoning) if reasoning else card.drawn_index + 1
    return RewindRequest(
        action_index=action_index,
        order=action.order,
        player_index=action.player_index,
        identity=identity,
    )


def interpret_play(game: Game, action: PlayAction) -> None:
    """Apply a successful play and remove the played identity from other touched cards."""
    state, common = game.state, game.common
    on_play(game, action)

    identity = action.identity
    for hand in state.hands:
        for order in hand:
            card = common.thoughts[order]
            if not card.touched or len(card.inferred) <= 1 or identity not in card.inferred:
                continue
            remaining = card.inferred - {identity}
            if remaining:
                card.assign_inferred(remaining)

    common.update_hypo_stacks(state, game.waiting_connections)
    game.team_elim()
