"""Focus, chop and bad touch."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..logs import log_identities
from ..models import ClueAction, Identity
from ..player import Player

if TYPE_CHECKING:
    from ..game import Game

logger = logging.getLogger(__name__)


def determine_focus(hand: list[int], common: Player, touched: list[int]) -> tuple[int, bool]:
    """Find the focused card of a clue.

    A newly touched chop is the focus. Otherwise the leftmost newly touched card is,
    and if the clue touched nothing new, the leftmost touched card.

    Returns:
        (focused_order, whether the focus is the chop)
    """
    def is_new(order: int) -> bool:
        # Before the clue is applied, a touched card that isn't clued yet is new
        card = common.thoughts[order]
        return card.newly_clued or not card.clued

    chop = common.chop(hand)
    if chop is not None and chop in touched and is_new(chop):
        return chop, True

    for order in hand:
        if order in touched and is_new(order):
            return order, False

    for order in hand:
        if order in touched:
            return order, False

    raise ValueError(f"Clue touched no cards in hand {hand}")


def in_between(num_players: int, player_index: int, giver: int, target: int) -> bool:
    """Whether a player acts strictly after the giver and before the target."""
    i = (giver + 1) % num_players
    while i != target:
        if i == player_index:
            return True
        i = (i + 1) % num_players
    return False


def find_bad_touch(game: Game, giver: int, target: int) -> set[Identity]:
    """Identities that a newly touched card in the target's hand should not be.

    These are basic trash plus identities already touched elsewhere. Cards the giver,
    the target or we cannot see are judged on common knowledge.
    """
    state, common = game.state, game.common
    bad_touch = {identity for identity in state.all_identities() if state.is_basic_trash(identity)}
    hidden_hands = {giver, target, state.our_player_index}

    for player_index, hand in enumerate(state.hands):
        for order in hand:
            card = common.thoughts[order]
            if not card.touched:
                continue
            if player_index == target and card.newly_clued:
                continue

            if player_index in hidden_hands:
                identity = card.identity(infer=True)
            else:
                identity = state.deck[order].identity()

            if identity is not None:
                bad_touch.add(identity)
    return bad_touch


def eliminate_bad_touch(game: Game, action: ClueAction) -> tuple[bool, set[Identity], int]:
    """Remove bad touch from the touched cards of the target until nothing changes.

    A previously clued card that loses every inference is a fix: it is reset to its
    possibilities minus bad touch. The loop runs at most once per card in the hand
    plus one.

    Returns:
        (whether the clue was a fix, the final bad touch set, iterations run)
    """
    state, common = game.state, game.common
    hand = state.hands[action.target]
    bad_touch = find_bad_touch(game, action.giver, action.target)
    fix = False

    max_iterations = len(hand) + 1
    for iteration in range(1, max_iterations + 1):
        size = len(bad_touch)

        for order in hand:
            card = common.thoughts[order]
            if not card.clued:
                continue
            if len(card.inferred) > 1:
                card.subtract_inferred(bad_touch)
            if card.inferred:
                continue

            if card.newly_clued:
                # Every option is trash, so it must be one of them
                card.assign_inferred(card.possible & bad_touch)
            elif not card.reset:
                fix = True
                card.assign_inferred(card.possible - bad_touch)
                if not card.inferred:
                    card.assign_inferred(card.possible)
                card.reset = True
                logger.info(f"Card {order} lost all inferences, resetting to {log_identities(card.inferred)}")

        bad_touch |= find_bad_touch(game, action.giver, action.target)
        if len(bad_touch) == size:
            logger.debug(f"Bad touch [{log_identities(bad_touch)}] after {iteration} iterations")
            return fix, bad_touch, iteration

    return fix, bad_touch, max_iterations
