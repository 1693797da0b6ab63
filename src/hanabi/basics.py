"""Rules bookkeeping shared by every convention: draws, clues, plays and discards.

These functions only apply what the rules of the game say. They never draw
conventional inferences; that is the job of the convention layer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .card import ActualCard, Card
from .errors import InvariantViolation
from .models import MAX_CLUES, ClueAction, DiscardAction, DrawAction, Identity, PlayAction

if TYPE_CHECKING:
    from .game import Game

logger = logging.getLogger(__name__)


def on_draw(game: Game, action: DrawAction) -> None:
    """Add a drawn card to the front of a hand and create a belief record in every view."""
    state = game.state
    state.hands[action.player_index].insert(0, action.order)
    state.deck[action.order] = ActualCard(
        order=action.order,
        suit_index=action.suit_index,
        rank=action.rank,
    )
    state.cards_left -= 1
    state.next_order = max(state.next_order, action.order + 1)

    if state.cards_left == 0:
        state.endgame_turns = state.num_players
        logger.debug(f"Deck is empty, {state.endgame_turns} turns remain")

    identities = state.all_identities()
    drawn_index = len(state.action_list) - 1
    actual = state.deck[action.order]

    for view in game.all_views:
        card = Card(
            order=action.order,
            drawn_index=drawn_index,
            possible=set(identities),
            inferred=set(identities),
        )
        if actual.identity() is not None and view.sees(state, action.order):
            card.reveal(actual.identity())
        view.thoughts[action.order] = card
        view.card_elim(state)


def on_clue(game: Game, action: ClueAction) -> None:
    """Spend a clue token and apply the positive and negative information of a clue."""
    state = game.state
    state.clue_tokens -= 1

    clue = action.clue
    clue_identities = {i for i in state.all_identities() if clue.touches(i)}

    for view in game.all_views:
        for order in state.hands[action.target]:
            card = view.thoughts[order]
            if order in action.touched:
                if not card.clued:
                    card.newly_clued = True
                card.clued = True
                card.clues.append(clue)
                card.intersect_possible(clue_identities)
            else:
                card.subtract_possible(clue_identities)
                if not card.inferred:
                    card.assign_inferred(card.possible)
        view.card_elim(state)


def _remove_from_hand(game: Game, player_index: int, order: int, identity: Identity) -> None:
    state = game.state
    hand = state.hands[player_index]
    if order not in hand:
        raise InvariantViolation(f"Card {order} is not in {state.player_names[player_index]}'s hand")

    hand.remove(order)
    state.deck[order] = ActualCard(order=order, suit_index=identity.suit_index, rank=identity.rank)

    for view in game.all_views:
        card = view.thoughts[order]
        card.reveal(identity)
        card.possible = {identity}
        card.inferred = {identity}


def on_play(game: Game, action: PlayAction) -> None:
    state = game.state
    identity = action.identity
    _remove_from_hand(game, action.player_index, action.order, identity)

    state.play_stacks[identity.suit_index] = identity.rank

    # Completing a stack returns a clue
    if identity.rank == 5 and state.clue_tokens < MAX_CLUES:
        state.clue_tokens += 1

    for view in game.all_views:
        view.card_elim(state)


def on_discard(game: Game, action: DiscardAction) -> None:
    """Discard a card. A failed discard is a misplay and costs a strike instead of giving a clue."""
    state = game.state
    identity = action.identity
    _remove_from_hand(game, action.player_index, action.order, identity)

    if action.failed:
        state.strikes += 1
    else:
        state.clue_tokens = min(state.clue_tokens + 1, MAX_CLUES)

    state.discard_stacks[identity.suit_index][identity.rank - 1] += 1

    # Nothing above a fully discarded identity can be played
    if state.all_discarded(identity):
        suit = identity.suit_index
        state.max_ranks[suit] = min(state.max_ranks[suit], identity.rank - 1)
        logger.info(f"All copies of {identity} are gone, max rank of {state.suits[suit]} is now {state.max_ranks[suit]}")

    for view in game.all_views:
        view.card_elim(state)
