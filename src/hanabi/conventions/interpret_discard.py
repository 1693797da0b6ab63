"""Discard interpretation: misplays, sarcastic discards and positional discards."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..basics import on_discard
from ..logs import log_identities
from ..models import DiscardAction, Identity, PositionalDiscardConnection, WaitingConnection

if TYPE_CHECKING:
    from ..game import Game

logger = logging.getLogger(__name__)


def undo_hypo_stacks(game: Game, player_index: int, identity: Identity) -> None:
    """Roll the common hypo stack back below a useful card that was lost."""
    common = game.common
    logger.info(f"{game.state.player_names[player_index]} discarded useful card {identity}, setting hypo stack to {identity.rank - 1}")
    if common.hypo_stacks[identity.suit_index] >= identity.rank:
        common.hypo_stacks[identity.suit_index] = identity.rank - 1


def find_sarcastic(game: Game, player_index: int, identity: Identity) -> list[int]:
    """Cards in a hand that a sarcastic discard of this identity could be aimed at."""
    state, common = game.state, game.common
    hand = state.hands[player_index]

    known = [order for order in hand if common.thoughts[order].identity(infer=True, symmetric=True) == identity]
    if known:
        return known

    sarcastic = []
    for order in hand:
        card = common.thoughts[order]
        if not card.clued or identity not in card.possible:
            continue
        # Cards waiting to connect below this rank are not targets
        if len(card.inferred) == 1 and next(iter(card.inferred)).rank < identity.rank:
            continue
        sarcastic.append(order)
    return sarcastic


def apply_unknown_sarcastic(game: Game, sarcastic: list[int], player_index: int, identity: Identity) -> None:
    """Add the identity back to every candidate when the receiver is ambiguous."""
    state, common = game.state, game.common
    for order in sarcastic:
        common.thoughts[order].union_inferred({identity})

    def playable(order: int) -> bool:
        return all(state.is_playable(inf) for inf in common.thoughts[order].inferred)

    if not sarcastic or not all(playable(order) for order in sarcastic):
        undo_hypo_stacks(game, player_index, identity)


def _interpret_sarcastic(game: Game, action: DiscardAction) -> None:
    state, common = game.state, game.common
    us = state.our_player_index
    identity = action.identity
    discarder = action.player_index

    duplicates = game.players[discarder].visible_find(state, identity, ignore=(action.order,))

    if not duplicates:
        sarcastic = find_sarcastic(game, us, identity)
        if len(sarcastic) == 1:
            common.thoughts[sarcastic[0]].assign_inferred({identity})
            logger.info(f"Writing {identity} on order {sarcastic[0]} from sarcastic discard")
        else:
            apply_unknown_sarcastic(game, sarcastic, discarder, identity)
        return

    for i in range(1, state.num_players):
        receiver = (discarder + i) % state.num_players
        if receiver == us:
            continue
        sarcastic = find_sarcastic(game, receiver, identity)
        if not any(state.deck[order].matches(identity) for order in sarcastic):
            continue

        if len(sarcastic) == 1:
            common.thoughts[sarcastic[0]].assign_inferred({identity})
            logger.info(f"Writing {identity} on order {sarcastic[0]} from sarcastic discard")
        else:
            logger.info(f"Unknown sarcastic discard of {identity}")
            apply_unknown_sarcastic(game, sarcastic, discarder, identity)
        return

    logger.warning(f"Couldn't find a valid target for sarcastic discard of {identity}")


def _expected_discard(game: Game, hand: list[int]) -> int | None:
    """Slot a player was expected to discard: leftmost known trash, otherwise chop."""
    state, common = game.state, game.common
    for slot, order in enumerate(hand):
        card = common.thoughts[order]
        if card.inferred and all(state.is_basic_trash(inf) for inf in card.inferred):
            return slot

    chop = common.chop(hand, after_clue=True)
    return hand.index(chop) if chop is not None else None


def _positional_playables(game: Game) -> set[Identity]:
    state, common = game.state, game.common
    return {
        Identity(suit_index=suit_index, rank=stack + 1)
        for suit_index, stack in enumerate(state.play_stacks)
        if stack == common.hypo_stacks[suit_index] and stack < state.max_ranks[suit_index]
    }


def apply_positional(game: Game, order: int) -> bool:
    """Mark a card as an immediate playable from a positional discard."""
    common = game.common
    playable = _positional_playables(game)
    if not playable:
        logger.info(f"No immediate playables left for positional discard on order {order}")
        return False

    card = common.thoughts[order]
    card.save_inferred()
    card.assign_inferred((card.inferred & playable) or playable)
    card.finessed = True
    card.add_reasoning(len(game.state.action_list) - 1, game.state.turn_count)
    return True


def _interpret_positional(game: Game, action: DiscardAction, slot: int) -> None:
    """Find who a positional discard is aimed at.

    Another player holding an immediately playable, untouched card in the same slot
    is a candidate. The farthest candidate after the discarder is the target. If the
    target does not play, the discard falls through to us.
    """
    state, common = game.state, game.common
    us = state.our_player_index
    discarder = action.player_index
    n = state.num_players

    candidates = []
    for i in range(1, n):
        player_index = (discarder + i) % n
        hand = state.hands[player_index]
        if player_index == us or slot >= len(hand):
            continue
        order = hand[slot]
        actual = state.deck[order].identity()
        if (
            actual is not None
            and not common.thoughts[order].touched
            and state.is_playable(actual)
            and common.hypo_stacks[actual.suit_index] + 1 == actual.rank
        ):
            logger.info(f"Found immediate playable {actual} in {state.player_names[player_index]}'s slot {slot + 1}")
            candidates.append(player_index)

    our_hand = state.hands[us]
    our_order = our_hand[slot] if slot < len(our_hand) else None

    if not candidates:
        if our_order is not None:
            logger.info(f"Could not find playable, positional discard on our slot {slot + 1}")
            apply_positional(game, our_order)
        return

    target = candidates[-1]
    target_order = state.hands[target][slot]
    if not apply_positional(game, target_order):
        return

    connections = [PositionalDiscardConnection(
        reacting=target,
        order=target_order,
        identities=sorted(common.thoughts[target_order].inferred),
    )]
    # Falls through to us if the target doesn't play
    if our_order is not None:
        connections.append(PositionalDiscardConnection(
            reacting=us,
            order=our_order,
            identities=sorted(_positional_playables(game)),
        ))

    game.waiting_connections.append(WaitingConnection(
        connections=connections,
        focused_order=target_order,
        inference=connections[0].identities[0],
        giver=discarder,
        target=target,
        action_index=len(state.action_list) - 1,
        turn=state.turn_count,
    ))


def interpret_discard(game: Game, action: DiscardAction) -> None:
    """Apply a discard or misplay and interpret what it says about other cards."""
    state, common = game.state, game.common
    us = state.our_player_index
    identity = action.identity
    suit = identity.suit_index

    hand_before = list(state.hands[action.player_index])
    slot = hand_before.index(action.order) if action.order in hand_before else -1
    expected = _expected_discard(game, hand_before) if slot != -1 else None

    card = common.thoughts.get(action.order)
    if card is not None:
        logger.debug(f"Discarding order {action.order}, inferences [{log_identities(card.inferred)}]")
    useful = (
        card is not None
        and card.saved
        and state.play_stacks[suit] < identity.rank <= state.max_ranks[suit]
    )

    on_discard(game, action)
    common.update_hypo_stacks(state, game.waiting_connections)

    if useful:
        if action.failed:
            undo_hypo_stacks(game, action.player_index, identity)
        else:
            _interpret_sarcastic(game, action)
    elif (
        game.conventions.positional_discards
        and action.player_index != us
        and not action.failed
        and expected is not None
        and slot != expected
    ):
        logger.info(f"Positional discard from slot {slot + 1}, expected slot {expected + 1}")
        _interpret_positional(game, action, slot)

    game.team_elim()
