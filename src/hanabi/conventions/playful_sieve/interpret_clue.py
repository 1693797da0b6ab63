"""Clue interpretation for the two-player playful sieve.

Color clues (and clues that only reveal trash) refer to the next unclued card to
the right as playable. Rank clues refer to the next unclued card to the right as a
discard. A clue that points at slot 1 while the target has nothing safe to do locks
their hand.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...basics import on_clue
from ...logs import log_hand, log_identities
from ...models import ClueAction, Identity
from ..focus import eliminate_bad_touch

if TYPE_CHECKING:
    from ...game import Game
    from ...player import Player
    from ...state import GameState

logger = logging.getLogger(__name__)


def refer_right(hand: list[int], view: Player, index: int) -> int:
    """Index of the next unclued card to the right, wrapping around to slot 1."""
    target_index = (index + 1) % len(hand)
    while view.thoughts[hand[target_index]].clued:
        target_index = (target_index + 1) % len(hand)
        if target_index == index:
            return index
    return target_index


def next_unclued(hand: list[int], view: Player, index: int) -> int:
    """Index of the first unclued card right of the index, or slot 1 if there is none."""
    for i in range(index + 1, len(hand)):
        if not view.thoughts[hand[i]].clued:
            return i
    return 0


def sieve_loaded(view: Player, state: GameState, player_index: int) -> bool:
    """Loaded on a playable, known trash or a card called to discard."""
    return view.thinks_loaded(state, player_index) or any(
        view.thoughts[order].called_to_discard for order in state.hands[player_index]
    )


def sieve_locked(view: Player, state: GameState, player_index: int) -> bool:
    hand = state.hands[player_index]
    return all(view.thoughts[order].saved for order in hand) and not sieve_loaded(view, state, player_index)


def _lock(game: Game, target: int) -> None:
    state, common = game.state, game.common
    for order in state.hands[target]:
        card = common.thoughts[order]
        if not card.clued:
            card.chop_moved = True
    logger.info(f"{state.player_names[target]}'s hand is locked")


def _finish(game: Game, target: int, old_inferred: dict[int, set[Identity]]) -> None:
    state, common = game.state, game.common
    action_index = len(state.action_list) - 1

    for order, old in old_inferred.items():
        card = common.thoughts[order]
        if card.inferred != old:
            card.add_reasoning(action_index, state.turn_count)

    common.refresh_links(state)
    common.update_hypo_stacks(state, game.waiting_connections)
    game.team_elim()
    logger.debug(f"Hand state after clue: {log_hand(common.thoughts[o] for o in state.hands[target])}")


def _locked_giver(game: Game, action: ClueAction, newly_touched: list[int], trash_push: bool) -> None:
    """A locked player can only give fill-ins, playable slot 1 clues and discard calls."""
    state, common = game.state, game.common
    target = action.target
    hand = state.hands[target]
    slot_1 = common.thoughts[hand[0]]

    already_loaded = bool(common.thinks_trash(state, target)) or any(
        common.thoughts[order].called_to_discard for order in hand
    )

    if action.clue.type == "rank":
        if already_loaded:
            return

        if newly_touched and not trash_push:
            target_index = min(next_unclued(hand, common, index) for index in newly_touched)

            # Touching only the called card itself calls nothing
            if not all(index == target_index for index in newly_touched):
                logger.info(f"Locked referential discard on slot {target_index + 1}")
                common.thoughts[hand[target_index]].called_to_discard = True
        else:
            logger.info("Rank fill-in from a locked player, slot 1 is called to discard")
            slot_1.called_to_discard = True
        return

    suit_index = action.clue.value
    if slot_1.newly_clued:
        playable = Identity(suit_index=suit_index, rank=common.hypo_stacks[suit_index] + 1)
        slot_1.intersect_inferred({playable})
        logger.info(f"Locked player clued slot 1 with color, it is {playable}")
    elif not already_loaded:
        logger.info("Color fill-in from a locked player, slot 1 is called to discard")
        slot_1.called_to_discard = True


def interpret_clue(game: Game, action: ClueAction) -> None:
    """Apply a clue under the playful sieve and mark the card it refers to."""
    state, common = game.state, game.common
    giver, target, clue = action.giver, action.target, action.clue
    hand = state.hands[target]

    old_inferred = {order: set(common.thoughts[order].inferred) for h in state.hands for order in h}
    old_playables = len(common.thinks_playables(state, target))
    old_trash = len(common.thinks_trash(state, target))
    no_info = all(clue in common.thoughts[order].clues for order in action.touched)

    on_clue(game, action)
    fix, _, _ = eliminate_bad_touch(game, action)

    last_action = game.last_actions.get(giver)
    for order in hand:
        card = common.thoughts[order]
        if card.called_to_discard and card.clued:
            card.called_to_discard = False

        # A clue on a referred card right after playing its identity says it was that card
        if card.finessed and card.newly_clued and last_action is not None and last_action.type == "play":
            identity = last_action.identity
            if identity in card.possible:
                logger.info(f"Revoking play on order {order}, it is the {identity} just played")
                card.assign_inferred({identity})
                card.finessed = False
                fix = True

    common.update_hypo_stacks(state, game.waiting_connections)

    newly_touched = [index for index, order in enumerate(hand) if common.thoughts[order].newly_clued]
    trash_push = all(
        common.thoughts[order].newly_clued
        and common.thoughts[order].inferred
        and all(common.is_trash(state, inf, order) for inf in common.thoughts[order].inferred)
        for order in action.touched
    )
    if trash_push:
        logger.info("Trash push")

    if sieve_locked(common, state, giver):
        _locked_giver(game, action, newly_touched, trash_push)
        _finish(game, target, old_inferred)
        return

    new_safe_action = (
        len(common.thinks_playables(state, target)) > old_playables
        or len(common.thinks_trash(state, target)) > old_trash
    )

    if not trash_push and new_safe_action:
        logger.info("New safe action provided, nothing referred")
    elif fix:
        logger.info("Fix clue, nothing referred")
    elif no_info:
        logger.info("Clue with no new information, trash dump")
        for order in hand:
            card = common.thoughts[order]
            if not card.clued and not card.finessed and not card.chop_moved:
                card.called_to_discard = True
    elif clue.type == "color" or trash_push:
        if newly_touched:
            target_index = max(refer_right(hand, common, index) for index in newly_touched)

            if target_index == 0 and not sieve_loaded(common, state, target):
                _lock(game, target)
            else:
                card = common.thoughts[hand[target_index]]
                playable = {
                    Identity(suit_index=suit_index, rank=stack + 1)
                    for suit_index, stack in enumerate(common.hypo_stacks)
                    if stack < state.max_ranks[suit_index]
                }
                card.finessed = True
                card.assign_inferred((card.inferred & playable) or (card.possible & playable) or card.inferred)
                logger.info(
                    f"Referential play on {state.player_names[target]}'s slot {target_index + 1}: "
                    f"[{log_identities(card.inferred)}]"
                )
        else:
            logger.info("Color fill-in, slot 1 is called to discard")
            common.thoughts[hand[0]].called_to_discard = True
    elif newly_touched:
        target_index = min(next_unclued(hand, common, index) for index in newly_touched)

        if common.thoughts[hand[target_index]].newly_clued:
            _lock(game, target)
        else:
            common.thoughts[hand[target_index]].called_to_discard = True
            logger.info(f"Referential discard on {state.player_names[target]}'s slot {target_index + 1}")
    else:
        logger.info("Rank fill-in, slot 1 is called to discard")
        common.thoughts[hand[0]].called_to_discard = True

    _finish(game, target, old_inferred)
