"""Enumerate every identity the focus of a clue could be."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..models import ClueAction, Connection, FocusPossibility, Identity
from .connecting import find_connecting, resolve_bluff
from .connection_helper import inference_rank

if TYPE_CHECKING:
    from ..game import Game

logger = logging.getLogger(__name__)


def _connect_upwards(
    game: Game,
    action: ClueAction,
    suit_index: int,
    focused_order: int,
    looks_direct: bool,
    stop_rank: int,
    possibilities: list[FocusPossibility],
) -> tuple[list[Connection], int]:
    """Chain connections on a suit from the play stack towards stop_rank.

    Whenever a finesse is found, the focus could also simply be the finessed rank,
    so that reading is added to the possibilities as well.

    Returns:
        (connections, the next rank the focus would be)
    """
    state, common = game.state, game.common
    focus = common.thoughts[focused_order]

    connections: list[Connection] = []
    connected = [focused_order]
    next_rank = state.play_stacks[suit_index] + 1

    while next_rank < stop_rank:
        identity = Identity(suit_index=suit_index, rank=next_rank)
        connecting = find_connecting(game, action, identity, looks_direct, connected, game.next_ignore)
        if not connecting:
            break

        last = connecting[-1]
        if (
            last.type == "known"
            and common.thoughts[last.order].newly_clued
            and len(common.thoughts[last.order].possible) > 1
            and identity in focus.inferred
        ):
            # The focus could be that card, so it can't connect through it
            break

        if any(conn.type == "finesse" for conn in connecting):
            possibilities.append(FocusPossibility(identity=identity, connections=list(connections)))

        connections.extend(connecting)
        connected.extend(conn.order for conn in connecting)
        next_rank = inference_rank(state, suit_index, connections)

    return connections, next_rank


def find_focus_possible(game: Game, action: ClueAction, focused_order: int, chop: bool) -> list[FocusPossibility]:
    """Find every identity the focused card could be, with the connections each needs.

    Play readings chain connections from the play stacks. Save readings are only
    considered when the focus is on chop: critical cards for color clues, and
    critical cards, 5s and unseen 2s for rank clues.
    """
    state, common = game.state, game.common
    clue = action.clue
    possibilities: list[FocusPossibility] = []

    logger.debug(f"Play/hypo/max stacks in clue interpretation: {state.play_stacks} {common.hypo_stacks} {state.max_ranks}")

    if clue.type == "color":
        suit_index = clue.value
        max_rank = state.max_ranks[suit_index]

        connections, next_rank = _connect_upwards(
            game, action, suit_index, focused_order, True, max_rank, possibilities
        )

        connections = resolve_bluff(game, connections)
        if connections or next_rank == state.play_stacks[suit_index] + 1:
            next_rank = inference_rank(state, suit_index, connections)
            if next_rank <= max_rank:
                possibilities.append(FocusPossibility(
                    identity=Identity(suit_index=suit_index, rank=next_rank),
                    connections=connections,
                ))

        # 5 saves cannot be given with color
        if chop:
            for rank in range(next_rank + 1, 5):
                identity = Identity(suit_index=suit_index, rank=rank)
                if state.is_critical(identity):
                    possibilities.append(FocusPossibility(identity=identity, save=True))
    else:
        rank = clue.value
        looks_direct = any(stack + 1 == rank for stack in common.hypo_stacks)

        for suit_index in range(len(state.suits)):
            if rank > state.max_ranks[suit_index]:
                continue
            stack_rank = state.play_stacks[suit_index] + 1

            if rank == stack_rank:
                possibilities.append(FocusPossibility(identity=Identity(suit_index=suit_index, rank=rank)))
            elif rank > stack_rank:
                connections, next_rank = _connect_upwards(
                    game, action, suit_index, focused_order, looks_direct, rank, possibilities
                )
                if next_rank != rank:
                    continue
                resolved = resolve_bluff(game, connections)
                if connections and not resolved:
                    continue
                possibilities.append(FocusPossibility(
                    identity=Identity(suit_index=suit_index, rank=rank),
                    connections=resolved,
                ))

        if chop:
            for suit_index in range(len(state.suits)):
                identity = Identity(suit_index=suit_index, rank=rank)
                if state.is_playable(identity) or state.is_basic_trash(identity):
                    continue

                save2 = False
                if rank == 2:
                    copies = [
                        order
                        for player_index, hand in enumerate(state.hands)
                        if player_index != action.target
                        for order in hand
                        if state.deck[order].matches(identity)
                    ]
                    save2 = all(order in state.hands[action.giver] for order in copies)

                if state.is_critical(identity) or rank == 5 or save2:
                    possibilities.append(FocusPossibility(identity=identity, save=True))

    # Only keep possibilities the focus could actually be, first reading wins
    focus = common.thoughts[focused_order]
    seen: set[Identity] = set()
    result = []
    for fp in possibilities:
        if fp.identity not in focus.possible or fp.identity in seen:
            continue
        seen.add(fp.identity)
        result.append(fp)

    logger.debug(f"Focus possible: {', '.join(str(fp.identity) for fp in result)}")
    return result
