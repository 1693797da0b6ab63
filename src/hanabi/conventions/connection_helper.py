"""Bookkeeping for connections: inference ranks, assignment and symmetric readings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..logs import log_connections
from ..models import (
    ClueAction,
    Connection,
    FocusPossibility,
    Identity,
    WaitingConnection,
)
from ..state import GameState
from .connecting import find_own_finesses, is_hidden

if TYPE_CHECKING:
    from ..game import Game

logger = logging.getLogger(__name__)


def inference_rank(state: GameState, suit_index: int, connections: list[Connection]) -> int:
    """Rank the focus would be after the given connections on a suit."""
    return state.play_stacks[suit_index] + 1 + sum(1 for conn in connections if not is_hidden(conn))


def inference_known(possibilities: list[FocusPossibility]) -> bool:
    """Whether the receiver can infer the exact identity of the focused card."""
    if len(possibilities) != 1:
        return False
    return all(
        conn.type == "known" or (conn.type == "playable" and len(conn.linked) == 1)
        for conn in possibilities[0].connections
    )


def blind_plays(connections: list[Connection], player_index: int) -> int:
    return sum(1 for conn in connections if conn.type == "finesse" and conn.reacting == player_index)


def assign_connections(
    game: Game,
    connections: list[Connection],
    symmetric: bool = False,
    target: int | None = None,
    fake: bool = False,
) -> None:
    """Write the beliefs implied by a set of connections onto the common view.

    Fake connections are never written. Symmetric connections are only written on the
    target, since everyone else can see their own connecting cards.
    """
    if fake:
        return

    state, common = game.state, game.common
    hypo_stacks = list(common.hypo_stacks)
    action_index = len(state.action_list) - 1

    for conn in connections:
        if symmetric and conn.reacting != target:
            continue

        card = common.thoughts[conn.order]
        logger.info(f"Connecting on order {conn.order} as {','.join(map(str, conn.identities))} ({conn.type})")

        # Save the old inferences in case the connection turns out not to exist
        if not card.superposition:
            card.save_inferred()

        if conn.type == "finesse":
            card.finessed = True
            card.finesse_index = action_index
            card.hidden = is_hidden(conn)

        if is_hidden(conn):
            playable = {
                Identity(suit_index=suit_index, rank=stack + 1)
                for suit_index, stack in enumerate(hypo_stacks)
                if stack < state.max_ranks[suit_index]
            }
            card.assign_inferred((card.inferred & playable) or playable)

            layer = card.identity(infer=True)
            if layer is not None:
                hypo_stacks[layer.suit_index] = layer.rank
        elif card.superposition:
            card.union_inferred(conn.identities)
        else:
            # An ambiguous playable could be any of its linked cards
            if not (conn.type == "playable" and len(conn.linked) > 1):
                card.assign_inferred(conn.identities)
            card.superposition = True

        if card.old_inferred is not None and len(card.old_inferred) > len(card.inferred):
            card.add_reasoning(action_index, state.turn_count)


def find_symmetric_connections(
    game: Game,
    action: ClueAction,
    focused_order: int,
    looks_save: bool,
    own_blind_plays: int,
) -> list[tuple[Identity, list[Connection], bool]]:
    """Find the other readings the target cannot rule out from their own point of view.

    Every identity the focus could be is searched with the target looking for
    self-prompts and self-finesses. Readings that need the fewest blind plays from the
    target are kept. A reading is fake if it needs more blind plays from us than the
    true reading does.

    Returns:
        (inference, connections, fake) for every symmetric reading
    """
    state, common = game.state, game.common
    target = action.target
    focus = common.thoughts[focused_order]

    looks_direct = focus.identity(symmetric=True) is None and (
        action.clue.type == "color"
        or any(stack + 1 == action.clue.value for stack in common.hypo_stacks)
        or looks_save
    )

    self_connections: list[tuple[Identity, list[Connection]]] = []
    other_connections: list[tuple[Identity, list[Connection]]] = []

    for identity in sorted(focus.inferred):
        if state.is_basic_trash(identity):
            continue

        connections = find_own_finesses(
            game, action, identity, focused_order, looks_direct, self_index=target, ignore=game.next_ignore
        )
        if connections is None:
            continue

        if connections and connections[0].reacting == target:
            self_connections.append((identity, connections))
        else:
            other_connections.append((identity, connections))

    possible = other_connections or self_connections
    if not possible:
        return []

    min_blind_plays = min(blind_plays(connections, target) for _, connections in possible)
    us = state.our_player_index

    symmetric = []
    for identity, connections in possible:
        if blind_plays(connections, target) != min_blind_plays:
            continue
        fake = blind_plays(connections, us) > own_blind_plays
        symmetric.append((identity, connections, fake))
        logger.debug(f"Symmetric connection {identity}: {log_connections(connections)}{' (fake)' if fake else ''}")

    return symmetric


def add_symmetric_connections(
    game: Game,
    action: ClueAction,
    symmetric: list[tuple[Identity, list[Connection], bool]],
    existing: list[FocusPossibility],
    focused_order: int,
) -> None:
    """Track every symmetric reading that needs connections as a waiting connection."""
    state = game.state
    existing_identities = {fp.identity for fp in existing}

    for identity, connections, fake in symmetric:
        if not connections or identity in existing_identities:
            continue
        if any(
            wc.focused_order == focused_order and wc.inference == identity
            for wc in game.waiting_connections
        ):
            continue

        game.waiting_connections.append(WaitingConnection(
            connections=connections,
            focused_order=focused_order,
            inference=identity,
            giver=action.giver,
            target=action.target,
            action_index=len(state.action_list) - 1,
            turn=state.turn_count,
            symmetric=True,
            fake=fake,
        ))
        logger.debug(f"Added symmetric waiting connection for {identity} on order {focused_order}")
