"""Clue interpretation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..basics import on_clue
from ..logs import log_connections, log_hand, log_identities
from ..models import (
    ClueAction,
    ClueReading,
    Connection,
    FocusPossibility,
    Identity,
    WaitingConnection,
)
from .connecting import find_own_finesses
from .connection_helper import (
    add_symmetric_connections,
    assign_connections,
    blind_plays,
    find_symmetric_connections,
)
from .focus import determine_focus, eliminate_bad_touch
from .focus_possible import find_focus_possible

if TYPE_CHECKING:
    from ..game import Game

logger = logging.getLogger(__name__)


def _add_waiting_connection(
    game: Game,
    action: ClueAction,
    connections: list[Connection],
    focused_order: int,
    inference: Identity,
    symmetric: bool = False,
) -> None:
    state = game.state
    game.waiting_connections.append(WaitingConnection(
        connections=connections,
        focused_order=focused_order,
        inference=inference,
        giver=action.giver,
        target=action.target,
        action_index=len(state.action_list) - 1,
        turn=state.turn_count,
        symmetric=symmetric,
    ))
    logger.debug(f"Waiting on {inference} for order {focused_order}: {log_connections(connections)}")


def _finish(game: Game, old_inferred: dict[int, set[Identity]]) -> None:
    state, common = game.state, game.common
    action_index = len(state.action_list) - 1

    for order, old in old_inferred.items():
        card = common.thoughts[order]
        if card.inferred != old:
            card.add_reasoning(action_index, state.turn_count)

    for card in common.thoughts.values():
        card.superposition = False

    common.refresh_links(state)
    common.update_hypo_stacks(state, game.waiting_connections)
    game.team_elim()


def interpret_clue(game: Game, action: ClueAction) -> ClueReading | None:
    """Apply a clue and draw every conventional inference from it.

    Updates the common view in place: bad touch is eliminated, the focus gets its
    possible identities, connecting cards are written and waiting connections are
    recorded for anything that still has to be proven by later plays.

    Returns:
        How the focus was read, or None for fix clues and mistakes
    """
    state, common = game.state, game.common
    giver, target = action.giver, action.target
    us = state.our_player_index

    old_inferred = {
        order: set(common.thoughts[order].inferred)
        for hand in state.hands
        for order in hand
    }

    on_clue(game, action)

    focused_order, chop = determine_focus(state.hands[target], common, action.touched)
    focus = common.thoughts[focused_order]
    logger.debug(f"Focus is order {focused_order}{' (chop)' if chop else ''}")

    fix, bad_touch, _ = eliminate_bad_touch(game, action)
    if fix or action.mistake:
        logger.info(f"{'Fix clue' if fix else 'Mistake'}! Not inferring anything else")
        _finish(game, old_inferred)
        return None

    possibilities = find_focus_possible(game, action, focused_order, chop)
    identities = {fp.identity for fp in possibilities}
    target_matches = [fp for fp in possibilities if fp.identity in focus.inferred]

    # Our own focus is only known after a rewind identified it
    actual = state.deck[focused_order].identity()
    if actual is None:
        matched = target_matches
    else:
        matched = [fp for fp in possibilities if fp.identity == actual]

    if matched:
        focus.assign_inferred((focus.inferred & identities) or identities)

        if len(matched) == 1:
            inference = matched[0]
            if not inference.save:
                assign_connections(game, inference.connections)
                if any(conn.type != "known" for conn in inference.connections):
                    _add_waiting_connection(game, action, inference.connections, focused_order, inference.identity)
            if target == us:
                focus.assign_inferred({inference.identity})
        else:
            # Several readings survive; nothing is written until plays tell them apart
            for inference in matched:
                if inference.connections and not inference.save:
                    _add_waiting_connection(
                        game, action, inference.connections, focused_order, inference.identity, symmetric=True
                    )

        if target != us:
            own_blind_plays = blind_plays(matched[0].connections, us) if len(matched) == 1 else 0
            symmetric = find_symmetric_connections(
                game, action, focused_order, any(fp.save for fp in possibilities), own_blind_plays
            )
            add_symmetric_connections(game, action, symmetric, possibilities, focused_order)
            focus.union_inferred(identity for identity, _, fake in symmetric if not fake)

        known = focus.identity(infer=True)
        if known is not None:
            common.good_touch_elim(state.hands[target], [known], ignore=[focused_order])
    else:
        logger.info(f"Card {focused_order} doesn't match any inferences")
        focus.assign_inferred((focus.possible - bad_touch) or focus.possible)

        if actual is None:
            candidates = [identity for identity in sorted(focus.inferred) if not state.is_basic_trash(identity)]
        else:
            candidates = [actual] if not state.is_basic_trash(actual) else []

        # Any connecting card we can't see must be in our own hand
        best: tuple[Identity, list[Connection]] | None = None
        best_blind_plays = len(state.hands[us]) + 1
        for identity in candidates:
            connections = find_own_finesses(
                game, action, identity, focused_order, looks_direct=False, ignore=game.next_ignore
            )
            if connections is None:
                continue
            count = blind_plays(connections, us)
            if count < best_blind_plays:
                best = (identity, connections)
                best_blind_plays = count

        if best is None:
            logger.info(f"No inference on card, defaulting to good touch: {log_identities(focus.inferred)}")
            focus.reset = True
        else:
            identity, connections = best
            logger.info(f"Playable through own connections as {identity}: {log_connections(connections)}")
            assign_connections(game, connections)
            focus.assign_inferred({identity})
            if connections:
                _add_waiting_connection(game, action, connections, focused_order, identity)
            common.good_touch_elim(state.hands[target], [identity], ignore=[focused_order])
            matched = [FocusPossibility(identity=identity, connections=connections)]

    logger.info(f"Final inference on focused card: {log_identities(focus.inferred)}")
    _finish(game, old_inferred)
    logger.debug(f"Hand state after clue: {log_hand(common.thoughts[o] for o in state.hands[target])}")

    return ClueReading(
        focus=focused_order,
        possible=possibilities,
        matched=matched,
        target_matches=target_matches,
    )
