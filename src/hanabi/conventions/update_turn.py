"""Resolution of waiting connections at each turn boundary."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..models import Identity, TurnAction, WaitingConnection
from .interpret_discard import apply_positional

if TYPE_CHECKING:
    from ..game import Game

logger = logging.getLogger(__name__)


def remove_finesse(game: Game, wc: WaitingConnection) -> None:
    """Undo a waiting connection: restore the connecting cards and drop the inference from the focus."""
    state, common = game.state, game.common

    if not wc.symmetric and not wc.fake:
        for conn in wc.connections:
            if conn.order not in state.hands[conn.reacting]:
                logger.warning(f"Card {conn.order} no longer exists in hand to cancel connection")
                continue

            card = common.thoughts[conn.order]
            if conn.type == "positional_discard" and not card.finessed:
                continue
            if conn.type in ("finesse", "positional_discard"):
                card.finessed = False
                card.hidden = False

            if not card.restore_inferred():
                logger.warning(f"No old inferences on card {conn.order}, keeping [{','.join(map(str, sorted(card.inferred)))}]")

    if wc.connections and wc.connections[0].type == "positional_discard":
        return

    focus = common.thoughts.get(wc.focused_order)
    if focus is not None and wc.focused_order in state.hands[wc.target]:
        focus.subtract_inferred({wc.inference})
        if not focus.inferred:
            focus.assign_inferred(focus.possible)


def _falsify(game: Game, wc: WaitingConnection, reason: str) -> None:
    logger.info(f"{reason}, removing inference {wc.inference} on order {wc.focused_order}")
    remove_finesse(game, wc)
    wc.status = "falsified"


def update_turn(game: Game, action: TurnAction) -> None:
    """Advance every waiting connection whose next reacting player just took their turn.

    A connection is fulfilled once every connecting card has been played. It is
    falsified when the reacting player discards instead of playing, plays a different
    identity, or the connecting card disappears another way.
    """
    state, common = game.state, game.common
    last_player = (action.current_player_index - 1) % state.num_players
    last_action = game.last_actions.get(last_player)

    demonstrated: dict[int, list[Identity]] = {}

    for wc in game.waiting_connections:
        if wc.status != "pending" or not wc.connections:
            continue

        head = wc.connections[0]
        if head.reacting != last_player:
            continue

        if head.order in state.hands[head.reacting]:
            if head.type == "finesse":
                actual = state.deck[head.order].identity()
                if actual is not None and not state.is_playable(actual):
                    logger.debug(f"{state.player_names[last_player]} didn't play into unplayable finesse, waiting")
                elif last_action is not None and last_action.type == "play" and common.thoughts[last_action.order].finessed:
                    logger.debug(f"{state.player_names[last_player]} played into another finesse, waiting")
                elif last_action is not None and last_action.type == "discard":
                    _falsify(game, wc, f"{state.player_names[last_player]} discarded instead of playing into finesse")
                else:
                    logger.debug(f"{state.player_names[last_player]} didn't play into finesse yet, waiting")

            elif head.type == "positional_discard":
                logger.info(f"{state.player_names[last_player]} didn't play into positional discard")
                card = common.thoughts[head.order]
                card.finessed = False
                card.restore_inferred()
                wc.connections.pop(0)

                if wc.connections:
                    nxt = wc.connections[0]
                    if nxt.reacting == state.our_player_index:
                        apply_positional(game, nxt.order)
                        wc.connections.clear()
                if not wc.connections:
                    wc.status = "fulfilled"

            elif last_action is not None and last_action.type == "discard":
                _falsify(game, wc, f"{state.player_names[last_player]} discarded with a waiting connection")
            continue

        # The connecting card left the hand
        if last_action is not None and last_action.type == "play" and last_action.order == head.order:
            if head.type == "positional_discard":
                wc.connections.pop(0)
                if wc.connections:
                    remove_finesse(game, wc)
                wc.status = "fulfilled"
                continue

            if last_action.identity not in head.identities:
                _falsify(game, wc, f"Connecting card {head.order} was played as {last_action.identity}")
                continue

            logger.info(f"Waiting card {head.order} played as {last_action.identity}")
            wc.connections.pop(0)
            if head.type == "finesse":
                demonstrated.setdefault(wc.focused_order, []).append(wc.inference)
            if not wc.connections:
                wc.status = "fulfilled"

        elif last_action is not None and last_action.type == "discard" and last_action.order == head.order:
            if not game.me.visible_find(state, last_action.identity):
                _falsify(game, wc, f"Connecting card {head.order} discarded with no copy left")
            else:
                logger.info(f"Connecting card {head.order} discarded but a copy is visible, dropping connection")
                wc.status = "falsified"

        else:
            logger.warning(f"Unresolved connection: card {head.order} left {state.player_names[head.reacting]}'s hand without a tracked action")
            _falsify(game, wc, "Connection lost")

    # A demonstrated finesse proves the focus is one of the waited-for identities
    for order, inferences in demonstrated.items():
        card = common.thoughts.get(order)
        if card is None:
            continue
        remaining = card.inferred & set(inferences)
        if remaining:
            logger.info(f"Intersecting order {order} with demonstrated [{','.join(map(str, sorted(inferences)))}]")
            card.assign_inferred(remaining)

    game.waiting_connections = [wc for wc in game.waiting_connections if wc.status == "pending" and wc.connections]

    common.update_hypo_stacks(state, game.waiting_connections)
    game.team_elim()
