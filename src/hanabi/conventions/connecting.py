"""Search for the cards that connect a clued card to the play stacks."""

from __future__ import annotations

import logging
from collections.abc import Collection
from typing import TYPE_CHECKING

from ..logs import log_connections
from ..models import (
    ClueAction,
    Connection,
    FinesseConnection,
    Identity,
    KnownConnection,
    PlayableConnection,
    PromptConnection,
    TerminateConnection,
)
from .constants import Level
from .focus import in_between

if TYPE_CHECKING:
    from ..game import Game

logger = logging.getLogger(__name__)


def is_hidden(connection: Connection) -> bool:
    return getattr(connection, "hidden", False)


def valid_bluff(game: Game, action: ClueAction, reacting: int, connected: Collection[int]) -> bool:
    """Whether a blind play by this player could be a bluff.

    Only the player right after the giver can be bluffed, never the target, and only
    when nothing else has connected yet (the focus itself is always connected).
    """
    return (
        game.level >= Level.BLUFFS
        and reacting == (action.giver + 1) % game.state.num_players
        and reacting != action.target
        and len(connected) <= 1
    )


def _giver_may_hold(game: Game, giver: int, identity: Identity) -> bool:
    """Whether a clued card in the giver's own hand could be the identity."""
    view = game.players[giver]
    return any(
        view.thoughts[order].clued and identity in view.thoughts[order].inferred
        for order in game.state.hands[giver]
    )


def find_known_connecting(
    game: Game,
    giver: int,
    identity: Identity,
    ignore: Collection[int] = (),
) -> Connection | None:
    """Find a card that everyone (or the giver) already knows to be the identity.

    Looks for, in order: a touched card whose identity is common knowledge, a touched
    card everyone knows is playable and could be the identity, and a card only the
    giver knows the identity of. May return a terminate connection when the search
    must stop without a connection.
    """
    state, common = game.state, game.common
    us = state.our_player_index
    n = state.num_players

    def possibly_fake(order: int) -> bool:
        # We cannot use a connection that depends on blind plays we have not proven
        if giver != us:
            return False
        for wc in game.waiting_connections:
            if wc.target != us:
                continue
            index = next((i for i, conn in enumerate(wc.connections) if conn.order == order), None)
            if index is None:
                continue
            if any(conn.type in ("finesse", "prompt") for conn in wc.connections[:index + 1]):
                return True
        return False

    for i in range(n):
        player_index = (giver + i) % n
        for order in state.hands[player_index]:
            if order in ignore:
                continue
            card = common.thoughts[order]
            if not card.touched or order in common.linked_orders:
                continue

            inferred = set(card.inferred)
            # Cards of this suit that must be played first will be proven false (except to the giver)
            if player_index != giver:
                inferred = {
                    inf for inf in inferred
                    if not (inf.suit_index == identity.suit_index and inf.rank < identity.rank)
                }

            known = card.possible == {identity} or inferred == {identity}
            if (
                known
                and state.deck[order].matches(identity, assume=True)
                and not possibly_fake(order)
            ):
                return KnownConnection(reacting=player_index, order=order, identities=[identity])

    for i in range(1, n):
        player_index = (giver + i) % n
        playables = []
        for order in state.hands[player_index]:
            if order in ignore:
                continue
            card = common.thoughts[order]
            if (
                card.touched
                and identity in card.inferred
                and (card.finessed or all(state.is_playable(inf) for inf in card.inferred))
                and not possibly_fake(order)
            ):
                playables.append(order)

        match = next((order for order in playables if state.deck[order].matches(identity)), None)

        if len(playables) > 1 and giver == us and _giver_may_hold(game, giver, identity):
            if match is not None:
                # Everyone but the giver will see this as the connection
                return TerminateConnection(reacting=player_index, order=match, identities=[])
            logger.warning(f"Disallowed hidden delayed play on {identity}, could be duplicated in giver's hand")
            return None

        if match is not None:
            if common.thoughts[match].hidden:
                logger.warning(f"Hidden connecting card {identity} in {state.player_names[player_index]}'s hand, might be confusing")
            return PlayableConnection(
                reacting=player_index,
                order=match,
                identities=[identity],
                linked=playables,
            )

    giver_view = game.players[giver]
    for order in state.hands[giver]:
        if order in ignore:
            continue
        card = giver_view.thoughts[order]
        if card.touched and card.identity(infer=True, symmetric=True) == identity:
            logger.debug(f"Connecting using giver's asymmetric knowledge of {identity}")
            return KnownConnection(reacting=giver, order=order, identities=[identity])

    return None


def find_unknown_connecting(
    game: Game,
    action: ClueAction,
    reacting: int,
    identity: Identity,
    play_stacks: list[int],
    connected: Collection[int] = (),
    ignore: Collection[int] = (),
) -> Connection | None:
    """Find a prompt or finesse on one player that would connect to the identity.

    A prompted or finessed card that is a different, playable identity is returned
    as a hidden connection (a layer). A prompt on a wrong identity terminates.
    """
    state, common, me = game.state, game.common, game.me
    giver, target = action.giver, action.target
    us = state.our_player_index
    hand = state.hands[reacting]

    prompt = common.find_prompt(state, hand, identity, connected, ignore)
    finesse = common.find_finesse(hand, connected, ignore)

    # Prompt takes priority over finesse
    if prompt is not None:
        actual = state.deck[prompt].identity()
        if actual is not None:
            if actual == identity:
                return PromptConnection(reacting=reacting, order=prompt, identities=[identity])

            if game.level >= Level.INTERMEDIATE_FINESSES and play_stacks[actual.suit_index] + 1 == actual.rank:
                if giver == us and _giver_may_hold(game, giver, identity):
                    logger.warning(f"Disallowed hidden prompt on {actual} {prompt}, true {identity} could be duplicated in giver's hand")
                    return None
                return PromptConnection(reacting=reacting, order=prompt, identities=[actual], hidden=True)

            logger.warning(f"Wrong prompt on {actual} {prompt} when searching for {identity}")
            return TerminateConnection(reacting=reacting, order=prompt, identities=[identity])

    if finesse is not None:
        actual = state.deck[finesse].identity()
        if actual is None:
            return None

        for player_index, other_hand in enumerate(state.hands):
            if player_index == giver:
                continue
            for order in other_hand:
                card = common.thoughts[order]
                if card.touched and not card.newly_clued and state.deck[order].matches(actual):
                    logger.warning(f"Disallowed finesse on {actual}, playable already clued elsewhere")
                    return None

        if actual == identity:
            if game.level == Level.BASIC and not in_between(state.num_players, reacting, giver, target):
                logger.warning(f"Found finesse {actual} in {state.player_names[reacting]}'s hand, but not between giver and target")
                return None
            return FinesseConnection(reacting=reacting, order=finesse, identities=[identity])

        if game.level >= Level.INTERMEDIATE_FINESSES and play_stacks[actual.suit_index] + 1 == actual.rank:
            bluff = valid_bluff(game, action, reacting, connected)

            if giver == us:
                # Don't bluff out cards that are likely duplicated in our own hand
                if bluff and any(
                    me.thoughts[order].clued
                    and len(me.thoughts[order].inferred) <= 2
                    and actual in me.thoughts[order].inferred
                    for order in state.hands[giver]
                ):
                    logger.warning(f"Disallowed bluff on {actual} {finesse}, likely duplicated in giver's hand")
                    return None

                if not bluff and _giver_may_hold(game, giver, identity):
                    logger.warning(f"Disallowed hidden finesse on {actual} {finesse}, true {identity} could be duplicated in giver's hand")
                    return None

            return FinesseConnection(
                reacting=reacting,
                order=finesse,
                identities=[actual],
                hidden=True,
                bluff=bluff,
            )

    return None


def resolve_bluff(game: Game, connections: list[Connection]) -> list[Connection]:
    """Check whether a connection chain starting with a bluff is still valid.

    A bluff can only be followed by known cards and plain prompts. If more finesses
    follow, the chain survives only as an ordinary finesse when a real matching card
    was found; otherwise it is invalid and an empty list is returned.
    """
    if not connections or connections[0].type != "finesse" or not connections[0].bluff:
        return connections

    state = game.state
    first = connections[0]

    def blind_layer(conn: Connection) -> bool:
        if conn.type != "finesse" or conn.reacting != first.reacting:
            return False
        actual = state.deck[conn.order].identity()
        return actual is None or state.is_playable(actual)

    next_visible = next((i for i, conn in enumerate(connections) if not blind_layer(conn)), len(connections))

    if any(is_hidden(conn) or conn.type == "finesse" for conn in connections[next_visible:]):
        if next_visible > 1:
            logger.warning("Bluff invalid but connection still exists")
            return [first.model_copy(update={"bluff": False})] + connections[1:]

        logger.warning(f"Bluff invalid ({log_connections(connections)}), followed by hidden or finesse connections")
        return []

    # The hidden layers in the bluffed player's hand are not needed
    if len(connections) > 1 and connections[1].reacting == first.reacting:
        return [first] + connections[next_visible:]

    return connections


def find_connecting(
    game: Game,
    action: ClueAction,
    identity: Identity,
    looks_direct: bool,
    connected: Collection[int] = (),
    ignore: Collection[int] = (),
) -> list[Connection]:
    """Find the connection(s) that would get the identity played.

    Known connections are preferred. Otherwise every other player is searched for a
    prompt or finesse, starting from the player before the target and going
    backwards. A hidden connection keeps the search in that player's hand until the
    real card is found. The live play stacks are never modified.

    Returns:
        The connections, or an empty list if none exist
    """
    state, me = game.state, game.me
    giver, target = action.giver, action.target
    us = state.our_player_index
    n = state.num_players

    if state.all_discarded(identity):
        logger.debug(f"All {identity} in trash")
        return []

    connecting = find_known_connecting(game, giver, identity, list(connected) + list(ignore))
    if connecting is not None:
        if connecting.type == "terminate":
            return []
        return [connecting]

    for i in range(n):
        player_index = (target - i - 1) % n

        # The target won't look for prompts or finesses on themselves if the clue looks direct
        if player_index in (giver, us) or (player_index == target and looks_direct):
            continue

        # Don't stack blind plays on a player who may still need to prove a finesse to us
        if giver == us and any(
            wc.target == us and any(conn.type == "finesse" and conn.reacting == player_index for conn in wc.connections)
            for wc in game.waiting_connections
        ):
            continue

        stacks = list(state.play_stacks)
        already_connected = list(connected)
        connections: list[Connection] = []

        connecting = find_unknown_connecting(game, action, player_index, identity, stacks, already_connected, ignore)

        while connecting is not None and is_hidden(connecting):
            connections.append(connecting)
            already_connected.append(connecting.order)
            layer = connecting.identities[0]
            stacks[layer.suit_index] = layer.rank
            connecting = find_unknown_connecting(game, action, player_index, identity, stacks, already_connected, ignore)

        if connecting is not None:
            if connecting.type == "terminate":
                continue
            connections.append(connecting)

        # Without the real card, the bluff alone is still a valid reading
        if connections and connections[0].type == "finesse" and connections[0].bluff and is_hidden(connections[-1]):
            connections = [connections[0].model_copy(update={"hidden": False})]

        if connections and not is_hidden(connections[-1]):
            logger.debug(f"Found connection for {identity}: {log_connections(connections)}")
            return connections

    # Unknown playables in our hand (we can't use them in our own clues)
    if giver != us:
        playables = []
        for order in state.hands[us]:
            if order in ignore or order in connected:
                continue
            card = me.thoughts[order]
            if (
                identity in card.inferred
                and card.matches(identity, assume=True)
                and (card.finessed or (card.clued and all(state.is_playable(inf) for inf in card.inferred)))
            ):
                playables.append(order)

        if playables:
            return [PlayableConnection(reacting=us, order=playables[-1], identities=[identity], linked=playables)]

    return []


def find_own_finesses(
    game: Game,
    action: ClueAction,
    identity: Identity,
    focused_order: int,
    looks_direct: bool,
    self_index: int | None = None,
    ignore: Collection[int] = (),
) -> list[Connection] | None:
    """Find the connections needed for the identity if one player must self-prompt or self-finesse.

    Args:
        identity: The identity the focused card would be
        self_index: The player searching their own hand (defaults to us)

    Returns:
        The connections, or None if the identity is not reachable
    """
    state, common = game.state, game.common
    if self_index is None:
        self_index = state.our_player_index

    # Nobody can finesse themselves
    if action.giver == self_index:
        return None

    self_view = game.players[self_index]
    hand = state.hands[self_index]
    suit = identity.suit_index

    connections: list[Connection] = []
    connected = [focused_order]
    play_stacks = list(state.play_stacks)

    for rank in range(state.play_stacks[suit] + 1, identity.rank):
        needed = Identity(suit_index=suit, rank=rank)
        if state.all_discarded(needed):
            logger.debug(f"Impossible to find {needed}, all copies in trash")
            return None

        found = find_connecting(game, action, needed, looks_direct, connected, ignore)
        if found:
            connections.extend(found)
            connected.extend(conn.order for conn in found)
            continue

        prompt = common.find_prompt(state, hand, needed, connected, ignore)
        if prompt is not None:
            if needed not in self_view.thoughts[prompt].possible:
                return None
            connections.append(PromptConnection(reacting=self_index, order=prompt, identities=[needed]))
            connected.append(prompt)
            continue

        finesse = common.find_finesse(hand, connected, ignore)

        # A finesse position we already know holds another playable card is a layer
        while finesse is not None and game.level >= Level.INTERMEDIATE_FINESSES:
            layer = self_view.thoughts[finesse].identity()
            if layer is None or layer == needed or play_stacks[layer.suit_index] + 1 != layer.rank:
                break
            logger.debug(f"found layered own finesse on {layer}, looking further for {needed}")
            connections.append(FinesseConnection(reacting=self_index, order=finesse, identities=[layer], hidden=True))
            connected.append(finesse)
            play_stacks[layer.suit_index] = layer.rank
            finesse = common.find_finesse(hand, connected, ignore)

        finesse_card = self_view.thoughts[finesse] if finesse is not None else None
        if finesse_card is not None and needed in finesse_card.possible and finesse_card.matches(needed, assume=True):
            connections.append(FinesseConnection(reacting=self_index, order=finesse, identities=[needed]))
            connected.append(finesse)
            continue

        return None

    return connections
