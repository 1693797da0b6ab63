"""Action selection for the two-player playful sieve."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...endgame import find_unseen_identities, solve_game
from ...errors import UnsolvedGame
from ...logs import log_card, log_clue
from ...models import MAX_CLUES, Clue, PerformAction
from ..clue_finder import endgame_clues
from ..take_action import determine_playable_card
from .action_helper import LOCK_VALUE, clue_to_perform, clue_value
from .fix_clues import find_fix_clue
from .interpret_clue import sieve_loaded, sieve_locked

if TYPE_CHECKING:
    from ...game import Game

logger = logging.getLogger(__name__)

# Clue values at or above this are always worth giving
GOOD_CLUE_VALUE = 2.0
# Below this, locking the partner is better than a weak clue
LOCK_CLUE_VALUE = 0.25


def _locked_discard(game: Game) -> int:
    """The card least likely to matter, preferring unclued cards then the leftmost."""
    state, me = game.state, game.me
    hand = state.hands[state.our_player_index]

    def risk(order: int) -> tuple[bool, float, int]:
        card = me.thoughts[order]
        inferred = card.inferred or card.possible
        critical = sum(1 for inf in inferred if state.is_critical(inf)) / max(len(inferred), 1)
        return (card.clued, critical, hand.index(order))

    return min(hand, key=risk)


def _partner_chop(game: Game, partner: int) -> int | None:
    """The leftmost card of the partner's that nothing protects."""
    state, common = game.state, game.common
    for order in state.hands[partner]:
        card = common.thoughts[order]
        if not card.saved and not card.called_to_discard:
            return order
    return None


def _best_clue(game: Game, partner: int) -> tuple[Clue | None, float, Clue | None]:
    """The best scoring clue to the partner, its value and a clue that locks them."""
    state = game.state
    best: Clue | None = None
    best_value = -1.0
    lock_clue: Clue | None = None

    for clue in state.all_valid_clues(partner):
        value = clue_value(game, clue)
        if value < 0:
            if lock_clue is None and value == LOCK_VALUE:
                lock_clue = clue
            continue
        if value > best_value:
            best, best_value = clue, value

    return best, best_value, lock_clue


def take_action(game: Game) -> tuple[PerformAction, str]:
    """Decide what to do on our turn.

    Returns:
        (the action, a one-line rationale)
    """
    state, me, common = game.state, game.me, game.common
    us = state.our_player_index
    partner = (us + 1) % state.num_players
    hand = state.hands[us]
    partner_hand = state.hands[partner]

    if state.in_endgame and len(find_unseen_identities(game)) <= game.conventions.max_unseen_identities:
        try:
            perform = solve_game(game, us, endgame_clues)
            return perform, "endgame solver found a winning line"
        except UnsolvedGame as e:
            logger.info(f"Endgame not solved: {e}")

    trash = [order for order in me.thinks_trash(state, us) if me.thoughts[order].clued]
    trash += [
        order for order in hand
        if me.thoughts[order].called_to_discard
        and order not in trash
        and any(not state.is_critical(inf) for inf in me.thoughts[order].possible)
    ]
    playables = [order for order in me.thinks_playables(state, us) if order not in trash]

    chop = _partner_chop(game, partner)
    chop_identity = state.deck[chop].identity() if chop is not None else None
    chop_away = state.playable_away(chop_identity) if chop_identity is not None else -1

    fix = find_fix_clue(game) if state.clue_tokens > 0 else None

    logger.debug(f"Playables {playables}, trash {trash}, partner chop {log_card(chop_identity)}")

    if sieve_locked(me, state, us):
        logger.info("We are locked")
        if state.clue_tokens == 0 or sieve_locked(common, state, partner):
            return PerformAction(type="discard", target=_locked_discard(game)), "locked discard"

        if chop_identity is not None and chop_identity.rank == me.hypo_stacks[chop_identity.suit_index] + 1:
            clue = Clue(type="color", value=chop_identity.suit_index)
            return clue_to_perform(partner, clue), f"locked color clue on chop {log_clue(state, clue, partner)}"

        if fix is not None:
            return fix, "fix clue"

        best, best_value, _ = _best_clue(game, partner)
        if best is not None and not (chop is not None and best.type == "color" and chop in state.clue_touched(partner_hand, best)):
            return clue_to_perform(partner, best), f"locked clue {log_clue(state, best, partner)} worth {best_value:.2f}"

        return PerformAction(type="discard", target=_locked_discard(game)), "locked discard"

    if fix is not None:
        return fix, "fix clue"

    sarcastic_chop = None
    if chop_identity is not None:
        sarcastic_chop = next(
            (order for order in playables if me.thoughts[order].identity(infer=True) == chop_identity), None
        )

    if sieve_loaded(common, state, partner) or (chop_away == 0 and state.turn_count != 1 and sarcastic_chop is None):
        if playables:
            return PerformAction(type="play", target=determine_playable_card(game, playables)), "known playable"

        if state.clue_tokens != MAX_CLUES and not state.in_endgame:
            if trash:
                return PerformAction(type="discard", target=trash[0]), "known trash"

            partner_action = game.last_actions.get(partner)
            partner_played_five = (
                partner_action is not None and partner_action.type == "play" and partner_action.rank == 5
            )
            if state.clue_tokens == 0 or (
                state.clue_tokens == 1
                and partner_action is not None
                and (partner_action.type == "discard" or partner_played_five)
            ):
                return PerformAction(type="discard", target=_locked_discard(game)), "locked discard"

    if sieve_locked(common, state, partner):
        if trash:
            return PerformAction(type="discard", target=trash[0]), "known trash, partner locked"
        if playables:
            return PerformAction(type="play", target=determine_playable_card(game, playables)), "known playable, partner locked"
        return PerformAction(type="discard", target=_locked_discard(game)), "locked discard, partner locked"

    # Playing the previous card of the same suit makes the partner's chop playable
    if chop_away == 1 and chop_identity is not None:
        connecting = [
            order for order in playables
            if any(inf.suit_index == chop_identity.suit_index for inf in me.thoughts[order].inferred)
            and all(inf.suit_index == chop_identity.suit_index for inf in me.thoughts[order].inferred)
        ]
        if connecting:
            return PerformAction(type="play", target=connecting[0]), "play connecting to partner's chop"

    if sarcastic_chop is not None:
        return PerformAction(type="discard", target=sarcastic_chop), "sarcastic discard onto partner's chop"

    for order in playables:
        identity = me.thoughts[order].identity(infer=True)
        if identity is None:
            continue
        next_identity = identity.model_copy(update={"rank": identity.rank + 1})
        if any(common.thoughts[o].touched and common.thoughts[o].matches(next_identity, infer=True) for o in partner_hand):
            return PerformAction(type="play", target=order), "play connecting to partner's card"

    if state.clue_tokens == 0:
        if playables:
            return PerformAction(type="play", target=determine_playable_card(game, playables)), "known playable"
        if trash:
            return PerformAction(type="discard", target=trash[0]), "known trash"
        return PerformAction(type="discard", target=_locked_discard(game)), "no clues, locked discard"

    best, best_value, lock_clue = _best_clue(game, partner)
    if best is not None and best_value >= GOOD_CLUE_VALUE:
        return clue_to_perform(partner, best), f"clue {log_clue(state, best, partner)} worth {best_value:.2f}"

    if playables:
        return PerformAction(type="play", target=determine_playable_card(game, playables)), "known playable"

    if best_value <= LOCK_CLUE_VALUE and lock_clue is not None:
        return clue_to_perform(partner, lock_clue), f"lock clue {log_clue(state, lock_clue, partner)}"

    if best is not None:
        return clue_to_perform(partner, best), f"clue {log_clue(state, best, partner)} worth {best_value:.2f}"

    if state.clue_tokens == MAX_CLUES:
        clue = state.all_valid_clues(partner)[0]
        return clue_to_perform(partner, clue), "8 clue burn"

    if trash:
        return PerformAction(type="discard", target=trash[0]), "known trash"
    return PerformAction(type="discard", target=_locked_discard(game)), "locked discard"
