"""Finding and evaluating the clues the bot could give."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from ..clue_result import (
    ClueResult,
    bad_touch_result,
    clue_value,
    elim_result,
    playables_result,
)
from ..logs import log_clue, log_identities
from ..models import Clue, ClueAction, PerformAction
from .constants import Level
from .focus import determine_focus

if TYPE_CHECKING:
    from ..game import Game

logger = logging.getLogger(__name__)


# Stall clue categories, most to least preferred
FIVE_STALL = 0
TEMPO_CLUE = 1
FILL_IN = 2
LOCKED_SAVE = 3
HARD_BURN = 4
NUM_STALL_CATEGORIES = 5


class ClueCandidate(BaseModel):
    """A clue the bot could give, with what it would achieve."""

    target: int
    clue: Clue
    touched: list[int]
    focus: int
    chop: bool = False
    result: ClueResult
    safe: bool = True

    def to_perform(self) -> PerformAction:
        return PerformAction(
            type="clue_color" if self.clue.type == "color" else "clue_rank",
            target=self.target,
            value=self.clue.value,
        )


class ClueOptions(BaseModel):
    """Every clue found, grouped the way action selection uses them.

    Play and fix clues are per target; each target has at most one save clue.
    """

    play_clues: list[list[ClueCandidate]]
    save_clues: list[ClueCandidate | None]
    fix_clues: list[list[ClueCandidate]]
    stall_clues: list[list[ClueCandidate]] = Field(
        default_factory=lambda: [[] for _ in range(NUM_STALL_CATEGORIES)]
    )


def evaluate_clue(game: Game, action: ClueAction, focused_order: int, bad_touch: list[int]) -> Game | None:
    """Interpret a clue as everyone else would and check they end up with the truth.

    Args:
        action: The clue as the bot would give it
        focused_order: The card the clue focuses
        bad_touch: Touched cards that are allowed to be misread because they are trash

    Returns:
        The hypothetical game after the clue, or None if the clue would be misread
    """
    state = game.state
    hypo_game = game.simulate_clue(action)
    hypo_common = hypo_game.common

    # A focus we can see that matches no reading leaves the target on whichever reading they can match
    reading = hypo_game.last_reading
    focus_identity = state.deck[focused_order].identity()
    if (
        reading is not None
        and focus_identity is not None
        and focused_order not in bad_touch
        and not reading.matches(focus_identity)
        and reading.target_matches
    ):
        logger.debug(
            f"{log_clue(state, action.clue, action.target)} focuses {focus_identity}, "
            f"but would be read as [{log_identities(fp.identity for fp in reading.target_matches)}]"
        )
        return None

    for order in state.hands[action.target]:
        card = hypo_common.thoughts[order]
        actual = state.deck[order].identity()
        if actual is None or not card.touched or order in bad_touch:
            continue

        if actual not in card.inferred and not state.is_basic_trash(actual):
            logger.debug(
                f"{log_clue(state, action.clue, action.target)} makes order {order} "
                f"[{log_identities(card.inferred)}] instead of {actual}"
            )
            return None

    # Cards newly finessed elsewhere must really be what everyone will think
    for player_index, hand in enumerate(state.hands):
        if player_index in (state.our_player_index, action.target):
            continue
        for order in hand:
            card = hypo_common.thoughts[order]
            if not card.finessed or game.common.thoughts[order].finessed:
                continue
            actual = state.deck[order].identity()
            if actual is not None and actual not in card.inferred:
                logger.debug(f"{log_clue(state, action.clue, action.target)} causes a wrong finesse on order {order}")
                return None

    return hypo_game


def get_result(game: Game, hypo_game: Game, action: ClueAction, focused_order: int) -> ClueResult:
    state, common = game.state, game.common
    hypo_common = hypo_game.common
    hand = state.hands[action.target]

    new_touched, fill, elim = elim_result(common, hypo_common, hand, action.touched)
    bad_touch, trash = bad_touch_result(state, game.me, hypo_common, hand, focused_order)
    finesses, playables, safe_playables = playables_result(state, common, hypo_common, action.target)

    result = ClueResult(
        focus=focused_order,
        interpret=sorted(hypo_common.thoughts[focused_order].inferred),
        new_touched=new_touched,
        fill=fill,
        elim=elim,
        bad_touch=bad_touch,
        trash=trash,
        finesses=finesses,
        playables=playables,
        safe_playables=safe_playables,
    )
    result.value = clue_value(result, game.conventions)
    return result


def clue_safe(game: Game, hypo_game: Game, target: int) -> bool:
    """Whether the next player can still be saved after this clue.

    A clue is unsafe when it spends the last clue token while the next player has
    nothing to do but discard a critical card.
    """
    state = game.state
    if state.clue_tokens > 1:
        return True

    next_player = (state.our_player_index + 1) % state.num_players
    if next_player == state.our_player_index:
        return True

    hypo_state, hypo_common = hypo_game.state, hypo_game.common
    if hypo_common.thinks_loaded(hypo_state, next_player):
        return True

    chop = hypo_common.chop(hypo_state.hands[next_player], after_clue=True)
    if chop is None:
        return True

    actual = state.deck[chop].identity()
    unsafe = actual is not None and state.is_critical(actual)
    if unsafe:
        logger.debug(f"Clue to {state.player_names[target]} leaves {actual} on chop with no clues")
    return not unsafe


def _save_value(game: Game, candidate: ClueCandidate) -> float:
    state, me = game.state, game.me
    focus = state.deck[candidate.focus].identity()
    if focus is not None and me.is_trash(state, focus, candidate.focus):
        return -10.0
    return candidate.result.value


def find_fix_clues(game: Game, ignore_player_index: int | None = None) -> list[list[ClueCandidate]]:
    """Find clues that correct a touched card everyone has the wrong idea about."""
    state, common = game.state, game.common
    fix_clues: list[list[ClueCandidate]] = [[] for _ in range(state.num_players)]

    for target in range(state.num_players):
        if target in (state.our_player_index, ignore_player_index):
            continue
        hand = state.hands[target]

        to_fix = []
        for order in hand:
            card = common.thoughts[order]
            actual = state.deck[order].identity()
            if actual is None or not card.touched or not card.inferred:
                continue
            if actual in card.inferred:
                continue

            believed_playable = all(state.is_playable(inf) for inf in card.inferred)
            if not state.is_basic_trash(actual) or believed_playable:
                to_fix.append(order)

        for order in to_fix:
            actual = state.deck[order].identity()
            for clue in state.all_valid_clues(target):
                touched = state.clue_touched(hand, clue)
                if order not in touched:
                    continue

                action = ClueAction(
                    giver=state.our_player_index,
                    target=target,
                    clue=clue,
                    touched=touched,
                )
                hypo_game = game.simulate_clue(action)
                hypo_card = hypo_game.common.thoughts[order]

                fixed = actual in hypo_card.inferred or all(
                    state.is_basic_trash(inf) for inf in hypo_card.inferred
                )
                if not fixed:
                    continue

                focused_order, chop = determine_focus(hand, common, touched)
                result = get_result(game, hypo_game, action, focused_order)
                fix_clues[target].append(ClueCandidate(
                    target=target,
                    clue=clue,
                    touched=touched,
                    focus=focused_order,
                    chop=chop,
                    result=result,
                ))
                logger.info(f"Fix clue {log_clue(state, clue, target)} corrects order {order}")

    return fix_clues


def find_clues(game: Game, ignore_player_index: int | None = None) -> ClueOptions:
    """Find every play, save, fix and stall clue the bot could give right now."""
    state, common, me = game.state, game.common, game.me
    us = state.our_player_index

    play_clues: list[list[ClueCandidate]] = [[] for _ in range(state.num_players)]
    save_clues: list[ClueCandidate | None] = [None] * state.num_players
    stall_clues: list[list[ClueCandidate]] = [[] for _ in range(NUM_STALL_CATEGORIES)]

    logger.debug(f"Play/hypo/max stacks in clue finder: {state.play_stacks} {me.hypo_stacks} {state.max_ranks}")

    for target in range(state.num_players):
        if target in (us, ignore_player_index):
            continue

        hand = state.hands[target]
        saves: list[ClueCandidate] = []

        for clue in state.all_valid_clues(target):
            touched = state.clue_touched(hand, clue)
            focused_order, chop = determine_focus(hand, common, touched)
            focus_identity = state.deck[focused_order].identity()

            # Don't focus cards that another connection is already waiting on
            in_finesse = any(
                me.thoughts[wc.focused_order].matches(wc.inference, assume=True)
                and focus_identity is not None
                and focus_identity.suit_index == wc.inference.suit_index
                and focus_identity.rank <= wc.inference.rank
                for wc in game.waiting_connections
            )
            if common.thoughts[focused_order].finessed or in_finesse:
                continue

            bad_touch = [
                order for order in touched
                if not common.thoughts[order].clued
                and state.deck[order].identity() is not None
                and me.is_trash(state, state.deck[order].identity(), order)
            ]

            action = ClueAction(giver=us, target=target, clue=clue, touched=touched)
            hypo_game = evaluate_clue(game, action, focused_order, bad_touch)
            if hypo_game is None:
                continue

            result = get_result(game, hypo_game, action, focused_order)
            candidate = ClueCandidate(
                target=target,
                clue=clue,
                touched=touched,
                focus=focused_order,
                chop=chop,
                result=result,
                safe=clue_safe(game, hypo_game, target),
            )
            logger.debug(
                f"Result {log_clue(state, clue, target)}: interpret [{log_identities(result.interpret)}] "
                f"new {result.new_touched} elim {result.elim} bad {result.bad_touch} trash {result.trash} "
                f"finesses {result.finesses} playables {result.playables} value {result.value:.2f}"
            )

            if focus_identity is None:
                continue

            playables = result.playables
            reading = hypo_game.last_reading
            read_as_save = reading is not None and (
                reading.is_save(focus_identity) or (reading.matches(focus_identity) and focused_order in playables)
            )

            if chop and read_as_save and not state.is_basic_trash(focus_identity) and (
                state.is_critical(focus_identity)
                or (focus_identity.rank == 2 and len(me.visible_find(state, focus_identity)) == 1)
            ):
                saves.append(candidate)

            if (playables and focused_order not in playables) or me.is_trash(state, focus_identity, focused_order):
                logger.debug(f"{log_clue(state, clue, target)} is not a valid play clue")
                continue

            if playables:
                if not candidate.safe:
                    logger.debug(f"{log_clue(state, clue, target)} is an unsafe play clue")
                elif result.new_touched == 0 and len(playables) == 1:
                    stall_clues[TEMPO_CLUE].append(candidate)
                else:
                    play_clues[target].append(candidate)
            elif clue.type == "rank" and clue.value == 5 and not common.thoughts[focused_order].clued:
                stall_clues[FIVE_STALL].append(candidate)
            elif chop and me.thinks_locked(state, us):
                stall_clues[LOCKED_SAVE].append(candidate)
            elif result.new_touched == 0:
                stall_clues[FILL_IN if result.elim > 0 else HARD_BURN].append(candidate)

        if saves:
            best = max(saves, key=lambda c: _save_value(game, c))
            if _save_value(game, best) > -10:
                save_clues[target] = best

    if game.level >= Level.FIX:
        fix_clues = find_fix_clues(game, ignore_player_index)
    else:
        fix_clues = [[] for _ in range(state.num_players)]

    if any(play_clues):
        logger.info(f"Found play clues {[log_clue(state, c.clue, c.target) for clues in play_clues for c in clues]}")
    if any(save_clues):
        logger.info(f"Found save clues {[log_clue(state, c.clue, c.target) for c in save_clues if c is not None]}")
    if any(fix_clues):
        logger.info(f"Found fix clues {[log_clue(state, c.clue, c.target) for clues in fix_clues for c in clues]}")

    return ClueOptions(
        play_clues=play_clues,
        save_clues=save_clues,
        fix_clues=fix_clues,
        stall_clues=stall_clues,
    )


def find_stall_clue(options: ClueOptions, severity: int) -> ClueCandidate | None:
    """Pick a stall clue no worse than the given severity.

    Each severity allows its own category and every better one, so LOCKED_SAVE
    allows 5 stalls, tempo clues, fill-ins and locked hand saves. HARD_BURN also
    falls back to any play clue.
    """
    for category in range(min(severity, HARD_BURN) + 1):
        if options.stall_clues[category]:
            return options.stall_clues[category][0]

    if severity >= HARD_BURN:
        candidates = [c for clues in options.play_clues for c in clues]
        if candidates:
            return candidates[0]
    return None


def endgame_clues(game: Game, giver: int) -> list[ClueAction]:
    """Clues the endgame solver may try: those that get a new card played correctly."""
    state, common = game.state, game.common
    clues = []

    for target in range(state.num_players):
        if target == giver:
            continue
        hand = state.hands[target]

        for clue in state.all_valid_clues(target):
            touched = state.clue_touched(hand, clue)
            action = ClueAction(giver=giver, target=target, clue=clue, touched=touched)
            hypo_game = game.simulate_clue(action)
            hypo_common = hypo_game.common

            misread = any(
                state.deck[order].identity() is not None
                and hypo_common.thoughts[order].touched
                and state.deck[order].identity() not in hypo_common.thoughts[order].inferred
                for order in hand
            )
            if misread:
                continue

            if sum(hypo_common.hypo_stacks) > sum(common.hypo_stacks):
                clues.append(action)

    return clues
