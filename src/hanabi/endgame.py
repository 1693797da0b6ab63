"""Exhaustive endgame search.

Once few identities are unaccounted for, every way the remaining cards could be
arranged is solved as a perfect-information game. An action is adopted when it
starts a winning line in enough of those arrangements.
"""

from __future__ import annotations

import itertools
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from .card import ActualCard
from .errors import UnsolvedGame
from .logs import log_clue
from .models import ClueAction, DiscardAction, Identity, PerformAction, PlayAction

if TYPE_CHECKING:
    from .game import Game

logger = logging.getLogger(__name__)


class EndgameAction(PerformAction):
    """A step in a winning line. A stall is a rank clue with target -1."""

    player_index: int

    @property
    def is_stall(self) -> bool:
        return self.target == -1


class WinnableResult(BaseModel):
    actions: list[EndgameAction] = Field(default_factory=list)
    winrate: float = 0.0


ClueFinder = Callable[["Game", int], list[ClueAction]]
DiscardFinder = Callable[["Game", int], list[tuple[bool, int]]]


def _no_clues(game: Game, giver: int) -> list[ClueAction]:
    return []


def _no_discards(game: Game, player_index: int) -> list[tuple[bool, int]]:
    return []


def find_unseen_identities(game: Game) -> list[Identity]:
    """Identities still needed for max score that we can't place in any hand."""
    state, me = game.state, game.me

    seen: set[Identity] = set()
    for hand in state.hands:
        for order in hand:
            identity = me.thoughts[order].identity(infer=True)
            if identity is not None:
                seen.add(identity)

    return [
        Identity(suit_index=suit_index, rank=rank)
        for suit_index, stack in enumerate(state.play_stacks)
        for rank in range(stack + 1, state.max_ranks[suit_index] + 1)
        if Identity(suit_index=suit_index, rank=rank) not in seen
    ]


def unwinnable_state(game: Game, player_turn: int) -> bool:
    """Cheap necessary conditions for max score.

    The state is unwinnable if the game is over, pace is negative, more players hold
    only trash than pace allows, or the remaining endgame turns cannot play every
    missing card.
    """
    state, me = game.state, game.me

    if state.ended or state.pace < 0:
        return True

    void_players = set()
    for player_index, hand in enumerate(state.hands):
        if player_index == state.our_player_index:
            if len(me.thinks_trash(state, player_index)) == len(hand):
                void_players.add(player_index)
        elif all(
            state.deck[order].identity() is not None and state.is_basic_trash(state.deck[order].identity())
            for order in hand
        ):
            void_players.add(player_index)

    if len(void_players) > state.pace:
        return True

    if state.endgame_turns != -1:
        possible_players = [
            i for i in range(state.endgame_turns)
            if (player_turn + i) % state.num_players not in void_players
        ]
        if len(possible_players) + state.score < state.max_score:
            return True

    return False


def hash_state(game: Game, player_turn: int) -> str:
    """Cache key: what everyone believes each card is, clue tokens, endgame turns and who acts."""
    state, common = game.state, game.common

    cards = []
    for hand in state.hands:
        for order in hand:
            identity = common.thoughts[order].identity(infer=True)
            cards.append(str(identity) if identity is not None else "xx")

    return f"{','.join(cards)},{state.clue_tokens},{state.endgame_turns},{player_turn}"


def winnable_simple(
    game: Game,
    player_turn: int,
    find_clues: ClueFinder = _no_clues,
    find_discards: DiscardFinder = _no_discards,
    cache: dict[str, WinnableResult] | None = None,
    deadline: float | None = None,
) -> WinnableResult:
    """Search for a line that reaches max score, assuming the deck is fully known.

    Plays are tried first, then clues, then discards and stalls (stalls first once
    in the endgame). The first line found with winrate 1 stops the search.

    Args:
        game: A minimal copy whose deck holds every identity the search needs
        player_turn: The player about to act
        cache: Results keyed by `hash_state`, shared across the recursion
        deadline: `time.monotonic()` value after which every branch scores 0
    """
    state = game.state
    if cache is None:
        cache = {}

    if state.score == state.max_score:
        return WinnableResult(actions=[], winrate=1.0)

    if (deadline is not None and time.monotonic() > deadline) or unwinnable_state(game, player_turn):
        return WinnableResult(actions=[], winrate=0.0)

    key = hash_state(game, player_turn)
    cached = cache.get(key)
    if cached is not None:
        return cached

    next_player = (player_turn + 1) % state.num_players
    hand = state.hands[player_turn]

    best = WinnableResult()

    def consider(action: EndgameAction, result: WinnableResult, allow_equal: bool = False) -> None:
        nonlocal best
        if result.winrate > best.winrate or (allow_equal and result.winrate == best.winrate):
            best = WinnableResult(actions=[action] + result.actions, winrate=result.winrate)

    def attempt_discard() -> None:
        discards = find_discards(game, player_turn)
        if not discards:
            not_useful = next(
                (order for order in hand
                 if state.deck[order].identity() is not None and state.is_basic_trash(state.deck[order].identity())),
                None,
            )
            if not_useful is not None:
                discards = [(False, not_useful)]

        for misplay, order in discards:
            identity = state.deck[order].identity()
            if identity is None:
                continue
            logger.debug(f"{state.player_names[player_turn]} trying to discard slot {hand.index(order) + 1}")
            new_game = game.simulate_action(DiscardAction(
                order=order,
                player_index=player_turn,
                suit_index=identity.suit_index,
                rank=identity.rank,
                failed=misplay,
            ))
            result = winnable_simple(new_game, next_player, find_clues, find_discards, cache, deadline)
            consider(EndgameAction(type="discard", target=order, player_index=player_turn), result)

    def attempt_stall() -> None:
        stall_game = game.minimal_copy()
        stall_game.state.clue_tokens -= 1
        stall_game._tick_endgame()

        logger.debug(f"{state.player_names[player_turn]} trying to stall")
        result = winnable_simple(stall_game, next_player, find_clues, find_discards, cache, deadline)
        consider(EndgameAction(type="clue_rank", target=-1, value=-1, player_index=player_turn), result)

    for order in game.players[player_turn].thinks_playables(state, player_turn):
        identity = state.deck[order].identity()
        if identity is None:
            continue

        logger.debug(f"{state.player_names[player_turn]} trying to play {identity}")
        if state.is_playable(identity):
            action = PlayAction(order=order, player_index=player_turn, suit_index=identity.suit_index, rank=identity.rank)
        else:
            action = DiscardAction(
                order=order, player_index=player_turn, suit_index=identity.suit_index, rank=identity.rank, failed=True
            )
        result = winnable_simple(game.simulate_action(action), next_player, find_clues, find_discards, cache, deadline)
        consider(EndgameAction(type="play", target=order, player_index=player_turn), result, allow_equal=True)

        if best.winrate == 1:
            break

    clues = find_clues(game, player_turn) if state.clue_tokens > 0 and best.winrate < 1 else []

    if best.winrate < 1:
        for clue_action in clues:
            logger.debug(f"{state.player_names[player_turn]} trying to clue {log_clue(state, clue_action.clue, clue_action.target)}")
            result = winnable_simple(
                game.simulate_action(clue_action), next_player, find_clues, find_discards, cache, deadline
            )
            consider(EndgameAction(
                type="clue_color" if clue_action.clue.type == "color" else "clue_rank",
                target=clue_action.target,
                value=clue_action.clue.value,
                player_index=player_turn,
            ), result)

            if best.winrate == 1:
                break

    can_stall = state.clue_tokens > 0 and not clues
    if state.in_endgame:
        if best.winrate < 1 and can_stall:
            attempt_stall()
        if best.winrate < 1 and state.pace >= 0:
            attempt_discard()
    else:
        if best.winrate < 1 and state.pace >= 0:
            attempt_discard()
        if best.winrate < 1 and can_stall:
            attempt_stall()

    cache[key] = best
    return best


def _to_perform(game: Game, action: EndgameAction) -> PerformAction:
    """Turn the first step of a winning line into something the bot can do."""
    if not action.is_stall:
        return PerformAction(type=action.type, target=action.target, value=action.value)

    # Any clue stalls; prefer one that touches only already clued cards
    state = game.state
    for offset in range(1, state.num_players):
        target = (state.our_player_index + offset) % state.num_players
        for clue in state.all_valid_clues(target):
            touched = state.clue_touched(state.hands[target], clue)
            if all(game.common.thoughts[order].clued for order in touched):
                return PerformAction(
                    type="clue_color" if clue.type == "color" else "clue_rank", target=target, value=clue.value
                )

    target = (state.our_player_index + 1) % state.num_players
    clue = state.all_valid_clues(target)[0]
    return PerformAction(type="clue_color" if clue.type == "color" else "clue_rank", target=target, value=clue.value)


def solve_game(
    game: Game,
    player_turn: int,
    find_clues: ClueFinder = _no_clues,
    find_discards: DiscardFinder = _no_discards,
) -> PerformAction:
    """Find the first action of a line that wins in enough arrangements of the unseen cards.

    Raises:
        UnsolvedGame: If too many identities are unseen, or no action wins often enough
    """
    state, me = game.state, game.me
    conventions = game.conventions
    us = state.our_player_index

    unseen = find_unseen_identities(game)
    if len(unseen) > conventions.max_unseen_identities:
        raise UnsolvedGame(f"Couldn't find any {','.join(map(str, unseen))}")

    base_game = game.minimal_copy()
    unknown_own = []

    # Write what we believe onto our own cards
    for order in state.hands[us]:
        identity = me.thoughts[order].identity(infer=True)
        if identity is not None:
            base_game.state.deck[order] = ActualCard(order=order, suit_index=identity.suit_index, rank=identity.rank)
        else:
            unknown_own.append(order)

    deadline = time.monotonic() + conventions.solver_timeout

    if not unseen:
        result = winnable_simple(base_game, player_turn, find_clues, find_discards, {}, deadline)
        if result.winrate < conventions.solver_min_winrate or not result.actions:
            raise UnsolvedGame("Couldn't find a winning strategy")

        logger.info(f"Endgame solved with winrate {result.winrate}: {[a.type for a in result.actions]}")
        return _to_perform(game, result.actions[0])

    logger.debug(f"Unseen identities {','.join(map(str, unseen))}")

    locations = unknown_own + [state.next_order + i for i in range(state.cards_left)]
    arrangements = [
        locs for locs in itertools.permutations(locations, len(unseen))
        if all(
            order not in unknown_own or identity in me.thoughts[order].possible
            for order, identity in zip(locs, unseen)
        )
    ]
    if not arrangements:
        raise UnsolvedGame("No arrangement of the unseen cards is possible")

    winrates: dict[tuple[str, int, int | None], float] = {}
    first_actions: dict[tuple[str, int, int | None], EndgameAction] = {}

    for locs in arrangements:
        arranged = base_game.minimal_copy()
        for order, identity in zip(locs, unseen):
            arranged.state.deck[order] = ActualCard(order=order, suit_index=identity.suit_index, rank=identity.rank)

        result = winnable_simple(arranged, player_turn, find_clues, find_discards, {}, deadline)
        if result.winrate == 1 and result.actions:
            first = result.actions[0]
            key = (first.type, first.target, first.value)
            winrates[key] = winrates.get(key, 0.0) + 1 / len(arrangements)
            first_actions[key] = first

    if not winrates:
        raise UnsolvedGame("Couldn't find a winning strategy")

    key, winrate = max(winrates.items(), key=lambda item: item[1])
    if winrate < conventions.solver_min_winrate - 1e-9:
        raise UnsolvedGame(f"Best action only wins {winrate:.2f} of arrangements")

    logger.info(f"Endgame winnable, found action {key} with winrate {winrate:.2f}")
    return _to_perform(game, first_actions[key])
