"""Measuring what a clue would achieve by comparing belief views before and after it."""

from __future__ import annotations

from pydantic import BaseModel, Field

from .models import ConventionConfig, Identity
from .player import Player
from .state import GameState


class ClueResult(BaseModel):
    """What a hypothetical clue does to the common view."""

    focus: int
    interpret: list[Identity] = Field(default_factory=list)

    new_touched: int = 0
    fill: int = 0
    elim: int = 0

    bad_touch: int = 0
    trash: int = 0

    finesses: int = 0
    playables: list[int] = Field(default_factory=list)
    safe_playables: list[int] = Field(default_factory=list)

    value: float = 0.0


def elim_result(player: Player, hypo_player: Player, hand: list[int], touched: list[int]) -> tuple[int, int, int]:
    """Count cards that learnt something from the clue.

    Returns:
        (new_touched, fill, elim): newly clued cards, re-touched cards that gained
        information and untouched cards that lost possibilities
    """
    new_touched = fill = elim = 0

    for order in hand:
        old_card = player.thoughts[order]
        hypo_card = hypo_player.thoughts[order]

        if (
            hypo_card.clued
            and not hypo_card.called_to_discard
            and len(hypo_card.possible) < len(old_card.possible)
            and hypo_card.matches_inferences()
        ):
            if hypo_card.newly_clued and not hypo_card.finessed:
                new_touched += 1
            elif order in touched:
                fill += 1
            else:
                elim += 1
    return new_touched, fill, elim


def bad_touch_result(
    state: GameState,
    me: Player,
    hypo_player: Player,
    hand: list[int],
    focused_order: int,
) -> tuple[int, int]:
    """Count touched cards that are trash.

    Returns:
        (bad_touch, trash): cards touched that are trash but not known to be, and
        cards touched that everyone will know are trash
    """
    bad_touch = trash = 0

    for order in hand:
        if order == focused_order:
            continue
        hypo_card = hypo_player.thoughts[order]
        if not hypo_card.newly_clued:
            continue

        actual = state.deck[order].identity()
        if all(me.is_trash(state, p, order) for p in hypo_card.possible):
            trash += 1
        elif actual is not None and me.is_trash(state, actual, order):
            bad_touch += 1

    return bad_touch, trash


def playables_result(
    state: GameState,
    player: Player,
    hypo_player: Player,
    target: int,
) -> tuple[int, list[int], list[int]]:
    """Count finesses and cards that become known playable.

    Returns:
        (finesses, playables, safe_playables)
    """
    finesses = 0
    playables: list[int] = []
    safe_playables: list[int] = []

    def find_card(identity: Identity) -> int | None:
        for hand in state.hands:
            for order in hand:
                hypo_card = hypo_player.thoughts[order]
                if hypo_card.saved and hypo_card.matches(identity, infer=True):
                    return order
        return None

    loaded = hypo_player.thinks_loaded(state, target)

    for suit_index in range(len(state.suits)):
        for rank in range(player.hypo_stacks[suit_index] + 1, hypo_player.hypo_stacks[suit_index] + 1):
            order = find_card(Identity(suit_index=suit_index, rank=rank))
            if order is None:
                continue

            if hypo_player.thoughts[order].finessed and not player.thoughts[order].finessed:
                finesses += 1

            # Only counts if it wasn't already going to play
            if order not in player.unknown_plays:
                playables.append(order)
                if loaded:
                    safe_playables.append(order)

    return finesses, playables, safe_playables


def clue_value(result: ClueResult, conventions: ConventionConfig) -> float:
    """Score a clue result. Touching one new card is worth much more than touching none."""
    new_touched_value = 0.0
    if result.new_touched >= 1:
        new_touched_value = 0.51 + conventions.new_touch_weight * (result.new_touched - 1)

    return (
        conventions.finesse_weight * result.finesses
        + conventions.playable_weight * len(result.playables)
        + new_touched_value
        + conventions.elim_weight * result.elim
        - conventions.bad_touch_penalty * result.bad_touch
        - conventions.trash_penalty * result.trash
    )
