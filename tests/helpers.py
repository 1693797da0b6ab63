"""Builders for games used across the engine tests.

Hands are written slot 1 first, e.g. ["r1", "g3", "xx", "xx", "b4"]. Our own cards
are always drawn unknown, whatever is written for them.
"""

from __future__ import annotations

from src.core.parsing import parse_identity
from src.hanabi.game import Game
from src.hanabi.models import (
    Clue,
    ClueAction,
    ConventionConfig,
    DiscardAction,
    DrawAction,
    PlayAction,
    TurnAction,
)

ALICE, BOB, CATHY, DONALD, EMILY = range(5)
PLAYER_NAMES = ["Alice", "Bob", "Cathy", "Donald", "Emily"]


def setup_game(
    hands: list[list[str]],
    our_seat: int = ALICE,
    play_stacks: list[int] | None = None,
    conventions: ConventionConfig | None = None,
    starting: int = ALICE,
) -> Game:
    """Deal the given hands player by player and start the first turn."""
    num_players = len(hands)
    game = Game(our_seat, num_players, PLAYER_NAMES[:num_players], conventions=conventions)

    if play_stacks is not None:
        game.state.play_stacks = list(play_stacks)
        for view in game.all_views:
            view.hypo_stacks = list(play_stacks)

    order = 0
    for player_index, hand in enumerate(hands):
        # Each draw goes to slot 1, so deal the last slot first
        for text in reversed(hand):
            identity = parse_identity(text) if player_index != our_seat else None
            game.handle_action(DrawAction(
                order=order,
                player_index=player_index,
                suit_index=identity.suit_index if identity is not None else -1,
                rank=identity.rank if identity is not None else -1,
            ))
            order += 1

    game.handle_action(TurnAction(num=0, current_player_index=starting))
    return game


def order_of(game: Game, player_index: int, slot: int) -> int:
    """Draw order of the card in a 1-indexed slot."""
    return game.state.hands[player_index][slot - 1]


def identity(text: str):
    return parse_identity(text)


def clue_action(game: Game, giver: int, target: int, clue: str, slots: list[int] | None = None) -> ClueAction:
    """Build a clue like "red" or "3".

    Touched cards are found from visible identities unless slots are given, which
    is required when the target is us.
    """
    state = game.state
    if clue.isdigit():
        value = Clue(type="rank", value=int(clue))
    else:
        value = Clue(type="color", value=state.suits.index(clue))

    hand = state.hands[target]
    if slots is not None:
        touched = [hand[slot - 1] for slot in slots]
    else:
        touched = state.clue_touched(hand, value)
    return ClueAction(giver=giver, target=target, clue=value, touched=touched)


def end_turn(game: Game, actor: int, draw: str | None = None) -> None:
    """Draw a replacement card (if one is named or the actor is us) and pass the turn."""
    state = game.state
    if draw is not None and state.cards_left > 0:
        drawn = parse_identity(draw) if actor != state.our_player_index else None
        game.handle_action(DrawAction(
            order=state.next_order,
            player_index=actor,
            suit_index=drawn.suit_index if drawn is not None else -1,
            rank=drawn.rank if drawn is not None else -1,
        ))
    game.handle_action(TurnAction(num=game.state.turn_count, current_player_index=(actor + 1) % state.num_players))


def give_clue(game: Game, giver: int, target: int, clue: str, slots: list[int] | None = None) -> ClueAction:
    action = clue_action(game, giver, target, clue, slots)
    game.handle_action(action)
    end_turn(game, giver)
    return action


def play(game: Game, player_index: int, slot: int, card: str, draw: str = "xx") -> None:
    played = parse_identity(card)
    game.handle_action(PlayAction(
        order=order_of(game, player_index, slot),
        player_index=player_index,
        suit_index=played.suit_index,
        rank=played.rank,
    ))
    end_turn(game, player_index, draw)


def discard(game: Game, player_index: int, slot: int, card: str, draw: str = "xx", failed: bool = False) -> None:
    discarded = parse_identity(card)
    game.handle_action(DiscardAction(
        order=order_of(game, player_index, slot),
        player_index=player_index,
        suit_index=discarded.suit_index,
        rank=discarded.rank,
        failed=failed,
    ))
    end_turn(game, player_index, draw)
