"""Visibility and per-seat views for Hanabi.

Core principle: a player can see every other player's hand but NOT their own
cards. Their own draws reach them without an identity; they only learn about their
cards through clues and, once the cards leave their hand, plays and discards.
"""

from __future__ import annotations

from typing import Any

from .game import Game
from .logs import log_card
from .models import Action, DrawAction


# Keys that must NEVER appear in any seat view
FORBIDDEN_KEYS = {
    "deck",
    "deck_order",
    "rng",
    "seed",
    "random",
    "debug",
    "_internal",
}


def redact_for_seat(action: Action, seat: int) -> Action:
    """Hide the identity of a card drawn by the seat itself."""
    if isinstance(action, DrawAction) and action.player_index == seat:
        return action.model_copy(update={"suit_index": -1, "rank": -1})
    return action


def seat_stream(actions: list[Action], seat: int) -> list[Action]:
    """The action log as one seat receives it."""
    return [redact_for_seat(action, seat) for action in actions]


def view_for_seat(game: Game) -> dict[str, Any]:
    """
    Build the public state view for the seat that owns this game.

    Other hands are shown as the seat sees them. The seat's own hand only shows what
    the seat believes about each card.

    Args:
        game: The seat's own game context

    Returns:
        View dictionary safe for the seat to see
    """
    state, me = game.state, game.me
    seat = state.our_player_index

    visible_hands: dict[str, list[str]] = {}
    for player_index, hand in enumerate(state.hands):
        if player_index != seat:
            visible_hands[state.player_names[player_index]] = [
                log_card(state.deck[order].identity()) for order in hand
            ]

    my_hand_beliefs = []
    for order in state.hands[seat]:
        card = me.thoughts[order]
        my_hand_beliefs.append({
            "order": order,
            "possible": sorted(str(identity) for identity in card.possible),
            "inferred": sorted(str(identity) for identity in card.inferred),
            "clued": card.clued,
            "finessed": card.finessed,
        })

    return {
        "role": "player",
        "seat": seat,
        "player_name": state.player_names[seat],
        "turn_number": state.turn_count,

        # Other players' hands - VISIBLE
        "visible_hands": visible_hands,

        # Own hand - beliefs only, NOT actual cards
        "my_hand_beliefs": my_hand_beliefs,

        # Public game state
        "play_stacks": list(state.play_stacks),
        "hypo_stacks": list(game.common.hypo_stacks),
        "cards_left": state.cards_left,
        "clue_tokens": state.clue_tokens,
        "strikes": state.strikes,
        "score": state.score,
        "current_player": state.player_names[state.current_player_index],
        "waiting_connections": len(game.waiting_connections),
    }


def assert_no_leaks(payload: Any, path: str = "") -> None:
    """
    Recursively assert that no forbidden keys appear in a payload.

    Raises AssertionError if any leak is detected.
    """
    if isinstance(payload, dict):
        for key, value in payload.items():
            key_str = str(key).lower()
            current_path = f"{path}.{key}" if path else key

            if key_str in FORBIDDEN_KEYS:
                raise AssertionError(f"Forbidden key '{key}' found at {current_path}")

            if key_str == "my_hand" or key_str == "own_hand":
                raise AssertionError(f"Direct hand access found at {current_path}")

            assert_no_leaks(value, current_path)

    elif isinstance(payload, list):
        for i, item in enumerate(payload):
            assert_no_leaks(item, f"{path}[{i}]")


def assert_stream_safe(stream: list[Action], seat: int) -> None:
    """
    Validate that a seat's action stream never reveals one of its own cards early.

    Checks:
    1. Every draw into the seat's hand arrives without an identity
    2. No rewind pseudo-actions are streamed from the table
    """
    for i, action in enumerate(stream):
        if action.type == "draw" and action.player_index == seat and (action.suit_index != -1 or action.rank != -1):
            raise AssertionError(f"Seat {seat} sees its own draw of order {action.order} at [{i}] - LEAK!")
        if action.type in ("identify", "ignore"):
            raise AssertionError(f"Internal action '{action.type}' found in stream at [{i}]")
