"""Formatting helpers used in log messages."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from .card import Card
from .models import Action, Clue, Connection, Identity, PerformAction

if TYPE_CHECKING:
    from .state import GameState


CARD_FLAGS = ["clued", "newly_clued", "finessed", "chop_moved", "called_to_discard", "rewinded", "reset"]


def log_identities(identities: Iterable[Identity]) -> str:
    return ",".join(str(i) for i in sorted(identities))


def log_card(card: Card | Identity | None) -> str:
    """Short form of a card, marking identities that are only known or inferred."""
    if card is None:
        return "(unknown)"
    if isinstance(card, Identity):
        return str(card)

    if card.suit_index != -1:
        return str(Identity(suit_index=card.suit_index, rank=card.rank))
    if len(card.possible) == 1:
        return f"{next(iter(card.possible))} (known)"
    if len(card.inferred) == 1:
        return f"{next(iter(card.inferred))} (inferred)"
    return "(unknown)"


def log_hand(cards: Iterable[Card]) -> list[dict[str, Any]]:
    """Structured dump of a hand for debug logging."""
    hand = []
    for card in cards:
        visible = card.identity()
        hand.append({
            "visible": str(visible) if visible is not None else "unknown",
            "order": card.order,
            "flags": [flag for flag in CARD_FLAGS if getattr(card, flag)],
            "possible": log_identities(card.possible),
            "inferred": log_identities(card.inferred),
            "reasoning": list(card.reasoning_turn),
        })
    return hand


def log_clue(state: GameState, clue: Clue, target: int) -> str:
    value = state.suits[clue.value] if clue.type == "color" else str(clue.value)
    return f"({value} to {state.player_names[target]})"


def log_action(state: GameState, action: Action) -> str:
    """Readable form of an action from the log."""
    names = state.player_names
    if action.type == "clue":
        return f"{names[action.giver]} clues {log_clue(state, action.clue, action.target)} touching {action.touched}"
    if action.type == "play":
        return f"{names[action.player_index]} plays {action.identity} (order {action.order})"
    if action.type == "discard":
        verb = "bombs" if action.failed else "discards"
        return f"{names[action.player_index]} {verb} {action.identity} (order {action.order})"
    if action.type == "draw":
        shown = "xx" if action.suit_index == -1 else str(Identity(suit_index=action.suit_index, rank=action.rank))
        return f"{names[action.player_index]} draws {shown} (order {action.order})"
    if action.type == "turn":
        return f"turn {action.num}, {names[action.current_player_index]} to act"
    if action.type == "identify":
        return f"identify order {action.order} as {action.identity}"
    if action.type == "ignore":
        return f"ignore order {action.order}"
    return "game over"


def log_connections(connections: Iterable[Connection]) -> str:
    parts = []
    for conn in connections:
        label = conn.type
        if getattr(conn, "hidden", False):
            label += " (hidden)"
        if getattr(conn, "bluff", False):
            label += " (bluff)"
        parts.append(f"{conn.order} {log_identities(conn.identities)} {label} -> {conn.reacting}")
    return " | ".join(parts) if parts else "(none)"


def log_perform_action(state: GameState, perform: PerformAction) -> str:
    """Readable form of an action the bot is about to take."""
    if perform.type in ("play", "discard"):
        hand = state.hands[state.our_player_index]
        slot = hand.index(perform.target) + 1 if perform.target in hand else -1
        verb = "Play" if perform.type == "play" else "Discard"
        return f"{verb} slot {slot} (order {perform.target})"
    return log_clue(state, perform.to_clue(), perform.target)
