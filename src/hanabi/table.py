"""Rules of a local table: the shuffled deck, dealing and applying performed actions.

The table is the only place that knows every card. It turns what a bot decides to
do into the public actions every bot then observes.
"""

from __future__ import annotations

import random

from pydantic import BaseModel, Field

from .models import (
    CARD_COUNTS,
    Action,
    Clue,
    ClueAction,
    DiscardAction,
    DrawAction,
    Identity,
    PerformAction,
    PlayAction,
    TableConfig,
)


class TableState(BaseModel):
    """Authoritative state of a game at a local table."""

    config: TableConfig
    player_names: list[str]

    # deck[order] is the card drawn with that order
    deck: list[Identity]
    next_order: int = 0
    hands: list[list[int]]

    play_stacks: list[int]
    discard_pile: list[int] = Field(default_factory=list)
    clue_tokens: int
    strikes: int = 0

    turn_number: int = 0
    current_player_idx: int = 0
    final_turns: int | None = None
    game_over: bool = False
    game_over_reason: str | None = None

    @property
    def cards_left(self) -> int:
        return len(self.deck) - self.next_order

    @property
    def score(self) -> int:
        return sum(self.play_stacks)

    @property
    def max_score(self) -> int:
        """Best score still reachable given the discard pile."""
        total = 0
        for suit_index in range(len(self.config.suits)):
            rank = 0
            for next_rank in range(1, 6):
                identity = Identity(suit_index=suit_index, rank=next_rank)
                discarded = sum(1 for order in self.discard_pile if self.deck[order] == identity)
                if discarded >= CARD_COUNTS[next_rank]:
                    break
                rank = next_rank
            total += rank
        return total


def create_deck(seed: int, num_suits: int = 5) -> list[Identity]:
    """Create and shuffle a standard Hanabi deck."""
    rng = random.Random(seed)
    deck: list[Identity] = []

    for suit_index in range(num_suits):
        for rank, count in CARD_COUNTS.items():
            for _ in range(count):
                deck.append(Identity(suit_index=suit_index, rank=rank))

    rng.shuffle(deck)
    return deck


def draw_card(state: TableState, player_index: int) -> DrawAction | None:
    """Draw the next card into a player's hand.

    Drawing the last card starts the final round: every player gets one more turn.
    """
    if state.cards_left == 0:
        return None

    order = state.next_order
    state.next_order += 1
    state.hands[player_index].insert(0, order)

    if state.cards_left == 0:
        state.final_turns = state.config.num_players

    identity = state.deck[order]
    return DrawAction(order=order, player_index=player_index, suit_index=identity.suit_index, rank=identity.rank)


def create_table(config: TableConfig, player_names: list[str] | None = None) -> tuple[TableState, list[Action]]:
    """
    Create a new table and deal the opening hands.

    Args:
        config: Table configuration; a missing seed is drawn at random
        player_names: Optional list of names. If None, uses player_1, player_2, etc.

    Returns:
        (table state with the resolved seed in its config, the draw actions of the deal)
    """
    seed = config.seed if config.seed is not None else random.randint(0, 2**31 - 1)
    config = config.model_copy(update={"seed": seed})

    if player_names is None:
        player_names = [f"player_{i + 1}" for i in range(config.num_players)]
    if len(player_names) != config.num_players:
        raise ValueError(f"Expected {config.num_players} players, got {len(player_names)}")

    state = TableState(
        config=config,
        player_names=player_names,
        deck=create_deck(seed, len(config.suits)),
        hands=[[] for _ in range(config.num_players)],
        play_stacks=[0] * len(config.suits),
        clue_tokens=config.max_clues,
    )

    # Each player is dealt a full hand in turn
    deal: list[Action] = []
    for player_index in range(config.num_players):
        for _ in range(config.cards_per_hand):
            deal.append(draw_card(state, player_index))

    return state, deal


def is_playable(state: TableState, identity: Identity) -> bool:
    return identity.rank == state.play_stacks[identity.suit_index] + 1


def apply_perform(state: TableState, player_index: int, perform: PerformAction) -> list[Action]:
    """
    Apply an action a player chose.

    Returns:
        The public actions it produced, including any draw

    Raises:
        ValueError: If the action is not legal
    """
    if state.game_over:
        raise ValueError("Game is already over")
    if player_index != state.current_player_idx:
        raise ValueError(f"Not {state.player_names[player_index]}'s turn")

    actions: list[Action] = []
    hand = state.hands[player_index]

    if perform.type in ("play", "discard"):
        if perform.target not in hand:
            raise ValueError(f"Card {perform.target} is not in {state.player_names[player_index]}'s hand")
        if perform.type == "discard" and state.clue_tokens >= state.config.max_clues:
            raise ValueError("Cannot discard at maximum clue tokens")

        hand.remove(perform.target)
        identity = state.deck[perform.target]
        fields = dict(
            order=perform.target,
            player_index=player_index,
            suit_index=identity.suit_index,
            rank=identity.rank,
        )

        if perform.type == "play" and is_playable(state, identity):
            state.play_stacks[identity.suit_index] = identity.rank
            # Completing a stack returns a clue
            if identity.rank == 5 and state.clue_tokens < state.config.max_clues:
                state.clue_tokens += 1
            actions.append(PlayAction(**fields))
        elif perform.type == "play":
            state.strikes += 1
            state.discard_pile.append(perform.target)
            actions.append(DiscardAction(**fields, failed=True))
        else:
            state.clue_tokens += 1
            state.discard_pile.append(perform.target)
            actions.append(DiscardAction(**fields))

        if state.final_turns is not None:
            state.final_turns -= 1
        draw = draw_card(state, player_index)
        if draw is not None:
            actions.append(draw)

    else:
        if state.clue_tokens <= 0:
            raise ValueError("No clue tokens available")
        if perform.target == player_index or not 0 <= perform.target < state.config.num_players:
            raise ValueError(f"Invalid clue target {perform.target}")

        clue: Clue = perform.to_clue()
        touched = [order for order in state.hands[perform.target] if clue.touches(state.deck[order])]
        if not touched:
            raise ValueError(f"Clue must touch at least one card: {perform}")

        state.clue_tokens -= 1
        if state.final_turns is not None:
            state.final_turns -= 1
        actions.append(ClueAction(giver=player_index, target=perform.target, clue=clue, touched=touched))

    game_over, reason = check_terminal(state)
    if game_over:
        state.game_over = True
        state.game_over_reason = reason
    else:
        state.current_player_idx = (state.current_player_idx + 1) % state.config.num_players
        state.turn_number += 1

    return actions


def check_terminal(state: TableState) -> tuple[bool, str | None]:
    """
    Check if the game has ended.

    Returns:
        (is_game_over, reason)
        Reasons: "strikeout", "perfect_score", "final_round_complete", None (not over)
    """
    if state.strikes >= state.config.max_strikes:
        return True, "strikeout"

    if state.score == 5 * len(state.config.suits):
        return True, "perfect_score"

    if state.final_turns == 0:
        return True, "final_round_complete"

    return False, None
