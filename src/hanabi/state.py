"""Public game state shared by every belief view."""

from __future__ import annotations

from pydantic import BaseModel, Field

from .card import ActualCard
from .models import (
    CARD_COUNTS,
    COLORS,
    MAX_CLUES,
    MAX_STRIKES,
    NUMBERS,
    Action,
    Clue,
    Identity,
)


class GameState(BaseModel):
    """The state of one game from the bot's seat.

    Hands hold draw orders, newest first (slot 1 is index 0). The deck maps every draw
    order to the card as the bot sees it.
    """

    num_players: int
    our_player_index: int
    player_names: list[str]
    suits: list[str] = Field(default_factory=lambda: list(COLORS))

    hands: list[list[int]]
    deck: dict[int, ActualCard] = Field(default_factory=dict)

    play_stacks: list[int]
    discard_stacks: list[list[int]]
    max_ranks: list[int]

    clue_tokens: int = MAX_CLUES
    strikes: int = 0
    turn_count: int = 1
    current_player_index: int = 0
    cards_left: int
    next_order: int = 0
    endgame_turns: int = -1
    in_progress: bool = True

    action_list: list[Action] = Field(default_factory=list)

    @classmethod
    def create(
        cls,
        num_players: int,
        our_player_index: int,
        player_names: list[str] | None = None,
        suits: list[str] | None = None,
    ) -> GameState:
        suits = list(suits) if suits is not None else list(COLORS)
        if player_names is None:
            player_names = [f"player_{i + 1}" for i in range(num_players)]
        if len(player_names) != num_players:
            raise ValueError(f"Expected {num_players} player names, got {len(player_names)}")

        return cls(
            num_players=num_players,
            our_player_index=our_player_index,
            player_names=player_names,
            suits=suits,
            hands=[[] for _ in range(num_players)],
            play_stacks=[0] * len(suits),
            discard_stacks=[[0] * len(NUMBERS) for _ in suits],
            max_ranks=[max(NUMBERS)] * len(suits),
            cards_left=len(suits) * sum(CARD_COUNTS.values()),
        )

    @property
    def score(self) -> int:
        return sum(self.play_stacks)

    @property
    def max_score(self) -> int:
        return sum(self.max_ranks)

    @property
    def pace(self) -> int:
        """Discards the team can still afford before max score becomes unreachable."""
        return self.score + self.cards_left + self.num_players - self.max_score

    @property
    def in_endgame(self) -> bool:
        return self.pace < self.num_players

    @property
    def ended(self) -> bool:
        return (
            not self.in_progress
            or self.strikes >= MAX_STRIKES
            or self.endgame_turns == 0
            or self.score == self.max_score
        )

    def all_identities(self) -> list[Identity]:
        return [
            Identity(suit_index=suit_index, rank=rank)
            for suit_index in range(len(self.suits))
            for rank in NUMBERS
        ]

    def card_count(self, identity: Identity) -> int:
        return CARD_COUNTS[identity.rank]

    def discarded(self, identity: Identity) -> int:
        return self.discard_stacks[identity.suit_index][identity.rank - 1]

    def base_count(self, identity: Identity) -> int:
        """Copies of the identity that are already out of every hand."""
        played = 1 if identity.rank <= self.play_stacks[identity.suit_index] else 0
        return played + self.discarded(identity)

    def is_playable(self, identity: Identity) -> bool:
        return identity.rank == self.play_stacks[identity.suit_index] + 1

    def is_basic_trash(self, identity: Identity) -> bool:
        return (
            identity.rank <= self.play_stacks[identity.suit_index]
            or identity.rank > self.max_ranks[identity.suit_index]
        )

    def is_critical(self, identity: Identity) -> bool:
        if self.is_basic_trash(identity):
            return False
        return self.discarded(identity) == self.card_count(identity) - 1

    def all_discarded(self, identity: Identity) -> bool:
        return self.discarded(identity) >= self.card_count(identity)

    def playable_away(self, identity: Identity) -> int:
        return identity.rank - (self.play_stacks[identity.suit_index] + 1)

    def hand_of(self, order: int) -> int | None:
        for player_index, hand in enumerate(self.hands):
            if order in hand:
                return player_index
        return None

    def clue_touched(self, hand: list[int], clue: Clue) -> list[int]:
        """Orders in a hand that the clue would touch, judged by visible identities."""
        touched = []
        for order in hand:
            identity = self.deck[order].identity()
            if identity is not None and clue.touches(identity):
                touched.append(order)
        return touched

    def all_valid_clues(self, target: int) -> list[Clue]:
        """Every clue that touches at least one visible card in the target's hand."""
        identities = [self.deck[order].identity() for order in self.hands[target]]
        visible = [identity for identity in identities if identity is not None]
        clues = [
            Clue(type="color", value=suit_index)
            for suit_index in range(len(self.suits))
            if any(identity.suit_index == suit_index for identity in visible)
        ]
        clues += [
            Clue(type="rank", value=rank)
            for rank in NUMBERS
            if any(identity.rank == rank for identity in visible)
        ]
        return clues

    def clone(self) -> GameState:
        return self.model_copy(update={
            "hands": [list(hand) for hand in self.hands],
            "deck": dict(self.deck),
            "play_stacks": list(self.play_stacks),
            "discard_stacks": [list(stack) for stack in self.discard_stacks],
            "max_ranks": list(self.max_ranks),
            "action_list": list(self.action_list),
        })
