"""Physical cards and per-observer belief records."""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, Field

from .models import Clue, Identity


class ActualCard(BaseModel):
    """A card in the deck as the bot sees it. Unknown identities are -1."""

    model_config = {"frozen": True}

    order: int
    suit_index: int = -1
    rank: int = -1

    def identity(self) -> Identity | None:
        if self.suit_index == -1 or self.rank == -1:
            return None
        return Identity(suit_index=self.suit_index, rank=self.rank)

    def matches(self, identity: Identity, assume: bool = False) -> bool:
        """Whether this card is the identity. Unknown cards return `assume`."""
        own = self.identity()
        if own is None:
            return assume
        return own == identity


class Card(BaseModel):
    """One observer's belief about a single card.

    `possible` holds every identity not ruled out by elimination; `inferred` is the
    convention-derived subset the card is believed to be. All mutation goes through the
    set helpers below so that `inferred` never escapes `possible`.
    """

    order: int
    drawn_index: int
    suit_index: int = -1
    rank: int = -1

    possible: set[Identity]
    inferred: set[Identity]
    old_inferred: set[Identity] | None = None
    clues: list[Clue] = Field(default_factory=list)

    clued: bool = False
    newly_clued: bool = False
    finessed: bool = False
    finesse_index: int = -1
    chop_moved: bool = False
    called_to_discard: bool = False
    hidden: bool = False
    rewinded: bool = False
    reset: bool = False
    superposition: bool = False

    reasoning: list[int] = Field(default_factory=list)
    reasoning_turn: list[int] = Field(default_factory=list)

    @property
    def touched(self) -> bool:
        return self.clued or self.finessed

    @property
    def saved(self) -> bool:
        return self.clued or self.finessed or self.chop_moved

    def identity(self, infer: bool = False, symmetric: bool = False) -> Identity | None:
        """Return the identity of the card if it is known.

        Args:
            infer: Also accept a single inferred identity
            symmetric: Ignore the identity this observer can see directly
        """
        if not symmetric and self.suit_index != -1 and self.rank != -1:
            return Identity(suit_index=self.suit_index, rank=self.rank)
        if len(self.possible) == 1:
            return next(iter(self.possible))
        if infer and len(self.inferred) == 1:
            return next(iter(self.inferred))
        return None

    def matches(
        self,
        identity: Identity,
        infer: bool = False,
        symmetric: bool = False,
        assume: bool = False,
    ) -> bool:
        own = self.identity(infer=infer, symmetric=symmetric)
        if own is None:
            return assume
        return own == identity

    def matches_inferences(self) -> bool:
        own = self.identity()
        return own is None or len(self.possible) == 1 or own in self.inferred

    def reveal(self, identity: Identity) -> None:
        self.suit_index = identity.suit_index
        self.rank = identity.rank

    # Set maintenance
    def intersect_possible(self, identities: Iterable[Identity]) -> None:
        self.possible &= set(identities)
        self.inferred &= self.possible

    def subtract_possible(self, identities: Iterable[Identity]) -> None:
        self.possible -= set(identities)
        self.inferred &= self.possible

    def assign_inferred(self, identities: Iterable[Identity]) -> None:
        self.inferred = set(identities) & self.possible

    def intersect_inferred(self, identities: Iterable[Identity]) -> None:
        self.inferred &= set(identities)

    def subtract_inferred(self, identities: Iterable[Identity]) -> None:
        self.inferred -= set(identities)

    def union_inferred(self, identities: Iterable[Identity]) -> None:
        self.inferred |= set(identities) & self.possible

    def save_inferred(self) -> None:
        """Snapshot inferred so a connection applied to this card can be undone."""
        self.old_inferred = set(self.inferred)

    def restore_inferred(self) -> bool:
        if self.old_inferred is None:
            return False
        self.assign_inferred(self.old_inferred)
        if not self.inferred:
            self.assign_inferred(self.possible)
        self.old_inferred = None
        return True

    def add_reasoning(self, action_index: int, turn: int) -> None:
        if self.reasoning and self.reasoning[-1] == action_index:
            return
        self.reasoning.append(action_index)
        self.reasoning_turn.append(turn)

    def clone(self) -> Card:
        return self.model_copy(update={
            "possible": set(self.possible),
            "inferred": set(self.inferred),
            "old_inferred": set(self.old_inferred) if self.old_inferred is not None else None,
            "clues": list(self.clues),
            "reasoning": list(self.reasoning),
            "reasoning_turn": list(self.reasoning_turn),
        })
