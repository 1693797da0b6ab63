"""Belief views: what one observer (or everyone) believes about every card."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from .card import Card
from .models import Identity
from .state import GameState

if TYPE_CHECKING:
    from .models import WaitingConnection


COMMON = -1


class Player(BaseModel):
    """A belief table keyed by draw order.

    `player_index` is the observer. The common view uses -1 and never sees any card's
    identity directly; it only knows what follows from public information.
    """

    player_index: int
    thoughts: dict[int, Card] = Field(default_factory=dict)
    hypo_stacks: list[int]
    unknown_plays: set[int] = Field(default_factory=set)
    linked_orders: set[int] = Field(default_factory=set)

    @classmethod
    def create(cls, player_index: int, num_suits: int) -> Player:
        return cls(player_index=player_index, hypo_stacks=[0] * num_suits)

    @property
    def is_common(self) -> bool:
        return self.player_index == COMMON

    def sees(self, state: GameState, order: int) -> bool:
        """Whether this observer can see the card's identity."""
        if self.is_common:
            return False
        return order not in state.hands[self.player_index]

    def clone(self) -> Player:
        return self.model_copy(update={
            "thoughts": {order: card.clone() for order, card in self.thoughts.items()},
            "hypo_stacks": list(self.hypo_stacks),
            "unknown_plays": set(self.unknown_plays),
            "linked_orders": set(self.linked_orders),
        })

    # Hand queries
    def chop(self, hand: list[int], after_clue: bool = False) -> int | None:
        """Return the order of the chop card, or None if the hand is locked.

        Before a clue is interpreted, cards it newly touched still count as unclued.
        """
        for order in reversed(hand):
            card = self.thoughts[order]
            if card.finessed or card.chop_moved:
                continue
            if card.clued and (after_clue or not card.newly_clued):
                continue
            return order
        return None

    def find_prompt(
        self,
        state: GameState,
        hand: list[int],
        identity: Identity,
        connected: Collection[int] = (),
        ignore: Collection[int] = (),
    ) -> int | None:
        """Find the touched card a prompt for this identity would get played."""
        candidates = []
        for order in hand:
            if order in connected or order in ignore:
                continue
            card = self.thoughts[order]
            if not card.clued or card.newly_clued:
                continue
            if identity not in card.possible:
                continue

            known = card.identity(infer=True, symmetric=True)
            if known is not None and known != identity:
                continue
            if card.inferred and all(state.is_basic_trash(inf) for inf in card.inferred):
                continue
            candidates.append(order)

        # A card clued with the suit's color is the most restrictive match
        for order in candidates:
            clues = self.thoughts[order].clues
            if any(clue.type == "color" and clue.value == identity.suit_index for clue in clues):
                return order
        return candidates[0] if candidates else None

    def find_finesse(
        self,
        hand: list[int],
        connected: Collection[int] = (),
        ignore: Collection[int] = (),
    ) -> int | None:
        """Find the card in finesse position (leftmost unprotected card)."""
        for order in hand:
            if order in connected or order in ignore:
                continue
            if not self.thoughts[order].saved:
                return order
        return None

    def visible_find(
        self,
        state: GameState,
        identity: Identity,
        infer: bool = False,
        symmetric: bool = False,
        ignore: Collection[int] = (),
    ) -> list[int]:
        """Orders of cards in any hand that this observer knows to be the identity."""
        found = []
        for hand in state.hands:
            for order in hand:
                if order in ignore:
                    continue
                if self.thoughts[order].matches(identity, infer=infer, symmetric=symmetric):
                    found.append(order)
        return found

    def is_trash(self, state: GameState, identity: Identity, order: int) -> bool:
        """Basic trash, or a duplicate of another touched card."""
        if state.is_basic_trash(identity):
            return True
        duplicates = self.visible_find(state, identity, infer=True, ignore=(order,))
        return any(self.thoughts[dup].touched for dup in duplicates)

    def thinks_playables(self, state: GameState, player_index: int) -> list[int]:
        playables = []
        for order in state.hands[player_index]:
            card = self.thoughts[order]
            if card.possible and all(state.is_playable(p) for p in card.possible):
                playables.append(order)
            elif (
                card.touched
                and card.inferred
                and all(state.is_playable(inf) for inf in card.inferred)
            ):
                playables.append(order)
        return playables

    def thinks_trash(self, state: GameState, player_index: int) -> list[int]:
        trash = []
        for order in state.hands[player_index]:
            card = self.thoughts[order]
            if card.possible and all(state.is_basic_trash(p) for p in card.possible):
                trash.append(order)
            elif card.inferred and all(
                self.is_trash(state, inf, order) for inf in card.inferred
            ):
                trash.append(order)
        return trash

    def thinks_loaded(self, state: GameState, player_index: int) -> bool:
        return bool(self.thinks_playables(state, player_index)) or bool(
            self.thinks_trash(state, player_index)
        )

    def thinks_locked(self, state: GameState, player_index: int) -> bool:
        hand = state.hands[player_index]
        return self.chop(hand, after_clue=True) is None and not self.thinks_loaded(
            state, player_index
        )

    # Belief maintenance
    def card_elim(self, state: GameState) -> None:
        """Remove identities whose copies are all accounted for.

        The common view eliminates across every hand using public knowledge only. A
        player's view eliminates in its own hand using every card it can see.
        """
        if self.is_common:
            targets = [order for hand in state.hands for order in hand]
        else:
            targets = list(state.hands[self.player_index])

        changed = True
        while changed:
            changed = False
            certain: dict[Identity, set[int]] = {}
            for hand in state.hands:
                for order in hand:
                    identity = self.thoughts[order].identity()
                    if identity is not None:
                        certain.setdefault(identity, set()).add(order)

            for identity in state.all_identities():
                known = certain.get(identity, set())
                if state.base_count(identity) + len(known) < state.card_count(identity):
                    continue
                for order in targets:
                    if order in known:
                        continue
                    card = self.thoughts[order]
                    if identity in card.possible and len(card.possible) > 1:
                        card.subtract_possible({identity})
                        if not card.inferred:
                            card.assign_inferred(card.possible)
                        changed = True

    def good_touch_elim(
        self,
        hand: Iterable[int],
        identities: Iterable[Identity],
        ignore: Collection[int] = (),
    ) -> None:
        """Remove resolved identities from the other touched cards in a hand."""
        identities = set(identities)
        for order in hand:
            if order in ignore:
                continue
            card = self.thoughts[order]
            if not card.touched or len(card.inferred) <= 1:
                continue
            remaining = card.inferred - identities
            if remaining:
                card.assign_inferred(remaining)

    def update_hypo_stacks(
        self,
        state: GameState,
        waiting_connections: Iterable[WaitingConnection] = (),
    ) -> None:
        """Recompute the stacks reached if every touched card plays as believed."""
        hypo = list(state.play_stacks)
        fake_focus = {wc.focused_order for wc in waiting_connections if wc.fake}
        counted: set[int] = set()
        unknown_plays: set[int] = set()

        found = True
        while found:
            found = False
            for hand in state.hands:
                for order in hand:
                    if order in counted or order in unknown_plays or order in fake_focus:
                        continue
                    card = self.thoughts[order]
                    if not card.touched or not card.inferred:
                        continue

                    identity = card.identity(infer=True, symmetric=True)
                    if identity is None:
                        if all(inf.rank == hypo[inf.suit_index] + 1 for inf in card.inferred):
                            unknown_plays.add(order)
                            found = True
                        continue

                    if identity.rank == hypo[identity.suit_index] + 1:
                        hypo[identity.suit_index] = identity.rank
                        counted.add(order)
                        found = True

        self.hypo_stacks = hypo
        self.unknown_plays = unknown_plays

    def refresh_links(self, state: GameState) -> None:
        """Link touched cards in one hand that share an inference set too small for them."""
        linked: set[int] = set()
        for hand in state.hands:
            groups: dict[frozenset[Identity], list[int]] = {}
            for order in hand:
                card = self.thoughts[order]
                if not card.touched or not card.inferred or len(card.possible) == 1:
                    continue
                groups.setdefault(frozenset(card.inferred), []).append(order)

            for identities, orders in groups.items():
                if len(orders) > len(identities):
                    linked.update(orders)
        self.linked_orders = linked
