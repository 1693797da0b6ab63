"""Tests for sarcastic and positional discard interpretation."""

from src.hanabi.conventions.interpret_discard import apply_unknown_sarcastic, find_sarcastic
from src.hanabi.models import ConventionConfig

from tests.helpers import (
    ALICE,
    BOB,
    CATHY,
    discard,
    identity,
    order_of,
    setup_game,
)


def make_game(**kwargs):
    return setup_game([
        ["xx", "xx", "xx", "xx", "xx"],
        ["b4", "y3", "p4", "g4", "r4"],
        ["g1", "b3", "y4", "p3", "b2"],
    ], **kwargs)


class TestSarcasticDiscard:
    """Tests for finding the target of a sarcastic discard."""

    def test_known_card_is_target(self):
        """A card everyone knows is the identity is the only target."""
        game = make_game()
        known = game.common.thoughts[order_of(game, CATHY, 4)]
        known.clued = True
        known.assign_inferred({identity("y2")})

        other = game.common.thoughts[order_of(game, CATHY, 2)]
        other.clued = True

        assert find_sarcastic(game, CATHY, identity("y2")) == [order_of(game, CATHY, 4)]

    def test_lower_connecting_card_is_not_target(self):
        """Clued cards waiting on a lower rank are skipped."""
        game = make_game()
        lower = game.common.thoughts[order_of(game, CATHY, 3)]
        lower.clued = True
        lower.assign_inferred({identity("y1")})

        candidate = game.common.thoughts[order_of(game, CATHY, 2)]
        candidate.clued = True
        candidate.assign_inferred({identity("y3"), identity("y4")})

        assert find_sarcastic(game, CATHY, identity("y2")) == [order_of(game, CATHY, 2)]

    def test_unknown_sarcastic_adds_identity_and_rolls_back_hypo(self):
        """Every candidate may be the identity; the hypo stack drops below it."""
        game = make_game()
        orders = [order_of(game, CATHY, 2), order_of(game, CATHY, 3)]
        for order in orders:
            card = game.common.thoughts[order]
            card.clued = True
            card.assign_inferred({identity("y3"), identity("y4")})
        game.common.hypo_stacks[1] = 2

        apply_unknown_sarcastic(game, orders, BOB, identity("y2"))

        for order in orders:
            assert identity("y2") in game.common.thoughts[order].inferred
        assert game.common.hypo_stacks[1] == 1


class TestPositionalDiscard:
    """Tests for positional discards."""

    def test_disabled_by_default(self):
        """Without the convention, an odd discard means nothing."""
        game = make_game(starting=BOB)
        discard(game, BOB, 1, "b4", draw="p2")

        assert game.waiting_connections == []
        assert game.common.thoughts[order_of(game, CATHY, 1)].finessed is False

    def test_discard_from_slot_calls_matching_slot(self):
        """Discarding slot 1 instead of chop tells Cathy to play her slot 1."""
        game = make_game(starting=BOB, conventions=ConventionConfig(positional_discards=True))
        discard(game, BOB, 1, "b4", draw="p2")

        target = order_of(game, CATHY, 1)
        card = game.common.thoughts[target]
        assert card.finessed is True
        assert {inf.rank for inf in card.inferred} == {1}

        assert len(game.waiting_connections) == 1
        head = game.waiting_connections[0].connections[0]
        assert head.type == "positional_discard"
        assert head.reacting == CATHY
        assert head.order == target

    def test_falls_through_to_us(self):
        """If Cathy doesn't play, the positional discard was meant for our slot."""
        game = make_game(starting=BOB, conventions=ConventionConfig(positional_discards=True))
        discard(game, BOB, 1, "b4", draw="p2")
        cathy_card = order_of(game, CATHY, 1)
        our_card = order_of(game, ALICE, 1)

        discard(game, CATHY, 5, "b2", draw="p3")

        assert game.waiting_connections == []
        assert game.common.thoughts[cathy_card].finessed is False
        assert game.me.thoughts[our_card].finessed is True
        assert {inf.rank for inf in game.me.thoughts[our_card].inferred} == {1}
