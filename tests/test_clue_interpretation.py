"""Tests for focus, play clues, finesses and bad touch."""

from src.hanabi.conventions.connecting import resolve_bluff
from src.hanabi.conventions.constants import Level
from src.hanabi.conventions.focus import (
    determine_focus,
    eliminate_bad_touch,
    find_bad_touch,
    in_between,
)
from src.hanabi.conventions.take_action import take_action
from src.hanabi.models import ConventionConfig, FinesseConnection, PromptConnection

from tests.helpers import (
    ALICE,
    BOB,
    CATHY,
    clue_action,
    discard,
    give_clue,
    identity,
    order_of,
    play,
    setup_game,
)


def ids(*cards: str) -> set:
    return {identity(card) for card in cards}


class TestFocus:
    """Tests for choosing the focus of a clue."""

    def make_game(self):
        return setup_game([
            ["xx", "xx", "xx", "xx", "xx"],
            ["r1", "g4", "y3", "b4", "p4"],
            ["g3", "b3", "y4", "p3", "b2"],
        ])

    def test_new_chop_is_focus(self):
        """A clue touching the chop focuses it, even if it touches slot 1 too."""
        game = self.make_game()
        hand = game.state.hands[BOB]
        touched = [order_of(game, BOB, 1), order_of(game, BOB, 5)]

        focus, chop = determine_focus(hand, game.common, touched)

        assert focus == order_of(game, BOB, 5)
        assert chop is True

    def test_leftmost_new_card_is_focus(self):
        """Without the chop, the leftmost newly touched card is the focus."""
        game = self.make_game()
        hand = game.state.hands[BOB]
        touched = [order_of(game, BOB, 2), order_of(game, BOB, 3)]

        focus, chop = determine_focus(hand, game.common, touched)

        assert focus == order_of(game, BOB, 2)
        assert chop is False

    def test_retouched_card_is_focus_when_nothing_new(self):
        """A clue that only re-touches clued cards focuses the leftmost of them."""
        game = self.make_game()
        hand = game.state.hands[BOB]
        for slot in (2, 4):
            game.common.thoughts[order_of(game, BOB, slot)].clued = True

        focus, chop = determine_focus(hand, game.common, [order_of(game, BOB, 2), order_of(game, BOB, 4)])

        assert focus == order_of(game, BOB, 2)
        assert chop is False

    def test_chop_skips_clued_cards(self):
        """The chop is the rightmost card that isn't clued."""
        game = self.make_game()
        game.common.thoughts[order_of(game, BOB, 5)].clued = True

        assert game.common.chop(game.state.hands[BOB]) == order_of(game, BOB, 4)

    def test_in_between(self):
        """Only players acting after the giver and before the target are in between."""
        assert in_between(4, 1, 0, 2) is True
        assert in_between(4, 3, 0, 2) is False
        assert in_between(3, 0, 1, 2) is False


class TestPlayClues:
    """Tests for direct play clues."""

    def test_color_clue_on_next_card(self):
        """Red touching r1 is read as r1 and raises the hypo stack."""
        game = setup_game([
            ["xx", "xx", "xx", "xx", "xx"],
            ["r1", "g4", "y3", "b4", "p4"],
            ["g3", "b3", "y4", "p3", "b2"],
        ])
        give_clue(game, ALICE, BOB, "red")

        focus = order_of(game, BOB, 1)
        assert game.common.thoughts[focus].inferred == ids("r1")
        assert game.players[BOB].thoughts[focus].inferred == ids("r1")
        assert game.common.hypo_stacks[0] == 1

    def test_clue_does_not_move_chop(self):
        """A play clue on slot 1 leaves the chop where it was."""
        game = setup_game([
            ["xx", "xx", "xx", "xx", "xx"],
            ["r1", "g4", "y3", "b4", "p4"],
            ["g3", "b3", "y4", "p3", "b2"],
        ])
        give_clue(game, ALICE, BOB, "red")

        assert game.common.chop(game.state.hands[BOB], after_clue=True) == order_of(game, BOB, 5)

    def test_play_clue_to_us(self):
        """A red clue on our slot 1 with nothing to connect through means r1."""
        game = setup_game([
            ["xx", "xx", "xx", "xx", "xx"],
            ["g4", "y3", "b4", "p4", "g3"],
            ["y4", "b3", "p3", "g2", "b2"],
        ], starting=BOB)
        give_clue(game, BOB, ALICE, "red", slots=[1])

        order = order_of(game, ALICE, 1)
        assert game.me.thoughts[order].inferred == ids("r1")
        assert order in game.me.thinks_playables(game.state, ALICE)

    def test_clue_to_us_writes_note(self):
        """Saved cards in our hand get a turn-marked note."""
        game = setup_game([
            ["xx", "xx", "xx", "xx", "xx"],
            ["g4", "y3", "b4", "p4", "g3"],
            ["y4", "b3", "p3", "g2", "b2"],
        ], starting=BOB)
        give_clue(game, BOB, ALICE, "red", slots=[1])

        assert game.notes.get_note(order_of(game, ALICE, 1)) == "t2: [r1]"


class TestFinesse:
    """Tests for finesses and their resolution."""

    def make_game(self):
        game = setup_game([
            ["xx", "xx", "xx", "xx", "xx"],
            ["r1", "y3", "b4", "p4", "g4"],
            ["r2", "b3", "y4", "p3", "b2"],
        ])
        give_clue(game, ALICE, CATHY, "red")
        return game

    def test_finesse_marks_finesse_position(self):
        """Red on Cathy's r2 finesses Bob's r1 from slot 1."""
        game = self.make_game()
        finessed = game.common.thoughts[order_of(game, BOB, 1)]

        assert finessed.finessed is True
        assert finessed.inferred == ids("r1")

        assert len(game.waiting_connections) == 1
        wc = game.waiting_connections[0]
        assert wc.inference == identity("r2")
        assert wc.focused_order == order_of(game, CATHY, 1)
        assert wc.connections[0].type == "finesse"
        assert wc.connections[0].reacting == BOB

    def test_focus_keeps_both_readings_until_played(self):
        """Until Bob plays, Cathy can't tell r1 from r2."""
        game = self.make_game()

        assert game.common.thoughts[order_of(game, CATHY, 1)].inferred == ids("r1", "r2")

    def test_finesse_fulfilled_by_play(self):
        """Bob playing r1 resolves the connection and pins the focus to r2."""
        game = self.make_game()
        focus = order_of(game, CATHY, 1)

        play(game, BOB, 1, "r1", draw="p2")

        assert game.waiting_connections == []
        assert game.common.thoughts[focus].inferred == ids("r2")
        assert game.state.play_stacks[0] == 1

    def test_finesse_falsified_by_discard(self):
        """Bob discarding instead of playing removes the finesse."""
        game = self.make_game()
        finessed = order_of(game, BOB, 1)
        focus = order_of(game, CATHY, 1)

        discard(game, BOB, 5, "g4", draw="p2")

        assert game.waiting_connections == []
        assert game.common.thoughts[finessed].finessed is False
        assert identity("r2") not in game.common.thoughts[focus].inferred


class TestBadTouch:
    """Tests for bad touch elimination."""

    def make_game(self):
        game = setup_game([
            ["xx", "xx", "xx", "xx", "xx"],
            ["r2", "g4", "r1", "b4", "p4"],
            ["y4", "b3", "p3", "g2", "b2"],
        ], play_stacks=[1, 0, 0, 0, 0])
        action = clue_action(game, ALICE, BOB, "red")
        give_clue(game, ALICE, BOB, "red")
        return game, action

    def test_trash_removed_from_touched_cards(self):
        """Played identities are never inferred on newly touched cards."""
        game, _ = self.make_game()

        assert game.common.thoughts[order_of(game, BOB, 1)].inferred == ids("r2")
        other = game.common.thoughts[order_of(game, BOB, 3)].inferred
        assert identity("r1") not in other
        assert identity("r2") not in other

    def test_bad_touch_includes_visible_touched_cards(self):
        """Cards touched in a visible hand count as bad touch for other clues."""
        game, _ = self.make_game()

        bad_touch = find_bad_touch(game, CATHY, ALICE)

        assert identity("r2") in bad_touch
        assert identity("r1") in bad_touch
        assert identity("r3") not in bad_touch

    def test_elimination_reaches_fixpoint(self):
        """Re-running elimination finds nothing new and is not a fix."""
        game, action = self.make_game()

        fix, _, iterations = eliminate_bad_touch(game, action)

        assert fix is False
        assert 1 <= iterations <= len(game.state.hands[BOB]) + 1

    def test_inferred_within_possible(self):
        """Every view keeps inferred inside possible."""
        game, _ = self.make_game()

        for view in game.all_views:
            for card in view.thoughts.values():
                assert card.inferred <= card.possible


class TestOwnFinesse:
    """Tests for clues that can only connect through our own hand."""

    def make_game(self):
        game = setup_game([
            ["xx", "xx", "xx", "xx", "xx"],
            ["g4", "r2", "y3", "b4", "p4"],
            ["y4", "b3", "p3", "g2", "b2"],
        ], starting=CATHY)
        give_clue(game, CATHY, BOB, "red")
        return game

    def test_finesse_lands_on_our_slot_1(self):
        """Red on Bob's r2 with no r1 visible means we hold r1 on finesse position."""
        game = self.make_game()
        finessed = game.me.thoughts[order_of(game, ALICE, 1)]

        assert finessed.finessed is True
        assert finessed.inferred == ids("r1")
        assert game.common.thoughts[order_of(game, BOB, 2)].inferred == ids("r2")

    def test_waiting_on_us(self):
        """The connection waits for us to play into it."""
        game = self.make_game()

        assert len(game.waiting_connections) == 1
        wc = game.waiting_connections[0]
        assert wc.inference == identity("r2")
        assert wc.connections[0].type == "finesse"
        assert wc.connections[0].reacting == ALICE

    def test_we_play_into_finesse(self):
        """On our turn the finessed card is a known playable."""
        game = self.make_game()

        perform, rationale = take_action(game)

        assert perform.type == "play"
        assert perform.target == order_of(game, ALICE, 1)
        assert rationale == "known playable"


class TestLayeredFinesse:
    """Tests for finesses that need more than one blind play from the same hand."""

    def test_layered_finesse_through_cathy(self):
        """Cathy's y1 behind a g1 layer leaves our yellow card as y2."""
        game = setup_game([
            ["xx", "xx", "xx", "xx", "xx"],
            ["r4", "r4", "g4", "r5", "b4"],
            ["g1", "y1", "r2", "y3", "p3"],
        ], starting=BOB)
        give_clue(game, BOB, ALICE, "yellow", slots=[3])
        focus = order_of(game, ALICE, 3)
        assert game.common.thoughts[focus].inferred == ids("y1", "y2")

        play(game, CATHY, 1, "g1", draw="b1")
        discard(game, ALICE, 5, "b1")
        discard(game, BOB, 5, "b4", draw="r1")
        play(game, CATHY, 2, "y1", draw="y1")

        assert game.common.thoughts[order_of(game, ALICE, 4)].inferred == ids("y2")


class TestBluffs:
    """Tests for bluffs, which only exist at the bluff level."""

    hands = [
        ["xx", "xx", "xx", "xx", "xx"],
        ["r1", "g4", "y3", "p4", "p3"],
        ["b2", "y4", "g3", "r4", "r3"],
    ]

    def test_bluff_on_next_player(self):
        """Blue on Cathy's b2 makes Bob blind play r1 as a bluff."""
        game = setup_game(self.hands, conventions=ConventionConfig(level=Level.BLUFFS))
        give_clue(game, ALICE, CATHY, "blue")

        assert game.common.thoughts[order_of(game, BOB, 1)].finessed is True
        assert len(game.waiting_connections) == 1
        head = game.waiting_connections[0].connections[0]
        assert head.type == "finesse"
        assert head.bluff is True
        assert head.reacting == BOB

    def test_no_bluff_below_bluff_level(self):
        """Without bluffs the same clue asks nobody to blind play."""
        game = setup_game(self.hands, conventions=ConventionConfig(level=Level.INTERMEDIATE_FINESSES))
        give_clue(game, ALICE, CATHY, "blue")

        assert game.common.thoughts[order_of(game, BOB, 1)].finessed is False
        assert game.waiting_connections == []


class TestResolveBluff:
    """Tests for deciding whether a bluff is followed by connections that keep it a bluff."""

    def make_game(self):
        return setup_game(TestBluffs.hands, conventions=ConventionConfig(level=Level.BLUFFS))

    def bluff(self, game):
        return FinesseConnection(reacting=BOB, order=order_of(game, BOB, 1), identities=[identity("r1")], bluff=True)

    def test_lone_bluff_kept(self):
        """A bluff with nothing after it stands."""
        game = self.make_game()
        connections = [self.bluff(game)]

        assert resolve_bluff(game, connections) == connections

    def test_bluff_then_prompt_elsewhere_kept(self):
        """A prompt from another player doesn't need Bob to know the bluff."""
        game = self.make_game()
        prompt = PromptConnection(reacting=CATHY, order=order_of(game, CATHY, 1), identities=[identity("b1")])
        connections = [self.bluff(game), prompt]

        assert resolve_bluff(game, connections) == connections

    def test_bluff_then_finesse_elsewhere_rejected(self):
        """A blind play after the bluff can't be told apart from a finesse."""
        game = self.make_game()
        finesse = FinesseConnection(reacting=CATHY, order=order_of(game, CATHY, 1), identities=[identity("b1")])

        assert resolve_bluff(game, [self.bluff(game), finesse]) == []
