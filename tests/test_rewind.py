"""Tests for rewinding the log when one of our cards is revealed unexpectedly."""

import pytest

from src.hanabi.errors import InvariantViolation
from src.hanabi.game import Game
from src.hanabi.models import IdentifyAction

from tests.helpers import (
    ALICE,
    BOB,
    CATHY,
    discard,
    give_clue,
    identity,
    order_of,
    play,
    setup_game,
)


def make_game():
    game = setup_game([
        ["xx", "xx", "xx", "xx", "xx"],
        ["g4", "y3", "b4", "p4", "g3"],
        ["y4", "b3", "p3", "g2", "b2"],
    ], starting=BOB)
    give_clue(game, BOB, ALICE, "red", slots=[1])
    discard(game, CATHY, 5, "b2", draw="p2")
    return game


def identify(order: int, card: str, player_index: int = ALICE) -> IdentifyAction:
    revealed = identity(card)
    return IdentifyAction(
        order=order,
        player_index=player_index,
        suit_index=revealed.suit_index,
        rank=revealed.rank,
    )


class TestRewind:
    """Tests for replaying the game with a card identified."""

    def test_misplay_rewinds(self):
        """Misplaying a card we thought was r1 replays the game knowing it was r3."""
        game = make_game()
        order = order_of(game, ALICE, 1)
        assert game.me.thoughts[order].inferred == {identity("r1")}

        discard(game, ALICE, 1, "r3", failed=True)

        assert game.rewinds == 1
        assert game.rewind_depth == 0
        assert game.state.strikes == 1
        assert game.state.deck[order].identity() == identity("r3")
        assert any(action.type == "identify" for action in game.state.action_list)

    def test_replayed_card_is_marked_rewinded(self):
        """The identified card is not rewound a second time."""
        game = make_game()
        order = order_of(game, ALICE, 1)

        discard(game, ALICE, 1, "r3", failed=True)

        assert game.common.thoughts[order].rewinded is True

    def test_no_rewind_while_simulating(self):
        """Speculative copies never rewind."""
        game = make_game()
        game.simulating = True

        assert game.rewind(0, identify(order_of(game, ALICE, 1), "r3")) is False

    def test_no_rewind_past_max_depth(self):
        """Rewinds stop at the configured depth."""
        game = make_game()
        game.rewind_depth = game.conventions.max_rewind_depth

        assert game.rewind(0, identify(order_of(game, ALICE, 1), "r3")) is False

    def test_no_rewind_outside_log(self):
        """An index past the end of the log is refused."""
        game = make_game()

        assert game.rewind(len(game.state.action_list) + 5, identify(order_of(game, ALICE, 1), "r3")) is False
        assert game.rewinds == 0

    def test_identify_missing_card_raises(self):
        """Identifying a card that isn't in the named hand is an invariant violation."""
        game = make_game()

        with pytest.raises(InvariantViolation):
            game.handle_action(identify(order_of(game, BOB, 1), "g4", player_index=ALICE))

    def test_rewound_card_is_not_rewound_again(self):
        """Asking to rewind an already identified card does nothing."""
        game = make_game()
        order = order_of(game, ALICE, 1)
        discard(game, ALICE, 1, "r3", failed=True)
        actions_before = len(game.state.action_list)

        assert game.rewind(0, identify(order, "r3")) is False
        assert game.rewinds == 1
        assert len(game.state.action_list) == actions_before


class TestRewindOnPlay:
    """Tests for a successful play that contradicts what we thought the card was."""

    def make_finessed_game(self):
        game = setup_game([
            ["xx", "xx", "xx", "xx", "xx"],
            ["b5", "p4", "y2", "g3", "r3"],
            ["r4", "r4", "g4", "r5", "b4"],
        ], starting=CATHY)
        clue_index = len(game.state.action_list)
        give_clue(game, CATHY, BOB, "yellow")
        return game, clue_index

    def test_finessed_card_reasoned_from_clue(self):
        """Cathy's yellow clue on y2 finesses our slot 1 as y1."""
        game, clue_index = self.make_finessed_game()
        order = order_of(game, ALICE, 1)

        assert game.me.thoughts[order].finessed is True
        assert game.me.thoughts[order].inferred == {identity("y1")}
        assert min(game.common.thoughts[order].reasoning) == clue_index

    def test_unexpected_play_rewinds_once_to_clue(self, monkeypatch):
        """Playing g1 instead of y1 replays once from the clue, and the finesse moves to slot 2."""
        game, clue_index = self.make_finessed_game()
        second = order_of(game, ALICE, 2)

        calls = []
        original = Game.rewind

        def spy(self, action_index, identify_action):
            calls.append(action_index)
            return original(self, action_index, identify_action)

        monkeypatch.setattr(Game, "rewind", spy)
        play(game, ALICE, 1, "g1")

        assert calls == [clue_index]
        assert game.rewinds == 1
        assert game.state.play_stacks[2] == 1
        assert game.me.thoughts[second].finessed is True
        assert game.me.thoughts[second].inferred == {identity("y1")}
