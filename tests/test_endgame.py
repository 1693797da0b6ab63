"""Tests for the endgame solver."""

import pytest

from src.hanabi.endgame import (
    find_unseen_identities,
    hash_state,
    solve_game,
    unwinnable_state,
    winnable_simple,
)
from src.hanabi.errors import UnsolvedGame
from src.hanabi.models import ConventionConfig

from tests.helpers import ALICE, BOB, identity, order_of, setup_game


def last_card_game():
    """Two players, only r5 missing and the deck already empty."""
    game = setup_game([
        ["xx", "xx", "xx", "xx", "xx"],
        ["r1", "y1", "g1", "b1", "p1"],
    ], play_stacks=[4, 5, 5, 5, 5])
    game.state.cards_left = 0
    game.state.endgame_turns = 2
    return game


def know_card(game, order: int, card: str) -> None:
    for view in (game.me, game.common):
        known = view.thoughts[order]
        known.clued = True
        known.possible = {identity(card)}
        known.inferred = {identity(card)}


class TestUnseenIdentities:
    """Tests for finding identities we can't place."""

    def test_missing_card_is_unseen(self):
        """Until we know where r5 is, it is unseen."""
        game = last_card_game()

        assert find_unseen_identities(game) == [identity("r5")]

    def test_known_card_is_seen(self):
        """A card we know in our own hand is accounted for."""
        game = last_card_game()
        know_card(game, order_of(game, ALICE, 1), "r5")

        assert find_unseen_identities(game) == []


class TestWinnable:
    """Tests for the perfect-information search."""

    def test_finished_game_is_won(self):
        """Max score needs no more actions."""
        game = setup_game([
            ["xx", "xx", "xx", "xx", "xx"],
            ["r1", "y1", "g1", "b1", "p1"],
        ], play_stacks=[5, 5, 5, 5, 5])

        result = winnable_simple(game, ALICE)

        assert result.winrate == 1.0
        assert result.actions == []

    def test_too_many_void_players_is_unwinnable(self):
        """With only Bob's trash left to act, the last turn can't play r5."""
        game = last_card_game()
        game.state.endgame_turns = 1

        assert unwinnable_state(game, BOB) is True
        assert winnable_simple(game, BOB).winrate == 0.0

    def test_hash_includes_player_turn(self):
        """The same position with a different player to act is a different cache entry."""
        game = last_card_game()

        assert hash_state(game, ALICE) != hash_state(game, BOB)


class TestSolveGame:
    """Tests for solving the endgame from our seat."""

    def test_plays_last_card(self):
        """Holding the known r5 with the deck empty, the solver plays it."""
        game = last_card_game()
        order = order_of(game, ALICE, 1)
        know_card(game, order, "r5")

        perform = solve_game(game, ALICE)

        assert perform.type == "play"
        assert perform.target == order

    def test_does_not_modify_game(self):
        """The search only runs on copies."""
        game = last_card_game()
        know_card(game, order_of(game, ALICE, 1), "r5")
        actions_before = len(game.state.action_list)

        solve_game(game, ALICE)

        assert game.state.play_stacks == [4, 5, 5, 5, 5]
        assert len(game.state.action_list) == actions_before

    def test_too_many_unseen_raises(self):
        """Early in the game the solver gives up immediately."""
        game = setup_game([
            ["xx", "xx", "xx", "xx", "xx"],
            ["r1", "g4", "y3", "b4", "p4"],
            ["g3", "b3", "y4", "p3", "b2"],
        ])

        with pytest.raises(UnsolvedGame):
            solve_game(game, ALICE)


def unseen_game(conventions=None, cards_left=0, bob_knows_y5=True):
    """Two players on 23 points. Our slots 1 and 2 could each be r5 or y5."""
    bob_hand = ["y5", "y1", "g1", "b1", "p1"] if bob_knows_y5 else ["r1", "y1", "g1", "b1", "p1"]
    game = setup_game([
        ["xx", "xx", "xx", "xx", "xx"],
        bob_hand,
    ], play_stacks=[4, 4, 5, 5, 5], conventions=conventions)
    game.state.cards_left = cards_left
    game.state.endgame_turns = 2 if cards_left == 0 else -1

    if bob_knows_y5:
        for view in (game.players[BOB], game.common):
            known = view.thoughts[order_of(game, BOB, 1)]
            known.clued = True
            known.possible = {identity("y5")}
            known.inferred = {identity("y5")}
    return game


def could_be(game, slot: int, *cards: str) -> None:
    for view in (game.me, game.common):
        card = view.thoughts[order_of(game, ALICE, slot)]
        card.clued = True
        card.possible = {identity(c) for c in cards}
        card.inferred = {identity(c) for c in cards}


class TestSolveUnseen:
    """Tests for solving with identities we can't place yet."""

    def test_one_unseen_with_one_place(self):
        """r5 can only be our slot 1, so we play it and Bob finishes with y5."""
        game = unseen_game()
        could_be(game, 1, "r5", "y5")
        for slot in range(2, 6):
            could_be(game, slot, "b1", "g1")

        assert find_unseen_identities(game) == [identity("r5")]

        perform = solve_game(game, ALICE)

        assert perform.type == "play"
        assert perform.target == order_of(game, ALICE, 1)

    def test_one_unseen_with_many_places(self):
        """r5 could be any of our cards, and playing slot 1 only wins when it's there."""
        game = unseen_game()
        could_be(game, 1, "r5", "y5")

        with pytest.raises(UnsolvedGame):
            solve_game(game, ALICE)

    def test_lower_winrate_accepts_partial_line(self):
        """Accepting a one in five chance, we play slot 1."""
        game = unseen_game(ConventionConfig(solver_min_winrate=0.2))
        could_be(game, 1, "r5", "y5")

        perform = solve_game(game, ALICE)

        assert perform.type == "play"
        assert perform.target == order_of(game, ALICE, 1)

    def test_two_unseen_searched(self):
        """With r5 and y5 both unplaced, slot 1 wins whenever both are in our hand."""
        game = unseen_game(ConventionConfig(solver_min_winrate=0.3), cards_left=1, bob_knows_y5=False)
        could_be(game, 1, "r5", "y5")
        could_be(game, 2, "r5", "y5")
        for slot in range(3, 6):
            could_be(game, slot, "b1", "g1")

        assert find_unseen_identities(game) == [identity("r5"), identity("y5")]

        perform = solve_game(game, ALICE)

        assert perform.type == "play"
        assert perform.target == order_of(game, ALICE, 1)

    def test_unseen_limit(self):
        """Two unseen identities are too many when the limit is one."""
        game = unseen_game(ConventionConfig(max_unseen_identities=1), cards_left=1, bob_knows_y5=False)
        could_be(game, 1, "r5", "y5")
        could_be(game, 2, "r5", "y5")

        with pytest.raises(UnsolvedGame, match="Couldn't find any"):
            solve_game(game, ALICE)
