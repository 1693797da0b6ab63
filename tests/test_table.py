"""Tests for the local table: deck, deal and rules."""

from collections import Counter

import pytest

from src.hanabi.models import DiscardAction, DrawAction, PerformAction, PlayAction, TableConfig
from src.hanabi.table import apply_perform, check_terminal, create_deck, create_table, draw_card

from tests.helpers import identity


@pytest.fixture
def table():
    state, _ = create_table(TableConfig(num_players=3, seed=7))
    return state


class TestDeck:
    """Tests for deck creation."""

    def test_deck_composition(self):
        """Fifty cards, with three 1s, two each of 2-4 and one 5 per suit."""
        deck = create_deck(seed=1)
        counts = Counter((card.suit_index, card.rank) for card in deck)

        assert len(deck) == 50
        for suit_index in range(5):
            assert counts[(suit_index, 1)] == 3
            assert counts[(suit_index, 2)] == 2
            assert counts[(suit_index, 5)] == 1

    def test_seed_determinism(self):
        """The same seed shuffles the same way."""
        assert create_deck(seed=42) == create_deck(seed=42)
        assert create_deck(seed=42) != create_deck(seed=43)


class TestDeal:
    """Tests for creating a table."""

    def test_deal_sizes(self):
        """Three players get five cards each, four players four."""
        state, deal = create_table(TableConfig(num_players=3, seed=1))
        assert [len(hand) for hand in state.hands] == [5, 5, 5]
        assert len(deal) == 15
        assert all(isinstance(action, DrawAction) for action in deal)
        assert state.cards_left == 35

        state, _ = create_table(TableConfig(num_players=4, seed=1))
        assert [len(hand) for hand in state.hands] == [4, 4, 4, 4]

    def test_newest_card_in_slot_one(self):
        """Each draw goes to the front of the hand."""
        state, _ = create_table(TableConfig(num_players=3, seed=1))

        assert state.hands[0] == [4, 3, 2, 1, 0]
        assert state.hands[1][0] == 9

    def test_seed_is_resolved(self):
        """A missing seed is filled in so the game can be replayed."""
        state, _ = create_table(TableConfig(num_players=2))

        assert state.config.seed is not None

    def test_player_name_count_checked(self):
        with pytest.raises(ValueError):
            create_table(TableConfig(num_players=3, seed=1), player_names=["Alice", "Bob"])


class TestApplyPerform:
    """Tests for applying the actions a player chose."""

    def test_successful_play(self, table):
        """A playable card goes on its stack and a replacement is drawn."""
        order = table.hands[0][0]
        table.deck[order] = identity("r1")

        actions = apply_perform(table, 0, PerformAction(type="play", target=order))

        assert isinstance(actions[0], PlayAction)
        assert isinstance(actions[1], DrawAction)
        assert table.play_stacks[0] == 1
        assert len(table.hands[0]) == 5
        assert table.current_player_idx == 1

    def test_misplay_is_failed_discard(self, table):
        """An unplayable card costs a strike and is logged as a failed discard."""
        order = table.hands[0][0]
        table.deck[order] = identity("r3")

        actions = apply_perform(table, 0, PerformAction(type="play", target=order))

        assert isinstance(actions[0], DiscardAction)
        assert actions[0].failed is True
        assert table.strikes == 1
        assert order in table.discard_pile

    def test_discard_at_max_clues_rejected(self, table):
        with pytest.raises(ValueError):
            apply_perform(table, 0, PerformAction(type="discard", target=table.hands[0][-1]))

    def test_discard_regains_clue(self, table):
        table.clue_tokens = 5

        apply_perform(table, 0, PerformAction(type="discard", target=table.hands[0][-1]))

        assert table.clue_tokens == 6

    def test_clue_touches_matching_cards(self, table):
        """A clue lists every card in the target's hand it touches."""
        card = table.deck[table.hands[1][0]]

        actions = apply_perform(table, 0, PerformAction(type="clue_rank", target=1, value=card.rank))

        clue = actions[0]
        assert clue.target == 1
        assert table.hands[1][0] in clue.touched
        assert all(table.deck[order].rank == card.rank for order in clue.touched)
        assert table.clue_tokens == 7

    def test_clue_touching_nothing_rejected(self, table):
        for order in table.hands[1]:
            table.deck[order] = identity("r1")

        with pytest.raises(ValueError):
            apply_perform(table, 0, PerformAction(type="clue_rank", target=1, value=5))

    def test_clue_to_self_rejected(self, table):
        with pytest.raises(ValueError):
            apply_perform(table, 0, PerformAction(type="clue_rank", target=0, value=1))

    def test_wrong_turn_rejected(self, table):
        with pytest.raises(ValueError):
            apply_perform(table, 1, PerformAction(type="play", target=table.hands[1][0]))


class TestTerminal:
    """Tests for the end of the game."""

    def test_strikeout(self, table):
        """The third strike ends the game."""
        table.strikes = 2
        order = table.hands[0][0]
        table.deck[order] = identity("r4")

        apply_perform(table, 0, PerformAction(type="play", target=order))

        assert table.game_over is True
        assert table.game_over_reason == "strikeout"

    def test_final_round(self, table):
        """Drawing the last card gives everyone one more turn."""
        table.next_order = len(table.deck) - 1
        draw_card(table, 0)

        assert table.final_turns == 3
        table.final_turns = 0
        assert check_terminal(table) == (True, "final_round_complete")

    def test_not_over(self, table):
        assert check_terminal(table) == (False, None)
