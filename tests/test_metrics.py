"""Tests for episode metrics."""

import pytest

from src.hanabi.metrics import compute_clue_utilization, compute_episode_metrics, score_category
from src.hanabi.models import (
    Clue,
    ClueAction,
    ConventionConfig,
    DiscardAction,
    HanabiEpisodeRecord,
    PerformAction,
    PlayAction,
    TableConfig,
    TurnLog,
)


def turn(number, player, perform, actions, **kwargs):
    return TurnLog(
        turn_number=number,
        player_index=player,
        perform=perform,
        actions=actions,
        clue_tokens_after=kwargs.get("clues", 8),
        strikes_after=kwargs.get("strikes", 0),
        score_after=kwargs.get("score", 0),
        latency_ms=kwargs.get("latency", 10.0),
        solver_used=kwargs.get("solver", False),
    )


@pytest.fixture
def episode():
    """Four turns: a clue, a play, a misplay and a discard."""
    clue = ClueAction(giver=0, target=1, clue=Clue(type="color", value=0), touched=[9])
    played = PlayAction(order=9, player_index=1, suit_index=0, rank=1)
    bombed = DiscardAction(order=14, player_index=2, suit_index=3, rank=4, failed=True)
    discarded = DiscardAction(order=0, player_index=0, suit_index=1, rank=3)

    turns = [
        turn(0, 0, PerformAction(type="clue_color", target=1, value=0), [clue], clues=7),
        turn(1, 1, PerformAction(type="play", target=9), [played], clues=7, score=1),
        turn(2, 2, PerformAction(type="play", target=14), [bombed], clues=7, strikes=1, score=1, solver=True),
        turn(3, 0, PerformAction(type="discard", target=0), [discarded], clues=8, strikes=1, score=1, latency=30.0),
    ]
    return HanabiEpisodeRecord(
        episode_id="test",
        config=TableConfig(num_players=3, seed=1),
        conventions=ConventionConfig(),
        seed=1,
        player_names=["Alice", "Bob", "Cathy"],
        deck=[],
        actions=[clue, played, bombed, discarded],
        turns=turns,
        final_score=1,
        max_score=25,
        strikes=1,
        game_over_reason="turn_limit",
        rewinds={0: 1, 1: 0, 2: 2},
    )


class TestEpisodeMetrics:
    """Tests for compute_episode_metrics."""

    def test_action_counts(self, episode):
        metrics = compute_episode_metrics(episode)

        assert metrics["clues_given"] == 1
        assert metrics["plays_attempted"] == 2
        assert metrics["plays_successful"] == 1
        assert metrics["plays_failed"] == 1
        assert metrics["discards"] == 1
        assert metrics["total_turns"] == 4

    def test_derived_metrics(self, episode):
        metrics = compute_episode_metrics(episode)

        assert metrics["clue_efficiency"] == 1.0
        assert metrics["play_success_rate"] == 0.5
        assert metrics["solver_turns"] == 1
        assert metrics["rewinds"] == 3
        assert metrics["blind_plays"] == 0
        assert metrics["mean_latency_ms"] == 15.0
        assert metrics["score_percentage"] == 4.0

    def test_per_suit_and_player(self, episode):
        metrics = compute_episode_metrics(episode)

        assert metrics["per_suit"]["red"] == 1
        assert metrics["per_suit"]["blue"] == 0
        assert metrics["stacks_completed"] == 0
        assert metrics["per_player"]["Alice"] == {
            "clues": 1, "plays": 0, "plays_successful": 0, "plays_failed": 0, "discards": 1, "rewinds": 1,
        }
        assert metrics["per_player"]["Cathy"]["plays_failed"] == 1


class TestClueUtilization:
    """Tests for what clue receivers did next."""

    def test_clue_followed_by_play(self, episode):
        utilization = compute_clue_utilization(episode)

        assert utilization["total_clues"] == 1
        assert utilization["clues_to_plays"] == 1
        assert utilization["play_rate"] == 1.0
        assert utilization["details"][0]["follow_up_turns"] == 1

    def test_no_clues(self, episode):
        episode.turns = episode.turns[1:]

        utilization = compute_clue_utilization(episode)

        assert utilization["total_clues"] == 0
        assert utilization["play_rate"] == 0.0


class TestScoreCategory:
    """Tests for score categories."""

    @pytest.mark.parametrize("score,expected", [
        (25, "perfect"),
        (22, "excellent"),
        (17, "good"),
        (12, "mediocre"),
        (7, "poor"),
        (2, "terrible"),
    ])
    def test_categories(self, score, expected):
        assert score_category(score) == expected
