"""Convention-following Hanabi bot."""

from __future__ import annotations

import logging
import time

from src.core.trace import DecisionTrace

from ..conventions import playful_sieve
from ..conventions.take_action import take_action
from ..endgame import find_unseen_identities
from ..game import Game
from ..logs import log_perform_action
from ..models import Action, ConventionConfig, PerformAction

logger = logging.getLogger(__name__)


class HanabiBot:
    """A bot seated at a table.

    It only ever sees its own redacted stream of actions, and answers with a
    `PerformAction` when asked to decide.
    """

    def __init__(
        self,
        seat: int,
        num_players: int,
        player_names: list[str] | None = None,
        suits: list[str] | None = None,
        conventions: ConventionConfig | None = None,
    ):
        self.seat = seat
        self.game = Game(seat, num_players, player_names, suits, conventions)

    @property
    def name(self) -> str:
        return self.game.state.player_names[self.seat]

    def observe(self, action: Action) -> None:
        self.game.handle_action(action)

    def decide(self) -> tuple[PerformAction, DecisionTrace]:
        """Choose an action for the current turn.

        Returns:
            (action to perform, trace of the decision)
        """
        game = self.game
        state = game.state

        solver_eligible = state.in_endgame and (
            len(find_unseen_identities(game)) <= game.conventions.max_unseen_identities
        )

        start = time.perf_counter()
        if game.conventions.convention == "playful_sieve":
            perform, rationale = playful_sieve.take_action(game)
        else:
            perform, rationale = take_action(game)
        latency_ms = (time.perf_counter() - start) * 1000

        solver_used = rationale.startswith("endgame solver")
        logger.info(f"{self.name} decides: {log_perform_action(state, perform)} ({rationale})")

        notes = {}
        for order in state.hands[self.seat]:
            note = game.notes.get_note(order)
            if note:
                notes[order] = note

        trace = DecisionTrace(
            seat=self.seat,
            turn_number=state.turn_count,
            perform=perform.model_dump(),
            rationale=rationale,
            latency_ms=latency_ms,
            solver_used=solver_used,
            solver_failed=solver_eligible and not solver_used,
            rewinds=game.rewinds,
            notes=notes,
        )
        return perform, trace
