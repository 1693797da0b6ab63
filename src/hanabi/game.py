"""The game context: belief views, action dispatch and the replay controller."""

from __future__ import annotations

import copy
import logging

from src.core.state import NoteBook

from .basics import on_draw
from .conventions import playful_sieve
from .conventions.interpret_clue import interpret_clue
from .conventions.interpret_discard import interpret_discard
from .conventions.interpret_play import find_contradiction, interpret_play
from .conventions.update_turn import update_turn
from .errors import InvariantViolation
from .logs import log_action, log_identities
from .models import (
    Action,
    ClueAction,
    ClueReading,
    ConventionConfig,
    DrawAction,
    IdentifyAction,
    IgnoreAction,
    TurnAction,
    WaitingConnection,
)
from .player import COMMON, Player
from .state import GameState

logger = logging.getLogger(__name__)


# Flags the common view decides for everyone
_SHARED_FLAGS = (
    "clued",
    "newly_clued",
    "finessed",
    "finesse_index",
    "chop_moved",
    "called_to_discard",
    "hidden",
    "reset",
    "superposition",
    "rewinded",
)


class Game:
    """Everything one bot knows about one game.

    Owns the public state, one belief view per player, the common view and the
    waiting connections. Every action from the log goes through `handle_action`.
    Speculative work (clue evaluation, the endgame solver) runs on minimal copies
    and never touches the live game.
    """

    def __init__(
        self,
        our_player_index: int,
        num_players: int,
        player_names: list[str] | None = None,
        suits: list[str] | None = None,
        conventions: ConventionConfig | None = None,
    ):
        conventions = conventions or ConventionConfig()
        if conventions.convention == "playful_sieve" and num_players != 2:
            raise ValueError(f"The playful sieve is a two-player convention, got {num_players} players")

        self.state = GameState.create(num_players, our_player_index, player_names, suits)
        num_suits = len(self.state.suits)

        self.players = [Player.create(i, num_suits) for i in range(num_players)]
        self.common = Player.create(COMMON, num_suits)
        self.conventions = conventions

        self.waiting_connections: list[WaitingConnection] = []
        self.last_actions: dict[int, Action] = {}
        self.next_ignore: list[int] = []
        self.last_reading: ClueReading | None = None
        self.notes = NoteBook()

        self.rewind_depth = 0
        self.rewinds = 0
        self.simulating = False

    @property
    def me(self) -> Player:
        return self.players[self.state.our_player_index]

    @property
    def level(self) -> int:
        return self.conventions.level

    @property
    def all_views(self) -> list[Player]:
        return self.players + [self.common]

    def handle_action(self, action: Action) -> None:
        """Apply one action from the log to the state and every belief view.

        Raises:
            InvariantViolation: If the action refers to a card that is not where the
                log says it is
        """
        state = self.state
        state.action_list.append(action)

        if action.type == "clue":
            logger.info(f"Turn {state.turn_count}: {log_action(state, action)}")
            self._tick_endgame()
            self.last_reading = self._interpret_clue(action)
            self.last_actions[action.giver] = action

            for view in self.all_views:
                for order in action.touched:
                    view.thoughts[order].newly_clued = False
            self.next_ignore = []

        elif action.type in ("play", "discard"):
            logger.info(f"Turn {state.turn_count}: {log_action(state, action)}")
            self._tick_endgame()

            request = find_contradiction(self, action)
            if request is not None:
                identify = IdentifyAction(
                    order=request.order,
                    player_index=request.player_index,
                    suit_index=request.identity.suit_index,
                    rank=request.identity.rank,
                )
                if self.rewind(request.action_index, identify):
                    return

            if action.type == "play":
                interpret_play(self, action)
            elif self.conventions.convention == "playful_sieve":
                playful_sieve.interpret_discard(self, action)
            else:
                interpret_discard(self, action)
            self.last_actions[action.player_index] = action

        elif action.type == "draw":
            on_draw(self, action)

        elif action.type == "turn":
            state.turn_count = action.num + 1
            state.current_player_index = action.current_player_index
            update_turn(self, action)
            if not self.simulating:
                self._write_notes()

        elif action.type == "gameOver":
            logger.info(log_action(state, action))
            state.in_progress = False

        elif action.type == "identify":
            self._identify(action)

        elif action.type == "ignore":
            self._ignore(action)

    def _interpret_clue(self, action: ClueAction) -> ClueReading | None:
        if self.conventions.convention == "playful_sieve":
            playful_sieve.interpret_clue(self, action)
            return None
        return interpret_clue(self, action)

    def _tick_endgame(self) -> None:
        if self.state.endgame_turns > 0:
            self.state.endgame_turns -= 1

    def _identify(self, action: IdentifyAction) -> None:
        state = self.state
        if action.order not in state.hands[action.player_index]:
            raise InvariantViolation(f"Could not find card {action.order} to rewrite")

        identity = action.identity
        logger.info(f"Identifying card with order {action.order} as {identity}")
        state.deck[action.order] = state.deck[action.order].model_copy(
            update={"suit_index": identity.suit_index, "rank": identity.rank}
        )
        self.common.thoughts[action.order].rewinded = True

        for player in self.players:
            card = player.thoughts[action.order]
            if player.player_index == action.player_index or player.sees(state, action.order):
                card.reveal(identity)
            card.rewinded = True

    def _ignore(self, action: IgnoreAction) -> None:
        if action.order not in self.state.hands[action.player_index]:
            raise InvariantViolation(f"Could not find card {action.order} to ignore")
        self.next_ignore.append(action.order)

    def _write_notes(self) -> None:
        state = self.state
        for order in state.hands[state.our_player_index]:
            card = self.common.thoughts[order]
            if not card.saved:
                continue
            note = f"[{log_identities(card.inferred)}]"
            if card.finessed:
                note = f"f {note}"
            elif card.chop_moved:
                note = f"cm {note}"
            self.notes.write(order, state.turn_count, note)

    def team_elim(self) -> None:
        """Bring every player's view in line with the common view.

        A player keeps the possibilities it eliminated privately, but adopts the
        common inferences and flags on every card.
        """
        state, common = self.state, self.common
        for player in self.players:
            for order, common_card in common.thoughts.items():
                card = player.thoughts.get(order)
                if card is None:
                    continue

                card.intersect_possible(common_card.possible)
                card.assign_inferred(common_card.inferred)
                if not card.inferred:
                    card.assign_inferred(card.possible)

                for flag in _SHARED_FLAGS:
                    setattr(card, flag, getattr(common_card, flag))
                card.old_inferred = set(common_card.old_inferred) if common_card.old_inferred is not None else None
                card.reasoning = list(common_card.reasoning)
                card.reasoning_turn = list(common_card.reasoning_turn)

            player.card_elim(state)
            player.refresh_links(state)
            player.update_hypo_stacks(state, self.waiting_connections)

    def rewind(self, action_index: int, identify: IdentifyAction) -> bool:
        """Replay the log with a card's true identity pinned from action_index onwards.

        The replayed game replaces this one in place. Rewinds are skipped while
        simulating, on cards that were already rewound, and beyond the configured
        depth.

        Returns:
            True if the game was replayed
        """
        state = self.state
        card = self.common.thoughts.get(identify.order)

        if card is not None and card.rewinded:
            logger.warning(f"Card {identify.order} was already rewound, not rewinding again")
            return False
        if self.simulating:
            logger.warning(f"Tried to rewind to action {action_index} while simulating")
            return False
        if self.rewind_depth >= self.conventions.max_rewind_depth:
            logger.warning(f"Rewind depth {self.rewind_depth} reached, not rewinding to action {action_index}")
            return False
        if not 0 <= action_index < len(state.action_list):
            logger.warning(f"Rewind index {action_index} is outside the action log")
            return False

        logger.info(f"Rewinding to action {action_index} to identify order {identify.order} as {identify.identity}")

        history = list(state.action_list)
        replay = history[:action_index] + [identify] + history[action_index:]

        new_game = Game(
            state.our_player_index,
            state.num_players,
            list(state.player_names),
            list(state.suits),
            self.conventions,
        )
        new_game.rewind_depth = self.rewind_depth + 1
        new_game.rewinds = self.rewinds + 1
        new_game.notes = self.notes

        # A second rewind means the clue that misled us was a mistake
        mistake_index = action_index + 1
        if new_game.rewind_depth > 1 and isinstance(replay[mistake_index], ClueAction):
            replay[mistake_index] = replay[mistake_index].model_copy(update={"mistake": True})

        for action in replay:
            new_game.handle_action(action)

        depth = self.rewind_depth
        self.__dict__.update(new_game.__dict__)
        self.rewind_depth = depth
        return True

    def minimal_copy(self) -> Game:
        """Copy the parts of the game that speculative search mutates."""
        new_game = copy.copy(self)
        new_game.state = self.state.clone()
        new_game.players = [player.clone() for player in self.players]
        new_game.common = self.common.clone()
        new_game.waiting_connections = [wc.clone() for wc in self.waiting_connections]
        new_game.last_actions = dict(self.last_actions)
        new_game.next_ignore = list(self.next_ignore)
        new_game.notes = NoteBook()
        new_game.simulating = True
        return new_game

    def simulate_clue(self, action: ClueAction) -> Game:
        """Interpret a clue on a copy of the game, keeping the newly clued flags."""
        hypo_game = self.minimal_copy()
        hypo_game.state.action_list.append(action)
        hypo_game._tick_endgame()
        hypo_game.last_reading = hypo_game._interpret_clue(action)
        hypo_game.last_actions[action.giver] = action
        return hypo_game

    def simulate_action(self, action: Action) -> Game:
        """Play out an action on a copy of the game, including the draw and the next turn."""
        hypo_game = self.minimal_copy()
        hypo_game.handle_action(action)

        if action.type in ("clue", "play", "discard"):
            state = hypo_game.state
            actor = action.giver if action.type == "clue" else action.player_index

            if action.type != "clue" and state.cards_left > 0:
                order = state.next_order
                drawn = state.deck.get(order)
                hypo_game.handle_action(DrawAction(
                    order=order,
                    player_index=actor,
                    suit_index=drawn.suit_index if drawn is not None else -1,
                    rank=drawn.rank if drawn is not None else -1,
                ))

            hypo_game.handle_action(TurnAction(
                num=state.turn_count,
                current_player_index=(actor + 1) % state.num_players,
            ))
        return hypo_game
