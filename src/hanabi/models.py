"""Data models for the Hanabi belief engine."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


# Suits and ranks of the standard deck
COLORS: list[str] = ["red", "yellow", "green", "blue", "purple"]
SHORT_FORMS: str = "rygbp"
NUMBERS: list[int] = [1, 2, 3, 4, 5]

# Card distribution: 1s x3, 2s x2, 3s x2, 4s x2, 5s x1 per suit
CARD_COUNTS: dict[int, int] = {1: 3, 2: 2, 3: 2, 4: 2, 5: 1}

MAX_CLUES = 8
MAX_STRIKES = 3


class Identity(BaseModel):
    """An immutable suit/rank pair."""

    model_config = {"frozen": True}

    suit_index: int
    rank: int

    def __str__(self) -> str:
        if 0 <= self.suit_index < len(SHORT_FORMS):
            return f"{SHORT_FORMS[self.suit_index]}{self.rank}"
        return f"s{self.suit_index}:{self.rank}"

    def __lt__(self, other: Identity) -> bool:
        return (self.suit_index, self.rank) < (other.suit_index, other.rank)

    def __le__(self, other: Identity) -> bool:
        return (self.suit_index, self.rank) <= (other.suit_index, other.rank)


ClueType = Literal["color", "rank"]


class Clue(BaseModel):
    """A color or rank clue. For color clues, value is the suit index."""

    model_config = {"frozen": True}

    type: ClueType
    value: int

    def touches(self, identity: Identity) -> bool:
        if self.type == "color":
            return identity.suit_index == self.value
        return identity.rank == self.value


# Actions consumed from the log
class ClueAction(BaseModel):
    """A clue given by one player to another. `touched` lists the draw orders touched."""

    type: Literal["clue"] = "clue"
    giver: int
    target: int
    clue: Clue
    touched: list[int]
    mistake: bool = False


class PlayAction(BaseModel):
    """A successful play."""

    type: Literal["play"] = "play"
    order: int
    player_index: int
    suit_index: int
    rank: int

    @property
    def identity(self) -> Identity:
        return Identity(suit_index=self.suit_index, rank=self.rank)


class DiscardAction(BaseModel):
    """A discard. Misplays arrive as failed discards."""

    type: Literal["discard"] = "discard"
    order: int
    player_index: int
    suit_index: int
    rank: int
    failed: bool = False

    @property
    def identity(self) -> Identity:
        return Identity(suit_index=self.suit_index, rank=self.rank)


class DrawAction(BaseModel):
    """A draw. The identity is -1/-1 when the drawing player is the observer."""

    type: Literal["draw"] = "draw"
    order: int
    player_index: int
    suit_index: int = -1
    rank: int = -1


class TurnAction(BaseModel):
    """Marks a turn boundary; `num` is the zero-based index of the turn now starting."""

    type: Literal["turn"] = "turn"
    num: int
    current_player_index: int


class GameOverAction(BaseModel):
    type: Literal["gameOver"] = "gameOver"
    end_condition: int = 1
    player_index: int = -1


class IdentifyAction(BaseModel):
    """Pseudo-action inserted by a rewind to pin a card's true identity."""

    type: Literal["identify"] = "identify"
    order: int
    player_index: int
    suit_index: int
    rank: int

    @property
    def identity(self) -> Identity:
        return Identity(suit_index=self.suit_index, rank=self.rank)


class IgnoreAction(BaseModel):
    """Excludes a card from connection search on the next clue."""

    type: Literal["ignore"] = "ignore"
    order: int
    player_index: int


Action = Annotated[
    Union[
        ClueAction,
        PlayAction,
        DiscardAction,
        DrawAction,
        TurnAction,
        GameOverAction,
        IdentifyAction,
        IgnoreAction,
    ],
    Field(discriminator="type"),
]

ACTION_LOG_ADAPTER: TypeAdapter[list[Action]] = TypeAdapter(list[Action])


def load_action_log(path: str | Path) -> list[Action]:
    """Load a JSON list of actions from disk."""
    with open(path, "r") as f:
        return ACTION_LOG_ADAPTER.validate_python(json.load(f))


# Output of the decision layer
PerformType = Literal["play", "discard", "clue_color", "clue_rank"]


class PerformAction(BaseModel):
    """An action the bot wants to take.

    For plays and discards, `target` is the card's draw order. For clues, `target` is
    the receiving player and `value` is the suit index or rank.
    """

    type: PerformType
    target: int
    value: int | None = None

    def to_clue(self) -> Clue:
        if self.type == "clue_color":
            return Clue(type="color", value=self.value)
        if self.type == "clue_rank":
            return Clue(type="rank", value=self.value)
        raise ValueError(f"{self.type} is not a clue")


# Connections
class ConnectionBase(BaseModel):
    reacting: int
    order: int
    identities: list[Identity]


class KnownConnection(ConnectionBase):
    """A touched card everyone already knows to be the identity."""

    type: Literal["known"] = "known"


class PlayableConnection(ConnectionBase):
    """A touched card known to be playable, one of `linked` cards that could be it."""

    type: Literal["playable"] = "playable"
    linked: list[int] = Field(default_factory=list)


class PromptConnection(ConnectionBase):
    type: Literal["prompt"] = "prompt"
    hidden: bool = False


class FinesseConnection(ConnectionBase):
    type: Literal["finesse"] = "finesse"
    hidden: bool = False
    bluff: bool = False


class TerminateConnection(ConnectionBase):
    """Sentinel: a card that would be prompted or played but is not the identity."""

    type: Literal["terminate"] = "terminate"


class PositionalDiscardConnection(ConnectionBase):
    type: Literal["positional_discard"] = "positional_discard"


Connection = Annotated[
    Union[
        KnownConnection,
        PlayableConnection,
        PromptConnection,
        FinesseConnection,
        TerminateConnection,
        PositionalDiscardConnection,
    ],
    Field(discriminator="type"),
]


class FocusPossibility(BaseModel):
    """One identity the focused card could be, with the connections it needs."""

    identity: Identity
    connections: list[Connection] = Field(default_factory=list)
    save: bool = False


class ClueReading(BaseModel):
    """How a clue's focus was read.

    `matched` holds the readings that were acted on. `target_matches` holds the
    readings the target would pick from their own inferences, which differ from
    `matched` when the focus is visible and matches none of them.
    """

    focus: int
    possible: list[FocusPossibility] = Field(default_factory=list)
    matched: list[FocusPossibility] = Field(default_factory=list)
    target_matches: list[FocusPossibility] = Field(default_factory=list)

    def matches(self, identity: Identity) -> bool:
        return any(fp.identity == identity for fp in self.matched)

    def is_save(self, identity: Identity) -> bool:
        return any(fp.save and fp.identity == identity for fp in self.matched)


WaitingStatus = Literal["pending", "fulfilled", "falsified"]


class WaitingConnection(BaseModel):
    """A deferred hypothesis that must resolve on later turns."""

    connections: list[Connection]
    focused_order: int
    inference: Identity
    giver: int
    target: int
    action_index: int
    turn: int
    symmetric: bool = False
    fake: bool = False
    status: WaitingStatus = "pending"

    def clone(self) -> WaitingConnection:
        return self.model_copy(update={"connections": list(self.connections)})


class RewindRequest(BaseModel):
    """Returned when a revealed card contradicts its beliefs."""

    action_index: int
    order: int
    player_index: int
    identity: Identity


# Configuration
class ConventionConfig(BaseModel):
    """Tuning constants for the convention layer and the endgame solver."""

    # "playful_sieve" is the two-player convention set
    convention: Literal["hgroup", "playful_sieve"] = "hgroup"

    level: int = Field(default=5, ge=1, le=11)
    positional_discards: bool = False

    # Clue values
    minimum_clue_value: float = 1.0
    two_player_clue_adjustment: float = 0.5
    endgame_clue_adjustment: float = 10.0
    finesse_weight: float = 0.5
    new_touch_weight: float = 0.5
    playable_weight: float = 0.5
    elim_weight: float = 0.01
    bad_touch_penalty: float = 1.0
    trash_penalty: float = 0.2

    # Endgame solver
    max_unseen_identities: int = Field(default=2, ge=0)
    solver_timeout: float = Field(default=2.0, gt=0)
    solver_min_winrate: float = Field(default=1.0, ge=0, le=1)

    max_rewind_depth: int = Field(default=2, ge=0)


class TableConfig(BaseModel):
    """Configuration for a local self-play table."""

    num_players: int = Field(default=3, ge=2, le=6)
    hand_size: int | None = None  # 5 cards for 2-3 players, 4 for 4-5 players, 3 for 6
    max_clues: int = MAX_CLUES
    max_strikes: int = MAX_STRIKES
    seed: int | None = None
    suits: list[str] = Field(default_factory=lambda: list(COLORS))
    max_turns: int = 200

    @property
    def cards_per_hand(self) -> int:
        if self.hand_size is not None:
            return self.hand_size
        if self.num_players <= 3:
            return 5
        if self.num_players <= 5:
            return 4
        return 3


# Episode records
class TurnLog(BaseModel):
    """Log of a single turn at the table."""

    turn_number: int
    player_index: int
    perform: PerformAction
    actions: list[Action]
    rationale: str = ""
    latency_ms: float = 0.0
    solver_used: bool = False

    # State snapshot after action
    clue_tokens_after: int
    strikes_after: int
    score_after: int


class HanabiEpisodeRecord(BaseModel):
    """Complete record of a self-play episode."""

    episode_id: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    config: TableConfig
    conventions: ConventionConfig
    seed: int
    player_names: list[str]

    # Deck in draw order and the full public log (for replay)
    deck: list[Identity]
    actions: list[Action]
    turns: list[TurnLog]

    # Final state
    final_score: int
    max_score: int
    strikes: int
    game_over_reason: str

    rewinds: dict[int, int] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_filename(self) -> str:
        ts = self.timestamp.strftime("%Y%m%d_%H%M%S")
        return f"hanabi_episode_{self.episode_id}_{ts}.json"

    def save(self, directory: str) -> str:
        """Save episode JSON to a directory. Returns the written filepath."""
        d = Path(directory)
        d.mkdir(parents=True, exist_ok=True)
        fp = d / self.to_filename()
        data = self.model_dump(mode="json")
        data["timestamp"] = self.timestamp.isoformat()
        with open(fp, "w") as f:
            json.dump(data, f, indent=2)
        return str(fp)

    @classmethod
    def load(cls, path: str | Path) -> HanabiEpisodeRecord:
        with open(path, "r") as f:
            return cls.model_validate(json.load(f))
