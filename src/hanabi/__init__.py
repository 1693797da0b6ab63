"""Hanabi bot: belief tracking, H-group conventions and an endgame solver."""

from .models import (
    Identity,
    Clue,
    ClueAction,
    PlayAction,
    DiscardAction,
    DrawAction,
    TurnAction,
    GameOverAction,
    IdentifyAction,
    IgnoreAction,
    Action,
    PerformAction,
    WaitingConnection,
    ConventionConfig,
    TableConfig,
    TurnLog,
    HanabiEpisodeRecord,
    load_action_log,
)
from .errors import HanabiError, InvariantViolation, UnsolvedGame
from .game import Game
from .endgame import solve_game, winnable_simple
from .table import (
    create_table,
    apply_perform,
    check_terminal,
    draw_card,
)
from .visibility import (
    redact_for_seat,
    view_for_seat,
    assert_no_leaks,
)

__all__ = [
    # Models
    "Identity",
    "Clue",
    "ClueAction",
    "PlayAction",
    "DiscardAction",
    "DrawAction",
    "TurnAction",
    "GameOverAction",
    "IdentifyAction",
    "IgnoreAction",
    "Action",
    "PerformAction",
    "WaitingConnection",
    "ConventionConfig",
    "TableConfig",
    "TurnLog",
    "HanabiEpisodeRecord",
    "load_action_log",
    # Errors
    "HanabiError",
    "InvariantViolation",
    "UnsolvedGame",
    # Engine
    "Game",
    "solve_game",
    "winnable_simple",
    # Table
    "create_table",
    "apply_perform",
    "check_terminal",
    "draw_card",
    # Visibility
    "redact_for_seat",
    "view_for_seat",
    "assert_no_leaks",
]
