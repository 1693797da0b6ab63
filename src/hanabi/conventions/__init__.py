"""H-group style conventions: clue interpretation, connection search and action selection.

The two-player playful sieve lives in the `playful_sieve` subpackage.
"""

from .constants import Level
from .focus import determine_focus, eliminate_bad_touch, find_bad_touch, in_between
from .connecting import (
    find_connecting,
    find_known_connecting,
    find_own_finesses,
    find_unknown_connecting,
    resolve_bluff,
)
from .focus_possible import find_focus_possible
from .interpret_clue import interpret_clue
from .interpret_play import find_contradiction, interpret_play
from .interpret_discard import interpret_discard
from .update_turn import remove_finesse, update_turn
from .clue_finder import (
    ClueCandidate,
    ClueOptions,
    endgame_clues,
    evaluate_clue,
    find_clues,
    find_fix_clues,
    find_stall_clue,
    get_result,
)
from .take_action import take_action

__all__ = [
    "Level",
    # Focus and bad touch
    "determine_focus",
    "eliminate_bad_touch",
    "find_bad_touch",
    "in_between",
    # Connections
    "find_connecting",
    "find_known_connecting",
    "find_own_finesses",
    "find_unknown_connecting",
    "resolve_bluff",
    "find_focus_possible",
    # Interpretation
    "interpret_clue",
    "interpret_play",
    "interpret_discard",
    "find_contradiction",
    "update_turn",
    "remove_finesse",
    # Clues and actions
    "ClueCandidate",
    "ClueOptions",
    "endgame_clues",
    "evaluate_clue",
    "find_clues",
    "find_fix_clues",
    "find_stall_clue",
    "get_result",
    "take_action",
]
