"""Playful sieve: referential clues for two-player games."""

from .interpret_clue import interpret_clue, refer_right, sieve_loaded, sieve_locked
from .interpret_discard import interpret_discard
from .action_helper import clue_value, misread
from .fix_clues import find_fix_clue
from .take_action import take_action

__all__ = [
    "interpret_clue",
    "interpret_discard",
    "refer_right",
    "sieve_loaded",
    "sieve_locked",
    "clue_value",
    "misread",
    "find_fix_clue",
    "take_action",
]
