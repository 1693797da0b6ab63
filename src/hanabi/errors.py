"""Exceptions raised by the belief engine."""

from __future__ import annotations


class HanabiError(Exception):
    """Base class for engine errors."""


class InvariantViolation(HanabiError):
    """The belief model is inconsistent with the action log and cannot recover."""


class UnsolvedGame(HanabiError):
    """The endgame solver could not prove a winning line.

    This does not mean the game is lost; callers fall back to heuristic play.
    """
