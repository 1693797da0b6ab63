"""Core module with shared helpers for the Hanabi bot."""

from .state import CardNote, NoteBook
from .trace import DecisionTrace
from .parsing import parse_identity, parse_identities

__all__ = [
    # Notes
    "CardNote",
    "NoteBook",
    # Tracing
    "DecisionTrace",
    # Parsing
    "parse_identity",
    "parse_identities",
]
