"""Per-card note book with turn-marked entries."""

from __future__ import annotations

import re

from pydantic import BaseModel, Field


class CardNote(BaseModel):
    """Notes written on a single card.

    The full note is append-only. A new entry is only written when it differs from
    the last entry and the turn has advanced.
    """
    order: int
    last: str = ""
    turn: int = 0
    full: str = ""

    def append(self, turn: int, content: str) -> bool:
        """Append new content with a turn marker.

        Args:
            turn: The current turn number
            content: Content to append (stripped of whitespace)

        Returns:
            True if the note changed
        """
        content = content.strip()
        if not content or content == self.last or turn <= self.turn:
            return False

        self.last = content
        self.turn = turn
        if self.full:
            self.full += f" | t{turn}: {content}"
        else:
            self.full = f"t{turn}: {content}"
        return True


class NoteBook:
    """Tracks notes for every card the bot has annotated in a game.

    Notes persist across turns and rewinds but are reset between games.
    """

    def __init__(self):
        self._notes: dict[int, CardNote] = {}

    def get_or_create(self, order: int) -> CardNote:
        if order not in self._notes:
            self._notes[order] = CardNote(order=order)
        return self._notes[order]

    def write(self, order: int, turn: int, content: str) -> bool:
        return self.get_or_create(order).append(turn, content)

    def get_note(self, order: int, max_entries: int = 3) -> str:
        """Get the note on a card, limited to recent entries.

        Args:
            order: Draw order of the card
            max_entries: Maximum number of recent entries to return (default 3)

        Returns:
            Recent note content, or empty string if the card has no note
        """
        note = self._notes.get(order)
        if not note or not note.full:
            return ""

        entries = re.split(r"\s*\|\s*(?=t\d+:)", note.full)
        entries = [e.strip() for e in entries if e.strip()]
        return " | ".join(entries[-max_entries:])

    def get_all_notes(self) -> dict[int, CardNote]:
        return dict(self._notes)

    def reset(self) -> None:
        """Reset all notes (for a new game)."""
        self._notes.clear()
