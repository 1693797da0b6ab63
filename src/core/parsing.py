"""Parsing of short-form card identities like "r1" or "b5"."""

from __future__ import annotations

import re

from src.hanabi.models import SHORT_FORMS, Identity


_SHORT_CARD = re.compile(r"^\s*([a-z])([1-5])\s*$", re.IGNORECASE)


def parse_identity(text: str, short_forms: str = SHORT_FORMS) -> Identity | None:
    """Parse a short-form card into an Identity.

    Args:
        text: Card text such as "r1"; "xx" stands for an unknown card
        short_forms: One letter per suit, in suit order

    Returns:
        The parsed identity, or None for an unknown card

    Raises:
        ValueError: If the text is not a card

    Examples:
        >>> parse_identity("g3")
        Identity(suit_index=2, rank=3)
        >>> parse_identity("xx") is None
        True
    """
    if text.strip().lower() == "xx":
        return None

    match = _SHORT_CARD.match(text)
    if not match:
        raise ValueError(f"Not a card: {text!r}")

    suit = match.group(1).lower()
    if suit not in short_forms:
        raise ValueError(f"Unknown suit {suit!r} in {text!r}")
    return Identity(suit_index=short_forms.index(suit), rank=int(match.group(2)))


def parse_identities(text: str, short_forms: str = SHORT_FORMS) -> list[Identity]:
    """Parse a comma or space separated list of short-form cards."""
    parts = [p for p in re.split(r"[,\s]+", text) if p]
    identities = []
    for part in parts:
        identity = parse_identity(part, short_forms)
        if identity is None:
            raise ValueError(f"Unknown card {part!r} in identity list")
        identities.append(identity)
    return identities
