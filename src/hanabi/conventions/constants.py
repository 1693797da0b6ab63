"""Convention levels."""

from __future__ import annotations

from enum import IntEnum


class Level(IntEnum):
    """Convention levels that unlock new interpretations."""

    BASIC = 1
    FIX = 3
    INTERMEDIATE_FINESSES = 5
    BLUFFS = 11
