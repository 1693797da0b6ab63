"""Decision trace models for logging bot turns."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class DecisionTrace(BaseModel):
    """Trace of a single bot decision.

    Captures which action was chosen, why, how long it took and whether the
    endgame solver or a rewind was involved.
    """
    seat: int
    turn_number: int
    perform: dict[str, Any]
    rationale: str = ""
    latency_ms: float
    solver_used: bool = False
    solver_failed: bool = False
    rewinds: int = 0  # Total rewinds performed by this bot so far
    notes: dict[int, str] = Field(default_factory=dict)
