"""State definition for the per-turn LangGraph flow."""

from __future__ import annotations

from typing import TypedDict


class TurnState(TypedDict, total=False):
    """State shared across the nodes of one user turn."""

    user_input: str
    stage: str
    backward: bool
    demand_locked: bool
    trace_id: str
