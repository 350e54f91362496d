"""
Pydantic models for per-event cost allocation rows and recompute outcomes.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class CostRead(BaseModel):
    """One participant's share of one event."""

    event_id: int
    participant_id: int
    display_name: Optional[str] = None
    amount: Decimal
    note: Optional[str] = None


class CostEntry(BaseModel):
    """An admin-authored allocation row."""

    participant_id: int
    amount: Decimal = Field(..., ge=0)
    note: Optional[str] = None


class CostOverride(BaseModel):
    """Full replacement set of allocation rows for one event."""

    costs: List[CostEntry]


RecomputeStatus = Literal["recomputed", "cleared", "skipped", "failed"]


class RecomputeOutcome(BaseModel):
    """Result of one automatic recomputation, kept for admins to inspect."""

    event_id: int
    status: RecomputeStatus
    payer_count: int = 0
    per_person: Optional[Decimal] = None
    reason: Optional[str] = None
    trigger: Optional[str] = None
    finished_at: datetime
