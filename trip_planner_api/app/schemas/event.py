"""
Pydantic models for event data.

``EventBase`` holds the schedule fields and the cost configuration.
``total_cost`` means different things per ``split_type``: the group
total for ``even``, the per-person rate for ``fixed`` and an
informational figure for ``custom`` (admin-authored rows).
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


SplitType = Literal["even", "fixed", "custom"]
RsvpStatus = Literal["pending", "confirmed", "declined", "maybe"]


class EventBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255, examples=["Brewery tour"])
    description: Optional[str] = None
    location: Optional[str] = None
    start_time: datetime = Field(..., examples=["2026-06-12T14:00:00Z"])
    end_time: Optional[datetime] = None
    category: Optional[str] = None
    notes: Optional[str] = None
    is_mandatory: bool = False
    total_cost: Decimal = Field(Decimal("0"), ge=0, examples=["1500.00"])
    split_type: SplitType = "even"
    exclude_groom: bool = True


class EventCreate(EventBase):
    """Schema for creating an event."""
    pass


class EventRead(EventBase):
    """Schema for reading an event from the API."""

    id: int
    created_by: Optional[int] = None

    model_config = {
        "from_attributes": True,
    }


class EventUpdate(BaseModel):
    """Schema for updating an event.

    All fields are optional; only provided fields will be updated.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    category: Optional[str] = None
    notes: Optional[str] = None
    is_mandatory: Optional[bool] = None
    total_cost: Optional[Decimal] = Field(None, ge=0)
    split_type: Optional[SplitType] = None
    exclude_groom: Optional[bool] = None


class RsvpUpdate(BaseModel):
    status: RsvpStatus


class RsvpRead(BaseModel):
    participant_id: int
    event_id: int
    status: RsvpStatus
    responded_at: Optional[datetime] = None


class AttendeeRead(BaseModel):
    """A roster entry as seen from one event.

    ``status`` is the participant's trip status for mandatory events
    and their RSVP status (``pending`` when they never answered) for
    optional ones.
    """

    id: int
    display_name: str
    status: str
    is_groom: bool = False
