"""
Pydantic models for trip participants.

A participant is anyone on the roster: guests, the groom and the
administrators who organise the trip.  ``trip_status`` drives
attendance for mandatory events; ``is_groom`` marks the one person
whose share the rest of the group may cover.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


TripStatus = Literal["invited", "confirmed", "declined", "maybe"]


class ParticipantBase(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, examples=["alex@example.com"])
    display_name: str = Field(..., min_length=1, max_length=100, examples=["Alex"])
    phone: Optional[str] = Field(None, max_length=20)
    venmo_handle: Optional[str] = Field(None, max_length=100, examples=["@alex"])


class ParticipantCreate(ParticipantBase):
    """Schema for registering a participant.

    The first participant to register becomes a trip administrator.
    """

    password: str = Field(..., min_length=6, max_length=100)
    trip_status: TripStatus = "invited"


class ParticipantRead(ParticipantBase):
    """Schema for reading a participant from the API."""

    id: int
    trip_status: TripStatus = "invited"
    is_groom: bool = False
    is_admin: bool = False
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class ParticipantUpdate(BaseModel):
    """Profile fields a participant may change on their own record."""

    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    venmo_handle: Optional[str] = Field(None, max_length=100)


class TripStatusUpdate(BaseModel):
    status: TripStatus


class GroomUpdate(BaseModel):
    is_groom: bool


class AdminUpdate(BaseModel):
    is_admin: bool


class LoginRequest(BaseModel):
    email: str
    password: str
