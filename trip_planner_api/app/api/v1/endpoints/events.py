"""
Event endpoints for API v1.

Read access to the schedule for every participant, plus RSVPs to
optional events.  An RSVP changes who pays for that event, so each one
schedules a recompute of the event after the response is sent.
Creating and editing events lives in the admin router.
"""

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from trip_planner_api.app.core.errors import NotFoundError
from trip_planner_api.app.core.security import get_current_user
from trip_planner_api.app.schemas.cost import CostRead
from trip_planner_api.app.schemas.event import AttendeeRead, EventRead, RsvpRead, RsvpUpdate
from trip_planner_api.app.services.cost_service import CostService
from trip_planner_api.app.services.event_service import EventService
from trip_planner_api.app.services.recompute import RecomputeDispatcher
from trip_planner_api.app.services.rsvp_service import RsvpService


router = APIRouter()


@router.get("/", response_model=List[EventRead])
async def list_events(current_user: dict = Depends(get_current_user)) -> List[EventRead]:
    """Return the trip schedule ordered by start time."""
    return await EventService.list_events()


@router.get("/{event_id}", response_model=EventRead)
async def get_event(event_id: int, current_user: dict = Depends(get_current_user)) -> EventRead:
    try:
        return await EventService.get_event(event_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.put("/{event_id}/rsvp", response_model=RsvpRead)
async def rsvp_to_event(
    event_id: int,
    rsvp: RsvpUpdate,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
) -> RsvpRead:
    """Answer an optional event's RSVP.

    Returns 404 for an unknown event and 400 for a mandatory one.  The
    RSVP is saved even if the follow-up cost recompute fails.
    """
    try:
        saved = await RsvpService.upsert_rsvp(event_id, current_user["user_id"], rsvp.status)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    RecomputeDispatcher.schedule(background_tasks, trigger="rsvp", event_ids=[event_id])
    return saved


@router.get("/{event_id}/attendees", response_model=List[AttendeeRead])
async def list_attendees(event_id: int, current_user: dict = Depends(get_current_user)) -> List[AttendeeRead]:
    try:
        return await EventService.list_attendees(event_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.get("/{event_id}/costs", response_model=List[CostRead])
async def list_event_costs(event_id: int, current_user: dict = Depends(get_current_user)) -> List[CostRead]:
    """Who owes what for this event."""
    try:
        return await CostService.list_event_costs(event_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
