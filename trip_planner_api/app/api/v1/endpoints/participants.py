"""
Participant endpoints for API v1.

Registration, login and roster views.  Registering and changing a trip
status both change who attends mandatory events, so they schedule a
recompute of every mandatory event after the response is sent.
"""

from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from trip_planner_api.app.core.errors import NotFoundError
from trip_planner_api.app.core.security import create_access_token, get_current_user
from trip_planner_api.app.schemas.participant import (
    LoginRequest,
    ParticipantCreate,
    ParticipantRead,
    ParticipantUpdate,
    TripStatusUpdate,
)
from trip_planner_api.app.services.participant_service import ParticipantService
from trip_planner_api.app.services.recompute import SCOPE_MANDATORY, RecomputeDispatcher


router = APIRouter()


@router.post("/", response_model=ParticipantRead, status_code=status.HTTP_201_CREATED)
async def register_participant(
    participant: ParticipantCreate,
    background_tasks: BackgroundTasks,
) -> ParticipantRead:
    """Register a new participant.

    The first participant to register becomes the trip administrator.
    """
    try:
        created = await ParticipantService.register(participant)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    RecomputeDispatcher.schedule(background_tasks, trigger="registration", scope=SCOPE_MANDATORY)
    return created


@router.post("/login")
async def login(credentials: LoginRequest) -> dict:
    """Exchange e-mail and password for a bearer token."""
    participant = await ParticipantService.authenticate(credentials.email, credentials.password)
    if not participant:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    token = create_access_token({"sub": participant.email})
    return {"access_token": token, "token_type": "bearer", "participant": participant}


@router.get("/", response_model=List[ParticipantRead])
async def list_participants(current_user: dict = Depends(get_current_user)) -> List[ParticipantRead]:
    return await ParticipantService.list_participants()


@router.get("/me", response_model=ParticipantRead)
async def read_me(current_user: dict = Depends(get_current_user)) -> ParticipantRead:
    return await ParticipantService.get_participant(current_user["user_id"])


@router.put("/me", response_model=ParticipantRead)
async def update_me(
    updates: ParticipantUpdate,
    current_user: dict = Depends(get_current_user),
) -> ParticipantRead:
    """Update the caller's display name and contact details."""
    return await ParticipantService.update_profile(
        current_user["user_id"], updates.model_dump(exclude_unset=True)
    )


@router.get("/{participant_id}", response_model=ParticipantRead)
async def get_participant(
    participant_id: int,
    current_user: dict = Depends(get_current_user),
) -> ParticipantRead:
    try:
        return await ParticipantService.get_participant(participant_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.put("/{participant_id}/trip-status", response_model=ParticipantRead)
async def update_trip_status(
    participant_id: int,
    update: TripStatusUpdate,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
) -> ParticipantRead:
    """Change whether a participant is coming on the trip.

    Participants may change their own status; admins may change anyone's.
    """
    if current_user["user_id"] != participant_id and not current_user.get("is_admin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized")
    try:
        participant = await ParticipantService.update_trip_status(participant_id, update.status)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    RecomputeDispatcher.schedule(background_tasks, trigger="trip_status", scope=SCOPE_MANDATORY)
    return participant
