"""
Admin endpoints for API v1.

Everything here requires an administrator.  Event changes, groom
reassignment and roster removals all affect cost allocation and
schedule the matching recomputations; manual cost overrides replace an
event's rows directly.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool

from trip_planner_api.app.core.errors import NotFoundError
from trip_planner_api.app.core.security import require_admin
from trip_planner_api.app.schemas.balance import BalanceRead
from trip_planner_api.app.schemas.cost import CostOverride, CostRead, RecomputeOutcome
from trip_planner_api.app.schemas.event import EventCreate, EventRead, EventUpdate
from trip_planner_api.app.schemas.participant import AdminUpdate, GroomUpdate, ParticipantRead
from trip_planner_api.app.schemas.payment import PaymentRead, PaymentStatusUpdate
from trip_planner_api.app.services.audit_service import AuditService
from trip_planner_api.app.services.balance_service import BalanceService
from trip_planner_api.app.services.cost_service import CostService
from trip_planner_api.app.services.event_service import EventService
from trip_planner_api.app.services.participant_service import ParticipantService
from trip_planner_api.app.services.payment_service import PaymentService
from trip_planner_api.app.services.recompute import SCOPE_ALL, RecomputeDispatcher
from trip_planner_api.app.services.statistics_service import StatisticsService


router = APIRouter()


def _not_found(e: NotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _bad_request(e: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _schedule_if_automatic(background_tasks: BackgroundTasks, event: EventRead, trigger: str) -> None:
    if event.split_type != "custom" and event.total_cost > 0:
        RecomputeDispatcher.schedule(background_tasks, trigger=trigger, event_ids=[event.id])


@router.get("/dashboard")
async def dashboard(current_user: dict = Depends(require_admin)) -> Dict[str, Any]:
    return await StatisticsService.dashboard()


# ----------------------------------------------------------------------
# Events and costs
# ----------------------------------------------------------------------

@router.post("/events", response_model=EventRead, status_code=status.HTTP_201_CREATED)
async def create_event(
    event: EventCreate,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(require_admin),
) -> EventRead:
    """Create an event.  Even and fixed splits with a cost are allocated right after."""
    created = await EventService.create_event(event, current_user)
    _schedule_if_automatic(background_tasks, created, trigger="event_create")
    return created


@router.put("/events/{event_id}", response_model=EventRead)
async def update_event(
    event_id: int,
    updates: EventUpdate,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(require_admin),
) -> EventRead:
    """Partially update an event.  Omitted fields stay unchanged."""
    try:
        updated = await EventService.update_event(
            event_id, updates.model_dump(exclude_unset=True), current_user
        )
    except NotFoundError as e:
        raise _not_found(e) from e
    _schedule_if_automatic(background_tasks, updated, trigger="event_update")
    return updated


@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(event_id: int, current_user: dict = Depends(require_admin)) -> None:
    try:
        await EventService.delete_event(event_id, current_user)
    except NotFoundError as e:
        raise _not_found(e) from e
    return None


@router.put("/events/{event_id}/costs", response_model=List[CostRead])
async def set_event_costs(
    event_id: int,
    override: CostOverride,
    current_user: dict = Depends(require_admin),
) -> List[CostRead]:
    """Replace an event's cost rows by hand.

    On even and fixed events the rows will be recalculated on the next
    attendance change; switch the event to ``custom`` to keep them.
    """
    try:
        return await CostService.set_event_costs(event_id, override.costs, current_user)
    except NotFoundError as e:
        raise _not_found(e) from e
    except ValueError as e:
        raise _bad_request(e) from e


@router.post("/events/{event_id}/costs/calculate", response_model=List[CostRead])
async def calculate_event_costs(event_id: int, current_user: dict = Depends(require_admin)) -> List[CostRead]:
    """Recalculate an event's costs now and return the resulting rows."""
    try:
        return await CostService.calculate_event_costs(event_id)
    except NotFoundError as e:
        raise _not_found(e) from e
    except ValueError as e:
        raise _bad_request(e) from e


# ----------------------------------------------------------------------
# Roster
# ----------------------------------------------------------------------

@router.put("/participants/{participant_id}/groom", response_model=ParticipantRead)
async def set_groom(
    participant_id: int,
    update: GroomUpdate,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(require_admin),
) -> ParticipantRead:
    """Mark or unmark the groom.  Any previous groom loses the flag."""
    try:
        participant = await ParticipantService.set_groom(participant_id, update.is_groom, current_user)
    except NotFoundError as e:
        raise _not_found(e) from e
    RecomputeDispatcher.schedule(background_tasks, trigger="groom_change", scope=SCOPE_ALL)
    return participant


@router.put("/participants/{participant_id}/admin", response_model=ParticipantRead)
async def set_admin(
    participant_id: int,
    update: AdminUpdate,
    current_user: dict = Depends(require_admin),
) -> ParticipantRead:
    try:
        return await ParticipantService.set_admin(participant_id, update.is_admin, current_user)
    except NotFoundError as e:
        raise _not_found(e) from e
    except ValueError as e:
        raise _bad_request(e) from e


@router.delete("/participants/{participant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_participant(
    participant_id: int,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(require_admin),
) -> None:
    """Remove a participant together with their RSVPs, costs and payments."""
    try:
        await ParticipantService.delete_participant(participant_id, current_user)
    except NotFoundError as e:
        raise _not_found(e) from e
    except ValueError as e:
        raise _bad_request(e) from e
    RecomputeDispatcher.schedule(background_tasks, trigger="participant_removed", scope=SCOPE_ALL)
    return None


# ----------------------------------------------------------------------
# Payments and balances
# ----------------------------------------------------------------------

@router.get("/payments", response_model=List[PaymentRead])
async def list_payments(
    participant_id: Optional[int] = None,
    event_id: Optional[int] = None,
    status_param: Optional[str] = Query(None, alias="status"),
    current_user: dict = Depends(require_admin),
) -> List[PaymentRead]:
    return await PaymentService.list_payments(
        participant_id=participant_id, event_id=event_id, status=status_param
    )


@router.put("/payments/{payment_id}", response_model=PaymentRead)
async def update_payment_status(
    payment_id: int,
    update: PaymentStatusUpdate,
    current_user: dict = Depends(require_admin),
) -> PaymentRead:
    """Confirm, reject or reopen a reported payment."""
    try:
        return await PaymentService.update_status(payment_id, update.status, current_user)
    except NotFoundError as e:
        raise _not_found(e) from e


@router.delete("/payments/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment(payment_id: int, current_user: dict = Depends(require_admin)) -> None:
    try:
        await PaymentService.delete_payment(payment_id, current_user)
    except NotFoundError as e:
        raise _not_found(e) from e
    return None


@router.get("/balances", response_model=List[BalanceRead])
async def list_balances(current_user: dict = Depends(require_admin)) -> List[BalanceRead]:
    return await BalanceService.get_all_balances()


@router.get("/balances/{participant_id}", response_model=BalanceRead)
async def get_balance(participant_id: int, current_user: dict = Depends(require_admin)) -> BalanceRead:
    try:
        return await BalanceService.get_balance(participant_id)
    except NotFoundError as e:
        raise _not_found(e) from e


# ----------------------------------------------------------------------
# Recompute and audit
# ----------------------------------------------------------------------

@router.post("/recompute", response_model=List[RecomputeOutcome])
async def recompute_all(current_user: dict = Depends(require_admin)) -> List[RecomputeOutcome]:
    """Recompute every even/fixed event now and return what happened."""
    return await run_in_threadpool(RecomputeDispatcher.run, "admin", None, SCOPE_ALL)


@router.get("/recompute/outcomes", response_model=List[RecomputeOutcome])
async def recompute_outcomes(
    limit: int = Query(50, ge=1, le=1000),
    current_user: dict = Depends(require_admin),
) -> List[RecomputeOutcome]:
    """Most recent background recompute results, newest first."""
    return RecomputeDispatcher.outcomes(limit)


@router.get("/audit")
async def list_audit_logs(
    user_id: Optional[int] = None,
    object_type: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(require_admin),
) -> List[Dict[str, Any]]:
    return await AuditService.list_logs(
        user_id=user_id, object_type=object_type, action=action, limit=limit, offset=offset
    )
