"""
Payment endpoints for API v1.

Participants report the payments they made and read their own balance.
Confirming or rejecting payments is done through the admin router.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from trip_planner_api.app.core.errors import NotFoundError
from trip_planner_api.app.core.security import get_current_user
from trip_planner_api.app.schemas.balance import BalanceSummary
from trip_planner_api.app.schemas.payment import PaymentCreate, PaymentRead
from trip_planner_api.app.services.balance_service import BalanceService
from trip_planner_api.app.services.payment_service import PaymentService


router = APIRouter()


@router.get("/", response_model=List[PaymentRead])
async def list_my_payments(current_user: dict = Depends(get_current_user)) -> List[PaymentRead]:
    return await PaymentService.list_payments(participant_id=current_user["user_id"])


@router.post("/", response_model=PaymentRead, status_code=status.HTTP_201_CREATED)
async def report_payment(
    payment: PaymentCreate,
    current_user: dict = Depends(get_current_user),
) -> PaymentRead:
    """Report a payment.  It counts toward the balance once an admin confirms it."""
    try:
        return await PaymentService.create_payment(payment, current_user)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.get("/summary", response_model=BalanceSummary)
async def my_summary(current_user: dict = Depends(get_current_user)) -> BalanceSummary:
    """The caller's balance and what each event costs them."""
    return await BalanceService.get_summary(current_user["user_id"])
