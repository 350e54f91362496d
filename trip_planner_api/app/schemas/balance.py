"""
Pydantic models for the balance ledger.

Balances are never stored; they are computed on every read from the
current cost rows and confirmed payments.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class BalanceRead(BaseModel):
    participant_id: int
    display_name: Optional[str] = None
    total_owed: Decimal
    total_paid: Decimal
    remaining: Decimal


class BalanceBreakdownItem(BaseModel):
    event_id: int
    event_title: str
    event_date: Optional[datetime] = None
    amount: Decimal
    note: Optional[str] = None


class BalanceSummary(BaseModel):
    summary: BalanceRead
    breakdown: List[BalanceBreakdownItem]
