"""
Balance ledger.

A participant's balance is derived on every read from two sources:
the ``event_costs`` rows written by the cost engine (what they owe)
and their ``confirmed`` payments (what they paid).  Nothing here is
stored or cached.  ``remaining`` is reported as is, so an overpayment
shows up as a negative number.

Amounts are TEXT columns holding decimals, so sums are computed in
Python with ``Decimal`` rather than with SQL ``SUM``.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, List

from ..core.db import get_connection
from ..core.errors import NotFoundError
from ..schemas.balance import BalanceBreakdownItem, BalanceRead, BalanceSummary


def _sum_by_participant(rows) -> Dict[int, Decimal]:
    totals: Dict[int, Decimal] = defaultdict(Decimal)
    for row in rows:
        totals[row["participant_id"]] += Decimal(row["amount"])
    return totals


class BalanceService:
    """Read-side aggregation of what each participant owes and has paid."""

    @classmethod
    async def get_balance(cls, participant_id: int) -> BalanceRead:
        """Balance of one participant.  Raises ``NotFoundError``."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            participant = cursor.execute(
                "SELECT id, display_name FROM participants WHERE id = ?", (participant_id,)
            ).fetchone()
            if not participant:
                raise NotFoundError(f"Participant {participant_id} not found")
            owed = _sum_by_participant(
                cursor.execute(
                    "SELECT participant_id, amount FROM event_costs WHERE participant_id = ?",
                    (participant_id,),
                ).fetchall()
            )
            paid = _sum_by_participant(
                cursor.execute(
                    "SELECT participant_id, amount FROM payments WHERE participant_id = ? AND status = 'confirmed'",
                    (participant_id,),
                ).fetchall()
            )
        finally:
            conn.close()
        total_owed = owed.get(participant_id, Decimal("0"))
        total_paid = paid.get(participant_id, Decimal("0"))
        return BalanceRead(
            participant_id=participant_id,
            display_name=participant["display_name"],
            total_owed=total_owed,
            total_paid=total_paid,
            remaining=total_owed - total_paid,
        )

    @classmethod
    async def get_all_balances(cls) -> List[BalanceRead]:
        """Balances of every participant, zero balances included, by name."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            participants = cursor.execute(
                "SELECT id, display_name FROM participants ORDER BY display_name, id"
            ).fetchall()
            owed = _sum_by_participant(
                cursor.execute("SELECT participant_id, amount FROM event_costs").fetchall()
            )
            paid = _sum_by_participant(
                cursor.execute(
                    "SELECT participant_id, amount FROM payments WHERE status = 'confirmed'"
                ).fetchall()
            )
        finally:
            conn.close()
        balances = []
        for row in participants:
            total_owed = owed.get(row["id"], Decimal("0"))
            total_paid = paid.get(row["id"], Decimal("0"))
            balances.append(
                BalanceRead(
                    participant_id=row["id"],
                    display_name=row["display_name"],
                    total_owed=total_owed,
                    total_paid=total_paid,
                    remaining=total_owed - total_paid,
                )
            )
        return balances

    @classmethod
    async def get_summary(cls, participant_id: int) -> BalanceSummary:
        """Balance plus the per-event breakdown of what is owed, in schedule order."""
        balance = await cls.get_balance(participant_id)
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT ec.event_id, e.title, e.start_time, ec.amount, ec.note
                FROM event_costs ec
                JOIN events e ON e.id = ec.event_id
                WHERE ec.participant_id = ?
                ORDER BY e.start_time, e.id
                """,
                (participant_id,),
            ).fetchall()
        finally:
            conn.close()
        breakdown = [
            BalanceBreakdownItem(
                event_id=row["event_id"],
                event_title=row["title"],
                event_date=row["start_time"],
                amount=Decimal(row["amount"]),
                note=row["note"],
            )
            for row in rows
        ]
        return BalanceSummary(summary=balance, breakdown=breakdown)
