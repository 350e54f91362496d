"""
Business logic for payments.

Participants report payments they made (Venmo, cash, ...) which start
out ``pending``.  An administrator confirms or rejects them; only
confirmed payments reduce a participant's balance.
"""

import logging
import sqlite3
from decimal import Decimal
from typing import List, Optional

from ..core.db import get_connection
from ..core.errors import NotFoundError
from ..schemas.payment import PaymentCreate, PaymentRead


logger = logging.getLogger(__name__)

PAYMENT_COLUMNS = (
    "id, participant_id, event_id, amount, payment_method, payment_reference, notes, "
    "status, confirmed_by, confirmed_at, created_at"
)


def row_to_payment(row: sqlite3.Row) -> PaymentRead:
    return PaymentRead(
        id=row["id"],
        participant_id=row["participant_id"],
        event_id=row["event_id"],
        amount=Decimal(row["amount"]),
        payment_method=row["payment_method"],
        payment_reference=row["payment_reference"],
        notes=row["notes"],
        status=row["status"],
        confirmed_by=row["confirmed_by"],
        confirmed_at=row["confirmed_at"],
        created_at=row["created_at"],
    )


def _fetch_payment(cursor: sqlite3.Cursor, payment_id: int) -> PaymentRead:
    row = cursor.execute(f"SELECT {PAYMENT_COLUMNS} FROM payments WHERE id = ?", (payment_id,)).fetchone()
    if not row:
        raise NotFoundError(f"Payment {payment_id} not found")
    return row_to_payment(row)


class PaymentService:
    """Service for reporting, confirming and listing payments."""

    @classmethod
    async def create_payment(cls, data: PaymentCreate, current_user: dict) -> PaymentRead:
        """Record a payment reported by the current participant.

        Raises ``NotFoundError`` when ``event_id`` does not exist.
        """
        participant_id = current_user.get("user_id")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if data.event_id is not None and not cursor.execute(
                "SELECT 1 FROM events WHERE id = ?", (data.event_id,)
            ).fetchone():
                raise NotFoundError(f"Event {data.event_id} not found")
            cursor.execute(
                """
                INSERT INTO payments (participant_id, event_id, amount, payment_method, payment_reference, notes)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    participant_id,
                    data.event_id,
                    str(data.amount),
                    data.payment_method,
                    data.payment_reference,
                    data.notes,
                ),
            )
            payment_id = cursor.lastrowid
            conn.commit()
            payment = _fetch_payment(cursor, payment_id)
        finally:
            conn.close()
        logger.info("Participant %s reported payment %s of %s", participant_id, payment_id, data.amount)
        from .audit_service import AuditService
        await AuditService.log_safely(
            user_id=participant_id,
            action="create",
            object_type="payment",
            object_id=payment_id,
            details={"amount": str(data.amount), "method": data.payment_method},
        )
        return payment

    @classmethod
    async def list_payments(
        cls,
        participant_id: Optional[int] = None,
        event_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[PaymentRead]:
        """List payments, newest first, with optional filters.

        Routers pass the caller's own id as ``participant_id`` unless
        the caller is an administrator.
        """
        query = f"SELECT {PAYMENT_COLUMNS} FROM payments"
        where_clauses: List[str] = []
        params: list = []
        if participant_id is not None:
            where_clauses.append("participant_id = ?")
            params.append(participant_id)
        if event_id is not None:
            where_clauses.append("event_id = ?")
            params.append(event_id)
        if status:
            where_clauses.append("status = ?")
            params.append(status)
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY created_at DESC, id DESC"
        conn = get_connection()
        try:
            return [row_to_payment(row) for row in conn.execute(query, tuple(params)).fetchall()]
        finally:
            conn.close()

    @classmethod
    async def update_status(cls, payment_id: int, status: str, current_user: dict) -> PaymentRead:
        """Confirm, reject or reopen a payment.

        Confirming records who confirmed it and when; any other status
        clears those fields.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            _fetch_payment(cursor, payment_id)
            if status == "confirmed":
                cursor.execute(
                    "UPDATE payments SET status = ?, confirmed_by = ?, confirmed_at = CURRENT_TIMESTAMP, "
                    "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (status, current_user.get("user_id"), payment_id),
                )
            else:
                cursor.execute(
                    "UPDATE payments SET status = ?, confirmed_by = NULL, confirmed_at = NULL, "
                    "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (status, payment_id),
                )
            conn.commit()
            payment = _fetch_payment(cursor, payment_id)
        finally:
            conn.close()
        from .audit_service import AuditService
        await AuditService.log_safely(
            user_id=current_user.get("user_id"),
            action="update",
            object_type="payment",
            object_id=payment_id,
            details={"status": status},
        )
        return payment

    @classmethod
    async def delete_payment(cls, payment_id: int, current_user: dict) -> None:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            _fetch_payment(cursor, payment_id)
            cursor.execute("DELETE FROM payments WHERE id = ?", (payment_id,))
            conn.commit()
        finally:
            conn.close()
        from .audit_service import AuditService
        await AuditService.log_safely(
            user_id=current_user.get("user_id"),
            action="delete",
            object_type="payment",
            object_id=payment_id,
        )
