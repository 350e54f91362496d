"""
Service layer for the admin dashboard.

Provides high-level counts for the trip: how many people are on the
roster and confirmed, how many events are scheduled and still ahead,
and how much money has been collected against what is owed.

Money columns hold decimal strings, so totals are summed in Python.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict

from ..core.db import get_connection


class StatisticsService:
    """Aggregated figures for administrators."""

    @classmethod
    async def dashboard(cls) -> Dict[str, Any]:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            participants_total = cursor.execute("SELECT COUNT(*) FROM participants").fetchone()[0]
            participants_confirmed = cursor.execute(
                "SELECT COUNT(*) FROM participants WHERE trip_status = 'confirmed'"
            ).fetchone()[0]
            events_total = cursor.execute("SELECT COUNT(*) FROM events").fetchone()[0]
            events_upcoming = cursor.execute(
                "SELECT COUNT(*) FROM events WHERE datetime(start_time) > datetime('now')"
            ).fetchone()[0]
            total_collected = sum(
                (Decimal(row[0]) for row in cursor.execute(
                    "SELECT amount FROM payments WHERE status = 'confirmed'"
                ).fetchall()),
                Decimal("0"),
            )
            pending_count = cursor.execute(
                "SELECT COUNT(*) FROM payments WHERE status = 'pending'"
            ).fetchone()[0]
            total_owed = sum(
                (Decimal(row[0]) for row in cursor.execute("SELECT amount FROM event_costs").fetchall()),
                Decimal("0"),
            )
        finally:
            conn.close()
        return {
            "participants": {"total": participants_total, "confirmed": participants_confirmed},
            "events": {"total": events_total, "upcoming": events_upcoming},
            "payments": {
                "total_collected": total_collected,
                "pending_count": pending_count,
                "total_owed": total_owed,
            },
        }
