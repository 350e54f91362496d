"""
Cost allocation engine.

``CostService.recompute_event`` is the single primitive that turns an
event's cost configuration and the current attendance into
``event_costs`` rows: load the event, resolve payers, compute shares,
then delete every existing row for the event and insert the new set.
Rows are never patched individually.

A recompute holds a per-event lock and runs inside one
``BEGIN IMMEDIATE`` transaction, so two recomputations of the same
event cannot interleave their delete and insert, and each one reads
the attendance that was current when it started.

Administrators can also replace an event's rows by hand
(``set_event_costs``).  For ``custom`` events those rows are final; for
``even`` and ``fixed`` events the next automatic recompute overwrites
them.
"""

import logging
import sqlite3
import threading
import weakref
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from ..core.db import get_connection, immediate_transaction
from ..core.errors import InvalidConfigurationError, NotFoundError
from ..schemas.cost import CostEntry, CostRead, RecomputeOutcome
from .attendance import AttendanceResolver, RosterEntry
from .event_service import EventService, fetch_event
from .split_calculator import SplitCalculator


logger = logging.getLogger(__name__)

GROOM_NOTE = "Groom: covered by the crew"

_locks_guard = threading.Lock()
# Entries disappear once no recompute or override holds the lock.
_event_locks: "weakref.WeakValueDictionary[int, threading.Lock]" = weakref.WeakValueDictionary()


def _event_lock(event_id: int) -> threading.Lock:
    with _locks_guard:
        return _event_locks.setdefault(event_id, threading.Lock())


def _outcome(event_id: int, status: str, **kwargs) -> RecomputeOutcome:
    return RecomputeOutcome(
        event_id=event_id,
        status=status,
        finished_at=datetime.now(timezone.utc),
        **kwargs,
    )


class CostService:
    """Compute, persist and read per-event cost allocations."""

    @classmethod
    def recompute_event(cls, event_id: int) -> RecomputeOutcome:
        """Rebuild the cost rows of one event from current attendance.

        Idempotent: running it twice without an attendance or
        configuration change in between yields the same rows.  Missing
        events, ``custom`` splits and zero-cost events are skipped
        without touching any row.  Store errors propagate to the
        caller after the transaction has been rolled back.
        """
        with _event_lock(event_id):
            with immediate_transaction() as cursor:
                return cls._recompute_locked(cursor, event_id)

    @classmethod
    def _recompute_locked(cls, cursor: sqlite3.Cursor, event_id: int) -> RecomputeOutcome:
        try:
            event = fetch_event(cursor, event_id)
        except NotFoundError:
            return _outcome(event_id, "skipped", reason="event not found")
        if event.split_type == "custom":
            return _outcome(event_id, "skipped", reason="custom split")
        if event.total_cost == 0:
            return _outcome(event_id, "skipped", reason="zero cost")

        roster = [
            RosterEntry(id=row["id"], trip_status=row["trip_status"], is_groom=bool(row["is_groom"]))
            for row in cursor.execute("SELECT id, trip_status, is_groom FROM participants").fetchall()
        ]
        rsvp_statuses: Dict[int, str] = {}
        if not event.is_mandatory:
            rsvp_statuses = {
                row["participant_id"]: row["status"]
                for row in cursor.execute(
                    "SELECT participant_id, status FROM rsvps WHERE event_id = ?", (event_id,)
                ).fetchall()
            }
        resolution = AttendanceResolver.resolve_payers(event, roster, rsvp_statuses)

        cursor.execute("DELETE FROM event_costs WHERE event_id = ?", (event_id,))
        shares = SplitCalculator.compute_shares(
            event.total_cost,
            event.split_type,
            resolution.payers,
            resolution.groom_attending_excluded,
        )
        if not shares:
            logger.info("Cleared costs for event %s: nobody is paying", event_id)
            return _outcome(event_id, "cleared")

        rows = [(event_id, pid, str(share.amount), share.note) for pid, share in sorted(shares.items())]
        if resolution.groom_attending_excluded:
            rows.append((event_id, resolution.groom_id, str(Decimal("0")), GROOM_NOTE))
        cursor.executemany(
            "INSERT INTO event_costs (event_id, participant_id, amount, note) VALUES (?, ?, ?, ?)",
            rows,
        )

        per_person = next(iter(shares.values())).amount
        logger.info(
            "Recalculated costs for event %s: $%.2f/person x %d",
            event_id,
            per_person,
            len(shares),
        )
        return _outcome(event_id, "recomputed", payer_count=len(shares), per_person=per_person)

    @classmethod
    def auto_event_ids(cls, mandatory_only: bool = False) -> List[int]:
        """Ids of events the engine manages: even/fixed split with a non-zero cost."""
        query = (
            "SELECT id FROM events WHERE split_type IN ('even', 'fixed') "
            "AND CAST(total_cost AS REAL) > 0"
        )
        if mandatory_only:
            query += " AND is_mandatory = 1"
        conn = get_connection()
        try:
            return [row["id"] for row in conn.execute(query + " ORDER BY id").fetchall()]
        finally:
            conn.close()

    @classmethod
    def recompute_many(cls, event_ids: List[int]) -> List[RecomputeOutcome]:
        """Recompute each event independently.

        A failure on one event is logged and reported as a ``failed``
        outcome; the remaining events are still recomputed.
        """
        outcomes: List[RecomputeOutcome] = []
        for event_id in event_ids:
            try:
                outcomes.append(cls.recompute_event(event_id))
            except Exception as exc:
                logger.exception("Failed to recalculate costs for event %s", event_id)
                outcomes.append(_outcome(event_id, "failed", reason=f"{type(exc).__name__}: {exc}"))
        return outcomes

    @classmethod
    def recompute_all_mandatory(cls) -> List[RecomputeOutcome]:
        """Recompute every mandatory even/fixed event with a non-zero cost."""
        outcomes = cls.recompute_many(cls.auto_event_ids(mandatory_only=True))
        logger.info("Recalculated costs for %d mandatory events", len(outcomes))
        return outcomes

    @classmethod
    def recompute_all(cls) -> List[RecomputeOutcome]:
        """Recompute every even/fixed event with a non-zero cost."""
        outcomes = cls.recompute_many(cls.auto_event_ids())
        logger.info("Recalculated costs for %d events", len(outcomes))
        return outcomes

    @classmethod
    async def calculate_event_costs(cls, event_id: int) -> List[CostRead]:
        """Run the engine for one event right away and return its rows.

        Unlike the background triggers this reports problems to the
        caller: ``NotFoundError`` for an unknown event and
        ``InvalidConfigurationError`` for a custom split.
        """
        event = await EventService.get_event(event_id)
        if event.split_type == "custom":
            raise InvalidConfigurationError("Custom split events are not calculated automatically")
        cls.recompute_event(event_id)
        return await cls.list_event_costs(event_id)

    @classmethod
    async def set_event_costs(
        cls,
        event_id: int,
        costs: List[CostEntry],
        current_user: Optional[dict] = None,
    ) -> List[CostRead]:
        """Replace an event's cost rows with admin-authored ones.

        Raises ``NotFoundError`` for an unknown event or participant and
        ``ValueError`` when a participant appears twice.
        """
        participant_ids = [entry.participant_id for entry in costs]
        if len(set(participant_ids)) != len(participant_ids):
            raise ValueError("Each participant may appear only once")
        with _event_lock(event_id):
            with immediate_transaction() as cursor:
                fetch_event(cursor, event_id)
                for pid in participant_ids:
                    if not cursor.execute("SELECT 1 FROM participants WHERE id = ?", (pid,)).fetchone():
                        raise NotFoundError(f"Participant {pid} not found")
                cursor.execute("DELETE FROM event_costs WHERE event_id = ?", (event_id,))
                cursor.executemany(
                    "INSERT INTO event_costs (event_id, participant_id, amount, note) VALUES (?, ?, ?, ?)",
                    [(event_id, e.participant_id, str(e.amount), e.note) for e in costs],
                )
        logger.info("Costs for event %s set manually (%d rows)", event_id, len(costs))
        from .audit_service import AuditService
        await AuditService.log_safely(
            user_id=(current_user or {}).get("user_id"),
            action="override",
            object_type="event_costs",
            object_id=event_id,
            details={"costs": [e.model_dump(mode="json") for e in costs]},
        )
        return await cls.list_event_costs(event_id)

    @classmethod
    async def list_event_costs(cls, event_id: int) -> List[CostRead]:
        """Return an event's cost rows with participant names."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            fetch_event(cursor, event_id)
            rows = cursor.execute(
                """
                SELECT ec.event_id, ec.participant_id, p.display_name, ec.amount, ec.note
                FROM event_costs ec
                JOIN participants p ON p.id = ec.participant_id
                WHERE ec.event_id = ?
                ORDER BY ec.participant_id
                """,
                (event_id,),
            ).fetchall()
            return [
                CostRead(
                    event_id=row["event_id"],
                    participant_id=row["participant_id"],
                    display_name=row["display_name"],
                    amount=Decimal(row["amount"]),
                    note=row["note"],
                )
                for row in rows
            ]
        finally:
            conn.close()
