"""
Business logic for events.

Events are created, edited and deleted by administrators.  Their cost
configuration (``total_cost``, ``split_type``, ``is_mandatory``,
``exclude_groom``) feeds the cost allocation engine; routers schedule
a recompute after every create or update that leaves the event with an
automatic split.
"""

import logging
import sqlite3
from decimal import Decimal
from typing import Any, Dict, List

from ..core.db import get_connection
from ..core.errors import NotFoundError
from ..schemas.event import AttendeeRead, EventCreate, EventRead


logger = logging.getLogger(__name__)

EVENT_COLUMNS = (
    "id, title, description, location, start_time, end_time, category, notes, "
    "is_mandatory, total_cost, split_type, exclude_groom, created_by"
)

# Order in which RSVP answers are listed on an optional event's attendee page.
RSVP_ORDER = {"confirmed": 1, "maybe": 2, "pending": 3, "declined": 4}


def row_to_event(row: sqlite3.Row) -> EventRead:
    return EventRead(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        location=row["location"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        category=row["category"],
        notes=row["notes"],
        is_mandatory=bool(row["is_mandatory"]),
        total_cost=Decimal(row["total_cost"]),
        split_type=row["split_type"],
        exclude_groom=bool(row["exclude_groom"]),
        created_by=row["created_by"],
    )


def fetch_event(cursor: sqlite3.Cursor, event_id: int) -> EventRead:
    """Load one event with an open cursor.  Raises ``NotFoundError``."""
    row = cursor.execute(
        f"SELECT {EVENT_COLUMNS} FROM events WHERE id = ?", (event_id,)
    ).fetchone()
    if not row:
        raise NotFoundError(f"Event {event_id} not found")
    return row_to_event(row)


def _to_db(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


class EventService:
    """Service for managing the trip schedule."""

    UPDATABLE_FIELDS = {
        "title",
        "description",
        "location",
        "start_time",
        "end_time",
        "category",
        "notes",
        "is_mandatory",
        "total_cost",
        "split_type",
        "exclude_groom",
    }
    NULLABLE_FIELDS = {"description", "location", "end_time", "category", "notes"}

    @classmethod
    async def create_event(cls, data: EventCreate, current_user: dict) -> EventRead:
        """Insert a new event and return it."""
        logger.info("User %s is creating event '%s'", current_user.get("sub"), data.title)
        fields = data.model_dump()
        columns = list(fields.keys()) + ["created_by"]
        values = [_to_db(v) for v in fields.values()] + [current_user.get("user_id")]
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"INSERT INTO events ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
                tuple(values),
            )
            event_id = cursor.lastrowid
            conn.commit()
            event = fetch_event(cursor, event_id)
        finally:
            conn.close()
        from .audit_service import AuditService
        await AuditService.log_safely(
            user_id=current_user.get("user_id"),
            action="create",
            object_type="event",
            object_id=event_id,
            details={"title": data.title, "split_type": data.split_type, "total_cost": str(data.total_cost)},
        )
        return event

    @classmethod
    async def list_events(cls) -> List[EventRead]:
        """Return the whole schedule ordered by start time."""
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {EVENT_COLUMNS} FROM events ORDER BY start_time, id"
            ).fetchall()
            return [row_to_event(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_event(cls, event_id: int) -> EventRead:
        """Retrieve a single event by ID.  Raises ``NotFoundError``."""
        conn = get_connection()
        try:
            return fetch_event(conn.cursor(), event_id)
        finally:
            conn.close()

    @classmethod
    async def update_event(cls, event_id: int, updates: Dict[str, Any], current_user: dict) -> EventRead:
        """Update fields of an existing event.

        Only keys listed in ``UPDATABLE_FIELDS`` are written; anything
        else is ignored.  Raises ``NotFoundError`` if the event does not
        exist.
        """
        updates = {
            k: v
            for k, v in updates.items()
            if k in cls.UPDATABLE_FIELDS and (v is not None or k in cls.NULLABLE_FIELDS)
        }
        conn = get_connection()
        try:
            cursor = conn.cursor()
            fetch_event(cursor, event_id)
            if updates:
                assignments = ", ".join(f"{key} = ?" for key in updates)
                values = [_to_db(v) for v in updates.values()] + [event_id]
                cursor.execute(
                    f"UPDATE events SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    tuple(values),
                )
                conn.commit()
            event = fetch_event(cursor, event_id)
        finally:
            conn.close()
        from .audit_service import AuditService
        await AuditService.log_safely(
            user_id=current_user.get("user_id"),
            action="update",
            object_type="event",
            object_id=event_id,
            details={k: _to_db(v) for k, v in updates.items()},
        )
        return event

    @classmethod
    async def delete_event(cls, event_id: int, current_user: dict) -> None:
        """Delete an event.

        RSVPs and cost rows go with it; payments that referenced it are
        kept and detached (``event_id`` set to NULL) by the schema.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            fetch_event(cursor, event_id)
            cursor.execute("DELETE FROM events WHERE id = ?", (event_id,))
            conn.commit()
        finally:
            conn.close()
        from .audit_service import AuditService
        await AuditService.log_safely(
            user_id=current_user.get("user_id"),
            action="delete",
            object_type="event",
            object_id=event_id,
        )

    @classmethod
    async def list_attendees(cls, event_id: int) -> List[AttendeeRead]:
        """List who is coming to an event.

        Mandatory events show every confirmed trip participant.
        Optional events show the confirmed roster with each person's
        RSVP answer, ``pending`` when they have not answered yet.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            event = fetch_event(cursor, event_id)
            if event.is_mandatory:
                rows = cursor.execute(
                    "SELECT id, display_name, trip_status AS status, is_groom FROM participants "
                    "WHERE trip_status = 'confirmed' ORDER BY display_name"
                ).fetchall()
                return [
                    AttendeeRead(id=r["id"], display_name=r["display_name"], status=r["status"], is_groom=bool(r["is_groom"]))
                    for r in rows
                ]
            rows = cursor.execute(
                """
                SELECT p.id, p.display_name, p.is_groom, COALESCE(r.status, 'pending') AS status
                FROM participants p
                LEFT JOIN rsvps r ON r.participant_id = p.id AND r.event_id = ?
                WHERE p.trip_status = 'confirmed'
                """,
                (event_id,),
            ).fetchall()
        finally:
            conn.close()
        attendees = [
            AttendeeRead(id=r["id"], display_name=r["display_name"], status=r["status"], is_groom=bool(r["is_groom"]))
            for r in rows
        ]
        attendees.sort(key=lambda a: (RSVP_ORDER.get(a.status, 5), a.display_name))
        return attendees
