"""
RSVPs for optional events.

Each participant has at most one RSVP per event; answering again
overwrites the previous answer.  Mandatory events take no RSVPs since
attendance there follows the participant's trip status.
"""

import logging

from ..core.db import get_connection
from ..core.errors import NotFoundError
from ..schemas.event import RsvpRead
from .event_service import fetch_event


logger = logging.getLogger(__name__)


class RsvpService:
    """Record participants' answers to optional events."""

    @classmethod
    async def upsert_rsvp(cls, event_id: int, participant_id: int, status: str) -> RsvpRead:
        """Insert or replace the participant's RSVP for the event.

        Raises ``NotFoundError`` for an unknown event or participant and
        ``ValueError`` for a mandatory event.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            event = fetch_event(cursor, event_id)
            if event.is_mandatory:
                raise ValueError("Cannot RSVP to mandatory events")
            if not cursor.execute("SELECT 1 FROM participants WHERE id = ?", (participant_id,)).fetchone():
                raise NotFoundError(f"Participant {participant_id} not found")
            cursor.execute(
                """
                INSERT INTO rsvps (participant_id, event_id, status, responded_at)
                VALUES (?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT (participant_id, event_id)
                DO UPDATE SET status = excluded.status, responded_at = CURRENT_TIMESTAMP
                """,
                (participant_id, event_id, status),
            )
            conn.commit()
            row = cursor.execute(
                "SELECT participant_id, event_id, status, responded_at FROM rsvps "
                "WHERE participant_id = ? AND event_id = ?",
                (participant_id, event_id),
            ).fetchone()
        finally:
            conn.close()
        logger.info("Participant %s RSVP'd %s to event %s", participant_id, status, event_id)
        return RsvpRead(
            participant_id=row["participant_id"],
            event_id=row["event_id"],
            status=row["status"],
            responded_at=row["responded_at"],
        )
