"""
Business logic for the trip roster.

Registration, login, profile edits and the status changes that affect
cost allocation: ``trip_status`` (who attends mandatory events), the
groom flag and removal from the roster.  The routers schedule the
matching recomputations; this service only maintains the rows.

The "at most one groom" rule is enforced here, at the write boundary:
``set_groom`` clears the previous groom and sets the new one in a
single transaction.  A partial unique index backs it up in the store.
"""

import logging
import sqlite3
from typing import Any, Dict, List, Optional

from ..core.db import get_connection, immediate_transaction
from ..core.errors import NotFoundError
from ..core.security import hash_password, verify_password
from ..schemas.participant import ParticipantCreate, ParticipantRead


logger = logging.getLogger(__name__)

PARTICIPANT_COLUMNS = (
    "id, email, display_name, phone, venmo_handle, trip_status, is_groom, is_admin, created_at"
)


def row_to_participant(row: sqlite3.Row) -> ParticipantRead:
    return ParticipantRead(
        id=row["id"],
        email=row["email"],
        display_name=row["display_name"],
        phone=row["phone"],
        venmo_handle=row["venmo_handle"],
        trip_status=row["trip_status"],
        is_groom=bool(row["is_groom"]),
        is_admin=bool(row["is_admin"]),
        created_at=row["created_at"],
    )


def _fetch_participant(cursor: sqlite3.Cursor, participant_id: int) -> ParticipantRead:
    row = cursor.execute(
        f"SELECT {PARTICIPANT_COLUMNS} FROM participants WHERE id = ?", (participant_id,)
    ).fetchone()
    if not row:
        raise NotFoundError(f"Participant {participant_id} not found")
    return row_to_participant(row)


class ParticipantService:
    """Service for the roster of trip participants."""

    @classmethod
    async def register(cls, data: ParticipantCreate) -> ParticipantRead:
        """Create a participant and return it.

        The first participant ever registered becomes an administrator.
        Raises ``ValueError`` if the e-mail is already taken.
        """
        logger.info("Registering participant %s", data.email)
        email = data.email.strip().lower()
        conn = get_connection()
        try:
            cursor = conn.cursor()
            is_first = cursor.execute("SELECT COUNT(*) AS count FROM participants").fetchone()["count"] == 0
            try:
                cursor.execute(
                    """
                    INSERT INTO participants (email, display_name, password, phone, venmo_handle, trip_status, is_admin)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        email,
                        data.display_name,
                        hash_password(data.password),
                        data.phone,
                        data.venmo_handle,
                        data.trip_status,
                        int(is_first),
                    ),
                )
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise ValueError(f"Email {email} is already registered") from e
            participant_id = cursor.lastrowid
            conn.commit()
            return _fetch_participant(cursor, participant_id)
        finally:
            conn.close()

    @classmethod
    async def authenticate(cls, email: str, password: str) -> Optional[ParticipantRead]:
        """Return the participant if the credentials match, otherwise ``None``."""
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {PARTICIPANT_COLUMNS}, password FROM participants WHERE email = ?",
                (email.strip().lower(),),
            ).fetchone()
        finally:
            conn.close()
        if not row or not verify_password(password, row["password"]):
            return None
        return row_to_participant(row)

    @classmethod
    async def list_participants(cls) -> List[ParticipantRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {PARTICIPANT_COLUMNS} FROM participants ORDER BY display_name, id"
            ).fetchall()
            return [row_to_participant(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_participant(cls, participant_id: int) -> ParticipantRead:
        """Retrieve one participant.  Raises ``NotFoundError``."""
        conn = get_connection()
        try:
            return _fetch_participant(conn.cursor(), participant_id)
        finally:
            conn.close()

    @classmethod
    async def update_profile(cls, participant_id: int, updates: Dict[str, Any]) -> ParticipantRead:
        """Update display name and contact details."""
        allowed = {"display_name", "phone", "venmo_handle"}
        updates = {k: v for k, v in updates.items() if k in allowed}
        conn = get_connection()
        try:
            cursor = conn.cursor()
            _fetch_participant(cursor, participant_id)
            if updates:
                assignments = ", ".join(f"{key} = ?" for key in updates)
                cursor.execute(
                    f"UPDATE participants SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    tuple(updates.values()) + (participant_id,),
                )
                conn.commit()
            return _fetch_participant(cursor, participant_id)
        finally:
            conn.close()

    @classmethod
    async def update_trip_status(cls, participant_id: int, trip_status: str) -> ParticipantRead:
        """Change whether a participant is coming on the trip."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            _fetch_participant(cursor, participant_id)
            cursor.execute(
                "UPDATE participants SET trip_status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (trip_status, participant_id),
            )
            conn.commit()
            logger.info("Participant %s trip status is now %s", participant_id, trip_status)
            return _fetch_participant(cursor, participant_id)
        finally:
            conn.close()

    @classmethod
    async def set_groom(cls, participant_id: int, is_groom: bool, current_user: dict) -> ParticipantRead:
        """Make a participant the groom, or take the flag away.

        Assigning the flag clears it from whoever held it before, in
        the same transaction.
        """
        with immediate_transaction() as cursor:
            _fetch_participant(cursor, participant_id)
            if is_groom:
                cursor.execute(
                    "UPDATE participants SET is_groom = 0, updated_at = CURRENT_TIMESTAMP "
                    "WHERE is_groom = 1 AND id != ?",
                    (participant_id,),
                )
            cursor.execute(
                "UPDATE participants SET is_groom = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (int(is_groom), participant_id),
            )
            participant = _fetch_participant(cursor, participant_id)
        from .audit_service import AuditService
        await AuditService.log_safely(
            user_id=current_user.get("user_id"),
            action="update",
            object_type="participant",
            object_id=participant_id,
            details={"is_groom": is_groom},
        )
        return participant

    @classmethod
    async def set_admin(cls, participant_id: int, is_admin: bool, current_user: dict) -> ParticipantRead:
        """Grant or revoke admin rights.  Admins cannot demote themselves."""
        if not is_admin and participant_id == current_user.get("user_id"):
            raise ValueError("Cannot remove your own admin status")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            _fetch_participant(cursor, participant_id)
            cursor.execute(
                "UPDATE participants SET is_admin = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (int(is_admin), participant_id),
            )
            conn.commit()
            participant = _fetch_participant(cursor, participant_id)
        finally:
            conn.close()
        from .audit_service import AuditService
        await AuditService.log_safely(
            user_id=current_user.get("user_id"),
            action="update",
            object_type="participant",
            object_id=participant_id,
            details={"is_admin": is_admin},
        )
        return participant

    @classmethod
    async def delete_participant(cls, participant_id: int, current_user: dict) -> None:
        """Remove a participant from the roster.

        Their RSVPs, cost rows and payments are deleted with them by the
        schema's ``ON DELETE CASCADE`` clauses.
        """
        if participant_id == current_user.get("user_id"):
            raise ValueError("Cannot delete yourself")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            _fetch_participant(cursor, participant_id)
            cursor.execute("DELETE FROM participants WHERE id = ?", (participant_id,))
            conn.commit()
        finally:
            conn.close()
        from .audit_service import AuditService
        await AuditService.log_safely(
            user_id=current_user.get("user_id"),
            action="delete",
            object_type="participant",
            object_id=participant_id,
        )
