"""
Attendance resolution for cost allocation.

Decides, for one event, which participants are financially
responsible for it.  Mandatory events are attended by everyone whose
trip status is ``confirmed``; optional events by everyone who RSVP'd
``confirmed``.  When the event excludes the groom, the groom still counts as
attending but is removed from the payers and reported separately so
the split calculator can make the rest of the group absorb that seat.

The resolver does no I/O; callers load the roster and RSVPs.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional

from ..schemas.event import EventRead


@dataclass(frozen=True)
class RosterEntry:
    id: int
    trip_status: str
    is_groom: bool = False


@dataclass(frozen=True)
class AttendanceResolution:
    attending: FrozenSet[int]
    payers: FrozenSet[int]
    groom_id: Optional[int] = None
    groom_attending_excluded: bool = False


class AttendanceResolver:
    """Resolve payers for an event from the roster and its RSVPs."""

    @classmethod
    def resolve_payers(
        cls,
        event: EventRead,
        roster: Iterable[RosterEntry],
        rsvp_statuses: Optional[Dict[int, str]] = None,
    ) -> AttendanceResolution:
        """Return who attends the event and who pays for it.

        ``rsvp_statuses`` maps participant id to RSVP status for this
        event and is only consulted for optional events.  An empty
        ``payers`` set is a normal result.
        """
        rsvp_statuses = rsvp_statuses or {}
        roster = list(roster)
        if event.is_mandatory:
            attending = frozenset(p.id for p in roster if p.trip_status == "confirmed")
        else:
            attending = frozenset(p.id for p in roster if rsvp_statuses.get(p.id) == "confirmed")

        groom_id = next((p.id for p in roster if p.is_groom), None)
        if event.exclude_groom and groom_id is not None:
            payers = attending - {groom_id}
            groom_attending_excluded = groom_id in attending
        else:
            payers = attending
            groom_attending_excluded = False

        return AttendanceResolution(
            attending=attending,
            payers=frozenset(payers),
            groom_id=groom_id,
            groom_attending_excluded=groom_attending_excluded,
        )
