"""
Background dispatch of cost recomputations.

Attendance and cost configuration changes must not wait for the cost
engine, and a failing recomputation must never fail the request that
triggered it.  Routers therefore hand recomputations to
``RecomputeDispatcher.schedule``, which registers a FastAPI background
task that runs after the response has been sent.

Every run reports through ``RecomputeDispatcher.outcomes``: a bounded,
newest-first history of what each recomputation did, including failed
ones, so administrators can see whether the ledger is stale.  A failed
event is fixed by its next trigger or by the startup sweep.
"""

import logging
import threading
from collections import deque
from typing import Deque, Iterable, List, Optional

from fastapi import BackgroundTasks

from ..core.config import settings
from ..schemas.cost import RecomputeOutcome
from .cost_service import CostService


logger = logging.getLogger(__name__)

SCOPE_EVENTS = "events"
SCOPE_MANDATORY = "mandatory"
SCOPE_ALL = "all"


class RecomputeDispatcher:
    """Schedule recomputations and keep a record of their outcomes."""

    _history: Deque[RecomputeOutcome] = deque(maxlen=settings.recompute_history_size)
    _history_lock = threading.Lock()

    @classmethod
    def schedule(
        cls,
        background_tasks: BackgroundTasks,
        trigger: str,
        event_ids: Optional[Iterable[int]] = None,
        scope: str = SCOPE_EVENTS,
    ) -> None:
        """Queue a recomputation to run once the response is sent.

        ``scope`` is ``events`` (recompute ``event_ids``), ``mandatory``
        (every mandatory automatic event) or ``all`` (every automatic
        event).  The set of events is resolved when the task runs, not
        when it is queued.
        """
        ids = list(event_ids or [])
        logger.debug("Scheduling %s recompute (%s) for %s", scope, trigger, ids or "resolved later")
        background_tasks.add_task(cls.run, trigger, ids, scope)

    @classmethod
    def run(
        cls,
        trigger: str,
        event_ids: Optional[List[int]] = None,
        scope: str = SCOPE_EVENTS,
    ) -> List[RecomputeOutcome]:
        """Run a recomputation now and record its outcomes.

        Never raises: failures are logged and recorded as ``failed``
        outcomes.
        """
        try:
            if scope == SCOPE_MANDATORY:
                outcomes = CostService.recompute_all_mandatory()
            elif scope == SCOPE_ALL:
                outcomes = CostService.recompute_all()
            else:
                outcomes = CostService.recompute_many(list(event_ids or []))
        except Exception:
            logger.exception("Recompute triggered by %s could not select events", trigger)
            return []

        outcomes = [o.model_copy(update={"trigger": trigger}) for o in outcomes]
        with cls._history_lock:
            cls._history.extendleft(outcomes)
        failed = [o.event_id for o in outcomes if o.status == "failed"]
        if failed:
            logger.error("Recompute triggered by %s failed for events %s", trigger, failed)
        return outcomes

    @classmethod
    def outcomes(cls, limit: Optional[int] = None) -> List[RecomputeOutcome]:
        """Recorded outcomes, newest first."""
        with cls._history_lock:
            history = list(cls._history)
        return history[:limit] if limit is not None else history

    @classmethod
    def clear_history(cls) -> None:
        with cls._history_lock:
            cls._history.clear()
