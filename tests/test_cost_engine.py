import asyncio
import sqlite3
import threading
from decimal import Decimal

import pytest

from trip_planner_api.app.core.db import get_connection
from trip_planner_api.app.core.errors import InvalidConfigurationError, NotFoundError
from trip_planner_api.app.schemas.cost import CostEntry
from trip_planner_api.app.services import cost_service
from trip_planner_api.app.services.cost_service import GROOM_NOTE, CostService
from trip_planner_api.app.services.recompute import SCOPE_ALL, SCOPE_MANDATORY, RecomputeDispatcher


@pytest.fixture
def crew(make_participant):
    """Five confirmed guests plus a confirmed groom."""
    guests = [make_participant(name) for name in ("Alex", "Blake", "Casey", "Drew", "Emery")]
    groom = make_participant("Groom", is_groom=True)
    return guests, groom


def test_even_split_covers_groom(crew, make_event, cost_rows):
    guests, groom = crew
    event_id = make_event(Decimal("1500"))

    outcome = CostService.recompute_event(event_id)

    rows = cost_rows(event_id)
    assert outcome.status == "recomputed"
    assert outcome.payer_count == 5
    assert outcome.per_person == Decimal("300")
    assert {pid: amount for pid, (amount, _) in rows.items() if pid != groom} == {g: Decimal("300") for g in guests}
    assert rows[groom] == (Decimal("0"), GROOM_NOTE)
    assert sum(amount for amount, _ in rows.values()) == Decimal("1500")


def test_recompute_follows_attendance(crew, make_event, cost_rows, database):
    guests, groom = crew
    event_id = make_event(Decimal("1500"))
    CostService.recompute_event(event_id)

    conn = sqlite3.connect(database)
    conn.execute("UPDATE participants SET trip_status = 'declined' WHERE id = ?", (guests[0],))
    conn.commit()
    conn.close()
    CostService.recompute_event(event_id)

    rows = cost_rows(event_id)
    assert guests[0] not in rows
    assert all(rows[g][0] == Decimal("375") for g in guests[1:])
    assert rows[groom][0] == Decimal("0")


def test_recompute_is_idempotent(crew, make_event, cost_rows):
    event_id = make_event(Decimal("1000"), split_type="fixed")
    CostService.recompute_event(event_id)
    first = cost_rows(event_id)
    CostService.recompute_event(event_id)
    assert cost_rows(event_id) == first


def test_fixed_rate_absorbs_groom(crew, make_event, cost_rows):
    guests, groom = crew
    event_id = make_event(Decimal("60"), split_type="fixed")

    CostService.recompute_event(event_id)

    rows = cost_rows(event_id)
    assert rows[guests[0]] == (Decimal("60") * 6 / 5, "$60/person (covers groom)")
    assert rows[groom][0] == Decimal("0")


def test_groom_pays_when_not_excluded(crew, make_event, cost_rows):
    guests, groom = crew
    event_id = make_event(Decimal("600"), exclude_groom=False)

    CostService.recompute_event(event_id)

    rows = cost_rows(event_id)
    assert len(rows) == 6
    assert rows[groom] == (Decimal("100"), "Even split")


def test_optional_event_charges_confirmed_rsvps(crew, make_event, make_rsvp, cost_rows):
    guests, groom = crew
    event_id = make_event(Decimal("200"), is_mandatory=False)
    make_rsvp(guests[0], event_id, "confirmed")
    make_rsvp(guests[1], event_id, "confirmed")
    make_rsvp(guests[2], event_id, "maybe")
    make_rsvp(guests[3], event_id, "declined")

    CostService.recompute_event(event_id)

    rows = cost_rows(event_id)
    assert rows == {guests[0]: (Decimal("100"), "Even split"), guests[1]: (Decimal("100"), "Even split")}


def test_rows_cleared_when_nobody_pays(crew, make_event, make_rsvp, cost_rows, database):
    guests, _ = crew
    event_id = make_event(Decimal("200"), is_mandatory=False)
    make_rsvp(guests[0], event_id, "confirmed")
    CostService.recompute_event(event_id)
    assert cost_rows(event_id)

    conn = sqlite3.connect(database)
    conn.execute("UPDATE rsvps SET status = 'declined' WHERE event_id = ?", (event_id,))
    conn.commit()
    conn.close()
    outcome = CostService.recompute_event(event_id)

    assert outcome.status == "cleared"
    assert cost_rows(event_id) == {}


def test_custom_event_is_never_recomputed(crew, make_event, cost_rows, run):
    guests, groom = crew
    event_id = make_event(Decimal("500"), split_type="custom")
    run(CostService.set_event_costs(
        event_id,
        [CostEntry(participant_id=guests[0], amount=Decimal("450")), CostEntry(participant_id=groom, amount=Decimal("50"))],
    ))

    outcome = CostService.recompute_event(event_id)

    assert outcome.status == "skipped"
    assert cost_rows(event_id) == {guests[0]: (Decimal("450"), None), groom: (Decimal("50"), None)}


def test_zero_cost_event_keeps_existing_rows(crew, make_event, cost_rows, run):
    guests, _ = crew
    event_id = make_event(Decimal("0"))
    run(CostService.set_event_costs(event_id, [CostEntry(participant_id=guests[0], amount=Decimal("10"))]))

    assert CostService.recompute_event(event_id).status == "skipped"
    assert cost_rows(event_id) == {guests[0]: (Decimal("10"), None)}


def test_missing_event_is_skipped():
    outcome = CostService.recompute_event(999)
    assert outcome.status == "skipped"
    assert outcome.reason == "event not found"


def test_calculate_rejects_custom_and_unknown(crew, make_event, run):
    event_id = make_event(Decimal("100"), split_type="custom")
    with pytest.raises(InvalidConfigurationError):
        run(CostService.calculate_event_costs(event_id))
    with pytest.raises(NotFoundError):
        run(CostService.calculate_event_costs(999))


def test_calculate_returns_rows(crew, make_event, run):
    guests, groom = crew
    event_id = make_event(Decimal("500"))
    rows = run(CostService.calculate_event_costs(event_id))
    assert [r.participant_id for r in rows] == sorted(guests + [groom])
    assert rows[0].display_name == "Alex"


def test_override_rejects_duplicates_and_unknown_participants(crew, make_event, run):
    guests, _ = crew
    event_id = make_event(Decimal("100"), split_type="custom")
    with pytest.raises(ValueError):
        run(CostService.set_event_costs(
            event_id,
            [CostEntry(participant_id=guests[0], amount=Decimal("1")), CostEntry(participant_id=guests[0], amount=Decimal("2"))],
        ))
    with pytest.raises(NotFoundError):
        run(CostService.set_event_costs(event_id, [CostEntry(participant_id=999, amount=Decimal("1"))]))


def test_override_on_even_event_is_replaced_by_next_recompute(crew, make_event, cost_rows, run):
    guests, _ = crew
    event_id = make_event(Decimal("1500"))
    run(CostService.set_event_costs(event_id, [CostEntry(participant_id=guests[0], amount=Decimal("1500"))]))

    CostService.recompute_event(event_id)

    assert cost_rows(event_id)[guests[0]][0] == Decimal("300")


def test_mandatory_sweep_skips_optional_events(crew, make_event, make_rsvp, cost_rows):
    guests, _ = crew
    mandatory = make_event(Decimal("500"))
    optional = make_event(Decimal("100"), is_mandatory=False)
    make_rsvp(guests[0], optional, "confirmed")

    outcomes = CostService.recompute_all_mandatory()

    assert [o.event_id for o in outcomes] == [mandatory]
    assert cost_rows(optional) == {}
    assert {o.event_id for o in CostService.recompute_all()} == {mandatory, optional}


def test_one_failing_event_does_not_stop_the_others(crew, make_event, cost_rows, monkeypatch):
    first = make_event(Decimal("500"))
    second = make_event(Decimal("500"))
    original = CostService.recompute_event

    def flaky(event_id):
        if event_id == first:
            raise sqlite3.OperationalError("database is locked")
        return original(event_id)

    monkeypatch.setattr(CostService, "recompute_event", flaky)
    outcomes = CostService.recompute_many([first, second])

    assert [o.status for o in outcomes] == ["failed", "recomputed"]
    assert "database is locked" in outcomes[0].reason
    assert cost_rows(second)


def test_dispatcher_records_failures(crew, make_event, monkeypatch):
    event_id = make_event(Decimal("500"))

    def broken(event_id):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(CostService, "recompute_event", broken)
    outcomes = RecomputeDispatcher.run("rsvp", [event_id])

    assert outcomes[0].status == "failed"
    assert outcomes[0].trigger == "rsvp"
    assert RecomputeDispatcher.outcomes()[0].event_id == event_id


def test_dispatcher_history_is_newest_first(crew, make_event):
    first = make_event(Decimal("100"))
    second = make_event(Decimal("100"), is_mandatory=False)
    RecomputeDispatcher.run("event_create", [first])
    RecomputeDispatcher.run("event_update", [second])

    history = RecomputeDispatcher.outcomes()
    assert [(o.event_id, o.trigger) for o in history] == [(second, "event_update"), (first, "event_create")]
    assert history[0].status == "cleared"
    assert len(RecomputeDispatcher.outcomes(limit=1)) == 1


def test_dispatcher_scopes(crew, make_event):
    make_event(Decimal("100"))
    make_event(Decimal("100"), is_mandatory=False)
    assert len(RecomputeDispatcher.run("trip_status", scope=SCOPE_MANDATORY)) == 1
    assert len(RecomputeDispatcher.run("groom_change", scope=SCOPE_ALL)) == 2


def test_concurrent_recomputes_stay_consistent(make_participant, make_event, make_rsvp, cost_rows):
    guests = [make_participant(f"Guest{i}") for i in range(7)]
    groom = make_participant("Groom", is_groom=True)
    event_id = make_event(Decimal("100"), is_mandatory=False)
    for pid in guests + [groom]:
        make_rsvp(pid, event_id, "confirmed")
    errors = []

    def recompute():
        try:
            for _ in range(20):
                CostService.recompute_event(event_id)
        except Exception as exc:
            errors.append(exc)

    def toggle_rsvp():
        try:
            for i in range(20):
                conn = get_connection()
                try:
                    conn.execute(
                        "UPDATE rsvps SET status = ? WHERE participant_id = ? AND event_id = ?",
                        ("declined" if i % 2 == 0 else "confirmed", guests[0], event_id),
                    )
                    conn.commit()
                finally:
                    conn.close()
        except Exception as exc:
            errors.append(exc)

    def override():
        try:
            for _ in range(5):
                asyncio.run(CostService.set_event_costs(
                    event_id, [CostEntry(participant_id=guests[1], amount=Decimal("100"))]
                ))
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=recompute) for _ in range(6)]
    threads += [threading.Thread(target=toggle_rsvp), threading.Thread(target=override)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    CostService.recompute_event(event_id)

    assert errors == []
    rows = cost_rows(event_id)
    # The last toggle left guests[0] confirmed.
    assert set(rows) == set(guests) | {groom}
    assert rows[groom] == (Decimal("0"), GROOM_NOTE)
    total = sum(amount for amount, _ in rows.values())
    assert abs(total - Decimal("100")) < Decimal("0.000001")


def test_event_locks_are_released_after_use(crew, make_event):
    event_id = make_event(Decimal("100"))
    lock = cost_service._event_lock(event_id)
    same_lock = cost_service._event_lock(event_id) is lock
    del lock
    assert same_lock

    CostService.recompute_event(event_id)

    assert event_id not in cost_service._event_locks
