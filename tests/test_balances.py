from decimal import Decimal

import pytest

from trip_planner_api.app.core.errors import NotFoundError
from trip_planner_api.app.schemas.payment import PaymentCreate
from trip_planner_api.app.services.balance_service import BalanceService
from trip_planner_api.app.services.cost_service import CostService
from trip_planner_api.app.services.payment_service import PaymentService


@pytest.fixture
def pay(run):
    """Report a payment and optionally have an admin move it to ``status``."""

    def _pay(participant_id, amount, status="confirmed", event_id=None):
        payment = run(PaymentService.create_payment(
            PaymentCreate(amount=Decimal(amount), event_id=event_id, payment_method="venmo"),
            {"user_id": participant_id},
        ))
        if status != "pending":
            payment = run(PaymentService.update_status(payment.id, status, {"user_id": participant_id}))
        return payment

    return _pay


def test_balance_sums_costs_and_confirmed_payments(make_participant, make_event, pay, run):
    alex = make_participant("Alex")
    make_participant("Blake")
    dinner = make_event(Decimal("200"), title="Dinner", start_time="2026-06-12T19:00:00")
    boat = make_event(Decimal("50"), split_type="fixed", title="Boat", start_time="2026-06-13T10:00:00")
    CostService.recompute_many([dinner, boat])
    pay(alex, "100")
    pay(alex, "40", status="pending")
    pay(alex, "30", status="rejected")

    balance = run(BalanceService.get_balance(alex))

    assert balance.total_owed == Decimal("150")
    assert balance.total_paid == Decimal("100")
    assert balance.remaining == Decimal("50")


def test_overpayment_gives_negative_remaining(make_participant, make_event, pay, run):
    alex = make_participant("Alex")
    event_id = make_event(Decimal("80"))
    CostService.recompute_event(event_id)
    pay(alex, "100")

    assert run(BalanceService.get_balance(alex)).remaining == Decimal("-20")


def test_groom_owes_nothing(make_participant, make_event, run):
    make_participant("Alex")
    groom = make_participant("Groom", is_groom=True)
    CostService.recompute_event(make_event(Decimal("300")))

    balance = run(BalanceService.get_balance(groom))
    assert balance.total_owed == Decimal("0")
    assert balance.remaining == Decimal("0")


def test_all_balances_include_everyone(make_participant, make_event, run):
    make_participant("Casey", trip_status="declined")
    make_participant("Alex")
    CostService.recompute_event(make_event(Decimal("90")))

    balances = run(BalanceService.get_all_balances())

    assert [b.display_name for b in balances] == ["Alex", "Casey"]
    assert balances[0].total_owed == Decimal("90")
    assert balances[1].total_owed == Decimal("0")


def test_summary_breakdown_in_schedule_order(make_participant, make_event, run):
    alex = make_participant("Alex")
    later = make_event(Decimal("20"), title="Brunch", start_time="2026-06-14T11:00:00")
    earlier = make_event(Decimal("10"), title="Dinner", start_time="2026-06-12T19:00:00")
    CostService.recompute_many([later, earlier])

    summary = run(BalanceService.get_summary(alex))

    assert [item.event_title for item in summary.breakdown] == ["Dinner", "Brunch"]
    assert summary.summary.total_owed == Decimal("30")
    assert summary.breakdown[0].note == "Even split"


def test_payment_status_changes_are_reflected_immediately(make_participant, make_event, pay, run):
    alex = make_participant("Alex")
    CostService.recompute_event(make_event(Decimal("100")))
    payment = pay(alex, "100")
    assert run(BalanceService.get_balance(alex)).remaining == Decimal("0")

    run(PaymentService.update_status(payment.id, "rejected", {"user_id": alex}))
    assert run(BalanceService.get_balance(alex)).remaining == Decimal("100")


def test_unknown_participant_raises(run):
    with pytest.raises(NotFoundError):
        run(BalanceService.get_balance(42))
