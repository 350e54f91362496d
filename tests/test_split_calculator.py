from decimal import Decimal

import pytest

from trip_planner_api.app.core.errors import InvalidConfigurationError
from trip_planner_api.app.services.split_calculator import SplitCalculator


def test_even_split_divides_total():
    shares = SplitCalculator.compute_shares(Decimal("1500"), "even", [1, 2, 3, 4, 5])
    assert set(shares) == {1, 2, 3, 4, 5}
    assert all(s.amount == Decimal("300") for s in shares.values())
    assert all(s.note == "Even split" for s in shares.values())


def test_even_split_is_conserved_for_uneven_division():
    shares = SplitCalculator.compute_shares(Decimal("100"), "even", [1, 2, 3])
    total = sum(s.amount for s in shares.values())
    assert abs(total - Decimal("100")) < Decimal("0.000001")


def test_even_split_covering_groom_note():
    shares = SplitCalculator.compute_shares(Decimal("1500"), "even", [1, 2, 3, 4, 5], True)
    assert shares[1].amount == Decimal("300")
    assert shares[1].note == "$1500 ÷ 5 (covers groom)"


def test_fixed_rate_without_groom():
    shares = SplitCalculator.compute_shares(Decimal("50"), "fixed", [1, 2])
    assert shares[1].amount == Decimal("50")
    assert shares[1].note == "$50/person"


def test_fixed_rate_absorbs_groom_seat():
    shares = SplitCalculator.compute_shares(Decimal("100"), "fixed", [1, 2, 3], True)
    assert shares[1].amount == Decimal("100") * 4 / 3
    assert shares[1].note == "$100/person (covers groom)"
    collected = sum(s.amount for s in shares.values())
    assert abs(collected - Decimal("400")) < Decimal("0.000001")


def test_duplicate_payers_counted_once():
    shares = SplitCalculator.compute_shares(Decimal("90"), "even", [1, 1, 2, 3])
    assert len(shares) == 3
    assert shares[1].amount == Decimal("30")


@pytest.mark.parametrize("total, payers", [(Decimal("0"), [1, 2]), (Decimal("100"), [])])
def test_nothing_to_allocate_returns_none(total, payers):
    assert SplitCalculator.compute_shares(total, "even", payers) is None


def test_custom_split_is_rejected():
    with pytest.raises(InvalidConfigurationError):
        SplitCalculator.compute_shares(Decimal("100"), "custom", [1])


def test_unknown_split_is_rejected():
    with pytest.raises(InvalidConfigurationError):
        SplitCalculator.compute_shares(Decimal("100"), "weighted", [1])


def test_note_rounds_half_dollars_up():
    shares = SplitCalculator.compute_shares(Decimal("12.50"), "fixed", [1, 2], True)
    assert shares[1].note == "$13/person (covers groom)"
    assert shares[1].amount == Decimal("12.50") * 3 / 2

    shares = SplitCalculator.compute_shares(Decimal("10.5"), "even", [1, 2, 3], True)
    assert shares[1].note == "$11 ÷ 3 (covers groom)"
