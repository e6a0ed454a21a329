"""
Tests for the pure absence-to-leave resolver
"""
import pytest

from app.core.errors import InvalidInput
from app.models.attendance import LeaveMode
from app.services.attendance_service import resolve_consumption


def figures(result):
    return (
        result.casual_leaves_consumed,
        result.sick_leaves_consumed,
        result.paid_leave_used,
        result.lop_days,
    )


def test_auto_uses_casual_then_sick():
    result = resolve_consumption(5, LeaveMode.AUTO, 4, 2)
    assert figures(result) == (4, 1, 0, 0)
    assert (result.casual_debit, result.sick_debit) == (4, 1)


def test_auto_overflow_goes_to_lop():
    result = resolve_consumption(9, LeaveMode.AUTO, 4, 2)
    assert figures(result) == (4, 2, 0, 3)


def test_auto_with_empty_balances_is_all_lop():
    result = resolve_consumption(3, LeaveMode.AUTO, 0, 0)
    assert figures(result) == (0, 0, 0, 3)
    assert (result.casual_debit, result.sick_debit) == (0, 0)


def test_lop_mode_never_consumes():
    result = resolve_consumption(5, LeaveMode.LOP, 4, 2)
    assert figures(result) == (0, 0, 0, 5)
    assert (result.casual_debit, result.sick_debit) == (0, 0)


def test_paid_mode_single_pool():
    result = resolve_consumption(5, LeaveMode.PAID, 4, 2)
    assert figures(result) == (0, 0, 5, 0)
    # Pool drained casual first
    assert (result.casual_debit, result.sick_debit) == (4, 1)


def test_paid_mode_overflow():
    result = resolve_consumption(8, LeaveMode.PAID, 1, 2)
    assert figures(result) == (0, 0, 3, 5)
    assert (result.casual_debit, result.sick_debit) == (1, 2)


@pytest.mark.parametrize("mode", list(LeaveMode))
def test_zero_absences_is_all_zero(mode):
    result = resolve_consumption(0, mode, 4, 2)
    assert figures(result) == (0, 0, 0, 0)
    assert (result.casual_debit, result.sick_debit) == (0, 0)


@pytest.mark.parametrize("mode", list(LeaveMode))
@pytest.mark.parametrize("absent", [0, 1, 2, 4, 6, 7, 15, 31])
@pytest.mark.parametrize("casual,sick", [(0, 0), (4, 2), (1, 0), (0, 2), (10, 10)])
def test_every_absent_day_accounted_once(mode, absent, casual, sick):
    result = resolve_consumption(absent, mode, casual, sick)
    assert sum(figures(result)) == absent
    assert all(v >= 0 for v in figures(result))
    assert result.casual_debit <= casual
    assert result.sick_debit <= sick
    assert result.casual_debit + result.sick_debit == absent - result.lop_days


def test_resolver_does_not_mutate_inputs():
    first = resolve_consumption(3, LeaveMode.AUTO, 2, 2)
    second = resolve_consumption(3, LeaveMode.AUTO, 2, 2)
    assert first == second


def test_negative_absent_days_rejected():
    with pytest.raises(InvalidInput):
        resolve_consumption(-1, LeaveMode.AUTO, 4, 2)


def test_fractional_absent_days_rejected():
    with pytest.raises(InvalidInput):
        resolve_consumption(1.5, LeaveMode.AUTO, 4, 2)


def test_unknown_mode_rejected():
    with pytest.raises(InvalidInput):
        resolve_consumption(2, "HALF_PAY", 4, 2)


def test_mode_accepts_plain_string():
    result = resolve_consumption(2, "LOP", 4, 2)
    assert result.lop_days == 2


@pytest.mark.parametrize(
    "mode, expected",
    [
        ("auto", (4, 1, 0, 0)),
        ("paid", (0, 0, 5, 0)),
        ("Lop", (0, 0, 0, 5)),
    ],
)
def test_lowercase_mode_values_accepted(mode, expected):
    assert figures(resolve_consumption(5, mode, 4, 2)) == expected
