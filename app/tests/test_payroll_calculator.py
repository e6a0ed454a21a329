"""
Tests for the pure salary calculator
"""
from datetime import date
from decimal import Decimal

import pytest

from app.core.errors import InvalidInput
from app.models.employee import PFStatus
from app.schemas.leave import LeaveConsumptionResult
from app.schemas.payroll import PayrollPolicy, PFMode, SalaryInput
from app.services.payroll_calculator import compute_salary

POLICY = PayrollPolicy()


def salary_input(**overrides):
    values = dict(
        base_salary=Decimal("30000"),
        pf_status=PFStatus.NOT_APPLICABLE,
        days_in_month=30,
    )
    values.update(overrides)
    return SalaryInput(**values)


def test_auto_mode_salary():
    consumption = LeaveConsumptionResult(casual_leaves_consumed=4, sick_leaves_consumed=1, casual_debit=4, sick_debit=1)
    result = compute_salary(salary_input(consumption=consumption, leaves_remaining=1), POLICY)

    assert result.basic == Decimal("9000")
    assert result.hra == Decimal("6300")
    assert result.fuel_allowance == Decimal("1500")
    assert result.gross_salary == Decimal("16800")
    assert result.pf_amount == Decimal("0")
    assert result.professional_tax == Decimal("200")
    assert result.absent_deduction == Decimal("0")
    assert result.net_salary == Decimal("16600")
    assert (result.casual_leaves_consumed, result.sick_leaves_consumed, result.lop_days) == (4, 1, 0)
    assert result.leaves_remaining == 1


def test_lop_mode_salary():
    result = compute_salary(salary_input(consumption=LeaveConsumptionResult(lop_days=5)), POLICY)
    assert result.per_day_salary == Decimal("1000")
    assert result.absent_deduction == Decimal("5000")
    assert result.net_salary == Decimal("11600")
    assert result.total_deductions == Decimal("5200")


def test_flat_pf_when_applicable():
    result = compute_salary(salary_input(pf_status=PFStatus.APPLICABLE), POLICY)
    assert result.pf_amount == Decimal("1800")
    assert result.net_salary == Decimal("14800")


def test_percent_of_basic_pf():
    policy = PayrollPolicy(pf_mode=PFMode.PERCENT_OF_BASIC, pf_rate=Decimal("0.12"))
    result = compute_salary(salary_input(pf_status=PFStatus.APPLICABLE), policy)
    assert result.pf_amount == Decimal("1080")


def test_pending_pf_not_deducted_and_noted():
    result = compute_salary(
        salary_input(pf_status=PFStatus.PENDING, pf_start_date=date(2024, 6, 1)),
        POLICY,
    )
    assert result.pf_amount == Decimal("0")
    assert "PF pending" in result.calculation_notes
    assert "2024-06-01" in result.calculation_notes


def test_bonus_added_to_gross():
    result = compute_salary(salary_input(bonus=Decimal("2500")), POLICY)
    assert result.bonus == Decimal("2500")
    assert result.gross_salary == Decimal("19300")
    assert result.net_salary == Decimal("19100")


def test_rounding_half_up_to_whole_units():
    # basic 10001 * 0.30 = 3000.3 -> 3000; hra 3000 * 0.70 = 2100
    # per day 10001 / 31 = 322.6... -> 323
    result = compute_salary(salary_input(base_salary=Decimal("10001"), days_in_month=31), POLICY)
    assert result.basic == Decimal("3000")
    assert result.hra == Decimal("2100")
    assert result.per_day_salary == Decimal("323")

    # 12345 * 0.30 = 3703.5 -> 3704 (half up)
    result = compute_salary(salary_input(base_salary=Decimal("12345")), POLICY)
    assert result.basic == Decimal("3704")


def test_net_salary_may_go_negative():
    result = compute_salary(
        salary_input(base_salary=Decimal("9000"), consumption=LeaveConsumptionResult(lop_days=30)),
        POLICY,
    )
    assert result.net_salary < 0
    assert "exceed" in result.calculation_notes


def test_deterministic():
    args = salary_input(consumption=LeaveConsumptionResult(lop_days=2), bonus=Decimal("100"))
    assert compute_salary(args, POLICY) == compute_salary(args, POLICY)


@pytest.mark.parametrize(
    "overrides",
    [
        {"base_salary": Decimal("0")},
        {"base_salary": Decimal("-100")},
        {"days_in_month": 0},
        {"bonus": Decimal("-1")},
        {"consumption": LeaveConsumptionResult(lop_days=31)},
    ],
)
def test_invalid_inputs(overrides):
    with pytest.raises(InvalidInput):
        compute_salary(salary_input(**overrides), POLICY)
