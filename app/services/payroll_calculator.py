"""
Payroll calculator - pure salary computation for one employee-month.

basic  = base_salary * basic_ratio
hra    = basic * hra_ratio
gross  = basic + hra + fuel_allowance + bonus
net    = gross - pf - professional_tax - per_day_salary * lop_days

All money is Decimal, rounded half-up to whole currency units. Net salary is
not clamped: a month with heavy loss of pay can produce a negative figure,
which is reported as-is.
"""
from decimal import Decimal, ROUND_HALF_UP

from app.core.errors import InvalidInput
from app.models.employee import PFStatus
from app.schemas.payroll import PayrollPolicy, PFMode, SalaryBreakdown, SalaryInput

_ONE = Decimal("1")


def _round_money(value: Decimal) -> Decimal:
    return value.quantize(_ONE, rounding=ROUND_HALF_UP)


def _pf_amount(pf_status: PFStatus, basic: Decimal, policy: PayrollPolicy) -> Decimal:
    if pf_status != PFStatus.APPLICABLE:
        return Decimal("0")
    if policy.pf_mode == PFMode.PERCENT_OF_BASIC:
        return _round_money(basic * policy.pf_rate)
    return _round_money(policy.pf_amount)


def compute_salary(salary_input: SalaryInput, policy: PayrollPolicy) -> SalaryBreakdown:
    """
    Compute the full breakdown. Reads nothing, writes nothing; the same input
    and policy always give the same breakdown.

    Args:
        salary_input: Compensation, month length, leave consumption and bonus
        policy: Salary structure and statutory constants

    Returns:
        SalaryBreakdown

    Raises:
        InvalidInput: base_salary <= 0, days_in_month <= 0, bonus < 0, or
            lop_days outside 0..days_in_month
    """
    base_salary = Decimal(salary_input.base_salary)
    days = salary_input.days_in_month
    bonus = Decimal(salary_input.bonus)
    consumption = salary_input.consumption

    if base_salary <= 0:
        raise InvalidInput(f"base_salary must be positive, got {base_salary}", field="base_salary")
    if days <= 0:
        raise InvalidInput(f"days_in_month must be positive, got {days}", field="days_in_month")
    if bonus < 0:
        raise InvalidInput(f"bonus must be >= 0, got {bonus}", field="bonus")
    if consumption.lop_days < 0 or consumption.lop_days > days:
        raise InvalidInput(
            f"lop_days {consumption.lop_days} outside 0..{days}",
            field="lop_days",
            days_in_month=days,
        )

    basic = _round_money(base_salary * policy.basic_ratio)
    hra = _round_money(basic * policy.hra_ratio)
    fuel_allowance = _round_money(policy.fuel_allowance)
    bonus = _round_money(bonus)
    gross_salary = basic + hra + fuel_allowance + bonus

    per_day_salary = _round_money(base_salary / Decimal(days))
    absent_deduction = per_day_salary * consumption.lop_days

    pf_amount = _pf_amount(salary_input.pf_status, basic, policy)
    professional_tax = _round_money(policy.professional_tax)

    net_salary = gross_salary - pf_amount - professional_tax - absent_deduction

    notes = []
    if salary_input.pf_status == PFStatus.PENDING:
        if salary_input.pf_start_date:
            notes.append(f"PF pending: starts {salary_input.pf_start_date.isoformat()}, not deducted this month")
        else:
            notes.append("PF pending: not deducted this month")
    elif salary_input.pf_status == PFStatus.NOT_APPLICABLE:
        notes.append("PF not applicable")
    elif policy.pf_mode == PFMode.PERCENT_OF_BASIC:
        notes.append(f"PF at {policy.pf_rate} of basic")
    if consumption.paid_leave_used:
        notes.append(f"{consumption.paid_leave_used} paid leave day(s) from casual/sick pool")
    if consumption.lop_days:
        notes.append(f"{consumption.lop_days} LOP day(s) at {per_day_salary}/day")
    if net_salary < 0:
        notes.append("Deductions exceed gross salary")

    return SalaryBreakdown(
        base_salary=base_salary,
        basic=basic,
        hra=hra,
        fuel_allowance=fuel_allowance,
        bonus=bonus,
        gross_salary=gross_salary,
        pf_amount=pf_amount,
        professional_tax=professional_tax,
        per_day_salary=per_day_salary,
        absent_deduction=absent_deduction,
        net_salary=net_salary,
        days_in_month=days,
        casual_leaves_consumed=consumption.casual_leaves_consumed,
        sick_leaves_consumed=consumption.sick_leaves_consumed,
        paid_leave_used=consumption.paid_leave_used,
        lop_days=consumption.lop_days,
        leaves_remaining=salary_input.leaves_remaining,
        calculation_notes="; ".join(notes),
    )
