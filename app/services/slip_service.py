"""
Salary slip service - the persisted, immutable payroll record per employee-month.

A slip is computed once and then served as stored. It is only recomputed when
the caller explicitly asks for regeneration, which replaces the stored slip as
a whole and bumps its generation.
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import InvalidInput, NotFound
from app.core.locking import employee_lock
from app.models.employee import Employee
from app.models.payroll import SalarySlip
from app.schemas.leave import LeaveConsumptionResult
from app.schemas.payroll import SalaryBreakdown, SalaryInput, SalarySlipOut, SlipResult, SlipSource
from app.services import leave_ledger_service as ledger
from app.services.attendance_service import find_attendance
from app.services.audit_service import log_audit
from app.services.bonus_service import get_bonus_amount
from app.services.employee_service import effective_pf_status, get_employee
from app.services.payroll_calculator import compute_salary
from app.services.policy_service import payroll_policy_for
from app.utils.datetime_utils import now_utc
from app.utils.year_month import days_in_month, normalize_year_month, year_of

logger = logging.getLogger(__name__)

NO_ATTENDANCE_NOTE = "No attendance recorded for the month; no absences assumed"


def _get_slip(db: Session, employee_id: int, year_month: str) -> Optional[SalarySlip]:
    return (
        db.query(SalarySlip)
        .populate_existing()
        .filter(SalarySlip.employee_id == employee_id, SalarySlip.year_month == year_month)
        .first()
    )


def _result(slip: SalarySlip, source: SlipSource, message: str) -> SlipResult:
    return SlipResult(slip=SalarySlipOut.model_validate(slip), source=source, message=message)


def _compute(db: Session, employee: Employee, year_month: str) -> tuple:
    """Gather every input for the month and run the calculator. Returns (breakdown, absent_days)."""
    year = year_of(year_month)
    policy = payroll_policy_for(db, year)

    record = find_attendance(db, employee.id, year_month)
    if record:
        consumption = LeaveConsumptionResult(
            casual_leaves_consumed=record.casual_leaves_consumed,
            sick_leaves_consumed=record.sick_leaves_consumed,
            paid_leave_used=record.paid_leave_used,
            lop_days=record.lop_days,
            casual_debit=record.casual_debited,
            sick_debit=record.sick_debited,
        )
        absent_days = record.absent_days
        month_days = record.days_in_month
    else:
        consumption = LeaveConsumptionResult()
        absent_days = 0
        month_days = days_in_month(year_month)

    breakdown = compute_salary(
        SalaryInput(
            base_salary=employee.base_salary,
            pf_status=effective_pf_status(employee, year_month),
            pf_start_date=employee.pf_start_date,
            days_in_month=month_days,
            consumption=consumption,
            bonus=get_bonus_amount(db, employee.id, year_month),
            leaves_remaining=ledger.leaves_remaining(db, employee.id, year),
        ),
        policy,
    )
    if record is None:
        notes = "; ".join(n for n in (NO_ATTENDANCE_NOTE, breakdown.calculation_notes) if n)
        breakdown = breakdown.model_copy(update={"calculation_notes": notes})
    return breakdown, absent_days


def _apply(slip: SalarySlip, employee: Employee, breakdown: SalaryBreakdown, absent_days: int) -> None:
    slip.employee_name = employee.name
    slip.department = employee.department
    slip.designation = employee.designation
    slip.pf_status = effective_pf_status(employee, slip.year_month)
    slip.pf_start_date = employee.pf_start_date
    slip.absent_days = absent_days
    for name, value in breakdown.model_dump().items():
        setattr(slip, name, value)


def get_or_create(
    db: Session,
    employee_id: int,
    year_month: str,
    force_regenerate: bool = False,
    actor_id: Optional[int] = None,
) -> SlipResult:
    """
    Return the stored slip for the month, computing and persisting it if needed.

    - Stored and not forced: returned unchanged; nothing is recomputed.
    - Missing or forced: computed from the month's attendance record, the
      compensation profile, the month's bonus and the ledger, then persisted
      (replacing the prior slip on regeneration).

    Never debits or credits the ledger.

    Forced regeneration with unchanged inputs reproduces the same amounts and
    leave figures; only the `generation` and `regenerated_at` metadata move.

    Args:
        db: Database session
        employee_id: Employee ID
        year_month: Month (YYYY-MM)
        force_regenerate: Recompute and replace an existing slip
        actor_id: HR user asking for the slip

    Returns:
        SlipResult with source existing, generated or regenerated

    Raises:
        InvalidInput: Malformed month, or compensation the calculator rejects
        NotFound: Unknown employee
    """
    year_month = normalize_year_month(year_month)
    employee = get_employee(db, employee_id)

    with employee_lock(employee_id):
        slip = _get_slip(db, employee_id, year_month)
        if slip is not None and not force_regenerate:
            return _result(slip, SlipSource.EXISTING, "Salary slip already exists for this month")

        # Policy and ledger rows are seeded before the slip is written
        payroll_policy_for(db, year_of(year_month))
        ledger.ensure_balances(db, employee_id, year_of(year_month))

        breakdown, absent_days = _compute(db, employee, year_month)

        if slip is not None:
            previous_net = slip.net_salary
            _apply(slip, employee, breakdown, absent_days)
            slip.generation = slip.generation + 1
            slip.generated_by = actor_id
            slip.regenerated_at = now_utc()
            source = SlipSource.REGENERATED
            message = "Salary slip regenerated"
        else:
            previous_net = None
            slip = SalarySlip(employee_id=employee_id, year_month=year_month, generation=1, generated_by=actor_id)
            _apply(slip, employee, breakdown, absent_days)
            db.add(slip)
            source = SlipSource.GENERATED
            message = "Salary slip generated"

        try:
            db.flush()
        except IntegrityError:
            # Another process stored the month first; its slip stands
            db.rollback()
            winner = _get_slip(db, employee_id, year_month)
            if winner is None:
                raise
            logger.info("Salary slip for employee %s %s was generated concurrently", employee_id, year_month)
            return _result(winner, SlipSource.EXISTING, "Salary slip already exists for this month")

        log_audit(
            db=db,
            actor_id=actor_id,
            action="SLIP_REGENERATE" if source == SlipSource.REGENERATED else "SLIP_GENERATE",
            entity_type="salary_slips",
            entity_id=slip.id,
            meta={
                "employee_id": employee_id,
                "year_month": year_month,
                "generation": slip.generation,
                "net_salary": breakdown.net_salary,
                "previous_net_salary": previous_net,
            },
        )
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(slip)

    logger.info(
        "Salary slip %s for employee %s %s: gross=%s net=%s (generation %s)",
        source.value, employee_id, year_month, slip.gross_salary, slip.net_salary, slip.generation,
    )
    return _result(slip, source, message)


def get_existing_slip(db: Session, employee_id: int, year_month: str) -> SalarySlip:
    """
    Stored slip for the month; never computes one.

    Raises:
        NotFound: If no slip has been generated for the month
    """
    slip = _get_slip(db, employee_id, normalize_year_month(year_month))
    if not slip:
        raise NotFound("Salary slip", f"{employee_id}/{year_month}")
    return slip


def list_salary_history(
    db: Session,
    employee_id: Optional[int] = None,
    department: Optional[str] = None,
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> List[SalarySlip]:
    """
    Stored slips, newest month first. Every filter is optional; department
    filters on the department recorded on the slip.
    """
    if month is not None and (month < 1 or month > 12):
        raise InvalidInput(f"Invalid month {month}. Must be between 1 and 12.", field="month")

    query = db.query(SalarySlip)
    if employee_id is not None:
        query = query.filter(SalarySlip.employee_id == employee_id)
    if department:
        query = query.filter(SalarySlip.department == department)
    if year is not None and month is not None:
        query = query.filter(SalarySlip.year_month == f"{year:04d}-{month:02d}")
    elif year is not None:
        query = query.filter(SalarySlip.year_month.like(f"{year:04d}-%"))
    elif month is not None:
        query = query.filter(SalarySlip.year_month.like(f"%-{month:02d}"))

    return query.order_by(SalarySlip.year_month.desc(), SalarySlip.employee_name).all()
