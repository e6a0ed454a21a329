"""
Monthly attendance service - map absent days onto leave balances and LOP.

Policy (leave_mode):
- AUTO: casual first, then sick, the rest is loss of pay.
- PAID: casual + sick form one paid pool; the rest is loss of pay. The pool is
  drained casual first when the ledger is debited.
- LOP: every absent day is loss of pay; balances untouched.

A month has at most one attendance record. Saving again replaces it: the prior
record's debits are credited back before the new ones are applied.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import InvalidInput, InvalidState, NotFound
from app.core.locking import employee_lock
from app.models.attendance import AttendanceRecord, LeaveMode
from app.models.employee import Employee
from app.models.leave import LeaveTransactionAction, LeaveType
from app.schemas.attendance import AttendancePreviewOut
from app.schemas.leave import LeaveConsumptionResult
from app.services import leave_ledger_service
from app.services.audit_service import log_audit
from app.utils.year_month import days_in_month, normalize_year_month, year_of

logger = logging.getLogger(__name__)


def _check_count(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{name} must be a whole number, got {value!r}", field=name)
    if value < 0:
        raise InvalidInput(f"{name} must be >= 0, got {value}", field=name)
    return value


def _check_leave_mode(leave_mode) -> LeaveMode:
    try:
        return LeaveMode(leave_mode)
    except ValueError:
        raise InvalidInput(f"Unknown leave mode {leave_mode!r}", field="leave_mode")


def resolve_consumption(
    absent_days: int,
    leave_mode: LeaveMode,
    casual_remaining: int,
    sick_remaining: int,
) -> LeaveConsumptionResult:
    """
    Decide how absent days are accounted for. Pure: reads and writes nothing.

    Args:
        absent_days: Days absent in the month (>= 0)
        leave_mode: AUTO, PAID or LOP
        casual_remaining: Casual balance available
        sick_remaining: Sick balance available

    Returns:
        LeaveConsumptionResult whose four figures sum to absent_days

    Raises:
        InvalidInput: If a count is negative or not whole, or the mode is unknown
        InvalidState: If the computed figures do not account for every absent day
    """
    absent_days = _check_count("absent_days", absent_days)
    casual_remaining = _check_count("casual_remaining", casual_remaining)
    sick_remaining = _check_count("sick_remaining", sick_remaining)
    leave_mode = _check_leave_mode(leave_mode)

    if leave_mode == LeaveMode.AUTO:
        casual = min(absent_days, casual_remaining)
        sick = min(absent_days - casual, sick_remaining)
        result = LeaveConsumptionResult(
            casual_leaves_consumed=casual,
            sick_leaves_consumed=sick,
            paid_leave_used=0,
            lop_days=absent_days - casual - sick,
            casual_debit=casual,
            sick_debit=sick,
        )
    elif leave_mode == LeaveMode.PAID:
        paid = min(absent_days, casual_remaining + sick_remaining)
        casual_debit = min(paid, casual_remaining)
        result = LeaveConsumptionResult(
            casual_leaves_consumed=0,
            sick_leaves_consumed=0,
            paid_leave_used=paid,
            lop_days=absent_days - paid,
            casual_debit=casual_debit,
            sick_debit=paid - casual_debit,
        )
    elif leave_mode == LeaveMode.LOP:
        result = LeaveConsumptionResult(lop_days=absent_days)
    else:
        raise InvalidInput(f"Unhandled leave mode {leave_mode!r}", field="leave_mode")

    if result.accounted_days != absent_days:
        raise InvalidState(
            "Leave consumption does not account for every absent day",
            absent_days=absent_days,
            accounted_days=result.accounted_days,
            leave_mode=leave_mode.value,
        )
    if result.casual_debit + result.sick_debit != absent_days - result.lop_days:
        raise InvalidState(
            "Ledger debit plan does not match the paid days",
            casual_debit=result.casual_debit,
            sick_debit=result.sick_debit,
            lop_days=result.lop_days,
        )
    return result


def _validate_month_input(db: Session, employee_id: int, year_month: str, absent_days) -> tuple:
    year_month = normalize_year_month(year_month)
    dim = days_in_month(year_month)
    absent_days = _check_count("absent_days", absent_days)
    if absent_days > dim:
        raise InvalidInput(
            f"absent_days {absent_days} exceeds the {dim} days in {year_month}",
            field="absent_days",
            days_in_month=dim,
        )
    if not db.query(Employee.id).filter(Employee.id == employee_id).first():
        raise NotFound("Employee", employee_id)
    return year_month, dim, absent_days


def _get_record(db: Session, employee_id: int, year_month: str) -> Optional[AttendanceRecord]:
    return (
        db.query(AttendanceRecord)
        .filter(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.year_month == year_month,
        )
        .first()
    )


def preview_attendance(
    db: Session,
    employee_id: int,
    year_month: str,
    absent_days: int,
    leave_mode: LeaveMode = LeaveMode.AUTO,
) -> AttendancePreviewOut:
    """
    Show what saving would do, without touching the ledger.

    If the month already has a record, its debits count as available, since a
    save would credit them back first.
    """
    year_month, dim, absent_days = _validate_month_input(db, employee_id, year_month, absent_days)
    leave_mode = _check_leave_mode(leave_mode)
    year = year_of(year_month)

    casual_remaining = leave_ledger_service.remaining(db, employee_id, year, LeaveType.CASUAL)
    sick_remaining = leave_ledger_service.remaining(db, employee_id, year, LeaveType.SICK)
    existing = _get_record(db, employee_id, year_month)
    if existing:
        casual_remaining += existing.casual_debited
        sick_remaining += existing.sick_debited

    consumption = resolve_consumption(absent_days, leave_mode, casual_remaining, sick_remaining)
    return AttendancePreviewOut(
        employee_id=employee_id,
        year_month=year_month,
        days_in_month=dim,
        absent_days=absent_days,
        leave_mode=leave_mode,
        casual_remaining=casual_remaining,
        sick_remaining=sick_remaining,
        consumption=consumption,
    )


def save_attendance(
    db: Session,
    employee_id: int,
    year_month: str,
    absent_days: int,
    leave_mode: LeaveMode = LeaveMode.AUTO,
    actor_id: Optional[int] = None,
) -> AttendanceRecord:
    """
    Record a month's attendance and debit the ledger accordingly.

    Runs under the employee lock and commits once: restoring a prior record's
    debits, resolving, debiting and upserting the record succeed together or
    not at all.

    Args:
        db: Database session
        employee_id: Employee ID
        year_month: Month (YYYY-MM)
        absent_days: Days absent (0..days in month)
        leave_mode: AUTO, PAID or LOP
        actor_id: HR user recording the attendance

    Returns:
        The saved AttendanceRecord

    Raises:
        InvalidInput: Malformed month, out-of-range absent days or unknown mode
        NotFound: Unknown employee
        InsufficientBalance: The ledger changed under the resolver (should not happen under the lock)
    """
    year_month, dim, absent_days = _validate_month_input(db, employee_id, year_month, absent_days)
    leave_mode = _check_leave_mode(leave_mode)
    year = year_of(year_month)

    with employee_lock(employee_id):
        leave_ledger_service.ensure_balances(db, employee_id, year)
        try:
            record = _get_record(db, employee_id, year_month)
            previous = None
            if record:
                previous = {
                    "absent_days": record.absent_days,
                    "leave_mode": record.leave_mode.value,
                    "casual_debited": record.casual_debited,
                    "sick_debited": record.sick_debited,
                }
                for lt, debited in ((LeaveType.CASUAL, record.casual_debited), (LeaveType.SICK, record.sick_debited)):
                    if debited:
                        leave_ledger_service.restore(
                            db, employee_id, lt, debited, year,
                            action=LeaveTransactionAction.ATTENDANCE_RECREDIT.value,
                            attendance_record_id=record.id,
                            actor_id=actor_id,
                            remarks=f"Attendance for {year_month} replaced",
                        )

            consumption = resolve_consumption(
                absent_days,
                leave_mode,
                leave_ledger_service.remaining(db, employee_id, year, LeaveType.CASUAL),
                leave_ledger_service.remaining(db, employee_id, year, LeaveType.SICK),
            )

            if record is None:
                record = AttendanceRecord(employee_id=employee_id, year_month=year_month)
                db.add(record)
            record.days_in_month = dim
            record.absent_days = absent_days
            record.leave_mode = leave_mode
            record.casual_leaves_consumed = consumption.casual_leaves_consumed
            record.sick_leaves_consumed = consumption.sick_leaves_consumed
            record.paid_leave_used = consumption.paid_leave_used
            record.lop_days = consumption.lop_days
            record.casual_debited = consumption.casual_debit
            record.sick_debited = consumption.sick_debit
            record.recorded_by = actor_id
            db.flush()

            for lt, debit in ((LeaveType.CASUAL, consumption.casual_debit), (LeaveType.SICK, consumption.sick_debit)):
                if debit:
                    leave_ledger_service.consume(
                        db, employee_id, lt, debit, year,
                        action=LeaveTransactionAction.ATTENDANCE_DEDUCT.value,
                        attendance_record_id=record.id,
                        actor_id=actor_id,
                        remarks=f"Attendance {year_month} ({leave_mode.value})",
                    )

            log_audit(
                db=db,
                actor_id=actor_id,
                action="ATTENDANCE_SAVE",
                entity_type="attendance_records",
                entity_id=record.id,
                meta={
                    "employee_id": employee_id,
                    "year_month": year_month,
                    "absent_days": absent_days,
                    "leave_mode": leave_mode.value,
                    "consumption": consumption.model_dump(),
                    "previous": previous,
                },
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

    db.refresh(record)
    logger.info(
        "Saved attendance for employee %s %s: absent=%s mode=%s casual=%s sick=%s paid=%s lop=%s",
        employee_id, year_month, absent_days, leave_mode.value,
        record.casual_leaves_consumed, record.sick_leaves_consumed,
        record.paid_leave_used, record.lop_days,
    )
    return record


def get_attendance(db: Session, employee_id: int, year_month: str) -> AttendanceRecord:
    """
    Raises:
        NotFound: If no attendance has been recorded for the month
    """
    year_month = normalize_year_month(year_month)
    record = _get_record(db, employee_id, year_month)
    if not record:
        raise NotFound("Attendance record", f"{employee_id}/{year_month}")
    return record


def find_attendance(db: Session, employee_id: int, year_month: str) -> Optional[AttendanceRecord]:
    """Attendance record for the month, or None."""
    return _get_record(db, employee_id, normalize_year_month(year_month))
