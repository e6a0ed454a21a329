"""
Leave ledger service - per-employee, per-year casual/sick/earned balances.

- One row per (employee, year, leave type); total is seeded from policy for the year.
- remaining = total - used, and 0 <= used <= total always holds.
- consume/restore are conditional UPDATEs: the check and the write happen in
  one statement, so two concurrent consumers can never overdraw a balance.
- consume/restore flush only; the calling operation owns the commit.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import InsufficientBalance, InvalidInput, NotFound
from app.models.employee import Employee
from app.models.leave import (
    LeaveBalance,
    LeaveTransaction,
    LeaveTransactionAction,
    LeaveType,
    LEDGER_LEAVE_TYPES,
)
from app.schemas.leave import BalanceItemOut, LedgerSummaryOut
from app.services.policy_service import entitlement_totals
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


def _check_days(days) -> int:
    # bool is an int subclass; True is not a day count
    if isinstance(days, bool) or not isinstance(days, int):
        raise InvalidInput(f"Leave days must be a whole number, got {days!r}", field="days")
    if days <= 0:
        raise InvalidInput(f"Leave days must be positive, got {days}", field="days")
    return days


def _check_leave_type(leave_type) -> LeaveType:
    try:
        return LeaveType(leave_type)
    except ValueError:
        raise InvalidInput(f"Unknown leave type {leave_type!r}", field="leave_type")


def _get_balance_row(
    db: Session,
    employee_id: int,
    year: int,
    leave_type: LeaveType,
) -> Optional[LeaveBalance]:
    return (
        db.query(LeaveBalance)
        .populate_existing()
        .filter(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.year == year,
            LeaveBalance.leave_type == leave_type,
        )
        .first()
    )


def _log_transaction(
    db: Session,
    employee_id: int,
    year: int,
    leave_type: LeaveType,
    delta_days: int,
    action: str,
    remarks: Optional[str],
    action_by_employee_id: Optional[int],
    leave_request_id: Optional[int] = None,
    attendance_record_id: Optional[int] = None,
) -> None:
    t = LeaveTransaction(
        employee_id=employee_id,
        leave_request_id=leave_request_id,
        attendance_record_id=attendance_record_id,
        year=year,
        leave_type=leave_type,
        delta_days=delta_days,
        action=action,
        remarks=remarks,
        action_by_employee_id=action_by_employee_id,
        action_at=now_utc(),
    )
    db.add(t)


def ensure_balances(db: Session, employee_id: int, year: int) -> List[LeaveBalance]:
    """
    Ensure ledger rows exist for every leave type for (employee_id, year).

    Missing rows are created with used=0 and total from the year's policy and
    committed immediately. Call this before an operation starts mutating, never
    in the middle of one. A concurrent creator wins the unique key; the loser
    rolls back and re-reads.

    Raises:
        NotFound: If the employee does not exist
    """
    if not db.query(Employee.id).filter(Employee.id == employee_id).first():
        raise NotFound("Employee", employee_id)

    rows: Dict[LeaveType, LeaveBalance] = {}
    missing = []
    for lt in LEDGER_LEAVE_TYPES:
        bal = _get_balance_row(db, employee_id, year, lt)
        if bal is None:
            missing.append(lt)
        else:
            rows[lt] = bal

    if missing:
        totals = entitlement_totals(db, year)
        for lt in missing:
            db.add(LeaveBalance(
                employee_id=employee_id,
                year=year,
                leave_type=lt,
                total=totals[lt],
                used=0,
            ))
        try:
            db.commit()
            logger.info(
                "Created leave balances for employee %s year %s: %s",
                employee_id, year, ", ".join(lt.value for lt in missing),
            )
        except IntegrityError:
            db.rollback()
            logger.info("Leave balances for employee %s year %s created concurrently; re-reading", employee_id, year)
        for lt in missing:
            rows[lt] = _get_balance_row(db, employee_id, year, lt)

    return [rows[lt] for lt in LEDGER_LEAVE_TYPES]


def get_balances(db: Session, employee_id: int, year: int) -> List[LeaveBalance]:
    """All ledger rows for employee/year in casual, sick, earned order. Ensures rows exist first."""
    return ensure_balances(db, employee_id, year)


def remaining(db: Session, employee_id: int, year: int, leave_type: LeaveType) -> int:
    """Remaining days of one leave type for the year (total - used)."""
    leave_type = _check_leave_type(leave_type)
    bal = _get_balance_row(db, employee_id, year, leave_type)
    if bal is None:
        ensure_balances(db, employee_id, year)
        bal = _get_balance_row(db, employee_id, year, leave_type)
    return bal.remaining


def leaves_remaining(db: Session, employee_id: int, year: int) -> int:
    """Sum of remaining across all ledger leave types for the year."""
    return sum(b.remaining for b in get_balances(db, employee_id, year))


def ledger_summary(db: Session, employee_id: int, year: int) -> LedgerSummaryOut:
    rows = get_balances(db, employee_id, year)
    return LedgerSummaryOut(
        employee_id=employee_id,
        year=year,
        items=[BalanceItemOut.model_validate(r) for r in rows],
        leaves_remaining=sum(r.remaining for r in rows),
    )


def consume(
    db: Session,
    employee_id: int,
    leave_type: LeaveType,
    days: int,
    year: int,
    action: str = LeaveTransactionAction.APPROVE_DEDUCT.value,
    leave_request_id: Optional[int] = None,
    attendance_record_id: Optional[int] = None,
    actor_id: Optional[int] = None,
    remarks: Optional[str] = None,
) -> LeaveBalance:
    """
    Debit days from a balance.

    The check and the debit are one conditional UPDATE
    (used = used + days WHERE used + days <= total). If no row matched, the
    balance was insufficient and nothing changed. Flushes; does not commit.

    Args:
        db: Database session
        employee_id: Employee whose ledger is debited
        leave_type: CASUAL, SICK or EARNED
        days: Positive whole number of days
        year: Ledger year
        action: LeaveTransactionAction value recorded in the trail
        leave_request_id: Source leave request, if any
        attendance_record_id: Source attendance record, if any
        actor_id: Who caused the debit
        remarks: Free text for the trail

    Returns:
        The refreshed LeaveBalance row

    Raises:
        InvalidInput: If days is not a positive whole number or the leave type is unknown
        InsufficientBalance: If remaining < days
    """
    days = _check_days(days)
    leave_type = _check_leave_type(leave_type)

    if _get_balance_row(db, employee_id, year, leave_type) is None:
        ensure_balances(db, employee_id, year)

    updated = (
        db.query(LeaveBalance)
        .filter(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.year == year,
            LeaveBalance.leave_type == leave_type,
            LeaveBalance.used + days <= LeaveBalance.total,
        )
        .update({LeaveBalance.used: LeaveBalance.used + days}, synchronize_session=False)
    )
    bal = _get_balance_row(db, employee_id, year, leave_type)
    if updated == 0:
        raise InsufficientBalance(employee_id, leave_type, days, bal.remaining)

    _log_transaction(
        db, employee_id, year, leave_type, -days, action, remarks, actor_id,
        leave_request_id=leave_request_id,
        attendance_record_id=attendance_record_id,
    )
    db.flush()
    logger.info(
        "Consumed %s %s day(s) for employee %s year %s (used=%s/%s)",
        days, leave_type.value, employee_id, year, bal.used, bal.total,
    )
    return bal


def restore(
    db: Session,
    employee_id: int,
    leave_type: LeaveType,
    days: int,
    year: int,
    action: str = LeaveTransactionAction.MANUAL_RESTORE.value,
    leave_request_id: Optional[int] = None,
    attendance_record_id: Optional[int] = None,
    actor_id: Optional[int] = None,
    remarks: Optional[str] = None,
) -> LeaveBalance:
    """
    Credit days back to a balance. Inverse of consume.

    Conditional on used >= days, so used never goes negative. Flushes; does not commit.

    Raises:
        InvalidInput: If days is invalid, or more than was used would be restored
        NotFound: If the balance row does not exist
    """
    days = _check_days(days)
    leave_type = _check_leave_type(leave_type)

    if _get_balance_row(db, employee_id, year, leave_type) is None:
        raise NotFound("Leave balance", f"{employee_id}/{year}/{leave_type.value}")

    updated = (
        db.query(LeaveBalance)
        .filter(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.year == year,
            LeaveBalance.leave_type == leave_type,
            LeaveBalance.used >= days,
        )
        .update({LeaveBalance.used: LeaveBalance.used - days}, synchronize_session=False)
    )
    bal = _get_balance_row(db, employee_id, year, leave_type)
    if updated == 0:
        raise InvalidInput(
            f"Cannot restore {days} {leave_type.value} day(s): only {bal.used} used",
            employee_id=employee_id,
            leave_type=leave_type.value,
            requested=days,
            used=bal.used,
        )

    _log_transaction(
        db, employee_id, year, leave_type, days, action, remarks, actor_id,
        leave_request_id=leave_request_id,
        attendance_record_id=attendance_record_id,
    )
    db.flush()
    logger.info(
        "Restored %s %s day(s) for employee %s year %s (used=%s/%s)",
        days, leave_type.value, employee_id, year, bal.used, bal.total,
    )
    return bal


def get_transactions(
    db: Session,
    employee_id: int,
    year: Optional[int] = None,
    limit: int = 100,
) -> List[LeaveTransaction]:
    q = db.query(LeaveTransaction).filter(LeaveTransaction.employee_id == employee_id)
    if year is not None:
        q = q.filter(LeaveTransaction.year == year)
    return q.order_by(LeaveTransaction.action_at.desc(), LeaveTransaction.id.desc()).limit(limit).all()
