"""
Leave service - submit, approve and reject leave requests

Lifecycle: PENDING -> APPROVED | REJECTED. Both outcomes are final.
The ledger is debited exactly once, when a request leaves PENDING for APPROVED.
"""
import logging
import uuid
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.errors import (
    DuplicatePendingRequest,
    InsufficientBalance,
    InvalidInput,
    InvalidState,
    NotFound,
)
from app.core.locking import employee_lock
from app.models.employee import Employee
from app.models.leave import (
    LeaveRequest,
    LeaveStatus,
    LeaveTransactionAction,
    LeaveType,
    TERMINAL_LEAVE_STATUSES,
)
from app.schemas.leave import LeaveStatsOut
from app.services import leave_ledger_service as ledger
from app.services.audit_service import log_audit
from app.utils.datetime_utils import now_utc
from app.utils.year_month import normalize_year_month, year_of

logger = logging.getLogger(__name__)


def _pending_for_month(db: Session, employee_id: int, year_month: str) -> Optional[LeaveRequest]:
    return (
        db.query(LeaveRequest)
        .filter(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.year_month == year_month,
            LeaveRequest.status == LeaveStatus.PENDING,
        )
        .first()
    )


def has_pending_for_month(db: Session, employee_id: int, year_month: str) -> bool:
    """True if the employee already has a PENDING request for the month."""
    return _pending_for_month(db, employee_id, normalize_year_month(year_month)) is not None


def submit_leave_request(
    db: Session,
    employee_id: int,
    year_month: str,
    days: int,
    leave_type: LeaveType,
    reason: Optional[str] = None,
) -> LeaveRequest:
    """
    Submit a leave request (status PENDING). No ledger effect until approval.

    Args:
        db: Database session
        employee_id: Requesting employee
        year_month: Month of the leave (YYYY-MM)
        days: Positive whole number of days
        leave_type: CASUAL, SICK or EARNED
        reason: Optional reason

    Returns:
        Created LeaveRequest

    Raises:
        InvalidInput: Malformed month, days or leave type
        NotFound: Unknown employee
        DuplicatePendingRequest: A PENDING request already exists for the month
        InsufficientBalance: days exceeds the employee's total remaining leave
    """
    year_month = normalize_year_month(year_month)
    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        raise InvalidInput(f"Leave days must be a positive whole number, got {days!r}", field="days")
    try:
        leave_type = LeaveType(leave_type)
    except ValueError:
        raise InvalidInput(f"Unknown leave type {leave_type!r}", field="leave_type")
    if reason is not None:
        reason = reason.strip() or None

    year = year_of(year_month)
    # Ledger rows are seeded (and committed) before anything else is written
    ledger.ensure_balances(db, employee_id, year)

    existing = _pending_for_month(db, employee_id, year_month)
    if existing:
        logger.warning("Duplicate pending leave request for employee %s %s", employee_id, year_month)
        raise DuplicatePendingRequest(employee_id, year_month, existing.request_id)

    available = ledger.leaves_remaining(db, employee_id, year)
    if days > available:
        logger.warning(
            "Leave request rejected: employee %s asked for %s day(s), %s remaining", employee_id, days, available
        )
        raise InsufficientBalance(employee_id, leave_type, days, available)

    leave_request = LeaveRequest(
        request_id=str(uuid.uuid4()),
        employee_id=employee_id,
        year_month=year_month,
        days=days,
        leave_type=leave_type,
        reason=reason,
        status=LeaveStatus.PENDING,
    )
    db.add(leave_request)
    try:
        db.flush()
    except IntegrityError:
        # Lost the race on the one-pending-per-month index
        db.rollback()
        winner = _pending_for_month(db, employee_id, year_month)
        raise DuplicatePendingRequest(employee_id, year_month, winner.request_id if winner else None)

    log_audit(
        db=db,
        actor_id=employee_id,
        action="LEAVE_SUBMIT",
        entity_type="leave_requests",
        entity_id=leave_request.id,
        meta={
            "request_id": leave_request.request_id,
            "year_month": year_month,
            "days": days,
            "leave_type": leave_type.value,
        },
    )
    db.commit()
    db.refresh(leave_request)
    logger.info(
        "Leave request %s submitted: employee=%s month=%s days=%s type=%s",
        leave_request.request_id, employee_id, year_month, days, leave_type.value,
    )
    return leave_request


def get_leave_request(db: Session, request_id: str) -> LeaveRequest:
    """
    Raises:
        NotFound: If no request has this request_id
    """
    leave_request = (
        db.query(LeaveRequest)
        .populate_existing()
        .filter(LeaveRequest.request_id == request_id)
        .first()
    )
    if not leave_request:
        raise NotFound("Leave request", request_id)
    return leave_request


def _resolve(
    db: Session,
    request_id: str,
    new_status: LeaveStatus,
    approver_id: Optional[int],
    comments: Optional[str],
) -> LeaveRequest:
    """
    Move a request out of PENDING with a conditional UPDATE.

    Only one caller can win the transition; every other caller gets InvalidState.
    Flushes; the caller commits.
    """
    leave_request = get_leave_request(db, request_id)
    if leave_request.status in TERMINAL_LEAVE_STATUSES:
        raise InvalidState(
            f"Cannot {'approve' if new_status == LeaveStatus.APPROVED else 'reject'} "
            f"leave request with status {leave_request.status.value}",
            request_id=request_id,
            status=leave_request.status.value,
        )

    updated = (
        db.query(LeaveRequest)
        .filter(LeaveRequest.id == leave_request.id, LeaveRequest.status == LeaveStatus.PENDING)
        .update(
            {
                LeaveRequest.status: new_status,
                LeaveRequest.approved_by: approver_id,
                LeaveRequest.comments: comments,
                LeaveRequest.resolved_at: now_utc(),
            },
            synchronize_session=False,
        )
    )
    if updated == 0:
        db.rollback()
        current = get_leave_request(db, request_id)
        raise InvalidState(
            f"Leave request is no longer pending (status {current.status.value})",
            request_id=request_id,
            status=current.status.value,
        )
    return leave_request


def approve_leave_request(
    db: Session,
    request_id: str,
    approver_id: Optional[int] = None,
    comments: Optional[str] = None,
) -> LeaveRequest:
    """
    Approve a PENDING leave request and debit the ledger.

    The status transition and the debit commit together. If the debit fails
    the whole approval is rolled back and the request stays PENDING.

    Args:
        db: Database session
        request_id: Public request id
        approver_id: HR user approving
        comments: Optional comments

    Returns:
        Updated LeaveRequest

    Raises:
        NotFound: Unknown request
        InvalidState: Request is not PENDING
        InsufficientBalance: Balance of the request's leave type is too low
    """
    leave_request = get_leave_request(db, request_id)
    employee_id = leave_request.employee_id
    year = year_of(leave_request.year_month)

    with employee_lock(employee_id):
        ledger.ensure_balances(db, employee_id, year)
        try:
            leave_request = _resolve(db, request_id, LeaveStatus.APPROVED, approver_id, comments)
            ledger.consume(
                db,
                employee_id,
                leave_request.leave_type,
                leave_request.days,
                year,
                action=LeaveTransactionAction.APPROVE_DEDUCT.value,
                leave_request_id=leave_request.id,
                actor_id=approver_id,
                remarks=comments,
            )
            log_audit(
                db=db,
                actor_id=approver_id,
                action="LEAVE_APPROVE",
                entity_type="leave_requests",
                entity_id=leave_request.id,
                meta={
                    "request_id": request_id,
                    "employee_id": employee_id,
                    "leave_type": leave_request.leave_type.value,
                    "days": leave_request.days,
                    "comments": comments,
                },
            )
            db.commit()
        except InsufficientBalance as exc:
            db.rollback()
            logger.warning(
                "Approval of %s failed, request stays PENDING: %s", request_id, exc.detail
            )
            raise
        except Exception:
            db.rollback()
            raise

    leave_request = get_leave_request(db, request_id)
    logger.info(
        "leave status transition: request_id=%s before=PENDING after=APPROVED action=approve",
        request_id,
    )
    return leave_request


def reject_leave_request(
    db: Session,
    request_id: str,
    approver_id: Optional[int] = None,
    comments: Optional[str] = None,
) -> LeaveRequest:
    """
    Reject a PENDING leave request. No ledger effect.

    Raises:
        NotFound: Unknown request
        InvalidState: Request is not PENDING
    """
    leave_request = get_leave_request(db, request_id)

    with employee_lock(leave_request.employee_id):
        try:
            leave_request = _resolve(db, request_id, LeaveStatus.REJECTED, approver_id, comments)
            log_audit(
                db=db,
                actor_id=approver_id,
                action="LEAVE_REJECT",
                entity_type="leave_requests",
                entity_id=leave_request.id,
                meta={
                    "request_id": request_id,
                    "employee_id": leave_request.employee_id,
                    "comments": comments,
                },
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

    leave_request = get_leave_request(db, request_id)
    logger.info(
        "leave status transition: request_id=%s before=PENDING after=REJECTED action=reject",
        request_id,
    )
    return leave_request


def list_leave_requests(
    db: Session,
    status: Optional[LeaveStatus] = None,
    employee_id: Optional[int] = None,
    year_month: Optional[str] = None,
    leave_type: Optional[LeaveType] = None,
    department: Optional[str] = None,
) -> List[LeaveRequest]:
    """
    List leave requests, newest first. Every filter is optional.
    Includes all statuses unless one is given.
    """
    query = db.query(LeaveRequest).options(
        joinedload(LeaveRequest.employee),
        joinedload(LeaveRequest.approver),
    )
    if status is not None:
        query = query.filter(LeaveRequest.status == LeaveStatus(status))
    if employee_id is not None:
        query = query.filter(LeaveRequest.employee_id == employee_id)
    if year_month:
        query = query.filter(LeaveRequest.year_month == normalize_year_month(year_month))
    if leave_type is not None:
        query = query.filter(LeaveRequest.leave_type == LeaveType(leave_type))
    if department:
        query = query.join(Employee, LeaveRequest.employee_id == Employee.id)
        query = query.filter(Employee.department == department)

    return query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()


def get_leave_stats(db: Session, employee_id: int, year: int) -> LeaveStatsOut:
    """Balances and request counts for the employee's year."""
    rows = {b.leave_type: b for b in ledger.get_balances(db, employee_id, year)}

    counts = dict(
        db.query(LeaveRequest.status, func.count(LeaveRequest.id))
        .filter(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.year_month.like(f"{year:04d}-%"),
        )
        .group_by(LeaveRequest.status)
        .all()
    )

    return LeaveStatsOut(
        employee_id=employee_id,
        year=year,
        total_leaves=sum(b.total for b in rows.values()),
        leaves_remaining=sum(b.remaining for b in rows.values()),
        casual_leaves_used=rows[LeaveType.CASUAL].used,
        casual_leaves_total=rows[LeaveType.CASUAL].total,
        sick_leaves_used=rows[LeaveType.SICK].used,
        sick_leaves_total=rows[LeaveType.SICK].total,
        pending_requests=counts.get(LeaveStatus.PENDING, 0),
        approved_requests=counts.get(LeaveStatus.APPROVED, 0),
    )
