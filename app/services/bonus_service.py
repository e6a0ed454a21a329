"""
Monthly performance bonus service
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import InvalidInput, NotFound
from app.models.employee import Employee
from app.models.payroll import MonthlyBonus
from app.services.audit_service import log_audit
from app.utils.year_month import normalize_year_month

logger = logging.getLogger(__name__)


def _get_bonus(db: Session, employee_id: int, year_month: str) -> Optional[MonthlyBonus]:
    return (
        db.query(MonthlyBonus)
        .filter(MonthlyBonus.employee_id == employee_id, MonthlyBonus.year_month == year_month)
        .first()
    )


def record_bonus(
    db: Session,
    employee_id: int,
    year_month: str,
    amount,
    note: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> MonthlyBonus:
    """
    Record (or replace) the performance bonus for an employee-month.

    Slips already generated for the month are not touched; regenerate to pick
    up the new amount.

    Raises:
        InvalidInput: Malformed month or negative/non-numeric amount
        NotFound: Unknown employee
    """
    year_month = normalize_year_month(year_month)
    try:
        amount = Decimal(str(amount))
    except InvalidOperation:
        raise InvalidInput(f"Bonus amount must be a number, got {amount!r}", field="amount")
    if not amount.is_finite() or amount < 0:
        raise InvalidInput(f"Bonus amount must be >= 0, got {amount}", field="amount")
    if not db.query(Employee.id).filter(Employee.id == employee_id).first():
        raise NotFound("Employee", employee_id)

    bonus = _get_bonus(db, employee_id, year_month)
    previous = bonus.amount if bonus else None
    if bonus is None:
        bonus = MonthlyBonus(employee_id=employee_id, year_month=year_month)
        db.add(bonus)
    bonus.amount = amount
    bonus.note = note
    bonus.recorded_by = actor_id
    try:
        db.flush()
    except IntegrityError:
        # Concurrent first insert for the month; update the winner's row
        db.rollback()
        bonus = _get_bonus(db, employee_id, year_month)
        previous = bonus.amount
        bonus.amount = amount
        bonus.note = note
        bonus.recorded_by = actor_id
        db.flush()

    log_audit(
        db=db,
        actor_id=actor_id,
        action="BONUS_RECORD",
        entity_type="monthly_bonuses",
        entity_id=bonus.id,
        meta={"employee_id": employee_id, "year_month": year_month, "amount": amount, "previous": previous},
    )
    db.commit()
    db.refresh(bonus)
    logger.info("Recorded bonus %s for employee %s %s", amount, employee_id, year_month)
    return bonus


def get_bonus_amount(db: Session, employee_id: int, year_month: str) -> Decimal:
    """Bonus for the month, 0 if none was recorded."""
    bonus = _get_bonus(db, employee_id, normalize_year_month(year_month))
    return Decimal(str(bonus.amount)) if bonus else Decimal("0")


def get_bonus(db: Session, employee_id: int, year_month: str) -> MonthlyBonus:
    """
    Raises:
        NotFound: If no bonus was recorded for the month
    """
    bonus = _get_bonus(db, employee_id, normalize_year_month(year_month))
    if not bonus:
        raise NotFound("Monthly bonus", f"{employee_id}/{year_month}")
    return bonus


def list_bonuses(db: Session, year_month: Optional[str] = None, employee_id: Optional[int] = None) -> List[MonthlyBonus]:
    query = db.query(MonthlyBonus)
    if year_month:
        query = query.filter(MonthlyBonus.year_month == normalize_year_month(year_month))
    if employee_id is not None:
        query = query.filter(MonthlyBonus.employee_id == employee_id)
    return query.order_by(MonthlyBonus.year_month.desc(), MonthlyBonus.employee_id).all()
