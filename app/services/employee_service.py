"""
Employee service - employees and their compensation profiles
"""
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import InvalidInput, NotFound
from app.models.employee import Employee, PFStatus
from app.models.leave import LeaveRequest, LeaveStatus
from app.schemas.employee import (
    CompensationProfile,
    CompensationUpdate,
    EmployeeContext,
    EmployeeCreate,
    LeaveBalanceRef,
)
from app.services import leave_ledger_service as ledger
from app.services.audit_service import log_audit
from app.utils.year_month import first_day

logger = logging.getLogger(__name__)


def create_employee(
    db: Session,
    employee_data: EmployeeCreate,
    actor_id: Optional[int] = None
) -> Employee:
    """
    Create a new employee

    Args:
        db: Database session
        employee_data: Employee creation data
        actor_id: ID of the user creating the employee

    Returns:
        Created Employee instance

    Raises:
        InvalidInput: If emp_code already exists
    """
    existing = db.query(Employee).filter(Employee.emp_code == employee_data.emp_code).first()
    if existing:
        raise InvalidInput(f"Employee with emp_code {employee_data.emp_code} already exists", field="emp_code")

    employee = Employee(
        emp_code=employee_data.emp_code,
        name=employee_data.name,
        role=employee_data.role,
        department=employee_data.department,
        designation=employee_data.designation,
        base_salary=employee_data.base_salary,
        pf_status=employee_data.pf_status,
        pf_start_date=employee_data.pf_start_date,
        join_date=employee_data.join_date,
        active=employee_data.active,
    )
    db.add(employee)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise InvalidInput(f"Employee with emp_code {employee_data.emp_code} already exists", field="emp_code")

    log_audit(
        db=db,
        actor_id=actor_id,
        action="EMPLOYEE_CREATE",
        entity_type="employees",
        entity_id=employee.id,
        meta={
            "emp_code": employee.emp_code,
            "name": employee.name,
            "department": employee.department,
            "base_salary": employee.base_salary,
            "pf_status": employee.pf_status,
        },
    )
    db.commit()
    db.refresh(employee)
    logger.info("Created employee %s (%s)", employee.id, employee.emp_code)
    return employee


def get_employee(db: Session, employee_id: int) -> Employee:
    """
    Raises:
        NotFound: If the employee does not exist
    """
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise NotFound("Employee", employee_id)
    return employee


def list_employees(
    db: Session,
    department: Optional[str] = None,
    active: Optional[bool] = None,
) -> List[Employee]:
    query = db.query(Employee)
    if department:
        query = query.filter(Employee.department == department)
    if active is not None:
        query = query.filter(Employee.active == active)
    return query.order_by(Employee.emp_code).all()


def get_compensation_profile(db: Session, employee_id: int) -> CompensationProfile:
    employee = get_employee(db, employee_id)
    return CompensationProfile(
        employee_id=employee.id,
        base_salary=Decimal(str(employee.base_salary)),
        pf_status=employee.pf_status,
        pf_start_date=employee.pf_start_date,
        department=employee.department,
        designation=employee.designation,
    )


def update_compensation(
    db: Session,
    employee_id: int,
    update: CompensationUpdate,
    actor_id: Optional[int] = None,
) -> Employee:
    """
    Update the compensation profile. This is the only way compensation changes;
    slips already generated keep the snapshot they were computed from.

    Raises:
        NotFound: Unknown employee
        InvalidInput: PF pending without a start date
    """
    employee = get_employee(db, employee_id)
    fields = update.model_dump(exclude_unset=True)

    new_status = fields.get("pf_status", employee.pf_status)
    new_start = fields.get("pf_start_date", employee.pf_start_date)
    if new_status == PFStatus.PENDING and new_start is None:
        raise InvalidInput("pf_start_date is required when pf_status is PENDING", field="pf_start_date")

    changes = {}
    for name, value in fields.items():
        if name in ("department", "designation") and isinstance(value, str):
            value = value.strip()
        old = getattr(employee, name)
        if old != value:
            changes[name] = {"old": old, "new": value}
            setattr(employee, name, value)

    if changes:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="COMPENSATION_UPDATE",
            entity_type="employees",
            entity_id=employee.id,
            meta={"changes": changes},
        )
        db.commit()
        db.refresh(employee)
        logger.info("Updated compensation for employee %s: %s", employee.id, ", ".join(changes))
    return employee


def effective_pf_status(employee: Employee, year_month: str) -> PFStatus:
    """
    PF status that applies to a month.

    PENDING becomes APPLICABLE once pf_start_date is on or before the first day
    of the month; the stored status is not changed.
    """
    if employee.pf_status == PFStatus.PENDING and employee.pf_start_date is not None:
        if employee.pf_start_date <= first_day(year_month):
            return PFStatus.APPLICABLE
    return employee.pf_status


def get_employee_context(db: Session, employee_id: int, year: Optional[int] = None) -> EmployeeContext:
    """
    Snapshot of an employee: identity, compensation, balances for the year and
    open requests. Passed explicitly to whoever acts on the employee's behalf.
    """
    year = year or date.today().year
    employee = get_employee(db, employee_id)
    balances = ledger.get_balances(db, employee_id, year)
    pending = (
        db.query(LeaveRequest)
        .filter(LeaveRequest.employee_id == employee_id, LeaveRequest.status == LeaveStatus.PENDING)
        .count()
    )
    return EmployeeContext(
        employee_id=employee.id,
        emp_code=employee.emp_code,
        name=employee.name,
        role=employee.role,
        department=employee.department,
        designation=employee.designation,
        compensation=get_compensation_profile(db, employee_id),
        year=year,
        balances=[
            LeaveBalanceRef(leave_type=b.leave_type.value, total=b.total, used=b.used, remaining=b.remaining)
            for b in balances
        ],
        leaves_remaining=sum(b.remaining for b in balances),
        pending_requests=pending,
    )
