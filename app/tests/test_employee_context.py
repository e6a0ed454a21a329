"""
Tests for employees, compensation profiles and the employee context snapshot
"""
from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.errors import InvalidInput, NotFound
from app.models.audit_log import AuditLog
from app.models.employee import PFStatus
from app.models.leave import LeaveType
from app.schemas.employee import CompensationUpdate, EmployeeCreate
from app.services import employee_service, leave_ledger_service as ledger, leave_service


def employee_data(**overrides):
    values = dict(
        emp_code=" E100 ",
        name="Asha Rao",
        department="Finance",
        designation="Accountant",
        base_salary=Decimal("42000"),
        join_date=date(2023, 7, 1),
    )
    values.update(overrides)
    return EmployeeCreate(**values)


def test_create_employee(db: Session, hr_user):
    emp = employee_service.create_employee(db, employee_data(), actor_id=hr_user.id)
    assert emp.emp_code == "E100"
    assert emp.pf_status == PFStatus.NOT_APPLICABLE
    assert db.query(AuditLog).filter(AuditLog.action == "EMPLOYEE_CREATE").count() == 1


def test_duplicate_emp_code_rejected(db: Session):
    employee_service.create_employee(db, employee_data())
    with pytest.raises(InvalidInput):
        employee_service.create_employee(db, employee_data(name="Someone Else"))


def test_pending_pf_requires_start_date():
    with pytest.raises(ValidationError):
        employee_data(pf_status=PFStatus.PENDING)


def test_non_positive_salary_rejected():
    with pytest.raises(ValidationError):
        employee_data(base_salary=Decimal("0"))


def test_update_compensation(db: Session, employee, hr_user):
    updated = employee_service.update_compensation(
        db, employee.id,
        CompensationUpdate(base_salary=Decimal("35000"), pf_status=PFStatus.PENDING, pf_start_date=date(2024, 9, 1)),
        actor_id=hr_user.id,
    )
    assert updated.base_salary == Decimal("35000")
    assert updated.pf_status == PFStatus.PENDING
    audit = db.query(AuditLog).filter(AuditLog.action == "COMPENSATION_UPDATE").one()
    assert set(audit.meta_json["changes"]) == {"base_salary", "pf_status", "pf_start_date"}


def test_update_compensation_pending_without_date(db: Session, employee):
    with pytest.raises(InvalidInput):
        employee_service.update_compensation(db, employee.id, CompensationUpdate(pf_status=PFStatus.PENDING))


def test_effective_pf_status(db: Session, employee_factory):
    emp = employee_factory(emp_code="PF1", pf_status=PFStatus.PENDING, pf_start_date=date(2024, 5, 15))
    assert employee_service.effective_pf_status(emp, "2024-05") == PFStatus.PENDING
    assert employee_service.effective_pf_status(emp, "2024-06") == PFStatus.APPLICABLE


def test_get_employee_not_found(db: Session):
    with pytest.raises(NotFound):
        employee_service.get_employee(db, 12345)


def test_employee_context(db: Session, employee):
    ledger.consume(db, employee.id, LeaveType.SICK, 1, 2024)
    db.commit()
    leave_service.submit_leave_request(db, employee.id, "2024-06", 1, LeaveType.CASUAL)

    ctx = employee_service.get_employee_context(db, employee.id, 2024)
    assert ctx.employee_id == employee.id
    assert ctx.compensation.base_salary == Decimal("30000")
    assert ctx.year == 2024
    assert ctx.leaves_remaining == 5
    assert ctx.pending_requests == 1
    sick = next(b for b in ctx.balances if b.leave_type == "SICK")
    assert (sick.total, sick.used, sick.remaining) == (2, 1, 1)
