"""
Concurrent operations on one employee, each from its own session and thread.
"""
import threading
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.errors import InsufficientBalance
from app.db.base import Base
from app.models import Employee
from app.models.attendance import AttendanceRecord, LeaveMode
from app.models.leave import LeaveBalance, LeaveRequest, LeaveStatus, LeaveTransaction, LeaveType
from app.models.payroll import SalarySlip
from app.schemas.payroll import SlipSource
from app.services import attendance_service, leave_service, slip_service
from app.services import leave_ledger_service as ledger

WORKERS = 10
YEAR = 2024


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def employee_id(session_factory):
    setup = session_factory()
    emp = Employee(
        emp_code="C001", name="Concurrent", department="Ops", designation="Operator",
        base_salary=Decimal("20000"), join_date=date(2023, 1, 1),
    )
    setup.add(emp)
    setup.commit()
    emp_id = emp.id
    ledger.ensure_balances(setup, emp_id, YEAR)
    setup.close()
    return emp_id


def run_together(session_factory, *tasks):
    """Start every task at once, each with its own session; return outcomes in task order."""
    outcomes = [None] * len(tasks)
    start = threading.Barrier(len(tasks))

    def worker(index, task):
        db = session_factory()
        try:
            start.wait()
            outcomes[index] = task(db)
        except InsufficientBalance:
            db.rollback()
            outcomes[index] = "insufficient"
        finally:
            db.close()

    threads = [threading.Thread(target=worker, args=(i, t)) for i, t in enumerate(tasks)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return outcomes


def used_days(db, employee_id):
    rows = db.query(LeaveBalance).filter(LeaveBalance.employee_id == employee_id).all()
    return {row.leave_type: row.used for row in rows}


def test_concurrent_consume_never_overdraws(session_factory, employee_id):
    def debit_one(db):
        ledger.consume(db, employee_id, LeaveType.CASUAL, 1, YEAR)
        db.commit()
        return "ok"

    outcomes = run_together(session_factory, *([debit_one] * WORKERS))

    check = session_factory()
    bal = check.query(LeaveBalance).filter(
        LeaveBalance.employee_id == employee_id,
        LeaveBalance.leave_type == LeaveType.CASUAL,
    ).one()
    assert outcomes.count("ok") == 4
    assert outcomes.count("insufficient") == WORKERS - 4
    assert bal.used == 4
    assert bal.remaining == 0
    assert check.query(LeaveTransaction).count() == 4
    check.close()


def test_concurrent_slip_requests_store_one_slip(session_factory, employee_id):
    def get_slip(db):
        return slip_service.get_or_create(db, employee_id, "2024-04")

    results = run_together(session_factory, *([get_slip] * 8))

    sources = [r.source for r in results]
    assert sources.count(SlipSource.GENERATED) == 1
    assert sources.count(SlipSource.EXISTING) == 7
    # 6000 basic + 4200 HRA + 1500 fuel - 200 PT
    assert {r.slip.net_salary for r in results} == {Decimal("11500")}
    assert len({r.slip.id for r in results}) == 1

    check = session_factory()
    assert check.query(SalarySlip).count() == 1
    assert used_days(check, employee_id) == {LeaveType.CASUAL: 0, LeaveType.SICK: 0, LeaveType.EARNED: 0}
    check.close()


def test_approval_and_attendance_save_are_serialized(session_factory, employee_id):
    setup = session_factory()
    request_id = leave_service.submit_leave_request(
        setup, employee_id, "2024-03", 3, LeaveType.CASUAL
    ).request_id
    setup.close()

    def approve(db):
        leave_service.approve_leave_request(db, request_id)
        return "ok"

    def save(db):
        attendance_service.save_attendance(db, employee_id, "2024-04", 3, LeaveMode.AUTO)
        return "ok"

    outcomes = run_together(session_factory, approve, save)

    check = session_factory()
    request = check.query(LeaveRequest).filter(LeaveRequest.request_id == request_id).one()
    record = check.query(AttendanceRecord).filter(AttendanceRecord.employee_id == employee_id).one()
    used = used_days(check, employee_id)
    debited = sum(-t.delta_days for t in check.query(LeaveTransaction).all())
    check.close()

    # Attendance resolves against whatever the ledger holds when it runs
    assert outcomes[1] == "ok"
    if outcomes[0] == "ok":
        # approve ran first: casual 4 -> 1, attendance takes 1 casual + 2 sick
        assert request.status == LeaveStatus.APPROVED
        assert (record.casual_leaves_consumed, record.sick_leaves_consumed) == (1, 2)
        assert used == {LeaveType.CASUAL: 4, LeaveType.SICK: 2, LeaveType.EARNED: 0}
    else:
        # attendance ran first: casual 4 -> 1, the 3-day casual approval cannot fit
        assert outcomes[0] == "insufficient"
        assert request.status == LeaveStatus.PENDING
        assert (record.casual_leaves_consumed, record.sick_leaves_consumed) == (3, 0)
        assert used == {LeaveType.CASUAL: 3, LeaveType.SICK: 0, LeaveType.EARNED: 0}
    assert debited == sum(used.values())
