"""
Pytest configuration and fixtures
"""
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine
from app.db.base import Base

# Import all models to ensure they're registered with Base.metadata
from app.models import (
    AttendanceRecord,
    AuditLog,
    Employee,
    LeaveBalance,
    LeaveRequest,
    LeaveTransaction,
    MonthlyBonus,
    PolicySetting,
    SalarySlip,
)  # noqa
from app.models.employee import PFStatus, Role


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
        Base.metadata.drop_all(bind=engine)


def _make_employee(db, emp_code="EMP001", base_salary="30000", pf_status=PFStatus.NOT_APPLICABLE,
                   pf_start_date=None, department="Engineering", name=None, role=Role.EMPLOYEE):
    emp = Employee(
        emp_code=emp_code,
        name=name or f"Employee {emp_code}",
        role=role,
        department=department,
        designation="Engineer",
        base_salary=Decimal(base_salary),
        pf_status=pf_status,
        pf_start_date=pf_start_date,
        join_date=date(2024, 1, 15),
        active=True,
    )
    db.add(emp)
    db.commit()
    db.refresh(emp)
    return emp


@pytest.fixture
def employee(db):
    """Base salary 30000, PF not applicable, default entitlements (casual 4, sick 2)."""
    return _make_employee(db)


@pytest.fixture
def hr_user(db):
    return _make_employee(db, emp_code="HR001", name="HR Admin", department="HR", role=Role.HR)


@pytest.fixture
def employee_factory(db):
    """Create extra employees: employee_factory(emp_code="EMP002", base_salary="45000", ...)"""
    def factory(**kwargs):
        return _make_employee(db, **kwargs)
    return factory
