"""
Employee model (carries the compensation profile)
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Date, Numeric, Enum as SQLEnum, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class Role(str, enum.Enum):
    EMPLOYEE = "EMPLOYEE"
    HR = "HR"
    ADMIN = "ADMIN"


class PFStatus(str, enum.Enum):
    APPLICABLE = "APPLICABLE"
    NOT_APPLICABLE = "NOT_APPLICABLE"
    PENDING = "PENDING"  # enrolment pending since pf_start_date; not yet deducted


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    emp_code = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    role = Column(SQLEnum(Role), nullable=False, default=Role.EMPLOYEE)
    department = Column(String, nullable=False, index=True)
    designation = Column(String, nullable=False)
    base_salary = Column(Numeric(12, 2), nullable=False)
    pf_status = Column(SQLEnum(PFStatus), nullable=False, default=PFStatus.NOT_APPLICABLE)
    pf_start_date = Column(Date, nullable=True)
    join_date = Column(Date, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    # Relationships
    leave_requests = relationship("LeaveRequest", foreign_keys="LeaveRequest.employee_id", back_populates="employee")
    approved_leave_requests = relationship("LeaveRequest", foreign_keys="LeaveRequest.approved_by", back_populates="approver")

    __table_args__ = (
        CheckConstraint("base_salary > 0", name="check_employee_base_salary_positive"),
    )
