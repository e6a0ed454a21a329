"""
Payroll models: salary slips and monthly bonuses
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Date,
    DateTime,
    Numeric,
    ForeignKey,
    Enum as SQLEnum,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base
from app.models.employee import PFStatus


class SalarySlip(Base):
    """
    Immutable computed payroll record for one employee and one month.
    Replaced as a whole only on explicit regeneration.
    """
    __tablename__ = "salary_slips"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    year_month = Column(String(7), nullable=False, index=True)  # YYYY-MM

    # Compensation snapshot
    employee_name = Column(String, nullable=False)
    department = Column(String, nullable=False)
    designation = Column(String, nullable=False)
    base_salary = Column(Numeric(12, 2), nullable=False)
    pf_status = Column(SQLEnum(PFStatus), nullable=False)
    pf_start_date = Column(Date, nullable=True)

    # Breakdown
    basic = Column(Numeric(12, 2), nullable=False)
    hra = Column(Numeric(12, 2), nullable=False)
    fuel_allowance = Column(Numeric(12, 2), nullable=False)
    bonus = Column(Numeric(12, 2), nullable=False, default=0)
    gross_salary = Column(Numeric(12, 2), nullable=False)
    pf_amount = Column(Numeric(12, 2), nullable=False, default=0)
    professional_tax = Column(Numeric(12, 2), nullable=False, default=0)
    per_day_salary = Column(Numeric(12, 2), nullable=False)
    absent_deduction = Column(Numeric(12, 2), nullable=False, default=0)
    net_salary = Column(Numeric(12, 2), nullable=False)
    days_in_month = Column(Integer, nullable=False)

    # Leave consumption snapshot
    absent_days = Column(Integer, nullable=False, default=0)
    casual_leaves_consumed = Column(Integer, nullable=False, default=0)
    sick_leaves_consumed = Column(Integer, nullable=False, default=0)
    paid_leave_used = Column(Integer, nullable=False, default=0)
    lop_days = Column(Integer, nullable=False, default=0)
    leaves_remaining = Column(Integer, nullable=False, default=0)

    calculation_notes = Column(Text, nullable=True)
    generation = Column(Integer, nullable=False, default=1)
    generated_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    regenerated_at = Column(DateTime(timezone=True), nullable=True)

    employee = relationship("Employee", foreign_keys=[employee_id])

    __table_args__ = (
        UniqueConstraint("employee_id", "year_month", name="uq_salary_slips_employee_month"),
    )


class MonthlyBonus(Base):
    """Performance bonus recorded for an employee for a month (one row per month)."""
    __tablename__ = "monthly_bonuses"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    year_month = Column(String(7), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    note = Column(Text, nullable=True)
    recorded_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    employee = relationship("Employee", foreign_keys=[employee_id])

    __table_args__ = (
        UniqueConstraint("employee_id", "year_month", name="uq_monthly_bonuses_employee_month"),
        CheckConstraint("amount >= 0", name="check_monthly_bonus_non_negative"),
    )
