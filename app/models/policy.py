"""
Policy settings model
"""
from sqlalchemy import Column, Integer, String, DateTime, Numeric
from sqlalchemy.sql import func
from app.db.base import Base


class PolicySetting(Base):
    __tablename__ = "policy_settings"

    id = Column(Integer, primary_key=True, index=True)
    year = Column(Integer, nullable=False, unique=True)  # e.g., 2026

    # Annual leave entitlements (Jan-Dec)
    annual_casual = Column(Integer, nullable=False, default=4)
    annual_sick = Column(Integer, nullable=False, default=2)
    annual_earned = Column(Integer, nullable=False, default=0)

    # Salary structure
    basic_ratio = Column(Numeric(5, 4), nullable=False, default=0.30)  # basic = base_salary * ratio
    hra_ratio = Column(Numeric(5, 4), nullable=False, default=0.70)    # hra = basic * ratio
    fuel_allowance = Column(Numeric(12, 2), nullable=False, default=1500)

    # Statutory deductions
    pf_mode = Column(String(20), nullable=False, default="FLAT")  # FLAT or PERCENT_OF_BASIC
    pf_amount = Column(Numeric(12, 2), nullable=False, default=1800)
    pf_rate = Column(Numeric(5, 4), nullable=False, default=0.12)
    professional_tax = Column(Numeric(12, 2), nullable=False, default=200)

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)
