"""
Monthly attendance model
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum as SQLEnum, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class LeaveMode(str, enum.Enum):
    AUTO = "AUTO"  # casual first, then sick, then LOP
    PAID = "PAID"  # casual+sick as one paid pool, then LOP
    LOP = "LOP"    # every absent day is loss of pay

    @classmethod
    def _missing_(cls, value):
        # Lowercase values ("auto", "lop") name the same modes
        if isinstance(value, str):
            return cls.__members__.get(value.upper())
        return None


class AttendanceRecord(Base):
    """
    One row per (employee_id, year_month). Saving again for the same month
    replaces the row; the consumption figures are the ones applied to the ledger.
    """
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    year_month = Column(String(7), nullable=False)  # YYYY-MM
    days_in_month = Column(Integer, nullable=False)
    absent_days = Column(Integer, nullable=False, default=0)
    leave_mode = Column(SQLEnum(LeaveMode), nullable=False, default=LeaveMode.AUTO)

    # Consumption result
    casual_leaves_consumed = Column(Integer, nullable=False, default=0)
    sick_leaves_consumed = Column(Integer, nullable=False, default=0)
    paid_leave_used = Column(Integer, nullable=False, default=0)
    lop_days = Column(Integer, nullable=False, default=0)

    # Ledger debits actually applied (PAID mode books paid_leave_used here)
    casual_debited = Column(Integer, nullable=False, default=0)
    sick_debited = Column(Integer, nullable=False, default=0)

    recorded_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    employee = relationship("Employee", foreign_keys=[employee_id])

    __table_args__ = (
        UniqueConstraint("employee_id", "year_month", name="uq_attendance_records_employee_month"),
        CheckConstraint(
            "absent_days >= 0 AND absent_days <= days_in_month",
            name="check_attendance_absent_days_in_range",
        ),
        CheckConstraint(
            "casual_leaves_consumed + sick_leaves_consumed + paid_leave_used + lop_days = absent_days",
            name="check_attendance_days_conserved",
        ),
    )
