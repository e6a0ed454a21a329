"""
Leave models
"""
from sqlalchemy import (
    Column,
    Integer,
    DateTime,
    ForeignKey,
    String,
    Text,
    Enum as SQLEnum,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text
import enum
from app.db.base import Base


class LeaveType(str, enum.Enum):
    CASUAL = "CASUAL"
    SICK = "SICK"
    EARNED = "EARNED"

    @classmethod
    def _missing_(cls, value):
        # Lowercase values ("casual", "sick") name the same types
        if isinstance(value, str):
            return cls.__members__.get(value.upper())
        return None


class LeaveStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# Approve/reject are final
TERMINAL_LEAVE_STATUSES = frozenset({LeaveStatus.APPROVED, LeaveStatus.REJECTED})

# Every entitlement the ledger tracks, in consumption-display order
LEDGER_LEAVE_TYPES = (LeaveType.CASUAL, LeaveType.SICK, LeaveType.EARNED)


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    request_id = Column(String(36), unique=True, nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    year_month = Column(String(7), nullable=False)  # YYYY-MM
    days = Column(Integer, nullable=False)
    leave_type = Column(SQLEnum(LeaveType), nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(SQLEnum(LeaveStatus), nullable=False, default=LeaveStatus.PENDING)
    approved_by = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    comments = Column(Text, nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    # Relationships
    employee = relationship("Employee", foreign_keys=[employee_id], back_populates="leave_requests")
    approver = relationship("Employee", foreign_keys=[approved_by], back_populates="approved_leave_requests")

    __table_args__ = (
        Index("ix_leave_requests_employee_month", "employee_id", "year_month"),
        # At most one PENDING request per employee and month
        Index(
            "uq_leave_requests_pending_per_month",
            "employee_id",
            "year_month",
            unique=True,
            sqlite_where=text("status = 'PENDING'"),
            postgresql_where=text("status = 'PENDING'"),
        ),
        CheckConstraint("days > 0", name="check_leave_request_days_positive"),
    )


class LeaveTransactionAction(str, enum.Enum):
    ATTENDANCE_DEDUCT = "ATTENDANCE_DEDUCT"
    ATTENDANCE_RECREDIT = "ATTENDANCE_RECREDIT"  # prior month record replaced
    APPROVE_DEDUCT = "APPROVE_DEDUCT"
    MANUAL_RESTORE = "MANUAL_RESTORE"


class LeaveBalance(Base):
    """
    Leave ledger row: one per (employee_id, year, leave_type).
    remaining = total - used, with 0 <= used <= total.
    """
    __tablename__ = "leave_balances"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
    leave_type = Column(SQLEnum(LeaveType), nullable=False)
    total = Column(Integer, nullable=False, default=0)
    used = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    employee = relationship("Employee", backref="leave_balances")

    __table_args__ = (
        UniqueConstraint("employee_id", "year", "leave_type", name="uq_leave_balances_employee_year_type"),
        CheckConstraint("used >= 0 AND used <= total", name="check_leave_balance_used_within_total"),
    )

    @property
    def remaining(self) -> int:
        return self.total - self.used


class LeaveTransaction(Base):
    """Audit trail for the ledger: every debit and recredit."""
    __tablename__ = "leave_transactions"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_request_id = Column(Integer, ForeignKey("leave_requests.id", ondelete="SET NULL"), nullable=True, index=True)
    attendance_record_id = Column(Integer, ForeignKey("attendance_records.id", ondelete="SET NULL"), nullable=True, index=True)
    year = Column(Integer, nullable=False, index=True)
    leave_type = Column(SQLEnum(LeaveType), nullable=False)
    delta_days = Column(Integer, nullable=False)  # + for credit, - for deduct
    action = Column(String(30), nullable=False)
    remarks = Column(Text, nullable=True)
    action_by_employee_id = Column(Integer, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, index=True)
    action_at = Column(DateTime(timezone=True), nullable=False)

    employee = relationship("Employee", foreign_keys=[employee_id])
    leave_request = relationship("LeaveRequest", foreign_keys=[leave_request_id])
    action_by = relationship("Employee", foreign_keys=[action_by_employee_id])
