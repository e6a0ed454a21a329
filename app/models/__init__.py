"""
Database models
"""
from app.models.employee import Employee, Role, PFStatus
from app.models.audit_log import AuditLog
from app.models.attendance import AttendanceRecord, LeaveMode
from app.models.leave import (
    LeaveRequest,
    LeaveBalance,
    LeaveTransaction,
    LeaveType,
    LeaveStatus,
    LeaveTransactionAction,
    LEDGER_LEAVE_TYPES,
    TERMINAL_LEAVE_STATUSES,
)
from app.models.payroll import SalarySlip, MonthlyBonus
from app.models.policy import PolicySetting

__all__ = [
    "Employee",
    "Role",
    "PFStatus",
    "AuditLog",
    "AttendanceRecord",
    "LeaveMode",
    "LeaveRequest",
    "LeaveBalance",
    "LeaveTransaction",
    "LeaveType",
    "LeaveStatus",
    "LeaveTransactionAction",
    "LEDGER_LEAVE_TYPES",
    "TERMINAL_LEAVE_STATUSES",
    "SalarySlip",
    "MonthlyBonus",
    "PolicySetting",
]
