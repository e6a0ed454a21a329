"""
Leave schemas
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, field_serializer, ConfigDict
from app.utils.datetime_utils import iso_local
from app.models.leave import LeaveType, LeaveStatus


class LeaveConsumptionResult(BaseModel):
    """
    How a month's absent days were accounted. The four figures always sum to
    the absent days. casual_debit/sick_debit are what the ledger is charged;
    in PAID mode paid_leave_used is booked against casual first, then sick.
    """
    casual_leaves_consumed: int = Field(0, ge=0)
    sick_leaves_consumed: int = Field(0, ge=0)
    paid_leave_used: int = Field(0, ge=0)
    lop_days: int = Field(0, ge=0)
    casual_debit: int = Field(0, ge=0)
    sick_debit: int = Field(0, ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def accounted_days(self) -> int:
        return (
            self.casual_leaves_consumed
            + self.sick_leaves_consumed
            + self.paid_leave_used
            + self.lop_days
        )


class LeaveRequestOut(BaseModel):
    """Schema for leave request output"""
    request_id: str
    employee_id: int
    year_month: str
    days: int
    leave_type: LeaveType
    reason: Optional[str]
    status: LeaveStatus
    approved_by: Optional[int] = Field(None, description="ID of the approver/rejector")
    comments: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("resolved_at", "created_at", "updated_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt) if dt is not None else None


class BalanceItemOut(BaseModel):
    """One leave type balance."""
    leave_type: LeaveType
    total: int
    used: int
    remaining: int

    model_config = ConfigDict(from_attributes=True)


class LedgerSummaryOut(BaseModel):
    """All balances for an employee and year, with the derived total."""
    employee_id: int
    year: int
    items: List[BalanceItemOut]
    leaves_remaining: int


class LeaveStatsOut(BaseModel):
    """Leave statistics for the employee dashboard."""
    employee_id: int
    year: int
    total_leaves: int
    leaves_remaining: int
    casual_leaves_used: int
    casual_leaves_total: int
    sick_leaves_used: int
    sick_leaves_total: int
    pending_requests: int
    approved_requests: int


class LeaveTransactionOut(BaseModel):
    """Single ledger transaction for audit."""
    id: int
    employee_id: int
    leave_request_id: Optional[int]
    attendance_record_id: Optional[int]
    year: int
    leave_type: LeaveType
    delta_days: int
    action: str
    remarks: Optional[str]
    action_by_employee_id: Optional[int]
    action_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("action_at", when_used="always")
    @classmethod
    def _ser_action_at(cls, dt: datetime) -> str:
        return iso_local(dt) or ""
