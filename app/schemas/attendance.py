"""
Monthly attendance schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_serializer

from app.models.attendance import LeaveMode
from app.schemas.leave import LeaveConsumptionResult
from app.utils.datetime_utils import iso_local


class AttendancePreviewOut(BaseModel):
    """What saving would do, computed without touching the ledger."""
    employee_id: int
    year_month: str
    days_in_month: int
    absent_days: int
    leave_mode: LeaveMode
    casual_remaining: int
    sick_remaining: int
    consumption: LeaveConsumptionResult


class AttendanceRecordOut(BaseModel):
    id: int
    employee_id: int
    year_month: str
    days_in_month: int
    absent_days: int
    leave_mode: LeaveMode
    casual_leaves_consumed: int
    sick_leaves_consumed: int
    paid_leave_used: int
    lop_days: int
    casual_debited: int
    sick_debited: int
    recorded_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt) if dt is not None else None
