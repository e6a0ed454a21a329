"""
Employee and compensation-profile schemas
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator, field_serializer, model_validator, ConfigDict
from app.models.employee import Role, PFStatus
from app.utils.datetime_utils import iso_local


class EmployeeCreate(BaseModel):
    """Schema for registering an employee with a compensation profile"""
    emp_code: str = Field(..., min_length=1, description="Employee code (unique)")
    name: str = Field(..., min_length=1, description="Employee name")
    role: Role = Field(default=Role.EMPLOYEE, description="Employee role")
    department: str = Field(..., min_length=1, description="Department name")
    designation: str = Field(..., min_length=1, description="Designation")
    base_salary: Decimal = Field(..., gt=0, description="Monthly base salary")
    pf_status: PFStatus = Field(default=PFStatus.NOT_APPLICABLE, description="Provident fund applicability")
    pf_start_date: Optional[date] = Field(None, description="PF start date (required when PF is pending)")
    join_date: date = Field(..., description="Employee join date")
    active: bool = Field(default=True, description="Employee active status")

    @field_validator("emp_code", "name", "department", "designation", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def check_pf_pending(self) -> "EmployeeCreate":
        if self.pf_status == PFStatus.PENDING and self.pf_start_date is None:
            raise ValueError("pf_start_date is required when pf_status is PENDING")
        return self


class CompensationUpdate(BaseModel):
    """Explicit HR update of the compensation profile. Omitted fields are unchanged."""
    department: Optional[str] = Field(None, min_length=1)
    designation: Optional[str] = Field(None, min_length=1)
    base_salary: Optional[Decimal] = Field(None, gt=0)
    pf_status: Optional[PFStatus] = None
    pf_start_date: Optional[date] = None


class CompensationProfile(BaseModel):
    """Read model of the payroll-relevant part of an employee record"""
    employee_id: int
    base_salary: Decimal
    pf_status: PFStatus
    pf_start_date: Optional[date] = None
    department: str
    designation: str


class EmployeeOut(BaseModel):
    """Schema for employee output. Datetimes in the display timezone."""
    id: int
    emp_code: str
    name: str
    role: Role
    department: str
    designation: str
    base_salary: Decimal
    pf_status: PFStatus
    pf_start_date: Optional[date] = None
    join_date: date
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_local(dt) if dt is not None else None


class LeaveBalanceRef(BaseModel):
    leave_type: str
    total: int
    used: int
    remaining: int


class EmployeeContext(BaseModel):
    """
    Explicit snapshot of "who is acting and what they have", passed to callers
    instead of caching the current user client-side.
    """
    employee_id: int
    emp_code: str
    name: str
    role: Role
    department: str
    designation: str
    compensation: CompensationProfile
    year: int
    balances: List[LeaveBalanceRef]
    leaves_remaining: int
    pending_requests: int
