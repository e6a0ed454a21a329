"""
Payroll schemas
"""
import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from app.models.employee import PFStatus
from app.schemas.leave import LeaveConsumptionResult
from app.utils.datetime_utils import iso_local


class PFMode(str, enum.Enum):
    FLAT = "FLAT"
    PERCENT_OF_BASIC = "PERCENT_OF_BASIC"


class PayrollPolicy(BaseModel):
    """Salary structure and statutory constants for one year"""
    basic_ratio: Decimal = Decimal("0.30")
    hra_ratio: Decimal = Decimal("0.70")
    fuel_allowance: Decimal = Decimal("1500")
    pf_mode: PFMode = PFMode.FLAT
    pf_amount: Decimal = Decimal("1800")
    pf_rate: Decimal = Decimal("0.12")
    professional_tax: Decimal = Decimal("200")

    model_config = ConfigDict(frozen=True)


class SalaryInput(BaseModel):
    """Everything the calculator needs; no database access happens past this point."""
    base_salary: Decimal
    pf_status: PFStatus
    pf_start_date: Optional[date] = None
    days_in_month: int
    consumption: LeaveConsumptionResult = Field(default_factory=LeaveConsumptionResult)
    bonus: Decimal = Decimal("0")
    leaves_remaining: int = 0

    model_config = ConfigDict(frozen=True)


class SalaryBreakdown(BaseModel):
    """Full computed breakdown, plus the leave figures that produced it"""
    base_salary: Decimal
    basic: Decimal
    hra: Decimal
    fuel_allowance: Decimal
    bonus: Decimal
    gross_salary: Decimal
    pf_amount: Decimal
    professional_tax: Decimal
    per_day_salary: Decimal
    absent_deduction: Decimal
    net_salary: Decimal
    days_in_month: int
    casual_leaves_consumed: int
    sick_leaves_consumed: int
    paid_leave_used: int
    lop_days: int
    leaves_remaining: int
    calculation_notes: str = ""

    model_config = ConfigDict(frozen=True)

    @property
    def total_deductions(self) -> Decimal:
        return self.pf_amount + self.professional_tax + self.absent_deduction


class SalarySlipOut(BaseModel):
    id: int
    employee_id: int
    year_month: str
    employee_name: str
    department: str
    designation: str
    base_salary: Decimal
    pf_status: PFStatus
    pf_start_date: Optional[date] = None
    basic: Decimal
    hra: Decimal
    fuel_allowance: Decimal
    bonus: Decimal
    gross_salary: Decimal
    pf_amount: Decimal
    professional_tax: Decimal
    per_day_salary: Decimal
    absent_deduction: Decimal
    net_salary: Decimal
    days_in_month: int
    absent_days: int
    casual_leaves_consumed: int
    sick_leaves_consumed: int
    paid_leave_used: int
    lop_days: int
    leaves_remaining: int
    calculation_notes: Optional[str] = None
    generation: int
    created_at: datetime
    regenerated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "regenerated_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt) if dt is not None else None


class SlipSource(str, enum.Enum):
    EXISTING = "existing"
    GENERATED = "generated"
    REGENERATED = "regenerated"


class SlipResult(BaseModel):
    """get_or_create response: the slip and where it came from"""
    slip: SalarySlipOut
    source: SlipSource
    message: str
