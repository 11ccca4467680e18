from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mesai.models import DailySummaryStatus, LeaveStatus, WorkDayType, WorkSessionStatus


class ClockInRequest(BaseModel):
    employee_id: int = Field(ge=1)
    clock_in: datetime | None = None


class ClockOutRequest(BaseModel):
    submitted_by: Literal["employee", "operator", "system"] = "employee"


class ManualSessionCreate(BaseModel):
    employee_id: int = Field(ge=1)
    session_date: date
    clock_in: datetime
    clock_out: datetime
    notes: str | None = Field(default=None, max_length=2000)


class SessionEditRequest(BaseModel):
    clock_in: datetime | None = None
    clock_out: datetime | None = None
    notes: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def validate_has_changes(self) -> "SessionEditRequest":
        if self.clock_in is None and self.clock_out is None and self.notes is None:
            raise ValueError("At least one of clock_in, clock_out or notes is required")
        return self


class WorkSessionRead(BaseModel):
    id: int
    employee_id: int
    company_id: int
    clock_in: datetime
    clock_out: datetime | None = None
    session_date: date
    total_minutes: int | None = None
    regular_minutes: int | None = None
    overtime_minutes: int | None = None
    overtime_multiplier: float | None = None
    status: WorkSessionStatus
    clock_out_submitted_by: str | None = None
    notes: str | None = None
    edited_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class SessionCalculationRead(BaseModel):
    session_id: int
    total_minutes: int
    regular_minutes: int
    overtime_minutes: int
    overtime_multiplier: float
    work_day_type: WorkDayType
    is_holiday: bool


class DailySummaryRecalculateRequest(BaseModel):
    employee_id: int = Field(ge=1)
    date: date
    work_day_type: WorkDayType | None = None
    is_holiday: bool | None = None


class DailySummaryRead(BaseModel):
    id: int
    employee_id: int
    company_id: int
    summary_date: date
    total_sessions: int
    total_work_minutes: int
    total_regular_minutes: int
    total_overtime_minutes: int
    expected_work_minutes: int
    is_late: bool
    late_minutes: int
    is_absent: bool
    is_leave: bool
    is_holiday: bool
    deficit_minutes: int
    work_day_type: WorkDayType
    status: DailySummaryStatus
    special_day_type_id: int | None = None
    effective_work_minutes: int
    is_boss_call: bool

    model_config = ConfigDict(from_attributes=True)


class SpecialDayToggleRequest(BaseModel):
    employee_id: int = Field(ge=1)
    date: date
    special_day_type_id: int | None = Field(default=None, ge=1)


class BossCallToggleRequest(BaseModel):
    employee_id: int = Field(ge=1)
    date: date
    is_boss_call: bool


class BatchRecalculateRequest(BaseModel):
    company_id: int | None = Field(default=None, ge=1)


class BatchRecalculateResponse(BaseModel):
    sessions_recalculated: int
    summaries_recalculated: int
    errors: int
    error_messages: list[str] = Field(default_factory=list)


class LeaveCreateRequest(BaseModel):
    employee_id: int = Field(ge=1)
    start_date: date
    end_date: date
    leave_type: str = Field(min_length=1, max_length=128)
    reason: str | None = Field(default=None, max_length=1000)


class LeaveRead(BaseModel):
    id: int
    employee_id: int
    company_id: int
    start_date: date
    end_date: date
    leave_type: str
    reason: str | None = None
    status: LeaveStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WorkSettingsUpsert(BaseModel):
    overtime_multiplier: float = Field(default=1.5, gt=0, le=10)
    weekend_multiplier: float = Field(default=1.5, gt=0, le=10)
    holiday_multiplier: float = Field(default=2.0, gt=0, le=10)
    boss_call_multiplier: float = Field(default=1.5, gt=0, le=10)
    monthly_work_days_constant: float = Field(default=21.66, gt=0, le=31)


class WorkSettingsRead(BaseModel):
    company_id: int
    overtime_multiplier: float
    weekend_multiplier: float
    holiday_multiplier: float
    boss_call_multiplier: float
    monthly_work_days_constant: float
    is_default: bool


class SpecialDayStat(BaseModel):
    days: int
    minutes: int
    name: str
    code: str


class MonthlyDayDetail(BaseModel):
    date: date
    is_work_day: bool
    work_day_type: WorkDayType
    total_work_minutes: int
    expected_work_minutes: int
    effective_work_minutes: int
    is_boss_call: bool
    is_late: bool
    is_absent: bool
    is_leave: bool
    leave_type_name: str | None = None
    deficit_minutes: int
    status: str
    special_day_type_id: int | None = None
    special_day_type_name: str | None = None
    special_day_type_code: str | None = None


class MonthlyEmployeeSummary(BaseModel):
    employee_id: int
    employee_name: str
    work_days: int
    total_work_minutes: int
    expected_work_minutes: int
    boss_call_days: int
    boss_call_minutes: int
    special_day_stats: dict[str, SpecialDayStat] = Field(default_factory=dict)
    weekend_work_minutes: int
    holiday_work_minutes: int
    net_minutes: int
    deficit_minutes: int
    overtime_value: int
    overtime_days: float
    overtime_percentage: float
    late_days: int
    absent_days: int
    leave_days: int
    daily_details: list[MonthlyDayDetail] = Field(default_factory=list)


class MonthlySettingsRead(BaseModel):
    overtime_multiplier: float
    weekend_multiplier: float
    holiday_multiplier: float
    boss_call_multiplier: float
    monthly_work_days_constant: float


class MonthlySummaryResponse(BaseModel):
    month: str
    summaries: list[MonthlyEmployeeSummary] = Field(default_factory=list)
    settings: MonthlySettingsRead
