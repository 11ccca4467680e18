from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from mesai.audit import log_activity
from mesai.db import get_db
from mesai.schemas import (
    BatchRecalculateRequest,
    BatchRecalculateResponse,
    BossCallToggleRequest,
    DailySummaryRead,
    DailySummaryRecalculateRequest,
    LeaveCreateRequest,
    LeaveRead,
    MonthlySummaryResponse,
    SessionCalculationRead,
    SpecialDayToggleRequest,
    WorkSettingsRead,
    WorkSettingsUpsert,
)
from mesai.services.daily_summary import batch_recalculate, recalculate_daily_summary
from mesai.services.leaves import cancel_leave, record_leave
from mesai.services.monthly import get_monthly_summary
from mesai.services.sessions import calculate_session
from mesai.services.special_days import toggle_boss_call, toggle_special_day
from mesai.services.work_settings import resolve_work_settings, upsert_work_settings

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _actor_id(request: Request) -> str:
    return (request.headers.get("X-Actor-Id") or "").strip() or "system"


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.post("/sessions/{session_id}/calculate", response_model=SessionCalculationRead)
def calculate_session_endpoint(session_id: int, db: Session = Depends(get_db)) -> SessionCalculationRead:
    result = calculate_session(db, session_id)
    return SessionCalculationRead(
        session_id=result.session_id,
        total_minutes=result.total_minutes,
        regular_minutes=result.regular_minutes,
        overtime_minutes=result.overtime_minutes,
        overtime_multiplier=result.overtime_multiplier,
        work_day_type=result.work_day_type,
        is_holiday=result.is_holiday,
    )


@router.post("/daily-summaries/recalculate", response_model=DailySummaryRead)
def recalculate_daily_summary_endpoint(
    payload: DailySummaryRecalculateRequest,
    db: Session = Depends(get_db),
) -> DailySummaryRead:
    return recalculate_daily_summary(
        db,
        payload.employee_id,
        payload.date,
        payload.work_day_type,
        payload.is_holiday,
    )


@router.post("/daily-summaries/special-day", response_model=DailySummaryRead)
def toggle_special_day_endpoint(
    payload: SpecialDayToggleRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> DailySummaryRead:
    summary = toggle_special_day(db, payload.employee_id, payload.date, payload.special_day_type_id)
    log_activity(
        db,
        performed_by=_actor_id(request),
        action_type="special_day_toggled",
        resource_type="daily_summary",
        resource_id=summary.id,
        company_id=summary.company_id,
        employee_id=summary.employee_id,
        details={
            "date": payload.date.isoformat(),
            "special_day_type_id": payload.special_day_type_id,
            "effective_work_minutes": summary.effective_work_minutes,
        },
        request_id=_request_id(request),
    )
    return summary


@router.post("/daily-summaries/boss-call", response_model=DailySummaryRead)
def toggle_boss_call_endpoint(
    payload: BossCallToggleRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> DailySummaryRead:
    summary = toggle_boss_call(db, payload.employee_id, payload.date, payload.is_boss_call)
    log_activity(
        db,
        performed_by=_actor_id(request),
        action_type="boss_call_toggled",
        resource_type="daily_summary",
        resource_id=summary.id,
        company_id=summary.company_id,
        employee_id=summary.employee_id,
        details={"date": payload.date.isoformat(), "is_boss_call": payload.is_boss_call},
        request_id=_request_id(request),
    )
    return summary


@router.post("/batch-recalculate", response_model=BatchRecalculateResponse)
def batch_recalculate_endpoint(
    payload: BatchRecalculateRequest,
    db: Session = Depends(get_db),
) -> BatchRecalculateResponse:
    result = batch_recalculate(db, payload.company_id)
    return BatchRecalculateResponse(**result.to_dict())


@router.get("/companies/{company_id}/monthly-summary", response_model=MonthlySummaryResponse)
def monthly_summary_endpoint(
    company_id: int,
    month: str = Query(..., description="YYYY-MM"),
    employee_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
) -> MonthlySummaryResponse:
    return get_monthly_summary(db, company_id, month, employee_id)


@router.post("/leaves", response_model=LeaveRead, status_code=201)
def record_leave_endpoint(
    payload: LeaveCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> LeaveRead:
    leave = record_leave(
        db,
        payload.employee_id,
        payload.start_date,
        payload.end_date,
        payload.leave_type,
        payload.reason,
    )
    log_activity(
        db,
        performed_by=_actor_id(request),
        action_type="leave_recorded",
        resource_type="leave_record",
        resource_id=leave.id,
        company_id=leave.company_id,
        employee_id=leave.employee_id,
        details={
            "leave_type": leave.leave_type,
            "start_date": leave.start_date.isoformat(),
            "end_date": leave.end_date.isoformat(),
        },
        request_id=_request_id(request),
    )
    return leave


@router.post("/leaves/{leave_id}/cancel", response_model=LeaveRead)
def cancel_leave_endpoint(
    leave_id: int,
    request: Request,
    db: Session = Depends(get_db),
) -> LeaveRead:
    leave = cancel_leave(db, leave_id)
    log_activity(
        db,
        performed_by=_actor_id(request),
        action_type="leave_cancelled",
        resource_type="leave_record",
        resource_id=leave.id,
        company_id=leave.company_id,
        employee_id=leave.employee_id,
        request_id=_request_id(request),
    )
    return leave


@router.get("/companies/{company_id}/work-settings", response_model=WorkSettingsRead)
def get_work_settings_endpoint(company_id: int, db: Session = Depends(get_db)) -> WorkSettingsRead:
    values = resolve_work_settings(db, company_id)
    return WorkSettingsRead(company_id=company_id, is_default=values.is_default, **values.to_dict())


@router.put("/companies/{company_id}/work-settings", response_model=WorkSettingsRead)
def put_work_settings_endpoint(
    company_id: int,
    payload: WorkSettingsUpsert,
    request: Request,
    db: Session = Depends(get_db),
) -> WorkSettingsRead:
    values = upsert_work_settings(db, company_id, **payload.model_dump())
    log_activity(
        db,
        performed_by=_actor_id(request),
        action_type="work_settings_updated",
        resource_type="company_work_settings",
        resource_id=company_id,
        company_id=company_id,
        details=payload.model_dump(),
        request_id=_request_id(request),
    )
    return WorkSettingsRead(company_id=company_id, is_default=values.is_default, **values.to_dict())
