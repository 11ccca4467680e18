from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from mesai.errors import IncompleteSessionError, InvalidIntervalError, NotFoundError, ValidationError
from mesai.models import Employee, WorkDayType, WorkSession, WorkSessionStatus
from mesai.services.daily_summary import recalculate_daily_summary
from mesai.services.holidays import classify_work_day, is_holiday as company_is_holiday
from mesai.services.overtime_rules import evaluate_overtime, has_weekly_rule, load_employee_rules
from mesai.services.schedules import expected_minutes_for_day, resolve_schedule
from mesai.services.timeutils import iso_week_bounds, local_date, round_half_up, to_utc
from mesai.services.work_settings import resolve_work_settings

logger = logging.getLogger("mesai.sessions")

NON_REGULAR_DAY_MULTIPLIER = 1.0


@dataclass(frozen=True, slots=True)
class SessionCalculationResult:
    session_id: int
    total_minutes: int
    regular_minutes: int
    overtime_minutes: int
    overtime_multiplier: float
    work_day_type: WorkDayType
    is_holiday: bool


def _get_session(db: Session, session_id: int) -> WorkSession:
    session = db.get(WorkSession, session_id)
    if session is None:
        raise NotFoundError("Session not found")
    return session


def _get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")
    return employee


def session_total_minutes(clock_in: datetime, clock_out: datetime) -> int:
    seconds = (to_utc(clock_out) - to_utc(clock_in)).total_seconds()
    if seconds < 0:
        raise InvalidIntervalError("Clock out time is before clock in time")
    return round_half_up(seconds / 60)


def sum_week_minutes_before(db: Session, employee_id: int, session_date: date, exclude_session_id: int) -> int:
    week_start, week_end = iso_week_bounds(session_date)
    total = db.scalar(
        select(func.coalesce(func.sum(WorkSession.total_minutes), 0)).where(
            WorkSession.employee_id == employee_id,
            WorkSession.session_date >= week_start,
            WorkSession.session_date <= week_end,
            WorkSession.id != exclude_session_id,
            WorkSession.status.in_([WorkSessionStatus.COMPLETED, WorkSessionStatus.EDITED]),
        )
    )
    return int(total or 0)


def _recalculate_day_logged(
    db: Session,
    employee_id: int,
    target_date: date,
    *,
    work_day_type: WorkDayType | None = None,
    is_holiday: bool | None = None,
    session_id: int | None = None,
) -> None:
    try:
        recalculate_daily_summary(db, employee_id, target_date, work_day_type, is_holiday)
    except Exception:
        db.rollback()
        logger.exception(
            "daily_summary_recalculation_failed",
            extra={
                "employee_id": employee_id,
                "summary_date": target_date,
                "session_id": session_id,
            },
        )


def calculate_session(db: Session, session_id: int) -> SessionCalculationResult:
    session = _get_session(db, session_id)
    if session.clock_out is None:
        raise IncompleteSessionError()

    total = session_total_minutes(session.clock_in, session.clock_out)
    schedule = resolve_schedule(db, session.employee_id, session.session_date)
    holiday = company_is_holiday(db, session.company_id, session.session_date)
    work_day_type = classify_work_day(
        session.session_date,
        schedule.work_days if schedule.expected_minutes > 0 else (),
        holiday,
    )

    if work_day_type != WorkDayType.REGULAR:
        regular, overtime, multiplier = total, 0, NON_REGULAR_DAY_MULTIPLIER
    else:
        rules = load_employee_rules(db, session.employee_id)
        week_before = 0
        if has_weekly_rule(rules):
            week_before = sum_week_minutes_before(db, session.employee_id, session.session_date, session.id)
        split = evaluate_overtime(
            total,
            rules,
            week_minutes_before=week_before,
            expected_minutes=expected_minutes_for_day(schedule, session.session_date),
            default_multiplier=resolve_work_settings(db, session.company_id).overtime_multiplier,
        )
        regular, overtime, multiplier = split.regular_minutes, split.overtime_minutes, split.multiplier

    session.total_minutes = total
    session.regular_minutes = regular
    session.overtime_minutes = overtime
    session.overtime_multiplier = multiplier
    if session.status != WorkSessionStatus.EDITED:
        session.status = WorkSessionStatus.COMPLETED
    db.commit()

    logger.info(
        "session_calculated",
        extra={
            "session_id": session.id,
            "employee_id": session.employee_id,
            "session_date": session.session_date,
            "total_minutes": total,
            "regular_minutes": regular,
            "overtime_minutes": overtime,
            "work_day_type": work_day_type.value,
        },
    )

    _recalculate_day_logged(
        db,
        session.employee_id,
        session.session_date,
        work_day_type=work_day_type,
        is_holiday=holiday,
        session_id=session.id,
    )

    return SessionCalculationResult(
        session_id=session.id,
        total_minutes=total,
        regular_minutes=regular,
        overtime_minutes=overtime,
        overtime_multiplier=multiplier,
        work_day_type=work_day_type,
        is_holiday=holiday,
    )


def _calculate_logged(db: Session, session: WorkSession) -> None:
    try:
        calculate_session(db, session.id)
    except Exception:
        db.rollback()
        logger.exception(
            "session_calculation_failed",
            extra={"session_id": session.id, "employee_id": session.employee_id},
        )


def clock_in(
    db: Session,
    employee_id: int,
    clock_in_at: datetime | None = None,
    *,
    now: datetime | None = None,
) -> WorkSession:
    employee = _get_employee(db, employee_id)
    if not employee.is_active:
        raise ValidationError("Employee is inactive")

    open_session_id = db.scalar(
        select(WorkSession.id)
        .where(
            WorkSession.employee_id == employee_id,
            WorkSession.status == WorkSessionStatus.ACTIVE,
            WorkSession.clock_out.is_(None),
        )
        .limit(1)
    )
    if open_session_id is not None:
        raise ValidationError("Employee already has an open session. Clock out first.")

    now_utc = to_utc(now) if now is not None else datetime.now(timezone.utc)
    if clock_in_at is None:
        started_at = now_utc
    else:
        started_at = to_utc(clock_in_at)
        if local_date(started_at) != local_date(now_utc):
            raise ValidationError("Custom clock in time must be today")
        if started_at > now_utc:
            raise ValidationError("Clock in time cannot be in the future")

    session = WorkSession(
        employee_id=employee_id,
        company_id=employee.company_id,
        clock_in=started_at,
        session_date=local_date(started_at),
        status=WorkSessionStatus.ACTIVE,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info(
        "session_clock_in",
        extra={"session_id": session.id, "employee_id": employee_id, "session_date": session.session_date},
    )
    return session


def clock_out(
    db: Session,
    session_id: int,
    *,
    submitted_by: str = "employee",
    clock_out_at: datetime | None = None,
) -> WorkSession:
    session = _get_session(db, session_id)
    if session.status != WorkSessionStatus.ACTIVE:
        raise ValidationError("Session is not active")
    if session.clock_out is not None:
        raise ValidationError("Session already has a clock out time")

    ended_at = to_utc(clock_out_at) if clock_out_at is not None else datetime.now(timezone.utc)
    if ended_at < to_utc(session.clock_in):
        raise InvalidIntervalError()

    session.clock_out = ended_at
    session.clock_out_submitted_by = submitted_by
    db.commit()
    logger.info(
        "session_clock_out",
        extra={"session_id": session.id, "employee_id": session.employee_id, "submitted_by": submitted_by},
    )

    _calculate_logged(db, session)
    return session


def edit_session(
    db: Session,
    session_id: int,
    *,
    clock_in_at: datetime | None = None,
    clock_out_at: datetime | None = None,
    notes: str | None = None,
) -> WorkSession:
    session = _get_session(db, session_id)
    if session.status == WorkSessionStatus.CANCELLED:
        raise ValidationError("Cancelled sessions cannot be edited")

    final_clock_in = to_utc(clock_in_at) if clock_in_at is not None else to_utc(session.clock_in)
    final_clock_out = to_utc(clock_out_at) if clock_out_at is not None else to_utc(session.clock_out)
    if final_clock_out is not None and final_clock_out <= final_clock_in:
        raise InvalidIntervalError()

    previous_date = session.session_date
    if clock_in_at is not None:
        session.clock_in = final_clock_in
        session.session_date = local_date(final_clock_in)
    if clock_out_at is not None:
        session.clock_out = final_clock_out
        session.clock_out_submitted_by = "operator"
    if notes is not None:
        session.notes = notes
    # An open session stays active until it has a clock out.
    if session.clock_out is not None:
        session.status = WorkSessionStatus.EDITED
    session.edited_at = datetime.now(timezone.utc)
    db.commit()
    logger.info(
        "session_edited",
        extra={
            "session_id": session.id,
            "employee_id": session.employee_id,
            "session_date": session.session_date,
            "previous_date": previous_date,
        },
    )

    if session.clock_out is not None:
        _calculate_logged(db, session)
    else:
        _recalculate_day_logged(db, session.employee_id, session.session_date, session_id=session.id)
    if previous_date != session.session_date:
        _recalculate_day_logged(db, session.employee_id, previous_date, session_id=session.id)
    return session


def create_manual_session(
    db: Session,
    employee_id: int,
    session_date: date,
    clock_in_at: datetime,
    clock_out_at: datetime,
    *,
    notes: str | None = None,
) -> WorkSession:
    employee = _get_employee(db, employee_id)
    started_at = to_utc(clock_in_at)
    ended_at = to_utc(clock_out_at)
    if ended_at <= started_at:
        raise InvalidIntervalError()

    session = WorkSession(
        employee_id=employee_id,
        company_id=employee.company_id,
        clock_in=started_at,
        clock_out=ended_at,
        session_date=session_date,
        status=WorkSessionStatus.COMPLETED,
        clock_out_submitted_by="operator",
        notes=notes,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info(
        "manual_session_created",
        extra={"session_id": session.id, "employee_id": employee_id, "session_date": session_date},
    )

    _calculate_logged(db, session)
    return session


def cancel_session(db: Session, session_id: int) -> WorkSession:
    session = _get_session(db, session_id)
    if session.status == WorkSessionStatus.CANCELLED:
        raise ValidationError("Session is already cancelled")

    session.status = WorkSessionStatus.CANCELLED
    db.commit()
    logger.info(
        "session_cancelled",
        extra={"session_id": session.id, "employee_id": session.employee_id, "session_date": session.session_date},
    )

    _recalculate_day_logged(db, session.employee_id, session.session_date, session_id=session.id)
    return session
