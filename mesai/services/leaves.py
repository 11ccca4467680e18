from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.orm import Session

from mesai.errors import NotFoundError, ValidationError
from mesai.models import Employee, LeaveRecord, LeaveStatus
from mesai.services.daily_summary import recalculate_daily_summary
from mesai.services.timeutils import iter_dates

logger = logging.getLogger("mesai.leaves")


def _recalculate_leave_days(db: Session, leave: LeaveRecord) -> int:
    failures = 0
    for day in iter_dates(leave.start_date, leave.end_date):
        try:
            recalculate_daily_summary(db, leave.employee_id, day)
        except Exception:
            db.rollback()
            failures += 1
            logger.exception(
                "daily_summary_recalculation_failed",
                extra={"employee_id": leave.employee_id, "summary_date": day, "leave_id": leave.id},
            )
    return failures


def record_leave(
    db: Session,
    employee_id: int,
    start_date: date,
    end_date: date,
    leave_type: str,
    reason: str | None = None,
) -> LeaveRecord:
    if end_date < start_date:
        raise ValidationError("end_date must be on or after start_date")
    if not (leave_type or "").strip():
        raise ValidationError("leave_type is required")

    employee = db.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")

    leave = LeaveRecord(
        employee_id=employee_id,
        company_id=employee.company_id,
        start_date=start_date,
        end_date=end_date,
        leave_type=leave_type.strip(),
        reason=reason,
        status=LeaveStatus.ACTIVE,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)

    failures = _recalculate_leave_days(db, leave)
    logger.info(
        "leave_recorded",
        extra={
            "leave_id": leave.id,
            "employee_id": employee_id,
            "start_date": start_date,
            "end_date": end_date,
            "recalculation_failures": failures,
        },
    )
    return leave


def cancel_leave(db: Session, leave_id: int) -> LeaveRecord:
    leave = db.get(LeaveRecord, leave_id)
    if leave is None:
        raise NotFoundError("Leave record not found")
    if leave.status == LeaveStatus.CANCELLED:
        raise ValidationError("Leave record is already cancelled")

    leave.status = LeaveStatus.CANCELLED
    db.commit()

    failures = _recalculate_leave_days(db, leave)
    logger.info(
        "leave_cancelled",
        extra={"leave_id": leave.id, "employee_id": leave.employee_id, "recalculation_failures": failures},
    )
    return leave
