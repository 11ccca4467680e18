from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from mesai.errors import NotEligibleError, NotFoundError
from mesai.models import DailySummary, EmployeeSpecialDayType, SpecialDayCalculationMode, SpecialDayType
from mesai.services.timeutils import round_half_up
from mesai.services.work_settings import BOSS_CALL_CODE, resolve_work_settings
from mesai.settings import get_settings

logger = logging.getLogger("mesai.special_days")

DEFAULT_SPECIAL_DAY_MULTIPLIER = 1.5


@dataclass(frozen=True, slots=True)
class SpecialDayConfig:
    calculation_mode: SpecialDayCalculationMode
    multiplier: float = DEFAULT_SPECIAL_DAY_MULTIPLIER
    base_minutes: int = 0
    extra_minutes: int = 0
    extra_multiplier: float = DEFAULT_SPECIAL_DAY_MULTIPLIER

    @classmethod
    def from_row(cls, row: SpecialDayType) -> "SpecialDayConfig":
        multiplier = float(row.multiplier or 0) or DEFAULT_SPECIAL_DAY_MULTIPLIER
        return cls(
            calculation_mode=SpecialDayCalculationMode(row.calculation_mode),
            multiplier=multiplier,
            base_minutes=int(row.base_minutes or 0),
            extra_minutes=int(row.extra_minutes or 0),
            extra_multiplier=float(row.extra_multiplier or 0),
        )


def calculate_boss_call_effective(worked_minutes: int, expected_minutes: int, multiplier: float) -> int:
    """Round worked time up to half or full day, then apply the multiplier.

    Anything under half the expected day counts as half a day, anything up to
    the expected day counts as the full day, longer days keep their real length.
    """
    half_day = round_half_up(expected_minutes / 2)
    if worked_minutes <= 0 or worked_minutes < half_day:
        rounded = half_day
    elif worked_minutes <= expected_minutes:
        rounded = expected_minutes
    else:
        rounded = worked_minutes
    return round_half_up(rounded * multiplier)


def calculate_special_day_effective(worked_minutes: int, expected_minutes: int, config: SpecialDayConfig) -> int:
    if config.calculation_mode == SpecialDayCalculationMode.FIXED_HOURS:
        return round_half_up(config.base_minutes + config.extra_minutes * config.extra_multiplier)
    return calculate_boss_call_effective(worked_minutes, expected_minutes, config.multiplier)


def special_day_expected_minutes(expected_minutes: int | None) -> int:
    return expected_minutes or get_settings().default_special_day_expected_minutes


def _get_summary(db: Session, employee_id: int, target_date: date) -> DailySummary:
    summary = db.scalar(
        select(DailySummary).where(
            DailySummary.employee_id == employee_id,
            DailySummary.summary_date == target_date,
        )
    )
    if summary is None:
        raise NotFoundError("Daily summary not found for this employee and date")
    return summary


def _clear_special_day(summary: DailySummary) -> None:
    summary.special_day_type_id = None
    summary.is_boss_call = False
    summary.effective_work_minutes = summary.total_work_minutes


def _ensure_eligible(db: Session, employee_id: int, day_type: SpecialDayType) -> None:
    if day_type.applies_to_all:
        return
    assignment_id = db.scalar(
        select(EmployeeSpecialDayType.id).where(
            EmployeeSpecialDayType.employee_id == employee_id,
            EmployeeSpecialDayType.special_day_type_id == day_type.id,
        )
    )
    if assignment_id is None:
        raise NotEligibleError()


def toggle_special_day(
    db: Session,
    employee_id: int,
    target_date: date,
    special_day_type_id: int | None,
) -> DailySummary:
    summary = _get_summary(db, employee_id, target_date)

    if special_day_type_id is None:
        _clear_special_day(summary)
        db.commit()
        logger.info(
            "special_day_cleared",
            extra={"employee_id": employee_id, "summary_date": target_date},
        )
        return summary

    day_type = db.get(SpecialDayType, special_day_type_id)
    if day_type is None or not day_type.is_active or day_type.company_id != summary.company_id:
        raise NotFoundError("Special day type not found or inactive")
    _ensure_eligible(db, employee_id, day_type)

    summary.special_day_type_id = day_type.id
    summary.is_boss_call = day_type.code == BOSS_CALL_CODE
    summary.effective_work_minutes = calculate_special_day_effective(
        summary.total_work_minutes,
        special_day_expected_minutes(summary.expected_work_minutes),
        SpecialDayConfig.from_row(day_type),
    )
    db.commit()
    logger.info(
        "special_day_applied",
        extra={
            "employee_id": employee_id,
            "summary_date": target_date,
            "special_day_type_id": day_type.id,
            "effective_work_minutes": summary.effective_work_minutes,
        },
    )
    return summary


def toggle_boss_call(db: Session, employee_id: int, target_date: date, enabled: bool) -> DailySummary:
    summary = _get_summary(db, employee_id, target_date)

    if not enabled:
        _clear_special_day(summary)
        db.commit()
        return summary

    boss_call_type = db.scalar(
        select(SpecialDayType).where(
            SpecialDayType.company_id == summary.company_id,
            SpecialDayType.code == BOSS_CALL_CODE,
            SpecialDayType.is_active.is_(True),
        )
    )
    if boss_call_type is not None:
        multiplier = float(boss_call_type.multiplier or 0) or DEFAULT_SPECIAL_DAY_MULTIPLIER
    else:
        multiplier = resolve_work_settings(db, summary.company_id).boss_call_multiplier

    summary.is_boss_call = True
    summary.special_day_type_id = boss_call_type.id if boss_call_type is not None else None
    summary.effective_work_minutes = calculate_boss_call_effective(
        summary.total_work_minutes,
        special_day_expected_minutes(summary.expected_work_minutes),
        multiplier,
    )
    db.commit()
    logger.info(
        "boss_call_applied",
        extra={
            "employee_id": employee_id,
            "summary_date": target_date,
            "special_day_type_id": summary.special_day_type_id,
            "effective_work_minutes": summary.effective_work_minutes,
        },
    )
    return summary
