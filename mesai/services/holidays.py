from __future__ import annotations

from datetime import date
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from mesai.models import CompanyHoliday, WorkDayType
from mesai.services.timeutils import iter_dates


def _month_day(value: date) -> tuple[int, int]:
    return value.month, value.day


def matches_holiday(holidays: Sequence[CompanyHoliday], target_date: date) -> bool:
    if any(item.holiday_date == target_date for item in holidays):
        return True
    target_month_day = _month_day(target_date)
    return any(item.is_recurring and _month_day(item.holiday_date) == target_month_day for item in holidays)


def list_company_holidays(db: Session, company_id: int) -> list[CompanyHoliday]:
    return list(db.scalars(select(CompanyHoliday).where(CompanyHoliday.company_id == company_id)).all())


def is_holiday(db: Session, company_id: int, target_date: date) -> bool:
    exact = db.scalar(
        select(CompanyHoliday.id)
        .where(
            CompanyHoliday.company_id == company_id,
            CompanyHoliday.holiday_date == target_date,
        )
        .limit(1)
    )
    if exact is not None:
        return True

    recurring = db.scalars(
        select(CompanyHoliday).where(
            CompanyHoliday.company_id == company_id,
            CompanyHoliday.is_recurring.is_(True),
        )
    ).all()
    return matches_holiday(list(recurring), target_date)


def classify_work_day(target_date: date, work_days: Sequence[int], holiday: bool) -> WorkDayType:
    if holiday:
        return WorkDayType.HOLIDAY
    if target_date.isoweekday() not in work_days:
        return WorkDayType.WEEKEND
    return WorkDayType.REGULAR


def holiday_dates_from_rows(holidays: Sequence[CompanyHoliday], start_date: date, end_date: date) -> set[date]:
    return {day for day in iter_dates(start_date, end_date) if matches_holiday(holidays, day)}


def holiday_dates_in_range(db: Session, company_id: int, start_date: date, end_date: date) -> set[date]:
    return holiday_dates_from_rows(list_company_holidays(db, company_id), start_date, end_date)
