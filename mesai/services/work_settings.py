from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from mesai.errors import NotFoundError
from mesai.models import Company, CompanyWorkSettings, SpecialDayType
from mesai.settings import get_settings

logger = logging.getLogger("mesai.work_settings")

BOSS_CALL_CODE = "boss_call"


@dataclass(frozen=True, slots=True)
class WorkSettingsValues:
    company_id: int
    overtime_multiplier: float
    weekend_multiplier: float
    holiday_multiplier: float
    boss_call_multiplier: float
    monthly_work_days_constant: float
    is_default: bool

    def to_dict(self) -> dict[str, float]:
        return {
            "overtime_multiplier": self.overtime_multiplier,
            "weekend_multiplier": self.weekend_multiplier,
            "holiday_multiplier": self.holiday_multiplier,
            "boss_call_multiplier": self.boss_call_multiplier,
            "monthly_work_days_constant": self.monthly_work_days_constant,
        }


def default_work_settings(company_id: int) -> WorkSettingsValues:
    settings = get_settings()
    return WorkSettingsValues(
        company_id=company_id,
        overtime_multiplier=settings.default_overtime_multiplier,
        weekend_multiplier=settings.default_weekend_multiplier,
        holiday_multiplier=settings.default_holiday_multiplier,
        boss_call_multiplier=settings.default_boss_call_multiplier,
        monthly_work_days_constant=settings.default_monthly_work_days_constant,
        is_default=True,
    )


def _positive_or(value: float | None, fallback: float) -> float:
    if value is None:
        return fallback
    numeric = float(value)
    return numeric if numeric > 0 else fallback


def work_settings_from_row(row: CompanyWorkSettings | None, company_id: int) -> WorkSettingsValues:
    defaults = default_work_settings(company_id)
    if row is None:
        return defaults
    return WorkSettingsValues(
        company_id=company_id,
        overtime_multiplier=_positive_or(row.overtime_multiplier, defaults.overtime_multiplier),
        weekend_multiplier=_positive_or(row.weekend_multiplier, defaults.weekend_multiplier),
        holiday_multiplier=_positive_or(row.holiday_multiplier, defaults.holiday_multiplier),
        boss_call_multiplier=_positive_or(row.boss_call_multiplier, defaults.boss_call_multiplier),
        monthly_work_days_constant=_positive_or(row.monthly_work_days_constant, defaults.monthly_work_days_constant),
        is_default=False,
    )


def resolve_work_settings(db: Session, company_id: int) -> WorkSettingsValues:
    row = db.scalar(select(CompanyWorkSettings).where(CompanyWorkSettings.company_id == company_id))
    return work_settings_from_row(row, company_id)


def upsert_work_settings(
    db: Session,
    company_id: int,
    *,
    overtime_multiplier: float,
    weekend_multiplier: float,
    holiday_multiplier: float,
    boss_call_multiplier: float,
    monthly_work_days_constant: float,
) -> WorkSettingsValues:
    if db.get(Company, company_id) is None:
        raise NotFoundError("Company not found")

    row = db.scalar(select(CompanyWorkSettings).where(CompanyWorkSettings.company_id == company_id))
    if row is None:
        row = CompanyWorkSettings(company_id=company_id)
        db.add(row)

    row.overtime_multiplier = overtime_multiplier
    row.weekend_multiplier = weekend_multiplier
    row.holiday_multiplier = holiday_multiplier
    row.boss_call_multiplier = boss_call_multiplier
    row.monthly_work_days_constant = monthly_work_days_constant

    boss_call_type = db.scalar(
        select(SpecialDayType).where(
            SpecialDayType.company_id == company_id,
            SpecialDayType.code == BOSS_CALL_CODE,
        )
    )
    if boss_call_type is not None:
        boss_call_type.multiplier = boss_call_multiplier

    db.commit()
    logger.info(
        "work_settings_upserted",
        extra={
            "company_id": company_id,
            "boss_call_type_synced": boss_call_type is not None,
        },
    )
    return work_settings_from_row(row, company_id)
