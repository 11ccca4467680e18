from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from mesai.models import EmployeeOvertimeRule, OvertimeRule, OvertimeRuleType

RULE_FALLBACK_MULTIPLIER = 1.5


@dataclass(frozen=True, slots=True)
class DailyThreshold:
    rule_id: int | None
    threshold_minutes: int
    multiplier: float
    priority: int = 0


@dataclass(frozen=True, slots=True)
class WeeklyThreshold:
    rule_id: int | None
    threshold_minutes: int
    multiplier: float
    priority: int = 0


@dataclass(frozen=True, slots=True)
class CustomRule:
    rule_id: int | None
    priority: int = 0


OvertimeRuleKind = Union[DailyThreshold, WeeklyThreshold, CustomRule]


@dataclass(frozen=True, slots=True)
class OvertimeSplit:
    regular_minutes: int
    overtime_minutes: int
    multiplier: float
    rule_id: int | None = None


def _rule_multiplier(value: float | None) -> float:
    if value is None or float(value) <= 0:
        return RULE_FALLBACK_MULTIPLIER
    return float(value)


def rule_from_row(rule: OvertimeRule) -> OvertimeRuleKind | None:
    """Map a stored rule onto its evaluated form; None drops the rule."""
    if not rule.is_active:
        return None
    priority = int(rule.priority or 0)
    threshold = int(rule.threshold_minutes or 0)
    if rule.rule_type == OvertimeRuleType.DAILY_THRESHOLD:
        if threshold <= 0:
            return None
        return DailyThreshold(rule.id, threshold, _rule_multiplier(rule.multiplier), priority)
    if rule.rule_type == OvertimeRuleType.WEEKLY_THRESHOLD:
        if threshold <= 0:
            return None
        return WeeklyThreshold(rule.id, threshold, _rule_multiplier(rule.multiplier), priority)
    return CustomRule(rule.id, priority)


def order_rules(rules: Sequence[OvertimeRuleKind]) -> list[OvertimeRuleKind]:
    return sorted(rules, key=lambda item: (-item.priority, item.rule_id or 0))


def has_weekly_rule(rules: Sequence[OvertimeRuleKind]) -> bool:
    return any(isinstance(item, WeeklyThreshold) for item in rules)


def evaluate_overtime(
    total_minutes: int,
    rules: Sequence[OvertimeRuleKind],
    *,
    week_minutes_before: int = 0,
    expected_minutes: int,
    default_multiplier: float,
) -> OvertimeSplit:
    total_minutes = max(0, int(total_minutes))
    for rule in order_rules(rules):
        if isinstance(rule, DailyThreshold):
            if total_minutes > rule.threshold_minutes:
                return OvertimeSplit(
                    regular_minutes=rule.threshold_minutes,
                    overtime_minutes=total_minutes - rule.threshold_minutes,
                    multiplier=rule.multiplier,
                    rule_id=rule.rule_id,
                )
        elif isinstance(rule, WeeklyThreshold):
            week_total = week_minutes_before + total_minutes
            if week_total > rule.threshold_minutes:
                overtime = min(total_minutes, week_total - rule.threshold_minutes)
                return OvertimeSplit(
                    regular_minutes=total_minutes - overtime,
                    overtime_minutes=overtime,
                    multiplier=rule.multiplier,
                    rule_id=rule.rule_id,
                )
        elif isinstance(rule, CustomRule):
            continue
        else:  # pragma: no cover - exhaustive over OvertimeRuleKind
            raise TypeError(f"Unsupported overtime rule: {rule!r}")

    expected_minutes = max(0, int(expected_minutes))
    return OvertimeSplit(
        regular_minutes=min(total_minutes, expected_minutes),
        overtime_minutes=max(0, total_minutes - expected_minutes),
        multiplier=default_multiplier,
    )


def load_employee_rules(db: Session, employee_id: int) -> list[OvertimeRuleKind]:
    rows = db.scalars(
        select(OvertimeRule)
        .join(EmployeeOvertimeRule, EmployeeOvertimeRule.overtime_rule_id == OvertimeRule.id)
        .where(EmployeeOvertimeRule.employee_id == employee_id)
    ).all()
    converted = [rule_from_row(row) for row in rows]
    return order_rules([item for item in converted if item is not None])
