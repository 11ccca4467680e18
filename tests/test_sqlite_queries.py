from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
import unittest

from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from mesai import models  # noqa: F401
from mesai.db import Base
from mesai.models import (
    Company,
    CompanyHoliday,
    DailySummaryStatus,
    Employee,
    EmployeeOvertimeRule,
    LeaveRecord,
    LeaveStatus,
    OvertimeRule,
    OvertimeRuleType,
    WorkDayType,
    WorkSession,
    WorkSessionStatus,
)
from mesai.services.daily_summary import has_active_leave, list_day_sessions, recalculate_daily_summary
from mesai.services.holidays import is_holiday
from mesai.services.overtime_rules import WeeklyThreshold, load_employee_rules
from mesai.services.sessions import calculate_session, sum_week_minutes_before

MONDAY = date(2026, 3, 2)
FRIDAY = date(2026, 3, 6)


def _utc(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


class _SqliteTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine("sqlite://")
        Base.metadata.create_all(self.engine)
        self.db = Session(self.engine)
        self.db.add_all(
            [
                Company(id=1, name="Acme"),
                Company(id=2, name="Other"),
                Employee(id=7, company_id=1, full_name="Ayse Yilmaz", is_active=True),
                Employee(id=8, company_id=1, full_name="Mehmet Kaya", is_active=True),
            ]
        )
        self.db.commit()

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def _add_session(
        self,
        day: date,
        minutes: int,
        status: WorkSessionStatus = WorkSessionStatus.COMPLETED,
        employee_id: int = 7,
    ) -> WorkSession:
        clock_in = _utc(day, 6)
        session = WorkSession(
            employee_id=employee_id,
            company_id=1,
            clock_in=clock_in,
            clock_out=clock_in + timedelta(minutes=minutes),
            session_date=day,
            status=status,
            total_minutes=minutes,
            regular_minutes=minutes,
            overtime_minutes=0,
        )
        self.db.add(session)
        self.db.commit()
        return session


class DailySummaryQueryTests(_SqliteTestCase):
    def test_cancelled_session_is_not_counted(self) -> None:
        self._add_session(MONDAY, 240)
        self._add_session(MONDAY, 300, status=WorkSessionStatus.CANCELLED)

        self.assertEqual(len(list_day_sessions(self.db, 7, MONDAY)), 1)

        summary = recalculate_daily_summary(self.db, 7, MONDAY)

        self.assertEqual(summary.total_sessions, 1)
        self.assertEqual(summary.total_work_minutes, 240)
        self.assertEqual(summary.expected_work_minutes, 480)
        self.assertEqual(summary.deficit_minutes, 240)
        self.assertEqual(summary.status, DailySummaryStatus.COMPLETE)

    def test_active_leave_day_gets_leave_status(self) -> None:
        self.db.add_all(
            [
                LeaveRecord(
                    employee_id=7,
                    company_id=1,
                    start_date=MONDAY,
                    end_date=date(2026, 3, 3),
                    leave_type="Yillik Izin",
                    status=LeaveStatus.ACTIVE,
                ),
                LeaveRecord(
                    employee_id=7,
                    company_id=1,
                    start_date=date(2026, 3, 4),
                    end_date=date(2026, 3, 4),
                    leave_type="Rapor",
                    status=LeaveStatus.CANCELLED,
                ),
            ]
        )
        self.db.commit()

        self.assertTrue(has_active_leave(self.db, 7, date(2026, 3, 3)))
        self.assertFalse(has_active_leave(self.db, 7, date(2026, 3, 4)))
        self.assertFalse(has_active_leave(self.db, 8, MONDAY))

        on_leave = recalculate_daily_summary(self.db, 7, date(2026, 3, 3))
        self.assertEqual(on_leave.status, DailySummaryStatus.LEAVE)
        self.assertTrue(on_leave.is_leave)
        self.assertFalse(on_leave.is_absent)
        self.assertEqual(on_leave.expected_work_minutes, 0)

        cancelled_leave = recalculate_daily_summary(self.db, 7, date(2026, 3, 4))
        self.assertEqual(cancelled_leave.status, DailySummaryStatus.ABSENT)
        self.assertEqual(cancelled_leave.deficit_minutes, 480)


class HolidayQueryTests(_SqliteTestCase):
    def test_recurring_and_exact_holidays_through_the_query(self) -> None:
        self.db.add_all(
            [
                CompanyHoliday(company_id=1, holiday_date=date(2020, 3, 4), name="Yerel Bayram", is_recurring=True),
                CompanyHoliday(company_id=1, holiday_date=date(2025, 5, 19), name="Genclik", is_recurring=False),
                CompanyHoliday(company_id=2, holiday_date=date(2026, 3, 9), name="Baska", is_recurring=False),
            ]
        )
        self.db.commit()

        self.assertTrue(is_holiday(self.db, 1, date(2026, 3, 4)))
        self.assertTrue(is_holiday(self.db, 1, date(2025, 5, 19)))
        self.assertFalse(is_holiday(self.db, 1, date(2026, 5, 19)))
        self.assertFalse(is_holiday(self.db, 1, date(2026, 3, 9)))
        self.assertFalse(is_holiday(self.db, 2, date(2026, 3, 4)))

    def test_recurring_holiday_summary_is_classified_as_holiday(self) -> None:
        self.db.add(CompanyHoliday(company_id=1, holiday_date=date(2020, 3, 4), name="Yerel Bayram", is_recurring=True))
        self.db.commit()

        summary = recalculate_daily_summary(self.db, 7, date(2026, 3, 4))

        self.assertEqual(summary.work_day_type, WorkDayType.HOLIDAY)
        self.assertEqual(summary.status, DailySummaryStatus.HOLIDAY)
        self.assertFalse(summary.is_absent)


class WeeklyRuleQueryTests(_SqliteTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.db.add_all(
            [
                OvertimeRule(
                    id=5,
                    company_id=1,
                    name="Haftalik 40 saat",
                    rule_type=OvertimeRuleType.WEEKLY_THRESHOLD,
                    threshold_minutes=2400,
                    multiplier=1.5,
                    priority=0,
                    is_active=True,
                ),
                OvertimeRule(
                    id=6,
                    company_id=1,
                    name="Pasif gunluk",
                    rule_type=OvertimeRuleType.DAILY_THRESHOLD,
                    threshold_minutes=60,
                    multiplier=3.0,
                    priority=99,
                    is_active=False,
                ),
                OvertimeRule(
                    id=7,
                    company_id=1,
                    name="Baskasinin kurali",
                    rule_type=OvertimeRuleType.DAILY_THRESHOLD,
                    threshold_minutes=60,
                    multiplier=2.0,
                    priority=50,
                    is_active=True,
                ),
                EmployeeOvertimeRule(employee_id=7, overtime_rule_id=5),
                EmployeeOvertimeRule(employee_id=7, overtime_rule_id=6),
                EmployeeOvertimeRule(employee_id=8, overtime_rule_id=7),
            ]
        )
        self.db.commit()

        # Monday to Thursday: 4 x 575 = 2300 counted minutes.
        for offset in range(4):
            self._add_session(MONDAY + timedelta(days=offset), 575)
        self._add_session(date(2026, 3, 5), 500, status=WorkSessionStatus.CANCELLED)
        self._add_session(date(2026, 2, 27), 600)
        self._add_session(date(2026, 3, 9), 600)
        self._add_session(date(2026, 3, 3), 400, employee_id=8)

    def test_only_assigned_active_rules_are_loaded(self) -> None:
        rules = load_employee_rules(self.db, 7)

        self.assertEqual(rules, [WeeklyThreshold(rule_id=5, threshold_minutes=2400, multiplier=1.5, priority=0)])

    def test_friday_session_crosses_the_weekly_threshold(self) -> None:
        current = WorkSession(
            employee_id=7,
            company_id=1,
            clock_in=_utc(FRIDAY, 6),
            clock_out=_utc(FRIDAY, 9, 20),
            session_date=FRIDAY,
            status=WorkSessionStatus.EDITED,
            total_minutes=200,
        )
        self.db.add(current)
        self.db.commit()

        self.assertEqual(sum_week_minutes_before(self.db, 7, FRIDAY, current.id), 2300)

        result = calculate_session(self.db, current.id)

        self.assertEqual(result.total_minutes, 200)
        self.assertEqual(result.regular_minutes, 100)
        self.assertEqual(result.overtime_minutes, 100)
        self.assertEqual(result.overtime_multiplier, 1.5)
        self.assertEqual(result.work_day_type, WorkDayType.REGULAR)

        summary = recalculate_daily_summary(self.db, 7, FRIDAY)
        self.assertEqual(summary.total_regular_minutes, 100)
        self.assertEqual(summary.total_overtime_minutes, 100)


if __name__ == "__main__":
    unittest.main()
