from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
import unittest
from unittest.mock import patch

from mesai.errors import IncompleteSessionError, InvalidIntervalError, NotFoundError, ValidationError
from mesai.models import Employee, WorkDayType, WorkSession, WorkSessionStatus
from mesai.services.overtime_rules import WeeklyThreshold
from mesai.services.schedules import ResolvedSchedule
from mesai.services.sessions import calculate_session, cancel_session, clock_in, clock_out, edit_session
from mesai.services.work_settings import default_work_settings

_WEEKDAY_SCHEDULE = ResolvedSchedule(
    work_days=(1, 2, 3, 4, 5),
    start_time=time(9, 0),
    end_time=time(18, 0),
    break_minutes=60,
    expected_minutes=480,
    source="TEMPLATE",
    schedule_id=1,
)


class _FakeSessionDB:
    def __init__(self, objects=None, scalar_values=None):
        self._objects = dict(objects or {})
        self._scalar_values = list(scalar_values or [])
        self.added: list[object] = []
        self.commits = 0
        self.rollbacks = 0

    def get(self, model, ident):  # type: ignore[no-untyped-def]
        return self._objects.get((model, ident))

    def scalar(self, _statement):  # type: ignore[no-untyped-def]
        if not self._scalar_values:
            return None
        return self._scalar_values.pop(0)

    def add(self, obj: object) -> None:
        self.added.append(obj)

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def refresh(self, _obj: object) -> None:
        return


def _session(**overrides) -> WorkSession:
    values = {
        "id": 21,
        "employee_id": 7,
        "company_id": 3,
        "clock_in": datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc),
        "clock_out": datetime(2026, 3, 2, 16, 30, tzinfo=timezone.utc),
        "session_date": date(2026, 3, 2),
        "status": WorkSessionStatus.ACTIVE,
    }
    values.update(overrides)
    return WorkSession(**values)


class CalculateSessionTests(unittest.TestCase):
    def _patches(self, *, holiday: bool = False, rules=None, schedule=_WEEKDAY_SCHEDULE):
        return (
            patch("mesai.services.sessions.resolve_schedule", return_value=schedule),
            patch("mesai.services.sessions.company_is_holiday", return_value=holiday),
            patch("mesai.services.sessions.load_employee_rules", return_value=list(rules or [])),
            patch("mesai.services.sessions.resolve_work_settings", return_value=default_work_settings(3)),
        )

    def test_regular_day_splits_on_expected_minutes(self) -> None:
        session = _session()
        fake_db = _FakeSessionDB(objects={(WorkSession, 21): session})
        schedule_patch, holiday_patch, rules_patch, settings_patch = self._patches()

        with schedule_patch, holiday_patch, rules_patch, settings_patch, patch(
            "mesai.services.sessions.recalculate_daily_summary"
        ) as recalc:
            result = calculate_session(fake_db, 21)  # type: ignore[arg-type]

        self.assertEqual(result.total_minutes, 630)
        self.assertEqual(result.regular_minutes, 480)
        self.assertEqual(result.overtime_minutes, 150)
        self.assertEqual(result.overtime_multiplier, 1.5)
        self.assertEqual(result.work_day_type, WorkDayType.REGULAR)
        self.assertEqual(session.status, WorkSessionStatus.COMPLETED)
        self.assertEqual(session.total_minutes, 630)
        recalc.assert_called_once_with(fake_db, 7, date(2026, 3, 2), WorkDayType.REGULAR, False)

    def test_edited_session_keeps_edited_status(self) -> None:
        session = _session(status=WorkSessionStatus.EDITED)
        fake_db = _FakeSessionDB(objects={(WorkSession, 21): session})
        schedule_patch, holiday_patch, rules_patch, settings_patch = self._patches()

        with schedule_patch, holiday_patch, rules_patch, settings_patch, patch(
            "mesai.services.sessions.recalculate_daily_summary"
        ):
            calculate_session(fake_db, 21)  # type: ignore[arg-type]

        self.assertEqual(session.status, WorkSessionStatus.EDITED)

    def test_weekend_minutes_are_all_regular(self) -> None:
        session = _session(
            clock_in=datetime(2026, 3, 7, 7, 0, tzinfo=timezone.utc),
            clock_out=datetime(2026, 3, 7, 17, 0, tzinfo=timezone.utc),
            session_date=date(2026, 3, 7),
        )
        fake_db = _FakeSessionDB(objects={(WorkSession, 21): session})
        schedule_patch, holiday_patch, rules_patch, settings_patch = self._patches()

        with schedule_patch, holiday_patch, rules_patch, settings_patch, patch(
            "mesai.services.sessions.recalculate_daily_summary"
        ) as recalc:
            result = calculate_session(fake_db, 21)  # type: ignore[arg-type]

        self.assertEqual(result.work_day_type, WorkDayType.WEEKEND)
        self.assertEqual(result.regular_minutes, 600)
        self.assertEqual(result.overtime_minutes, 0)
        self.assertEqual(result.overtime_multiplier, 1.0)
        recalc.assert_called_once_with(fake_db, 7, date(2026, 3, 7), WorkDayType.WEEKEND, False)

    def test_holiday_is_flagged(self) -> None:
        session = _session()
        fake_db = _FakeSessionDB(objects={(WorkSession, 21): session})
        schedule_patch, holiday_patch, rules_patch, settings_patch = self._patches(holiday=True)

        with schedule_patch, holiday_patch, rules_patch, settings_patch, patch(
            "mesai.services.sessions.recalculate_daily_summary"
        ):
            result = calculate_session(fake_db, 21)  # type: ignore[arg-type]

        self.assertTrue(result.is_holiday)
        self.assertEqual(result.work_day_type, WorkDayType.HOLIDAY)
        self.assertEqual(result.overtime_minutes, 0)

    def test_weekly_rule_uses_sibling_sessions(self) -> None:
        session = _session(
            clock_in=datetime(2026, 3, 6, 6, 0, tzinfo=timezone.utc),
            clock_out=datetime(2026, 3, 6, 9, 20, tzinfo=timezone.utc),
            session_date=date(2026, 3, 6),
        )
        fake_db = _FakeSessionDB(objects={(WorkSession, 21): session})
        rules = [WeeklyThreshold(rule_id=5, threshold_minutes=2400, multiplier=1.5)]
        schedule_patch, holiday_patch, rules_patch, settings_patch = self._patches(rules=rules)

        with schedule_patch, holiday_patch, rules_patch, settings_patch, patch(
            "mesai.services.sessions.sum_week_minutes_before", return_value=2300
        ) as week_sum, patch("mesai.services.sessions.recalculate_daily_summary"):
            result = calculate_session(fake_db, 21)  # type: ignore[arg-type]

        week_sum.assert_called_once_with(fake_db, 7, date(2026, 3, 6), 21)
        self.assertEqual(result.total_minutes, 200)
        self.assertEqual(result.overtime_minutes, 100)
        self.assertEqual(result.regular_minutes, 100)

    def test_missing_session_raises_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            calculate_session(_FakeSessionDB(), 404)  # type: ignore[arg-type]

    def test_open_session_raises_incomplete(self) -> None:
        fake_db = _FakeSessionDB(objects={(WorkSession, 21): _session(clock_out=None)})
        with self.assertRaises(IncompleteSessionError):
            calculate_session(fake_db, 21)  # type: ignore[arg-type]
        self.assertEqual(fake_db.commits, 0)

    def test_reversed_interval_raises_before_any_write(self) -> None:
        session = _session(
            clock_in=datetime(2026, 3, 2, 16, 0, tzinfo=timezone.utc),
            clock_out=datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc),
        )
        fake_db = _FakeSessionDB(objects={(WorkSession, 21): session})
        with self.assertRaises(InvalidIntervalError):
            calculate_session(fake_db, 21)  # type: ignore[arg-type]
        self.assertEqual(fake_db.commits, 0)
        self.assertIsNone(session.total_minutes)

    def test_downstream_failure_still_returns_result(self) -> None:
        session = _session()
        fake_db = _FakeSessionDB(objects={(WorkSession, 21): session})
        schedule_patch, holiday_patch, rules_patch, settings_patch = self._patches()

        with schedule_patch, holiday_patch, rules_patch, settings_patch, patch(
            "mesai.services.sessions.recalculate_daily_summary", side_effect=RuntimeError("db down")
        ), self.assertLogs("mesai.sessions", level="ERROR") as captured:
            result = calculate_session(fake_db, 21)  # type: ignore[arg-type]

        self.assertEqual(result.total_minutes, 630)
        self.assertEqual(fake_db.commits, 1)
        self.assertEqual(fake_db.rollbacks, 1)
        self.assertIn("daily_summary_recalculation_failed", captured.output[0])


class SessionLifecycleTests(unittest.TestCase):
    def test_clock_in_rejects_second_open_session(self) -> None:
        employee = Employee(id=7, company_id=3, full_name="Ayse", is_active=True)
        fake_db = _FakeSessionDB(objects={(Employee, 7): employee}, scalar_values=[99])

        with self.assertRaises(ValidationError):
            clock_in(fake_db, 7)  # type: ignore[arg-type]
        self.assertEqual(fake_db.added, [])

    def test_clock_in_derives_local_session_date(self) -> None:
        employee = Employee(id=7, company_id=3, full_name="Ayse", is_active=True)
        fake_db = _FakeSessionDB(objects={(Employee, 7): employee}, scalar_values=[None])
        now = datetime(2026, 3, 2, 22, 30, tzinfo=timezone.utc)

        session = clock_in(fake_db, 7, now - timedelta(minutes=10), now=now)  # type: ignore[arg-type]

        # 22:20 UTC is already the next day in Istanbul (UTC+3).
        self.assertEqual(session.session_date, date(2026, 3, 3))
        self.assertEqual(session.status, WorkSessionStatus.ACTIVE)
        self.assertEqual(session.company_id, 3)
        self.assertEqual(fake_db.commits, 1)

    def test_clock_in_rejects_future_or_other_day(self) -> None:
        employee = Employee(id=7, company_id=3, full_name="Ayse", is_active=True)
        now = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)

        for custom in (now + timedelta(minutes=5), now - timedelta(days=1)):
            fake_db = _FakeSessionDB(objects={(Employee, 7): employee}, scalar_values=[None])
            with self.assertRaises(ValidationError):
                clock_in(fake_db, 7, custom, now=now)  # type: ignore[arg-type]

    def test_clock_out_requires_active_session(self) -> None:
        session = _session(status=WorkSessionStatus.COMPLETED)
        fake_db = _FakeSessionDB(objects={(WorkSession, 21): session})

        with self.assertRaises(ValidationError):
            clock_out(fake_db, 21)  # type: ignore[arg-type]

    def test_clock_out_records_submitter_and_calculates(self) -> None:
        session = _session(clock_out=None)
        fake_db = _FakeSessionDB(objects={(WorkSession, 21): session})
        ended = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)

        with patch("mesai.services.sessions.calculate_session") as calculate:
            clock_out(fake_db, 21, submitted_by="operator", clock_out_at=ended)  # type: ignore[arg-type]

        self.assertEqual(session.clock_out, ended)
        self.assertEqual(session.clock_out_submitted_by, "operator")
        calculate.assert_called_once_with(fake_db, 21)

    def test_edit_session_rejects_clock_out_before_clock_in(self) -> None:
        fake_db = _FakeSessionDB(objects={(WorkSession, 21): _session()})

        with self.assertRaises(InvalidIntervalError):
            edit_session(  # type: ignore[arg-type]
                fake_db,
                21,
                clock_out_at=datetime(2026, 3, 2, 5, 0, tzinfo=timezone.utc),
            )
        self.assertEqual(fake_db.commits, 0)

    def test_edit_session_moving_day_recalculates_both_days(self) -> None:
        session = _session(status=WorkSessionStatus.COMPLETED)
        fake_db = _FakeSessionDB(objects={(WorkSession, 21): session})

        with patch("mesai.services.sessions.calculate_session") as calculate, patch(
            "mesai.services.sessions.recalculate_daily_summary"
        ) as recalc:
            edit_session(  # type: ignore[arg-type]
                fake_db,
                21,
                clock_in_at=datetime(2026, 3, 3, 6, 0, tzinfo=timezone.utc),
                clock_out_at=datetime(2026, 3, 3, 14, 0, tzinfo=timezone.utc),
            )

        self.assertEqual(session.status, WorkSessionStatus.EDITED)
        self.assertEqual(session.session_date, date(2026, 3, 3))
        self.assertIsNotNone(session.edited_at)
        calculate.assert_called_once_with(fake_db, 21)
        recalc.assert_called_once_with(fake_db, 7, date(2026, 3, 2), None, None)

    def test_notes_edit_keeps_open_session_active(self) -> None:
        session = _session(clock_out=None)
        fake_db = _FakeSessionDB(objects={(WorkSession, 21): session})

        with patch("mesai.services.sessions.calculate_session") as calculate, patch(
            "mesai.services.sessions.recalculate_daily_summary"
        ) as recalc:
            edit_session(fake_db, 21, notes="forgot badge")  # type: ignore[arg-type]

        self.assertEqual(session.status, WorkSessionStatus.ACTIVE)
        self.assertEqual(session.notes, "forgot badge")
        self.assertIsNotNone(session.edited_at)
        calculate.assert_not_called()
        recalc.assert_called_once_with(fake_db, 7, date(2026, 3, 2), None, None)

        with patch("mesai.services.sessions.calculate_session"):
            clock_out(  # type: ignore[arg-type]
                fake_db,
                21,
                clock_out_at=datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc),
            )
        self.assertEqual(session.clock_out, datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc))

    def test_cancel_session_recalculates_day(self) -> None:
        session = _session(status=WorkSessionStatus.COMPLETED)
        fake_db = _FakeSessionDB(objects={(WorkSession, 21): session})

        with patch("mesai.services.sessions.recalculate_daily_summary") as recalc:
            cancel_session(fake_db, 21)  # type: ignore[arg-type]

        self.assertEqual(session.status, WorkSessionStatus.CANCELLED)
        recalc.assert_called_once_with(fake_db, 7, date(2026, 3, 2), None, None)

        with self.assertRaises(ValidationError):
            cancel_session(fake_db, 21)  # type: ignore[arg-type]


if __name__ == "__main__":
    unittest.main()
