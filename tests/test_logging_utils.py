from __future__ import annotations

from datetime import date
import json
import logging
import sys
import unittest

from mesai.logging_utils import JsonFormatter, record_extras
from mesai.models import DailySummaryStatus, WorkDayType


def _record(message: str, level: int = logging.INFO, **extra) -> logging.LogRecord:
    logger = logging.getLogger("mesai.daily_summary")
    return logger.makeRecord(logger.name, level, __file__, 1, message, (), None, extra=extra)


class JsonFormatterTests(unittest.TestCase):
    def test_extras_are_serialized_with_domain_values(self) -> None:
        record = _record(
            "daily_summary_upserted",
            employee_id=7,
            summary_date=date(2026, 3, 2),
            status=DailySummaryStatus.COMPLETE,
            work_day_type=WorkDayType.HOLIDAY,
        )

        payload = json.loads(JsonFormatter().format(record))

        self.assertEqual(payload["message"], "daily_summary_upserted")
        self.assertEqual(payload["logger"], "mesai.daily_summary")
        self.assertEqual(payload["level"], "INFO")
        self.assertEqual(payload["employee_id"], 7)
        self.assertEqual(payload["summary_date"], "2026-03-02")
        self.assertEqual(payload["status"], "complete")
        self.assertEqual(payload["work_day_type"], "holiday")
        self.assertNotIn("lineno", payload)
        self.assertNotIn("args", payload)

    def test_record_extras_only_returns_caller_fields(self) -> None:
        record = _record("session_calculated", session_id=21)

        self.assertEqual(record_extras(record), {"session_id": 21})

    def test_exception_is_included(self) -> None:
        try:
            raise RuntimeError("db down")
        except RuntimeError:
            logger = logging.getLogger("mesai.sessions")
            record = logger.makeRecord(
                logger.name,
                logging.ERROR,
                __file__,
                1,
                "daily_summary_recalculation_failed",
                (),
                sys.exc_info(),
                extra={"session_id": 21},
            )

        payload = json.loads(JsonFormatter().format(record))

        self.assertEqual(payload["level"], "ERROR")
        self.assertEqual(payload["session_id"], 21)
        self.assertIn("RuntimeError: db down", payload["exception"])


if __name__ == "__main__":
    unittest.main()
