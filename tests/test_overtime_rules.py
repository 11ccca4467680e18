from __future__ import annotations

import unittest

from mesai.models import OvertimeRule, OvertimeRuleType
from mesai.services.overtime_rules import (
    CustomRule,
    DailyThreshold,
    WeeklyThreshold,
    evaluate_overtime,
    order_rules,
    rule_from_row,
)


class EvaluateOvertimeTests(unittest.TestCase):
    def test_fallback_splits_on_expected_minutes(self) -> None:
        split = evaluate_overtime(600, [], expected_minutes=480, default_multiplier=1.5)

        self.assertEqual(split.regular_minutes, 480)
        self.assertEqual(split.overtime_minutes, 120)
        self.assertEqual(split.multiplier, 1.5)
        self.assertIsNone(split.rule_id)

    def test_fallback_short_day_has_no_overtime(self) -> None:
        split = evaluate_overtime(300, [], expected_minutes=480, default_multiplier=1.25)

        self.assertEqual(split.regular_minutes, 300)
        self.assertEqual(split.overtime_minutes, 0)
        self.assertEqual(split.multiplier, 1.25)

    def test_daily_threshold_matches_above_threshold(self) -> None:
        rules = [DailyThreshold(rule_id=4, threshold_minutes=450, multiplier=2.0)]
        split = evaluate_overtime(500, rules, expected_minutes=480, default_multiplier=1.5)

        self.assertEqual(split.regular_minutes, 450)
        self.assertEqual(split.overtime_minutes, 50)
        self.assertEqual(split.multiplier, 2.0)
        self.assertEqual(split.rule_id, 4)

    def test_daily_threshold_not_reached_falls_back(self) -> None:
        rules = [DailyThreshold(rule_id=4, threshold_minutes=600, multiplier=2.0)]
        split = evaluate_overtime(500, rules, expected_minutes=480, default_multiplier=1.5)

        self.assertEqual(split.regular_minutes, 480)
        self.assertEqual(split.overtime_minutes, 20)
        self.assertIsNone(split.rule_id)

    def test_weekly_threshold_only_counts_the_excess_of_this_session(self) -> None:
        rules = [WeeklyThreshold(rule_id=5, threshold_minutes=2400, multiplier=1.5)]
        split = evaluate_overtime(
            200,
            rules,
            week_minutes_before=2300,
            expected_minutes=480,
            default_multiplier=1.5,
        )

        self.assertEqual(split.overtime_minutes, 100)
        self.assertEqual(split.regular_minutes, 100)
        self.assertEqual(split.rule_id, 5)

    def test_weekly_threshold_caps_overtime_at_session_total(self) -> None:
        rules = [WeeklyThreshold(rule_id=5, threshold_minutes=2400, multiplier=1.5)]
        split = evaluate_overtime(
            120,
            rules,
            week_minutes_before=3000,
            expected_minutes=480,
            default_multiplier=1.5,
        )

        self.assertEqual(split.overtime_minutes, 120)
        self.assertEqual(split.regular_minutes, 0)

    def test_custom_rule_never_matches(self) -> None:
        split = evaluate_overtime(600, [CustomRule(rule_id=9, priority=100)], expected_minutes=480, default_multiplier=1.5)

        self.assertEqual(split.overtime_minutes, 120)
        self.assertIsNone(split.rule_id)

    def test_higher_priority_rule_wins(self) -> None:
        rules = [
            DailyThreshold(rule_id=1, threshold_minutes=420, multiplier=1.25, priority=1),
            DailyThreshold(rule_id=2, threshold_minutes=450, multiplier=2.0, priority=10),
        ]
        split = evaluate_overtime(500, rules, expected_minutes=480, default_multiplier=1.5)

        self.assertEqual(split.rule_id, 2)
        self.assertEqual(split.overtime_minutes, 50)

    def test_regular_plus_overtime_equals_total(self) -> None:
        rule_sets = [
            [],
            [DailyThreshold(rule_id=1, threshold_minutes=300, multiplier=1.5)],
            [WeeklyThreshold(rule_id=2, threshold_minutes=1000, multiplier=1.5)],
        ]
        for rules in rule_sets:
            for total in (0, 1, 299, 300, 480, 777):
                split = evaluate_overtime(
                    total,
                    rules,
                    week_minutes_before=900,
                    expected_minutes=480,
                    default_multiplier=1.5,
                )
                self.assertEqual(split.regular_minutes + split.overtime_minutes, total)


class RuleFromRowTests(unittest.TestCase):
    def test_inactive_rule_is_dropped(self) -> None:
        rule = OvertimeRule(
            id=1,
            rule_type=OvertimeRuleType.DAILY_THRESHOLD,
            threshold_minutes=480,
            multiplier=1.5,
            priority=0,
            is_active=False,
        )
        self.assertIsNone(rule_from_row(rule))

    def test_threshold_rule_without_threshold_is_dropped(self) -> None:
        rule = OvertimeRule(
            id=2,
            rule_type=OvertimeRuleType.WEEKLY_THRESHOLD,
            threshold_minutes=None,
            multiplier=1.5,
            priority=0,
            is_active=True,
        )
        self.assertIsNone(rule_from_row(rule))

    def test_missing_multiplier_defaults(self) -> None:
        rule = OvertimeRule(
            id=3,
            rule_type=OvertimeRuleType.DAILY_THRESHOLD,
            threshold_minutes=480,
            multiplier=None,
            priority=2,
            is_active=True,
        )
        self.assertEqual(rule_from_row(rule), DailyThreshold(rule_id=3, threshold_minutes=480, multiplier=1.5, priority=2))

    def test_custom_row_maps_to_custom_rule(self) -> None:
        rule = OvertimeRule(id=4, rule_type=OvertimeRuleType.CUSTOM, priority=0, is_active=True)
        self.assertEqual(rule_from_row(rule), CustomRule(rule_id=4, priority=0))

    def test_order_rules_breaks_priority_ties_by_id(self) -> None:
        rules = [
            CustomRule(rule_id=8, priority=1),
            DailyThreshold(rule_id=3, threshold_minutes=400, multiplier=1.5, priority=1),
            WeeklyThreshold(rule_id=5, threshold_minutes=2400, multiplier=1.5, priority=7),
        ]
        self.assertEqual([item.rule_id for item in order_rules(rules)], [5, 3, 8])


if __name__ == "__main__":
    unittest.main()
