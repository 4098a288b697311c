import unittest
from datetime import date

import cohort_cadence as cadence


class DateWindowTest(unittest.TestCase):
    def test_window_is_inclusive_around_today(self):
        self.assertEqual(cadence.window(date(2026, 2, 15), 14, 14), (date(2026, 2, 1), date(2026, 3, 1)))
        self.assertEqual(cadence.window(date(2026, 2, 15), 0, 0), (date(2026, 2, 15), date(2026, 2, 15)))

    def test_week_start_is_monday(self):
        self.assertEqual(cadence.week_start(date(2026, 2, 1)), date(2026, 1, 26))
        self.assertEqual(cadence.week_start(date(2026, 2, 2)), date(2026, 2, 2))
        self.assertEqual(cadence.week_end(date(2026, 2, 4)), date(2026, 2, 8))

    def test_week_buckets_start_from_current_week(self):
        buckets = cadence.week_buckets(date(2026, 2, 4), 2)
        self.assertEqual(
            buckets,
            [(date(2026, 2, 2), date(2026, 2, 8)), (date(2026, 2, 9), date(2026, 2, 15))],
        )

    def test_forward_window_and_spanned_weeks(self):
        start, end = cadence.forward_window(date(2026, 2, 1), 2)
        self.assertEqual((start, end), (date(2026, 2, 1), date(2026, 2, 14)))
        spans = cadence.weeks_spanning(start, end)
        self.assertEqual(len(spans), 3)
        self.assertEqual(spans[0], (date(2026, 1, 26), date(2026, 2, 1)))

    def test_clamps(self):
        self.assertEqual(cadence.clamp_weeks(0), 1)
        self.assertEqual(cadence.clamp_weeks(-4), 1)
        self.assertEqual(cadence.clamp_days(-3), 0)
        self.assertEqual(cadence.clamp_days(10), 10)

    def test_parse_date_rejects_bad_values(self):
        self.assertEqual(cadence.parse_date(" 2026-02-28 "), date(2026, 2, 28))
        self.assertIsNone(cadence.parse_date("2026-02-30"))
        self.assertIsNone(cadence.parse_date("02/03/2026"))
        self.assertIsNone(cadence.parse_date(""))

    def test_owner_and_channel_fallbacks(self):
        self.assertEqual(cadence.normalize_owner("  "), "Unassigned")
        self.assertEqual(cadence.normalize_owner(" Lead A "), "Lead A")
        self.assertEqual(cadence.normalize_channel(""), "Unspecified")


class FindCohortTest(unittest.TestCase):
    def setUp(self):
        self.snapshot = cadence.Snapshot(
            cohorts=(
                cadence.Cohort("cohort-1", "Alpha Fellows", date(2026, 1, 1), date(2026, 6, 30), 20),
                cadence.Cohort("cohort-2", "Beta Fellows", date(2026, 2, 1), date(2026, 6, 30), 15),
            )
        )

    def test_matches_id_or_name_case_insensitively(self):
        self.assertEqual(cadence.find_cohort(self.snapshot, "cohort-2").name, "Beta Fellows")
        self.assertEqual(cadence.find_cohort(self.snapshot, "  alpha FELLOWS ").id, "cohort-1")

    def test_unknown_or_blank_identifier_raises(self):
        with self.assertRaises(cadence.NotFound):
            cadence.find_cohort(self.snapshot, "Gamma Fellows")
        with self.assertRaises(cadence.NotFound):
            cadence.find_cohort(self.snapshot, " ")


if __name__ == "__main__":
    unittest.main()
