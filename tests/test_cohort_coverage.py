import unittest
from datetime import date, timedelta

import cohort_cadence as cadence


class CohortCoverageTest(unittest.TestCase):
    def setUp(self):
        self.today = date(2026, 2, 4)
        self.alpha = cadence.Cohort("cohort-alpha", "Alpha Cohort", date(2026, 2, 1), date(2026, 5, 1), 20)
        self.beta = cadence.Cohort("cohort-beta", "Beta Cohort", date(2026, 2, 1), date(2026, 5, 1), 18)

    def make_touchpoint(self, cohort, offset):
        touch_date = self.today + timedelta(days=offset)
        return cadence.Touchpoint(
            id=f"touch-{cohort.id}-{offset}",
            cohort_id=cohort.id,
            cohort_name=cohort.name,
            title="Check-in",
            date=touch_date,
            owner="Program Lead",
            channel="Zoom",
        )

    def test_cohort_coverage_rolls_up_weekly_gaps(self):
        snapshot = cadence.Snapshot(
            cohorts=(self.alpha, self.beta),
            touchpoints=(self.make_touchpoint(self.alpha, 1), self.make_touchpoint(self.alpha, 10)),
        )
        report = cadence.cohort_coverage(snapshot, self.today, 4)
        self.assertEqual(report["window_start"], date(2026, 2, 2))
        self.assertEqual(report["window_end"], date(2026, 3, 1))
        entries = {entry["cohort"].id: entry for entry in report["entries"]}

        alpha = entries["cohort-alpha"]
        self.assertEqual(alpha["weeks_tracked"], 4)
        self.assertEqual(alpha["weeks_with_touchpoints"], 2)
        self.assertEqual(alpha["weeks_without_touchpoints"], 2)
        self.assertAlmostEqual(alpha["coverage_rate"], 0.5)
        self.assertEqual(alpha["longest_gap_weeks"], 2)
        self.assertEqual(len(alpha["empty_weeks"]), 2)
        self.assertEqual(alpha["gap_ranges"][0]["start"], date(2026, 2, 16))

        beta = entries["cohort-beta"]
        self.assertEqual(beta["weeks_with_touchpoints"], 0)
        self.assertEqual(beta["coverage_rate"], 0.0)
        self.assertEqual(beta["longest_gap_weeks"], 4)
        self.assertEqual(report["entries"][0]["cohort"].id, "cohort-alpha")

    def test_longest_gap_is_the_longest_empty_run(self):
        snapshot = cadence.Snapshot(
            cohorts=(self.alpha,),
            touchpoints=(
                self.make_touchpoint(self.alpha, 0),
                self.make_touchpoint(self.alpha, 14),
                self.make_touchpoint(self.alpha, 35),
            ),
        )
        entry = cadence.cohort_coverage(snapshot, self.today, 6)["entries"][0]
        self.assertEqual([week["count"] for week in entry["weeks"]], [1, 0, 1, 0, 0, 1])
        self.assertEqual(entry["longest_gap_weeks"], 2)
        self.assertEqual([run["weeks"] for run in entry["gap_ranges"]], [1, 2])
        self.assertEqual(entry["coverage_rate"], entry["weeks_with_touchpoints"] / entry["weeks_tracked"])

    def test_cohort_coverage_filters_by_cohort(self):
        snapshot = cadence.Snapshot(cohorts=(self.alpha, self.beta))
        report = cadence.cohort_coverage(snapshot, self.today, 6, "alpha cohort")
        self.assertEqual(len(report["entries"]), 1)
        self.assertEqual(report["entries"][0]["cohort"].id, "cohort-alpha")

    def test_unknown_cohort_filter_raises(self):
        snapshot = cadence.Snapshot(cohorts=(self.alpha,))
        with self.assertRaises(cadence.NotFound):
            cadence.cohort_coverage(snapshot, self.today, 4, "Gamma Cohort")


if __name__ == "__main__":
    unittest.main()
