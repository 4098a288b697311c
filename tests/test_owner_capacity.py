import unittest
from datetime import date

import cohort_cadence as cadence


class OwnerCapacityTest(unittest.TestCase):
    def make_touchpoint(self, touch_date, owner):
        return cadence.Touchpoint(
            id=f"touch-{touch_date}-{owner}",
            cohort_id="cohort-1",
            cohort_name="Alpha Fellows",
            title="Check-in",
            date=date.fromisoformat(touch_date),
            owner=owner,
            channel="Zoom",
        )

    def make_snapshot(self):
        return cadence.Snapshot(
            cohorts=(
                cadence.Cohort("cohort-1", "Alpha Fellows", date(2026, 1, 1), date(2026, 6, 30), 20),
            ),
            touchpoints=(
                self.make_touchpoint("2026-02-03", "Owner A"),
                self.make_touchpoint("2026-02-04", "Owner A"),
                self.make_touchpoint("2026-02-05", "Owner A"),
                self.make_touchpoint("2026-02-10", "Owner B"),
                self.make_touchpoint("2026-02-20", "Owner A"),
            ),
        )

    def test_owner_capacity_flags_over_limit_weeks(self):
        report = cadence.owner_capacity(self.make_snapshot(), date(2026, 2, 1), 2, 2)
        self.assertEqual(report["total_touchpoints"], 4)
        self.assertEqual(report["owners_count"], 2)
        self.assertEqual(report["over_limit_weeks"], 1)
        self.assertEqual(report["owners"][0]["owner"], "Owner A")

        owner_a = report["owners"][0]
        self.assertEqual(owner_a["total_touchpoints"], 3)
        self.assertEqual(owner_a["over_limit_weeks"], 1)
        self.assertEqual(owner_a["peak_week_count"], 3)

        week = next(item for item in owner_a["weeks"] if item["week_start"] == date(2026, 2, 2))
        self.assertTrue(week["over_limit"])
        self.assertEqual(week["count"], 3)
        self.assertEqual(week["week_end"], date(2026, 2, 8))

    def test_weeks_cover_the_whole_window(self):
        report = cadence.owner_capacity(self.make_snapshot(), date(2026, 2, 1), 2, 2)
        owner_b = next(item for item in report["owners"] if item["owner"] == "Owner B")
        starts = [week["week_start"] for week in owner_b["weeks"]]
        self.assertEqual(starts, [date(2026, 1, 26), date(2026, 2, 2), date(2026, 2, 9)])
        self.assertEqual(owner_b["weeks_tracked"], 3)
        self.assertEqual(owner_b["over_limit_weeks"], 0)

    def test_no_limit_never_flags(self):
        report = cadence.owner_capacity(self.make_snapshot(), date(2026, 2, 1), 2)
        self.assertIsNone(report["weekly_limit"])
        self.assertEqual(report["over_limit_weeks"], 0)

    def test_owner_filter_is_case_insensitive(self):
        report = cadence.owner_capacity(self.make_snapshot(), date(2026, 2, 1), 2, 2, owner=" owner b ")
        self.assertEqual(report["owners_count"], 1)
        self.assertEqual(report["total_touchpoints"], 1)


if __name__ == "__main__":
    unittest.main()
