import unittest
from datetime import date

import cohort_cadence as cadence


class WeeklyAgendaTest(unittest.TestCase):
    def make_touchpoint(self, cohort_id, touch_date, owner="Lead A", channel="Zoom"):
        return cadence.Touchpoint(
            id=f"touch-{cohort_id}-{touch_date}",
            cohort_id=cohort_id,
            cohort_name=cohort_id.title(),
            title="Check-in",
            date=date.fromisoformat(touch_date),
            owner=owner,
            channel=channel,
        )

    def make_snapshot(self):
        return cadence.Snapshot(
            cohorts=(
                cadence.Cohort("alpha", "Alpha", date(2026, 1, 1), date(2026, 6, 30), 20),
                cadence.Cohort("beta", "Beta", date(2026, 1, 1), date(2026, 6, 30), 20),
            ),
            touchpoints=(
                self.make_touchpoint("alpha", "2026-02-10"),
                self.make_touchpoint("alpha", "2026-02-01"),
                self.make_touchpoint("beta", "2026-02-03", owner="Lead B"),
                self.make_touchpoint("beta", "2026-02-20"),
            ),
        )

    def test_weekly_agenda_groups_by_week_in_order(self):
        report = cadence.weekly_agenda(self.make_snapshot(), date(2026, 2, 1), 2)
        self.assertEqual(report["window_end"], date(2026, 2, 14))
        self.assertEqual(report["total_touchpoints"], 3)
        self.assertEqual(
            [week["week_start"] for week in report["weeks_list"]],
            [date(2026, 1, 26), date(2026, 2, 2), date(2026, 2, 9)],
        )
        self.assertEqual(sum(week["count"] for week in report["weeks_list"]), report["total_touchpoints"])

    def test_weekly_agenda_clamps_weeks_and_filters(self):
        report = cadence.weekly_agenda(self.make_snapshot(), date(2026, 2, 1), 0)
        self.assertEqual(report["weeks"], 1)
        self.assertEqual(report["total_touchpoints"], 2)

        report = cadence.weekly_agenda(self.make_snapshot(), date(2026, 2, 1), 4, cohort="Beta")
        self.assertEqual(report["total_touchpoints"], 2)
        report = cadence.weekly_agenda(self.make_snapshot(), date(2026, 2, 1), 4, owner="lead b")
        self.assertEqual(report["total_touchpoints"], 1)


class OwnerLoadTest(unittest.TestCase):
    def make_snapshot(self):
        def touch(touch_id, touch_date, owner, channel):
            return cadence.Touchpoint(touch_id, "alpha", "Alpha", "Check-in", date.fromisoformat(touch_date), owner, channel)

        return cadence.Snapshot(
            cohorts=(cadence.Cohort("alpha", "Alpha", date(2026, 1, 1), date(2026, 6, 30), 20),),
            touchpoints=(
                touch("t1", "2026-02-02", "Lead A", "Zoom"),
                touch("t2", "2026-02-03", "Lead A", "Email"),
                touch("t3", "2026-02-04", "", "Zoom"),
                touch("t4", "2026-02-20", "Lead A", "Zoom"),
            ),
        )

    def test_owner_load_groups_upcoming_by_owner(self):
        report = cadence.owner_load(self.make_snapshot(), date(2026, 2, 1), 7)
        self.assertEqual(report["total_touchpoints"], 3)
        self.assertEqual([item["owner"] for item in report["owners"]], ["Lead A", "Unassigned"])
        self.assertEqual(report["owners"][0]["channels"], {"Email": 1, "Zoom": 1})
        self.assertEqual(report["owners"][0]["cohorts"], {"Alpha": 2})

    def test_owner_filter_matches_unassigned(self):
        report = cadence.owner_load(self.make_snapshot(), date(2026, 2, 1), 7, "unassigned")
        self.assertEqual(report["total_touchpoints"], 1)
        self.assertEqual(report["owners"][0]["owner"], "Unassigned")


if __name__ == "__main__":
    unittest.main()
