import json
import os
import tempfile
import unittest
from datetime import date, datetime
from unittest import mock

import cohort_cadence as cadence
from cadence_store import CadenceStore, generate_id


class CadenceStoreTest(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "nested", "cadence.json")
        self.store = CadenceStore(self.path)
        self.now = datetime(2026, 2, 1, 9, 0, 0)

    def tearDown(self):
        self.tmp.cleanup()

    def test_load_before_init_raises(self):
        with self.assertRaises(cadence.StoreNotInitialized):
            self.store.load()
        with self.assertRaises(cadence.StoreNotInitialized):
            self.store.add_cohort("Alpha", "2026-01-01", "2026-06-30", 20)

    def test_init_creates_empty_store(self):
        self.store.init(self.now)
        self.assertTrue(self.store.exists())
        snapshot = self.store.load()
        self.assertEqual(snapshot.cohorts, ())
        self.assertEqual(snapshot.touchpoints, ())
        with open(self.path, encoding="utf-8") as handle:
            data = json.load(handle)
        self.assertEqual(data["meta"]["created_at"], "2026-02-01T09:00:00")

    def test_add_cohort_and_touchpoint_round_trip(self):
        self.store.init(self.now)
        cohort = self.store.add_cohort(" Alpha Fellows ", "2026-01-01", "2026-06-30", "20", "STEM", now=self.now)
        self.assertTrue(cohort.id.startswith("cohort-"))
        self.assertEqual(cohort.name, "Alpha Fellows")
        self.assertEqual(cohort.created_at, "2026-02-01T09:00:00")

        touch = CadenceStore(self.path).add_touchpoint(
            "alpha fellows", "Kickoff", "2026-01-05", " Lead A ", "Zoom", now=self.now
        )
        self.assertTrue(touch.id.startswith("touchpoint-"))
        self.assertEqual(touch.cohort_id, cohort.id)
        self.assertEqual(touch.cohort_name, "Alpha Fellows")
        self.assertEqual(touch.owner, "Lead A")

        snapshot = CadenceStore(self.path).load()
        self.assertEqual(snapshot.cohorts, (cohort,))
        self.assertEqual(snapshot.touchpoints[0].date, date(2026, 1, 5))
        with open(self.path, encoding="utf-8") as handle:
            data = json.load(handle)
        self.assertEqual(data["meta"]["created_at"], "2026-02-01T09:00:00")

    def test_validation_errors_leave_store_unchanged(self):
        self.store.init(self.now)
        bad_cohorts = [
            ("", "2026-01-01", "2026-06-30", 20),
            ("Alpha", "2026-13-01", "2026-06-30", 20),
            ("Alpha", "2026-06-30", "2026-01-01", 20),
            ("Alpha", "2026-01-01", "2026-06-30", 0),
            ("Alpha", "2026-01-01", "2026-06-30", "many"),
        ]
        for name, start, end, size in bad_cohorts:
            with self.assertRaises(cadence.ValidationError):
                self.store.add_cohort(name, start, end, size)
        self.assertEqual(self.store.load().cohorts, ())

    def test_add_touchpoint_requires_known_cohort_and_title(self):
        self.store.init(self.now)
        self.store.add_cohort("Alpha", "2026-01-01", "2026-06-30", 20)
        with self.assertRaises(cadence.NotFound):
            self.store.add_touchpoint("Gamma", "Kickoff", "2026-01-05")
        with self.assertRaisesRegex(cadence.ValidationError, "Missing --title"):
            self.store.add_touchpoint("Alpha", " ", "2026-01-05")
        with self.assertRaises(cadence.ValidationError):
            self.store.add_touchpoint("Alpha", "Kickoff", "next week")
        self.assertEqual(self.store.load().touchpoints, ())

    def write_raw(self, text):
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as handle:
            handle.write(text)

    def test_corrupt_store_raises_validation_error(self):
        cohort_row = {"name": "Alpha", "start_date": "2026-01-01", "end_date": "2026-06-30", "size": 20}
        broken = [
            "{not json",
            "[]",
            json.dumps({"cohorts": [cohort_row]}),
            json.dumps({"cohorts": [dict(cohort_row, id="cohort-1", size="many")]}),
            json.dumps({"touchpoints": [None]}),
        ]
        for text in broken:
            self.write_raw(text)
            with self.assertRaisesRegex(cadence.ValidationError, "Corrupt cadence store"):
                self.store.load()


class GenerateIdTest(unittest.TestCase):
    def test_generate_id_skips_taken_ids(self):
        now = datetime(2026, 2, 1, 9, 0, 0)
        seconds = int(now.timestamp())
        taken = {f"cohort-{seconds}-1111"}
        with mock.patch("cadence_store.random.randint", side_effect=[1111, 2222]):
            self.assertEqual(generate_id("cohort", taken, now), f"cohort-{seconds}-2222")


if __name__ == "__main__":
    unittest.main()
