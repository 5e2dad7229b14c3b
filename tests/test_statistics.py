"""
Statistics aggregator: live counters must always equal a full recount.
Run from project root: python -m pytest tests/test_statistics.py -v
"""
import unittest
from unittest import mock

from services.errors import SideEffectError, StorageError
from services.statistics import STATS_DOC, StatisticsAggregator, counters_for
from services.workflow import ApplicationStatus
from tests.support import make_test_engine

S = ApplicationStatus


class TestCountersFor(unittest.TestCase):
    def test_contribution(self):
        app = {"service_type": "trade-license", "status": "approved", "priority": "high"}
        self.assertEqual(
            counters_for(app),
            {
                "totalApplications": 1,
                "byService.trade-license.total": 1,
                "byService.trade-license.byStatus.approved": 1,
                "byStatus.approved": 1,
                "byPriority.high": 1,
            },
        )


class TestStatisticsAggregator(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.db, self.engine = await make_test_engine()
        self.stats = self.engine.statistics
        self.workflow = self.engine.workflow

    async def asyncTearDown(self):
        await self.db.dispose()

    async def _live(self):
        flat, _ = await self.engine.store.read_counters(STATS_DOC)
        return {k: v for k, v in flat.items() if v}

    async def test_live_counters_match_rebuild(self):
        a = await self.workflow.submit(applicant_id="c-1", service_type="birth-certificate")
        b = await self.workflow.submit(applicant_id="c-2", service_type="birth-certificate")
        c = await self.workflow.submit(applicant_id="c-3", service_type="trade-license")
        await self.workflow.submit(applicant_id="c-4", service_type="death-certificate")

        await self.workflow.transition(a["id"], S.UNDER_REVIEW, "staff-1")
        await self.workflow.transition(a["id"], S.APPROVED, "staff-1")
        await self.workflow.transition(a["id"], S.COMPLETED, "staff-1")
        await self.workflow.transition(b["id"], S.CANCELLED, "c-2")
        await self.workflow.transition(c["id"], S.UNDER_REVIEW, "staff-2")
        await self.workflow.transition(c["id"], S.REJECTED, "staff-2", "no shop proof")

        live = await self._live()
        rebuilt = await self.stats.rebuild()
        self.assertEqual(live, rebuilt)
        self.assertEqual(rebuilt["totalApplications"], 4)
        self.assertEqual(rebuilt["byStatus.completed"], 1)
        self.assertEqual(rebuilt["byStatus.submitted"], 1)
        self.assertEqual(rebuilt["byPriority.high"], 1)

    async def test_snapshot_shape(self):
        app = await self.workflow.submit(applicant_id="c-1", service_type="income-certificate")
        await self.workflow.transition(app["id"], S.UNDER_REVIEW, "staff-1")

        snapshot = await self.stats.snapshot()
        self.assertEqual(snapshot["totalApplications"], 1)
        self.assertEqual(snapshot["byStatus"]["under_review"], 1)
        service = snapshot["byService"]["income-certificate"]
        self.assertEqual(service["total"], 1)
        self.assertEqual(service["byStatus"]["under_review"], 1)
        self.assertEqual(snapshot["byPriority"]["medium"], 1)
        self.assertIsNotNone(snapshot["lastUpdated"])

    async def test_snapshot_rebuilds_when_counters_are_missing(self):
        await self.workflow.submit(applicant_id="c-1", service_type="scholarship")
        await self.engine.store.replace_counters(STATS_DOC, {})

        snapshot = await self.stats.snapshot()
        self.assertEqual(snapshot["totalApplications"], 1)
        self.assertEqual(snapshot["byStatus"]["submitted"], 1)

    async def test_empty_snapshot(self):
        snapshot = await self.stats.snapshot()
        self.assertEqual(snapshot["totalApplications"], 0)
        self.assertEqual(snapshot["byStatus"], {})

    async def test_increment(self):
        await self.stats.increment("trade-license", "approved")
        await self.stats.increment("trade-license", "approved", 2)
        live = await self._live()
        self.assertEqual(live["byStatus.approved"], 3)
        self.assertEqual(live["byService.trade-license.byStatus.approved"], 3)

    async def test_storage_failure_becomes_side_effect_error(self):
        store = mock.AsyncMock()
        store.increment_counters.side_effect = StorageError("locked")
        with self.assertRaises(SideEffectError):
            await StatisticsAggregator(store).increment("trade-license", "approved")


if __name__ == "__main__":
    unittest.main()
