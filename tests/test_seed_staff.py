"""
Staff seed script: one staff member and one officer per department, safe to re-run.
Run from project root: python -m pytest tests/test_seed_staff.py -v
"""
import unittest
from unittest import mock

from database import init_db, make_engine, make_sessionmaker
from scripts import seed_staff
from services.engine import build_engine
from tests.support import MEMORY_URL


class TestSeedStaff(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.db = make_engine(MEMORY_URL)
        await init_db(self.db)
        self.sessions = make_sessionmaker(self.db)
        patches = [
            mock.patch.object(seed_staff, "AsyncSessionLocal", self.sessions),
            mock.patch.object(seed_staff, "init_db", mock.AsyncMock()),
            mock.patch.object(seed_staff, "configure_logging"),
        ]
        for p in patches:
            p.start()
            self.addCleanup(p.stop)

    async def asyncTearDown(self):
        await self.db.dispose()

    async def test_seed_is_idempotent(self):
        with self.assertLogs("scripts.seed_staff", level="INFO") as logs:
            await seed_staff.seed()
        self.assertIn("Seed complete.", logs.output[-1])

        engine = build_engine(self.sessions)
        staff = await engine.assignment.list_staff(limit=100)
        self.assertEqual(len(staff.items), len(seed_staff.STAFF_DATA))
        officers = await engine.assignment.list_staff(department="Agriculture", limit=100)
        self.assertEqual(sorted(s["role"] for s in officers.items), ["officer", "staff"])

        with self.assertLogs("scripts.seed_staff", level="INFO") as logs:
            await seed_staff.seed()
        self.assertTrue(any("already exists" in line for line in logs.output))
        staff = await engine.assignment.list_staff(limit=100)
        self.assertEqual(len(staff.items), len(seed_staff.STAFF_DATA))


if __name__ == "__main__":
    unittest.main()
