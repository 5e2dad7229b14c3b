"""
Audit trail: append, filters, newest-first paging, failure handling.
Run from project root: python -m pytest tests/test_audit.py -v
"""
import unittest
from datetime import datetime, timedelta, timezone
from unittest import mock

from services.audit import AuditAction, AuditTrail
from services.errors import StorageError
from tests.support import make_test_engine


class TestAuditTrail(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.db, self.engine = await make_test_engine()
        self.audit = self.engine.audit

    async def asyncTearDown(self):
        await self.db.dispose()

    async def test_record_and_filter(self):
        await self.audit.record(AuditAction.STAFF_CREATE, "admin-1", "staff", "stf-1")
        await self.audit.record(AuditAction.APPLICATION_COMMENT, "staff-1", "application", "app-1", {"length": 12})
        await self.audit.record("notification_read", "staff-1", "notification", "ntf-1")

        by_actor = await self.audit.query(actor_id="staff-1")
        self.assertEqual(len(by_actor.items), 2)
        by_action = await self.audit.query(action=AuditAction.APPLICATION_COMMENT)
        self.assertEqual(len(by_action.items), 1)
        entry = by_action.items[0]
        self.assertTrue(entry["id"].startswith("aud-"))
        self.assertEqual(entry["details"], {"length": 12})
        self.assertTrue(entry["success"])
        combined = await self.audit.query(
            actor_id="staff-1", action=AuditAction.NOTIFICATION_READ, resource_type="notification"
        )
        self.assertEqual(len(combined.items), 1)

    async def test_newest_first_with_cursor(self):
        for i in range(5):
            await self.audit.record(AuditAction.APPLICATION_COMMENT, "staff-1", "application", f"app-{i}")

        first = await self.audit.query(limit=3)
        self.assertEqual(len(first.items), 3)
        self.assertIsNotNone(first.next_cursor)
        second = await self.audit.query(cursor=first.next_cursor, limit=3)
        self.assertEqual(len(second.items), 2)
        self.assertIsNone(second.next_cursor)

        entries = first.items + second.items
        self.assertEqual(len({e["id"] for e in entries}), 5)
        stamps = [e["timestamp"] for e in entries]
        self.assertEqual(stamps, sorted(stamps, reverse=True))

    async def test_time_range(self):
        await self.audit.record(AuditAction.STAFF_CREATE, "admin-1", "staff", "stf-1")
        now = datetime.now(timezone.utc)
        self.assertEqual(len((await self.audit.query(start=now - timedelta(minutes=5))).items), 1)
        self.assertEqual(len((await self.audit.query(start=now + timedelta(minutes=5))).items), 0)
        self.assertEqual(len((await self.audit.query(end=now - timedelta(minutes=5))).items), 0)

    async def test_time_range_with_offset_bounds(self):
        await self.audit.record(AuditAction.STAFF_CREATE, "admin-1", "staff", "stf-1")
        ist = timezone(timedelta(hours=5, minutes=30))
        now = datetime.now(timezone.utc).astimezone(ist)
        self.assertEqual(len((await self.audit.query(start=now - timedelta(minutes=1))).items), 1)
        self.assertEqual(len((await self.audit.query(start=now + timedelta(minutes=5))).items), 0)
        self.assertEqual(len((await self.audit.query(end=now + timedelta(minutes=1))).items), 1)
        self.assertEqual(len((await self.audit.query(end=now - timedelta(minutes=5))).items), 0)

    async def test_failed_write_is_swallowed_and_logged(self):
        store = mock.AsyncMock()
        store.create.side_effect = StorageError("disk full")
        audit = AuditTrail(store)
        with self.assertLogs("services.audit", level="ERROR"):
            result = await audit.record(AuditAction.STAFF_CREATE, "admin-1", "staff", "stf-1")
        self.assertIsNone(result)
        # original write plus the failure marker attempt
        self.assertEqual(store.create.await_count, 2)
        marker = store.create.await_args_list[1].args[1]
        self.assertEqual(marker["action"], "audit_log_failure")
        self.assertFalse(marker["success"])


if __name__ == "__main__":
    unittest.main()
