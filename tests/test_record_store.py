"""
Record store: document contract, guarded updates, array appends, keyset paging, counters.
Run from project root: python -m pytest tests/test_record_store.py -v
"""
import unittest
from datetime import datetime, timedelta, timezone

from services.errors import ValidationError
from services.record_store import Filter, decode_cursor, encode_cursor, unflatten
from tests.support import make_test_engine


def _app(app_id, status="submitted", created_at=None, **extra):
    now = created_at or datetime.now(timezone.utc)
    doc = {
        "id": app_id,
        "service_type": "birth-certificate",
        "applicant_id": "citizen-1",
        "status": status,
        "created_at": now,
        "updated_at": now,
    }
    doc.update(extra)
    return doc


class TestHelpers(unittest.TestCase):
    def test_unflatten(self):
        self.assertEqual(
            unflatten({"a.b": 1, "a.c.d": 2, "e": 3}),
            {"a": {"b": 1, "c": {"d": 2}}, "e": 3},
        )

    def test_cursor_keeps_datetimes(self):
        stamp = datetime(2024, 5, 1, 10, 30)
        self.assertEqual(decode_cursor(encode_cursor(stamp, "x-1")), (stamp, "x-1"))

    def test_garbage_cursor(self):
        with self.assertRaises(ValidationError):
            decode_cursor("not-a-cursor")


class TestRecordStore(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.db, self.engine = await make_test_engine()
        self.store = self.engine.store

    async def asyncTearDown(self):
        await self.db.dispose()

    async def test_create_and_get_with_arrays(self):
        now = datetime.now(timezone.utc)
        await self.store.create(
            "applications",
            _app("a-1", status_history=[{"status": "submitted", "timestamp": now, "actor_id": "citizen-1"}]),
        )
        doc = await self.store.get("applications", "a-1")
        self.assertEqual(doc["status"], "submitted")
        self.assertEqual(len(doc["status_history"]), 1)
        self.assertNotIn("seq", doc["status_history"][0])
        self.assertNotIn("application_id", doc["status_history"][0])
        self.assertEqual(doc["comments"], [])
        self.assertIsNone(await self.store.get("applications", "a-missing"))

    async def test_guarded_update(self):
        await self.store.create("applications", _app("a-1"))
        self.assertFalse(
            await self.store.update_fields("applications", "a-1", {"status": "approved"}, expected={"status": "under_review"})
        )
        self.assertTrue(
            await self.store.update_fields("applications", "a-1", {"assigned_to": "s-1"}, expected={"assigned_to": None})
        )
        self.assertFalse(
            await self.store.update_fields("applications", "a-1", {"assigned_to": "s-2"}, expected={"assigned_to": None})
        )
        doc = await self.store.get("applications", "a-1")
        self.assertEqual(doc["status"], "submitted")
        self.assertEqual(doc["assigned_to"], "s-1")
        self.assertFalse(await self.store.update_fields("applications", "a-missing", {"status": "approved"}))

    async def test_unknown_field_is_rejected(self):
        await self.store.create("applications", _app("a-1"))
        with self.assertRaises(ValueError):
            await self.store.update_fields("applications", "a-1", {"colour": "blue"})
        with self.assertRaises(ValueError):
            await self.store.query("nowhere")

    async def test_append_is_guarded_and_atomic(self):
        await self.store.create("applications", _app("a-1"))
        entry = {"status": "under_review", "timestamp": datetime.now(timezone.utc), "actor_id": "s-1"}

        ok = await self.store.append_to_array_field(
            "applications", "a-1", "status_history", entry,
            fields={"status": "under_review"}, expected={"status": "approved"},
        )
        self.assertFalse(ok)
        doc = await self.store.get("applications", "a-1")
        self.assertEqual(doc["status_history"], [])

        ok = await self.store.append_to_array_field(
            "applications", "a-1", "status_history", entry,
            fields={"status": "under_review"}, expected={"status": "submitted"},
        )
        self.assertTrue(ok)
        doc = await self.store.get("applications", "a-1")
        self.assertEqual(doc["status"], "under_review")
        self.assertEqual([e["status"] for e in doc["status_history"]], ["under_review"])

    async def test_query_orders_filters_and_pages(self):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i in range(5):
            status = "approved" if i % 2 else "submitted"
            await self.store.create("applications", _app(f"a-{i}", status, base + timedelta(hours=i)))

        page = await self.store.query("applications", order_by="-created_at", limit=2)
        self.assertEqual([d["id"] for d in page.items], ["a-4", "a-3"])
        page = await self.store.query("applications", order_by="-created_at", cursor=page.next_cursor, limit=2)
        self.assertEqual([d["id"] for d in page.items], ["a-2", "a-1"])
        page = await self.store.query("applications", order_by="-created_at", cursor=page.next_cursor, limit=2)
        self.assertEqual([d["id"] for d in page.items], ["a-0"])
        self.assertIsNone(page.next_cursor)

        approved = await self.store.query("applications", {"status": "approved"}, order_by="created_at")
        self.assertEqual([d["id"] for d in approved.items], ["a-1", "a-3"])
        picked = await self.store.query(
            "applications", [Filter("id", "in", ["a-0", "a-4"]), Filter("status", "!=", "approved")]
        )
        self.assertEqual({d["id"] for d in picked.items}, {"a-0", "a-4"})
        self.assertEqual(await self.store.count("applications", {"status": "submitted"}), 3)

    async def test_equal_sort_keys_page_by_id(self):
        same = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i in range(4):
            await self.store.create("applications", _app(f"a-{i}", created_at=same))
        seen = []
        cursor = None
        while True:
            page = await self.store.query("applications", order_by="created_at", cursor=cursor, limit=3)
            seen.extend(d["id"] for d in page.items)
            if not page.next_cursor:
                break
            cursor = page.next_cursor
        self.assertEqual(seen, ["a-0", "a-1", "a-2", "a-3"])

    async def test_counters(self):
        await self.store.increment_counters("stats", {"byStatus.submitted": 1, "total": 1})
        await self.store.increment_counters("stats", {"byStatus.submitted": -1, "byStatus.approved": 1, "total": 0})
        values, last_updated = await self.store.read_counters("stats")
        self.assertEqual(values, {"byStatus.submitted": 0, "byStatus.approved": 1, "total": 1})
        self.assertIsNotNone(last_updated)

        await self.store.replace_counters("stats", {"total": 7})
        values, _ = await self.store.read_counters("stats")
        self.assertEqual(values, {"total": 7})
        self.assertEqual(await self.store.read_counters("other"), ({}, None))


if __name__ == "__main__":
    unittest.main()
