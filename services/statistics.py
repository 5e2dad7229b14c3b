"""
Dashboard counters for applications.

The aggregate is a cache of a pure function over the application set:
`counters_for` gives one application's contribution, `rebuild` recomputes
everything from a full scan. Live updates go through atomic per-counter
increments, so concurrent requests never overwrite each other.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING, Any

from services.errors import SideEffectError, StorageError
from services.record_store import RecordStore, unflatten

if TYPE_CHECKING:
    from services.workflow import TransitionEvent

logger = logging.getLogger(__name__)

STATS_DOC = "applications"


def counters_for(app: dict[str, Any]) -> dict[str, int]:
    """Counters one application contributes to, given its current status."""
    service_type = app["service_type"]
    status = app["status"]
    return {
        "totalApplications": 1,
        f"byService.{service_type}.total": 1,
        f"byService.{service_type}.byStatus.{status}": 1,
        f"byStatus.{status}": 1,
        f"byPriority.{app.get('priority') or 'medium'}": 1,
    }


class StatisticsAggregator:
    def __init__(self, store: RecordStore):
        self._store = store

    async def increment(self, service_type: str, status: str, amount: int = 1) -> None:
        """Bump the global and per-service counters for one status."""
        await self._apply({
            f"byStatus.{status}": amount,
            f"byService.{service_type}.byStatus.{status}": amount,
        })

    async def _apply(self, amounts: dict[str, int]) -> None:
        try:
            await self._store.increment_counters(STATS_DOC, amounts)
        except StorageError as e:
            raise SideEffectError(f"Statistics update failed: {e}") from e

    async def on_transition(self, event: TransitionEvent) -> None:
        app = event.application
        service_type = app["service_type"]
        if event.previous_status is None:
            await self._apply({
                "totalApplications": 1,
                f"byService.{service_type}.total": 1,
                f"byPriority.{app.get('priority') or 'medium'}": 1,
            })
        await self.increment(service_type, event.status.value)
        if event.previous_status is not None:
            await self.increment(service_type, event.previous_status.value, -1)

    async def rebuild(self) -> dict[str, int]:
        counts: Counter[str] = Counter()
        cursor = None
        while True:
            page = await self._store.query(
                "applications", order_by="created_at", cursor=cursor, limit=500, include_arrays=False
            )
            for app in page.items:
                counts.update(counters_for(app))
            if not page.next_cursor:
                break
            cursor = page.next_cursor
        await self._store.replace_counters(STATS_DOC, dict(counts))
        logger.info("Rebuilt application statistics from %d applications", counts["totalApplications"])
        return dict(counts)

    async def snapshot(self) -> dict[str, Any]:
        flat, last_updated = await self._store.read_counters(STATS_DOC)
        if not flat:
            logger.info("Application statistics missing, rebuilding from a full scan")
            await self.rebuild()
            flat, last_updated = await self._store.read_counters(STATS_DOC)
        stats = unflatten(flat)
        stats.setdefault("totalApplications", 0)
        stats.setdefault("byStatus", {})
        stats.setdefault("byService", {})
        stats.setdefault("byPriority", {})
        stats["lastUpdated"] = last_updated
        return stats
