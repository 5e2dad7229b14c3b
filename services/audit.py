"""
Append-only audit trail of actions taken against the system.

Writes never fail the caller's primary operation: a failed insert is logged,
a best-effort `audit_log_failure` entry is attempted, and None is returned.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from services.errors import StorageError
from services.record_store import Filter, Page, RecordStore

if TYPE_CHECKING:
    from services.workflow import TransitionEvent

logger = logging.getLogger(__name__)

COLLECTION = "audit_logs"


class AuditAction(str, Enum):
    STAFF_CREATE = "staff_create"
    APPLICATION_CREATE = "application_create"
    APPLICATION_STATUS_CHANGE = "application_status_change"
    APPLICATION_ASSIGN = "application_assign"
    APPLICATION_REASSIGN = "application_reassign"
    APPLICATION_COMMENT = "application_comment"
    NOTIFICATION_READ = "notification_read"
    STATISTICS_REBUILD = "statistics_rebuild"
    AUDIT_LOG_FAILURE = "audit_log_failure"


def _action_value(action: AuditAction | str) -> str:
    return action.value if isinstance(action, AuditAction) else str(action)


def _as_utc(value: datetime) -> datetime:
    """Timestamps are stored as UTC; naive bounds are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class AuditTrail:
    def __init__(self, store: RecordStore):
        self._store = store

    async def record(
        self,
        action: AuditAction | str,
        actor_id: str | None,
        resource_type: str | None,
        resource_id: str | None,
        details: dict[str, Any] | None = None,
        success: bool = True,
    ) -> str | None:
        action = _action_value(action)
        entry = {
            "id": f"aud-{uuid.uuid4().hex[:16]}",
            "action": action,
            "actor_id": actor_id,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "details": details or {},
            "success": success,
            "timestamp": datetime.now(timezone.utc),
        }
        try:
            entry_id = await self._store.create(COLLECTION, entry)
        except StorageError:
            logger.exception("Failed to write audit log entry action=%s resource=%s", action, resource_id)
            await self._record_failure(entry)
            return None
        logger.debug("Audit %s by %s on %s/%s", action, actor_id, resource_type, resource_id)
        return entry_id

    async def _record_failure(self, original: dict[str, Any]) -> None:
        try:
            await self._store.create(
                COLLECTION,
                {
                    "id": f"aud-{uuid.uuid4().hex[:16]}",
                    "action": AuditAction.AUDIT_LOG_FAILURE.value,
                    "actor_id": original["actor_id"],
                    "resource_type": "system",
                    "resource_id": None,
                    "details": {"original_action": original["action"], "resource_id": original["resource_id"]},
                    "success": False,
                    "timestamp": datetime.now(timezone.utc),
                },
            )
        except StorageError:
            logger.error("Failed to log audit failure for action=%s", original["action"])

    async def query(
        self,
        actor_id: str | None = None,
        action: AuditAction | str | None = None,
        resource_type: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        cursor: str | None = None,
        limit: int = 50,
    ) -> Page:
        """Newest-first page of entries; every filter is optional and they combine."""
        filters: list[Filter] = []
        if actor_id:
            filters.append(Filter("actor_id", "==", actor_id))
        if action:
            filters.append(Filter("action", "==", _action_value(action)))
        if resource_type:
            filters.append(Filter("resource_type", "==", resource_type))
        if start is not None:
            filters.append(Filter("timestamp", ">=", _as_utc(start)))
        if end is not None:
            filters.append(Filter("timestamp", "<=", _as_utc(end)))
        return await self._store.query(COLLECTION, filters, order_by="-timestamp", cursor=cursor, limit=limit)

    async def on_transition(self, event: TransitionEvent) -> None:
        app = event.application
        if event.previous_status is None:
            await self.record(
                AuditAction.APPLICATION_CREATE,
                event.actor_id,
                "application",
                app["id"],
                {"service_type": app["service_type"], "status": event.status.value},
            )
            return
        await self.record(
            AuditAction.APPLICATION_STATUS_CHANGE,
            event.actor_id,
            "application",
            app["id"],
            {
                "previous_status": event.previous_status.value,
                "new_status": event.status.value,
                "remarks": event.remarks,
            },
        )
