"""
User-facing notifications. Dispatch is fire-and-forget: a failed write is
logged and dropped, with no retry queue.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from services.catalog import service_display_name
from services.errors import NotFoundError, StorageError
from services.record_store import Page, RecordStore

if TYPE_CHECKING:
    from services.workflow import TransitionEvent

logger = logging.getLogger(__name__)

COLLECTION = "notifications"


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    APPLICATION = "application"


STATUS_MESSAGES = {
    "submitted": "Your {service} application has been submitted. Application ID: {id}",
    "under_review": "Your {service} application is now under review by our staff.",
    "approved": "Congratulations! Your {service} application has been approved.",
    "rejected": "Your {service} application has been rejected. Please check the remarks for details.",
    "documents_required": "Additional documents are required for your {service} application.",
    "completed": "Your {service} application has been completed successfully.",
    "cancelled": "Your {service} application has been cancelled.",
}

STATUS_TYPES = {
    "approved": NotificationType.SUCCESS,
    "completed": NotificationType.SUCCESS,
    "rejected": NotificationType.ERROR,
    "documents_required": NotificationType.WARNING,
}


def status_notification(app: dict[str, Any], status: str, remarks: str = "") -> tuple[str, str, NotificationType]:
    """Title, message and type announcing `status` to the applicant."""
    service = app.get("service_name") or service_display_name(app["service_type"])
    if status == "submitted":
        title = "Application Submitted Successfully"
    else:
        title = f"Application {status.replace('_', ' ').title()}"
    template = STATUS_MESSAGES.get(status, "Your {service} application status has been updated to {status}.")
    message = template.format(service=service, id=app["id"], status=status)
    if remarks and status != "submitted":
        message = f"{message} Remarks: {remarks}"
    return title, message, STATUS_TYPES.get(status, NotificationType.INFO)


class NotificationDispatcher:
    def __init__(self, store: RecordStore):
        self._store = store

    async def notify(
        self,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType | str = NotificationType.INFO,
        related_id: str | None = None,
    ) -> str | None:
        """Queue one notification. Returns its id, or None if it could not be stored."""
        if not user_id:
            logger.warning("Dropping notification %r without a recipient", title)
            return None
        try:
            return await self._store.create(
                COLLECTION,
                {
                    "id": f"ntf-{uuid.uuid4().hex[:12]}",
                    "user_id": user_id,
                    "title": title,
                    "message": message,
                    "type": NotificationType(type).value,
                    "related_resource_id": related_id,
                    "is_read": False,
                    "created_at": datetime.now(timezone.utc),
                },
            )
        except StorageError:
            logger.exception("Failed to queue notification %r for user %s", title, user_id)
            return None

    async def on_transition(self, event: TransitionEvent) -> None:
        app = event.application
        title, message, kind = status_notification(app, event.status.value, event.remarks)
        await self.notify(app["applicant_id"], title, message, kind, app["id"])

    async def list_for_user(
        self,
        user_id: str,
        is_read: bool | None = None,
        cursor: str | None = None,
        limit: int = 20,
    ) -> Page:
        filters: dict[str, Any] = {"user_id": user_id}
        if is_read is not None:
            filters["is_read"] = is_read
        return await self._store.query(COLLECTION, filters, order_by="-created_at", cursor=cursor, limit=limit)

    async def mark_read(self, notification_id: str, user_id: str | None = None) -> dict[str, Any]:
        """Mark as read. When user_id is given, another user's notification is reported as not found."""
        expected = {"user_id": user_id} if user_id else None
        updated = await self._store.update_fields(
            COLLECTION,
            notification_id,
            {"is_read": True, "read_at": datetime.now(timezone.utc)},
            expected=expected,
        )
        if not updated:
            raise NotFoundError("notification", notification_id)
        return await self._store.get(COLLECTION, notification_id)

    async def mark_all_read(self, user_id: str) -> int:
        count = 0
        while True:
            # Each pass re-queries unread rows, so no cursor is needed
            page = await self._store.query(
                COLLECTION, {"user_id": user_id, "is_read": False}, order_by="created_at", limit=100
            )
            if not page.items:
                return count
            now = datetime.now(timezone.utc)
            for item in page.items:
                if await self._store.update_fields(
                    COLLECTION, item["id"], {"is_read": True, "read_at": now}, expected={"is_read": False}
                ):
                    count += 1

    async def unread_count(self, user_id: str) -> int:
        return await self._store.count(COLLECTION, {"user_id": user_id, "is_read": False})
