"""
Assigns submitted applications to staff of the owning department.

Selection is a uniform random choice over active staff/officers of the
service category: stateless, so concurrent requests need no shared counter.
An empty pool is not an error; the application simply stays submitted and
unassigned until something calls `assign` again.
"""
from __future__ import annotations

import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Any

from config import settings
from services.audit import AuditAction, AuditTrail
from services.catalog import service_display_name
from services.errors import InvalidTransitionError, NotFoundError, StorageError, ValidationError
from services.notifications import NotificationDispatcher, NotificationType
from services.record_store import Filter, Page, RecordStore
from services.workflow import TERMINAL_STATUSES, ApplicationStatus, StatusWorkflow

logger = logging.getLogger(__name__)

STAFF_COLLECTION = "staff"
ELIGIBLE_ROLES = ("staff", "officer")
STAFF_ROLES = ("staff", "officer", "admin")
STAFF_STATUSES = ("active", "inactive")


class AssignmentEngine:
    def __init__(
        self,
        store: RecordStore,
        workflow: StatusWorkflow,
        notifier: NotificationDispatcher,
        audit: AuditTrail,
        *,
        rng: random.Random | None = None,
        system_actor_id: str | None = None,
    ):
        self._store = store
        self._workflow = workflow
        self._notifier = notifier
        self._audit = audit
        self._rng = rng or random.Random()
        self._system_actor_id = system_actor_id or settings.system_actor_id

    async def eligible_staff(self, category: str) -> list[dict[str, Any]]:
        filters = [
            Filter("role", "in", ELIGIBLE_ROLES),
            Filter("department", "==", category),
            Filter("status", "==", "active"),
        ]
        staff: list[dict[str, Any]] = []
        cursor = None
        while True:
            page = await self._store.query(STAFF_COLLECTION, filters, order_by="id", cursor=cursor, limit=100)
            staff.extend(page.items)
            if not page.next_cursor:
                return staff
            cursor = page.next_cursor

    async def assign(self, application_id: str, service_category: str | None = None) -> str | None:
        """
        Pick an assignee and move the application to under_review.
        Returns the assignee id, or None when nobody is available.
        """
        app = await self._workflow.get(application_id)
        if app.get("assigned_to"):
            return app["assigned_to"]
        status = ApplicationStatus(app["status"])
        if status in TERMINAL_STATUSES:
            raise InvalidTransitionError(
                status.value, ApplicationStatus.UNDER_REVIEW.value, "closed applications cannot be assigned"
            )

        category = service_category or app.get("assigned_department") or app.get("category")
        pool = await self.eligible_staff(category)
        if not pool:
            logger.info("No active staff in %s for application %s; leaving it unassigned", category, application_id)
            return None

        staff = self._rng.choice(pool)
        claimed = await self._store.update_fields(
            "applications",
            application_id,
            {
                "assigned_to": staff["id"],
                "assigned_at": datetime.now(timezone.utc),
                "assigned_department": category,
            },
            expected={"assigned_to": None},
        )
        if not claimed:
            # Someone else assigned it first
            return (await self._workflow.get(application_id)).get("assigned_to")

        logger.info("Application %s assigned to %s (%s)", application_id, staff["id"], category)
        if status is ApplicationStatus.SUBMITTED:
            try:
                await self._workflow.transition(
                    application_id,
                    ApplicationStatus.UNDER_REVIEW,
                    self._system_actor_id,
                    f"Assigned to {staff['name']}",
                )
            except InvalidTransitionError:
                logger.warning("Application %s changed state while being assigned", application_id)
            except StorageError:
                # Release the claim so a later assign starts over
                logger.exception("Could not start review of %s; releasing assignment", application_id)
                await self._store.update_fields(
                    "applications",
                    application_id,
                    {"assigned_to": None, "assigned_at": None},
                    expected={"assigned_to": staff["id"]},
                )
                raise

        service = app.get("service_name") or service_display_name(app["service_type"])
        await self._notifier.notify(
            staff["id"],
            "New Application Assigned",
            f"A new {service} application has been assigned to you.",
            NotificationType.APPLICATION,
            application_id,
        )
        await self._audit.record(
            AuditAction.APPLICATION_ASSIGN,
            self._system_actor_id,
            "application",
            application_id,
            {"assigned_to": staff["id"], "department": category},
        )
        return staff["id"]

    async def reassign(self, application_id: str, assignee_id: str, actor_id: str) -> str:
        """Hand an open application to a specific active staff member."""
        if not actor_id:
            raise ValidationError("actor_id is required", field="actor_id")
        app = await self._workflow.get(application_id)
        status = ApplicationStatus(app["status"])
        if status in TERMINAL_STATUSES:
            raise InvalidTransitionError(status.value, status.value, "closed applications cannot be reassigned")
        staff = await self._store.get(STAFF_COLLECTION, assignee_id)
        if staff is None:
            raise NotFoundError("staff", assignee_id)
        if staff["status"] != "active":
            raise ValidationError(f"Staff member {assignee_id} is not active", field="assignee_id")

        previous = app.get("assigned_to")
        if previous == assignee_id:
            return assignee_id
        await self._store.update_fields(
            "applications",
            application_id,
            {"assigned_to": assignee_id, "assigned_at": datetime.now(timezone.utc)},
        )
        if status is ApplicationStatus.SUBMITTED:
            await self._workflow.transition(
                application_id, ApplicationStatus.UNDER_REVIEW, actor_id, f"Assigned to {staff['name']}"
            )

        service = app.get("service_name") or service_display_name(app["service_type"])
        await self._notifier.notify(
            assignee_id,
            "Application Assigned",
            f"A {service} application has been assigned to you.",
            NotificationType.APPLICATION,
            application_id,
        )
        await self._audit.record(
            AuditAction.APPLICATION_REASSIGN,
            actor_id,
            "application",
            application_id,
            {"previous_assignee": previous, "assigned_to": assignee_id},
        )
        return assignee_id

    async def add_staff(
        self,
        name: str,
        department: str,
        role: str = "staff",
        email: str | None = None,
        status: str = "active",
        actor_id: str | None = None,
    ) -> dict[str, Any]:
        if not name or not department:
            raise ValidationError("Staff name and department are required", field="name")
        if role not in STAFF_ROLES:
            raise ValidationError(f"Role must be one of {', '.join(STAFF_ROLES)}", field="role")
        if status not in STAFF_STATUSES:
            raise ValidationError(f"Status must be one of {', '.join(STAFF_STATUSES)}", field="status")
        staff_id = await self._store.create(
            STAFF_COLLECTION,
            {
                "id": f"stf-{uuid.uuid4().hex[:10]}",
                "name": name,
                "email": email,
                "role": role,
                "department": department,
                "status": status,
                "created_at": datetime.now(timezone.utc),
            },
        )
        await self._audit.record(
            AuditAction.STAFF_CREATE, actor_id, "staff", staff_id, {"department": department, "role": role}
        )
        return await self._store.get(STAFF_COLLECTION, staff_id)

    async def list_staff(
        self,
        department: str | None = None,
        status: str | None = None,
        cursor: str | None = None,
        limit: int = 20,
    ) -> Page:
        filters: dict[str, Any] = {}
        if department:
            filters["department"] = department
        if status:
            filters["status"] = status
        return await self._store.query(STAFF_COLLECTION, filters, order_by="name", cursor=cursor, limit=limit)
