"""
Application lifecycle state machine.

    submitted -> under_review -> approved | rejected | documents_required
    documents_required -> under_review | approved | rejected
    approved -> completed
    any non-terminal state -> cancelled

completed, rejected and cancelled are terminal. The status field and the
status history are written together in one guarded append, so the last
history entry always matches the status. Audit, notification and statistics
run afterwards as post-commit hooks; a failing hook is logged and never
undoes the transition.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from config import settings
from services.audit import AuditAction, AuditTrail
from services.catalog import get_service_config
from services.errors import InvalidTransitionError, NotFoundError, StorageError, ValidationError, WorkflowError
from services.record_store import Page, RecordStore

logger = logging.getLogger(__name__)

COLLECTION = "applications"
SUBMITTED_REMARKS = "Application submitted by citizen"


class ApplicationStatus(str, Enum):
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    DOCUMENTS_REQUIRED = "documents_required"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


TERMINAL_STATUSES = frozenset(
    {ApplicationStatus.COMPLETED, ApplicationStatus.REJECTED, ApplicationStatus.CANCELLED}
)

TRANSITIONS: dict[ApplicationStatus, frozenset[ApplicationStatus]] = {
    ApplicationStatus.SUBMITTED: frozenset({ApplicationStatus.UNDER_REVIEW, ApplicationStatus.CANCELLED}),
    ApplicationStatus.UNDER_REVIEW: frozenset(
        {
            ApplicationStatus.APPROVED,
            ApplicationStatus.REJECTED,
            ApplicationStatus.DOCUMENTS_REQUIRED,
            ApplicationStatus.CANCELLED,
        }
    ),
    ApplicationStatus.DOCUMENTS_REQUIRED: frozenset(
        {
            ApplicationStatus.UNDER_REVIEW,
            ApplicationStatus.APPROVED,
            ApplicationStatus.REJECTED,
            ApplicationStatus.CANCELLED,
        }
    ),
    ApplicationStatus.APPROVED: frozenset({ApplicationStatus.COMPLETED, ApplicationStatus.CANCELLED}),
    ApplicationStatus.COMPLETED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
    ApplicationStatus.CANCELLED: frozenset(),
}


def can_transition(current: ApplicationStatus, target: ApplicationStatus) -> bool:
    return target in TRANSITIONS[current]


def coerce_status(value: ApplicationStatus | str) -> ApplicationStatus:
    try:
        return ApplicationStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown application status '{value}'", field="status") from None


@dataclass(frozen=True)
class TransitionEvent:
    """Handed to every post-commit hook. previous_status is None on submission."""

    application: dict[str, Any]
    previous_status: ApplicationStatus | None
    status: ApplicationStatus
    actor_id: str
    remarks: str
    timestamp: datetime


@dataclass(frozen=True)
class TransitionResult:
    application_id: str
    status: ApplicationStatus
    previous_status: ApplicationStatus
    timestamp: datetime
    changed: bool


PostCommitHook = Callable[[TransitionEvent], Awaitable[None]]


def _status_fields(target: ApplicationStatus, actor_id: str, remarks: str, now: datetime) -> dict[str, Any]:
    if target is ApplicationStatus.UNDER_REVIEW:
        return {"reviewed_by": actor_id}
    if target is ApplicationStatus.APPROVED:
        return {"approved_by": actor_id, "approved_at": now}
    if target is ApplicationStatus.REJECTED:
        return {"rejected_by": actor_id, "rejection_reason": remarks}
    if target is ApplicationStatus.COMPLETED:
        return {"completed_by": actor_id, "completed_at": now}
    return {}


def _applicant_name(service_type: str, form_data: dict[str, Any]) -> str | None:
    if service_type == "birth-certificate":
        keys = ("fatherName", "motherName", "childName")
    elif service_type == "death-certificate":
        keys = ("informantName", "deceasedName")
    else:
        keys = ("applicantName", "name", "fullName")
    for key in keys:
        if form_data.get(key):
            return str(form_data[key])
    return None


def _hook_name(hook: PostCommitHook) -> str:
    owner = getattr(hook, "__self__", None)
    if owner is not None:
        return type(owner).__name__
    return getattr(hook, "__name__", repr(hook))


class StatusWorkflow:
    def __init__(
        self,
        store: RecordStore,
        hooks: Iterable[PostCommitHook] = (),
        *,
        audit: AuditTrail | None = None,
        retry_limit: int | None = None,
    ):
        self._store = store
        self._hooks: list[PostCommitHook] = list(hooks)
        self._audit = audit
        self._retry_limit = retry_limit or settings.transition_retry_limit

    def add_hook(self, hook: PostCommitHook) -> None:
        self._hooks.append(hook)

    async def get(self, application_id: str) -> dict[str, Any]:
        app = await self._store.get(COLLECTION, application_id)
        if app is None:
            raise NotFoundError("application", application_id)
        return app

    async def list_applications(
        self,
        status: ApplicationStatus | str | None = None,
        service_type: str | None = None,
        applicant_id: str | None = None,
        assigned_to: str | None = None,
        cursor: str | None = None,
        limit: int = 20,
    ) -> Page:
        filters: dict[str, Any] = {}
        if status:
            filters["status"] = coerce_status(status).value
        if service_type:
            filters["service_type"] = service_type
        if applicant_id:
            filters["applicant_id"] = applicant_id
        if assigned_to:
            filters["assigned_to"] = assigned_to
        return await self._store.query(COLLECTION, filters, order_by="-created_at", cursor=cursor, limit=limit)

    async def history(self, application_id: str) -> dict[str, Any]:
        app = await self.get(application_id)
        return {
            "application_id": app["id"],
            "status": app["status"],
            "status_history": app["status_history"],
            "comments": app["comments"],
        }

    async def submit(
        self,
        applicant_id: str,
        service_type: str,
        form_data: dict[str, Any] | None = None,
        documents: list[Any] | None = None,
        applicant_name: str | None = None,
    ) -> dict[str, Any]:
        """Create an application in `submitted` with its first history entry."""
        if not applicant_id:
            raise ValidationError("applicant_id is required", field="applicant_id")
        config = get_service_config(service_type)
        form_data = form_data or {}
        now = datetime.now(timezone.utc)
        app_id = f"app-{uuid.uuid4().hex[:12]}"
        initial = ApplicationStatus.SUBMITTED

        await self._store.create(
            COLLECTION,
            {
                "id": app_id,
                "service_type": config.service_type,
                "service_name": config.name,
                "category": config.category,
                "applicant_id": applicant_id,
                "applicant_name": applicant_name or _applicant_name(service_type, form_data),
                "status": initial.value,
                "priority": config.priority.value,
                "fee": config.fee,
                "payment_status": "pending" if config.fee > 0 else "not_required",
                "processing_days": config.processing_days,
                "expected_completion_at": now + timedelta(days=config.processing_days),
                "assigned_department": config.category,
                "form_data": form_data,
                "documents": documents or [],
                "required_documents": list(config.required_documents),
                "created_at": now,
                "updated_at": now,
                "status_history": [
                    {
                        "status": initial.value,
                        "timestamp": now,
                        "actor_id": applicant_id,
                        "remarks": SUBMITTED_REMARKS,
                    }
                ],
            },
        )
        app = await self.get(app_id)
        logger.info("Application %s submitted for %s by %s", app_id, service_type, applicant_id)
        await self._run_hooks(TransitionEvent(app, None, initial, applicant_id, SUBMITTED_REMARKS, now))
        return app

    async def transition(
        self,
        application_id: str,
        new_status: ApplicationStatus | str,
        actor_id: str,
        remarks: str | None = "",
    ) -> TransitionResult:
        target = coerce_status(new_status)
        remarks = (remarks or "").strip()
        if not actor_id:
            raise ValidationError("actor_id is required", field="actor_id")

        for _ in range(self._retry_limit):
            app = await self.get(application_id)
            current = ApplicationStatus(app["status"])
            if current is target:
                # Retried request: already there, nothing to append
                last = app["status_history"][-1] if app["status_history"] else {}
                return TransitionResult(app["id"], current, current, last.get("timestamp") or app["updated_at"], False)
            if current in TERMINAL_STATUSES:
                raise InvalidTransitionError(current.value, target.value, "application is closed")
            if not can_transition(current, target):
                raise InvalidTransitionError(current.value, target.value)
            if target is ApplicationStatus.REJECTED and not remarks:
                raise ValidationError("Remarks are required when rejecting an application", field="remarks")

            now = datetime.now(timezone.utc)
            entry = {"status": target.value, "timestamp": now, "actor_id": actor_id, "remarks": remarks}
            fields = {
                "status": target.value,
                "updated_at": now,
                "latest_remarks": remarks or None,
                **_status_fields(target, actor_id, remarks, now),
            }
            committed = await self._store.append_to_array_field(
                COLLECTION,
                application_id,
                "status_history",
                entry,
                fields=fields,
                expected={"status": current.value},
            )
            if committed:
                break
            logger.info("Application %s changed concurrently, re-evaluating %s", application_id, target.value)
        else:
            raise StorageError(
                f"Application {application_id} kept changing; gave up after {self._retry_limit} attempts"
            )

        logger.info(
            "Application %s moved %s -> %s by %s", application_id, current.value, target.value, actor_id
        )
        updated = {**app, **fields, "status_history": [*app["status_history"], entry]}
        await self._run_hooks(TransitionEvent(updated, current, target, actor_id, remarks, now))
        return TransitionResult(application_id, target, current, now, True)

    async def bulk_transition(
        self,
        application_ids: Iterable[str],
        new_status: ApplicationStatus | str,
        actor_id: str,
        remarks: str | None = "",
    ) -> list[dict[str, Any]]:
        """
        Apply one status change to many applications. Each id is transitioned
        on its own, so one failure never blocks the rest; the result lists
        the outcome per application in request order.
        """
        target = coerce_status(new_status)
        ids = list(dict.fromkeys(i for i in application_ids if i))
        if not ids:
            raise ValidationError("At least one application id is required", field="application_ids")

        results: list[dict[str, Any]] = []
        for application_id in ids:
            try:
                result = await self.transition(application_id, target, actor_id, remarks)
            except WorkflowError as e:
                results.append({"application_id": application_id, "success": False, "error": str(e)})
                continue
            results.append(
                {
                    "application_id": application_id,
                    "success": True,
                    "previous_status": result.previous_status.value,
                    "status": result.status.value,
                    "changed": result.changed,
                }
            )
        succeeded = sum(1 for r in results if r["success"])
        logger.info("Bulk move to %s by %s: %d of %d succeeded", target.value, actor_id, succeeded, len(results))
        return results

    async def add_comment(
        self,
        application_id: str,
        author_id: str,
        comment: str,
        author_role: str | None = None,
    ) -> dict[str, Any]:
        comment = (comment or "").strip()
        if not comment:
            raise ValidationError("Comment text is required", field="comment")
        if not author_id:
            raise ValidationError("author_id is required", field="author_id")
        entry = {
            "id": f"cmt-{uuid.uuid4().hex[:12]}",
            "comment": comment,
            "author_id": author_id,
            "author_role": author_role,
            "timestamp": datetime.now(timezone.utc),
        }
        if not await self._store.append_to_array_field(COLLECTION, application_id, "comments", entry):
            raise NotFoundError("application", application_id)
        if self._audit is not None:
            await self._audit.record(
                AuditAction.APPLICATION_COMMENT,
                author_id,
                "application",
                application_id,
                {"comment": comment[:100]},
            )
        return entry

    async def _run_hooks(self, event: TransitionEvent) -> None:
        for hook in self._hooks:
            try:
                await hook(event)
            except Exception:
                logger.exception(
                    "Post-commit effect %s failed for application %s (%s)",
                    _hook_name(hook),
                    event.application["id"],
                    event.status.value,
                )
