from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import async_sessionmaker

from services.assignment import AssignmentEngine
from services.audit import AuditTrail
from services.errors import StorageError
from services.notifications import NotificationDispatcher
from services.record_store import RecordStore
from services.statistics import StatisticsAggregator
from services.workflow import StatusWorkflow

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    store: RecordStore
    audit: AuditTrail
    notifications: NotificationDispatcher
    statistics: StatisticsAggregator
    workflow: StatusWorkflow
    assignment: AssignmentEngine

    async def submit_application(self, **kwargs) -> tuple[dict, str | None]:
        """Submit, then try to assign right away. Returns (application, assignee or None)."""
        app = await self.workflow.submit(**kwargs)
        try:
            assignee = await self.assignment.assign(app["id"])
        except StorageError:
            # The application is committed; it stays submitted and unassigned
            logger.exception("Automatic assignment failed for application %s", app["id"])
            return app, None
        if assignee is not None:
            app = await self.workflow.get(app["id"])
        return app, assignee


def build_engine(
    session_factory: async_sessionmaker,
    *,
    rng: random.Random | None = None,
) -> Engine:
    """
    Wire every workflow component against one record store. Post-commit hooks
    run in registration order: audit, notification, statistics.
    """
    store = RecordStore(session_factory)
    audit = AuditTrail(store)
    notifications = NotificationDispatcher(store)
    statistics = StatisticsAggregator(store)
    workflow = StatusWorkflow(
        store,
        hooks=[audit.on_transition, notifications.on_transition, statistics.on_transition],
        audit=audit,
    )
    assignment = AssignmentEngine(store, workflow, notifications, audit, rng=rng)
    return Engine(
        store=store,
        audit=audit,
        notifications=notifications,
        statistics=statistics,
        workflow=workflow,
        assignment=assignment,
    )
