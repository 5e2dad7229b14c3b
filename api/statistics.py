from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.deps import get_engine, iso
from services.audit import AuditAction
from services.engine import Engine

router = APIRouter(prefix="/api/statistics", tags=["statistics"])


@router.get("")
async def get_statistics(engine: Engine = Depends(get_engine)):
    # Status and service keys are data, not field names, so they are not camelized
    stats = await engine.statistics.snapshot()
    stats["lastUpdated"] = iso(stats.get("lastUpdated"))
    return stats


@router.post("/rebuild")
async def rebuild_statistics(
    actor_id: Optional[str] = Query(None, alias="actorId"),
    engine: Engine = Depends(get_engine),
):
    counts = await engine.statistics.rebuild()
    await engine.audit.record(
        AuditAction.STATISTICS_REBUILD,
        actor_id,
        "statistics",
        None,
        {"total_applications": counts.get("totalApplications", 0)},
    )
    return await get_statistics(engine)
