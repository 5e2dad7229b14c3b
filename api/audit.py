from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic.alias_generators import to_camel

from api.deps import get_engine, iso, page_limit, page_response
from services.engine import Engine

router = APIRouter(prefix="/api/audit-logs", tags=["audit"])


def _audit_to_response(entry: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": entry["id"],
        "action": entry["action"],
        "actorId": entry.get("actor_id"),
        "resourceType": entry.get("resource_type"),
        "resourceId": entry.get("resource_id"),
        "details": {to_camel(k): v for k, v in (entry.get("details") or {}).items()},
        "success": entry["success"],
        "timestamp": iso(entry["timestamp"]),
    }


@router.get("")
async def list_audit_logs(
    actor_id: Optional[str] = Query(None, alias="actorId"),
    action: Optional[str] = None,
    resource_type: Optional[str] = Query(None, alias="resourceType"),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    page: Optional[str] = None,
    limit: Optional[int] = None,
    engine: Engine = Depends(get_engine),
):
    limit = page_limit(limit)
    result = await engine.audit.query(
        actor_id=actor_id,
        action=action,
        resource_type=resource_type,
        start=start,
        end=end,
        cursor=page,
        limit=limit,
    )
    return page_response([_audit_to_response(e) for e in result.items], result.next_cursor, limit)
