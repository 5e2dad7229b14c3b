from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends

from api.deps import get_engine, iso, page_limit, page_response
from schemas.staff import StaffCreate
from services.engine import Engine

router = APIRouter(prefix="/api/staff", tags=["staff"])


def _staff_to_response(s: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": s["id"],
        "name": s["name"],
        "email": s.get("email"),
        "role": s["role"],
        "department": s["department"],
        "status": s["status"],
        "createdAt": iso(s.get("created_at")),
    }


@router.get("")
async def list_staff(
    department: Optional[str] = None,
    status: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[int] = None,
    engine: Engine = Depends(get_engine),
):
    limit = page_limit(limit)
    result = await engine.assignment.list_staff(department, status, cursor=page, limit=limit)
    return page_response([_staff_to_response(s) for s in result.items], result.next_cursor, limit)


@router.post("", status_code=201)
async def create_staff(body: StaffCreate, engine: Engine = Depends(get_engine)):
    staff = await engine.assignment.add_staff(
        name=body.name,
        department=body.department,
        role=body.role,
        email=body.email,
        status=body.status,
        actor_id=body.actor_id,
    )
    return _staff_to_response(staff)
