from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from api.deps import get_engine, iso, page_limit, page_response
from schemas.notification import NotificationRead, NotificationReadAll
from services.audit import AuditAction
from services.engine import Engine

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _notification_to_response(n: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": n["id"],
        "userId": n["user_id"],
        "title": n["title"],
        "message": n["message"],
        "type": n["type"],
        "relatedResourceId": n.get("related_resource_id"),
        "isRead": n["is_read"],
        "readAt": iso(n.get("read_at")),
        "createdAt": iso(n.get("created_at")),
    }


@router.get("")
async def list_notifications(
    user_id: str = Query(..., alias="userId"),
    is_read: Optional[bool] = Query(None, alias="isRead"),
    page: Optional[str] = None,
    limit: Optional[int] = None,
    engine: Engine = Depends(get_engine),
):
    limit = page_limit(limit)
    result = await engine.notifications.list_for_user(user_id, is_read=is_read, cursor=page, limit=limit)
    out = page_response([_notification_to_response(n) for n in result.items], result.next_cursor, limit)
    out["unreadCount"] = await engine.notifications.unread_count(user_id)
    return out


@router.patch("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    body: Optional[NotificationRead] = None,
    engine: Engine = Depends(get_engine),
):
    user_id = body.user_id if body else None
    notification = await engine.notifications.mark_read(notification_id, user_id)
    await engine.audit.record(
        AuditAction.NOTIFICATION_READ, notification["user_id"], "notification", notification_id
    )
    return _notification_to_response(notification)


@router.post("/read-all")
async def mark_all_read(body: NotificationReadAll, engine: Engine = Depends(get_engine)):
    updated = await engine.notifications.mark_all_read(body.user_id)
    return {"userId": body.user_id, "updated": updated}
