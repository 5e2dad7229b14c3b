from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import Request

from config import settings
from services.engine import Engine


def get_engine(request: Request) -> Engine:
    return request.app.state.engine


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def page_response(items: list[dict[str, Any]], next_cursor: str | None, limit: int) -> dict[str, Any]:
    return {"items": items, "nextPage": next_cursor, "limit": limit}


def page_limit(limit: int | None) -> int:
    return settings.clamp_limit(limit)
