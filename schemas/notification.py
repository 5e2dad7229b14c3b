from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class NotificationRead(BaseModel):
    user_id: Optional[str] = Field(None, alias="userId")

    model_config = {"populate_by_name": True}


class NotificationReadAll(BaseModel):
    user_id: str = Field(..., alias="userId")

    model_config = {"populate_by_name": True}
