from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class StaffCreate(BaseModel):
    name: str
    department: str
    role: Literal["staff", "officer", "admin"] = "staff"
    email: Optional[str] = None
    status: Literal["active", "inactive"] = "active"
    actor_id: Optional[str] = Field(None, alias="actorId")

    model_config = {"populate_by_name": True}
