from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class ApplicationCreate(BaseModel):
    service_type: str = Field(..., alias="serviceType")
    applicant_id: str = Field(..., alias="applicantId")
    applicant_name: Optional[str] = Field(None, alias="applicantName")
    form_data: dict[str, Any] = Field(default_factory=dict, alias="formData")
    documents: list[Any] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class StatusUpdate(BaseModel):
    status: str
    actor_id: str = Field(..., alias="actorId")
    remarks: Optional[str] = ""

    model_config = {"populate_by_name": True}


class CommentCreate(BaseModel):
    comment: str
    author_id: str = Field(..., alias="authorId")
    author_role: Optional[str] = Field(None, alias="authorRole")

    model_config = {"populate_by_name": True}


class AssignRequest(BaseModel):
    """No assignee means: pick one automatically from the department pool."""

    assignee_id: Optional[str] = Field(None, alias="assigneeId")
    actor_id: Optional[str] = Field(None, alias="actorId")
    service_category: Optional[str] = Field(None, alias="serviceCategory")

    model_config = {"populate_by_name": True}


class BulkStatusUpdate(BaseModel):
    application_ids: list[str] = Field(..., alias="applicationIds")
    status: str
    actor_id: str = Field(..., alias="actorId")
    remarks: Optional[str] = ""

    model_config = {"populate_by_name": True}
