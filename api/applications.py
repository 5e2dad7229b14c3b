from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from api.deps import get_engine, iso, page_limit, page_response
from schemas.application import ApplicationCreate, AssignRequest, BulkStatusUpdate, CommentCreate, StatusUpdate
from services.engine import Engine
from services.workflow import ApplicationStatus

router = APIRouter(prefix="/api/applications", tags=["applications"])


def _history_entry_to_response(entry: dict[str, Any]) -> dict[str, Any]:
    return {
        "status": entry["status"],
        "timestamp": iso(entry["timestamp"]),
        "actorId": entry["actor_id"],
        "remarks": entry.get("remarks") or "",
    }


def _comment_to_response(entry: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": entry["id"],
        "comment": entry["comment"],
        "authorId": entry["author_id"],
        "authorRole": entry.get("author_role"),
        "timestamp": iso(entry["timestamp"]),
    }


def _application_to_response(app: dict[str, Any]) -> dict[str, Any]:
    """Serialize application to dict with camelCase for frontend. formData is passed through as-is."""
    return {
        "id": app["id"],
        "serviceType": app["service_type"],
        "serviceName": app.get("service_name"),
        "category": app.get("category"),
        "applicantId": app["applicant_id"],
        "applicantName": app.get("applicant_name"),
        "status": app["status"],
        "statusLabel": ApplicationStatus(app["status"]).label,
        "priority": app.get("priority"),
        "fee": app.get("fee"),
        "paymentStatus": app.get("payment_status"),
        "processingDays": app.get("processing_days"),
        "expectedCompletionAt": iso(app.get("expected_completion_at")),
        "assignedDepartment": app.get("assigned_department"),
        "assignedTo": app.get("assigned_to"),
        "assignedAt": iso(app.get("assigned_at")),
        "reviewedBy": app.get("reviewed_by"),
        "approvedBy": app.get("approved_by"),
        "approvedAt": iso(app.get("approved_at")),
        "rejectedBy": app.get("rejected_by"),
        "rejectionReason": app.get("rejection_reason"),
        "completedBy": app.get("completed_by"),
        "completedAt": iso(app.get("completed_at")),
        "remarks": app.get("latest_remarks"),
        "formData": app.get("form_data") or {},
        "documents": app.get("documents") or [],
        "requiredDocuments": app.get("required_documents") or [],
        "statusHistory": [_history_entry_to_response(e) for e in app.get("status_history") or []],
        "comments": [_comment_to_response(c) for c in app.get("comments") or []],
        "createdAt": iso(app.get("created_at")),
        "updatedAt": iso(app.get("updated_at")),
    }


@router.post("", status_code=201)
async def submit_application(body: ApplicationCreate, engine: Engine = Depends(get_engine)):
    app, assignee = await engine.submit_application(
        applicant_id=body.applicant_id,
        service_type=body.service_type,
        form_data=body.form_data,
        documents=body.documents,
        applicant_name=body.applicant_name,
    )
    out = _application_to_response(app)
    out["assignmentStatus"] = "assigned" if assignee else "unassigned"
    return out


@router.get("")
async def list_applications(
    status: Optional[str] = None,
    service_type: Optional[str] = Query(None, alias="serviceType"),
    applicant_id: Optional[str] = Query(None, alias="applicantId"),
    assigned_to: Optional[str] = Query(None, alias="assignedTo"),
    page: Optional[str] = None,
    limit: Optional[int] = None,
    engine: Engine = Depends(get_engine),
):
    limit = page_limit(limit)
    result = await engine.workflow.list_applications(
        status=status,
        service_type=service_type,
        applicant_id=applicant_id,
        assigned_to=assigned_to,
        cursor=page,
        limit=limit,
    )
    return page_response([_application_to_response(a) for a in result.items], result.next_cursor, limit)


@router.get("/{application_id}")
async def get_application(application_id: str, engine: Engine = Depends(get_engine)):
    return _application_to_response(await engine.workflow.get(application_id))


@router.patch("/{application_id}/status")
async def update_status(application_id: str, body: StatusUpdate, engine: Engine = Depends(get_engine)):
    result = await engine.workflow.transition(application_id, body.status, body.actor_id, body.remarks)
    return {
        "applicationId": result.application_id,
        "status": result.status.value,
        "previousStatus": result.previous_status.value,
        "timestamp": iso(result.timestamp),
        "changed": result.changed,
    }


@router.post("/{application_id}/comments", status_code=201)
async def add_comment(application_id: str, body: CommentCreate, engine: Engine = Depends(get_engine)):
    entry = await engine.workflow.add_comment(application_id, body.author_id, body.comment, body.author_role)
    return _comment_to_response(entry)


@router.get("/{application_id}/history")
async def get_history(application_id: str, engine: Engine = Depends(get_engine)):
    history = await engine.workflow.history(application_id)
    return {
        "applicationId": history["application_id"],
        "status": history["status"],
        "statusHistory": [_history_entry_to_response(e) for e in history["status_history"]],
        "comments": [_comment_to_response(c) for c in history["comments"]],
    }


@router.post("/{application_id}/assign")
async def assign_application(
    application_id: str,
    body: Optional[AssignRequest] = None,
    engine: Engine = Depends(get_engine),
):
    body = body or AssignRequest()
    if body.assignee_id:
        assignee = await engine.assignment.reassign(application_id, body.assignee_id, body.actor_id)
    else:
        assignee = await engine.assignment.assign(application_id, body.service_category)
    app = await engine.workflow.get(application_id)
    return {
        "applicationId": application_id,
        "assignedTo": assignee,
        "assignmentStatus": "assigned" if assignee else "unassigned",
        "status": app["status"],
    }


@router.post("/bulk-status")
async def bulk_update_status(body: BulkStatusUpdate, engine: Engine = Depends(get_engine)):
    results = await engine.workflow.bulk_transition(body.application_ids, body.status, body.actor_id, body.remarks)
    items = []
    for r in results:
        item = {"applicationId": r["application_id"], "success": r["success"]}
        if r["success"]:
            item.update(previousStatus=r["previous_status"], status=r["status"], changed=r["changed"])
        else:
            item["error"] = r["error"]
        items.append(item)
    succeeded = sum(1 for r in results if r["success"])
    return {"results": items, "succeeded": succeeded, "failed": len(results) - succeeded}
