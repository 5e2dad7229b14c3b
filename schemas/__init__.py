from schemas.application import (
    ApplicationCreate,
    AssignRequest,
    BulkStatusUpdate,
    CommentCreate,
    StatusUpdate,
)
from schemas.notification import NotificationRead, NotificationReadAll
from schemas.staff import StaffCreate

__all__ = [
    "ApplicationCreate",
    "AssignRequest",
    "BulkStatusUpdate",
    "CommentCreate",
    "StatusUpdate",
    "NotificationRead",
    "NotificationReadAll",
    "StaffCreate",
]
