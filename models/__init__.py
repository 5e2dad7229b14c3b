from models.application import Application, ApplicationComment, ApplicationStatusEntry
from models.audit_log import AuditLog
from models.notification import Notification
from models.staff import StaffMember
from models.statistics import StatisticCounter

__all__ = [
    "Application",
    "ApplicationComment",
    "ApplicationStatusEntry",
    "AuditLog",
    "Notification",
    "StaffMember",
    "StatisticCounter",
]
