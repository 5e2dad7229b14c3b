from sqlalchemy import Boolean, Column, DateTime, JSON, String

from database import Base


class AuditLog(Base):
    """Immutable record of an action; never updated or deleted."""

    __tablename__ = "audit_logs"

    id = Column(String(64), primary_key=True, index=True)
    action = Column(String(64), nullable=False, index=True)
    actor_id = Column(String(64), nullable=True, index=True)
    resource_type = Column(String(64), nullable=True, index=True)
    resource_id = Column(String(64), nullable=True)
    details = Column(JSON, nullable=False, default=dict)
    success = Column(Boolean, nullable=False, default=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
