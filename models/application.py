from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text, func
from sqlalchemy import Float

from database import Base


class Application(Base):
    __tablename__ = "applications"

    id = Column(String(64), primary_key=True, index=True)
    service_type = Column(String(64), nullable=False, index=True)
    service_name = Column(String(128), nullable=True)
    category = Column(String(64), nullable=True, index=True)
    applicant_id = Column(String(64), nullable=False, index=True)
    applicant_name = Column(String(256), nullable=True)
    status = Column(String(32), nullable=False, default="submitted", index=True)
    priority = Column(String(16), nullable=False, default="medium")
    fee = Column(Float, nullable=False, default=0)
    payment_status = Column(String(16), nullable=False, default="not_required")
    processing_days = Column(Integer, nullable=True)
    expected_completion_at = Column(DateTime(timezone=True), nullable=True)
    assigned_department = Column(String(64), nullable=True)
    assigned_to = Column(String(64), nullable=True, index=True)
    assigned_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(String(64), nullable=True)
    approved_by = Column(String(64), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(String(64), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    completed_by = Column(String(64), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    latest_remarks = Column(Text, nullable=True)
    # Opaque payloads owned by the form-submission collaborators
    form_data = Column(JSON, nullable=False, default=dict)
    documents = Column(JSON, nullable=False, default=list)
    required_documents = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class ApplicationStatusEntry(Base):
    """One row per status transition; rows are only ever inserted."""

    __tablename__ = "application_status_history"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(String(64), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(32), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    actor_id = Column(String(64), nullable=False)
    remarks = Column(Text, nullable=True)


class ApplicationComment(Base):
    __tablename__ = "application_comments"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(String(64), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    id = Column(String(64), nullable=False, unique=True)
    comment = Column(Text, nullable=False)
    author_id = Column(String(64), nullable=False)
    author_role = Column(String(32), nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False)
