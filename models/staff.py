from sqlalchemy import Column, DateTime, String, func

from database import Base


class StaffMember(Base):
    __tablename__ = "staff"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(256), nullable=False)
    email = Column(String(256), nullable=True)
    role = Column(String(32), nullable=False, default="staff", index=True)
    department = Column(String(64), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="active", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
