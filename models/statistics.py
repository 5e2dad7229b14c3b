from sqlalchemy import Column, DateTime, Integer, String

from database import Base


class StatisticCounter(Base):
    """A single counter of an aggregate document, addressed by dotted path."""

    __tablename__ = "statistic_counters"

    doc_id = Column(String(64), primary_key=True)
    path = Column(String(256), primary_key=True)
    value = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=True)
