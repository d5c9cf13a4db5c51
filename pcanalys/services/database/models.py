"""
SQLAlchemy ORM models for the PcAnalys database.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.orm import declarative_base

from pcanalys.schemas.analysis import utcnow

Base = declarative_base()


class Analysis(Base):
    """
    One ingested hardware snapshot and its latest recommendation cycle.
    """
    __tablename__ = "analyses"

    id = Column(String(36), primary_key=True)  # UUID
    raw_data = Column(JSON, nullable=False)  # Payload as received
    hardware_profile = Column(JSON, nullable=False)  # Canonical HardwareProfile.to_dict()

    usage_profile = Column(String(32))
    recommendations = Column(JSON(none_as_null=True))
    performance_score = Column(Integer)

    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Analysis(id='{self.id}', usage_profile='{self.usage_profile}', score={self.performance_score})>"
