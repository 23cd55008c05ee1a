from sqlalchemy import Column, JSON, Text, Enum, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
import enum
from ..core.db import Base

class ReportTier(str, enum.Enum):
    ENHANCED = "ENHANCED"
    BI = "BI"

class Report(Base):
    """Insert-only: regenerating a report creates a new row."""
    __tablename__ = "reports"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(UUID(as_uuid=True), ForeignKey("companies.id"), index=True, nullable=False)
    user_id = Column(UUID(as_uuid=True), index=True, nullable=False)
    tier = Column(Enum(ReportTier), nullable=False)
    content_json = Column(JSON, nullable=False)
    content_html = Column(Text, nullable=False)
    generated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    company = relationship("Company", back_populates="reports")
