from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.dialects.postgresql import UUID
from datetime import datetime

from ..core.db import Base

class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(UUID(as_uuid=True), index=True, nullable=True)  # None for system actions
    action = Column(String, nullable=False)     # "ENRICHMENT_COMPLETED", "REPORT_GENERATED", …
    entity = Column(String, nullable=False)     # "ENRICHMENT", "REPORT"
    entity_id = Column(String, index=True, nullable=True)
    # "metadata" is reserved on declarative classes
    event_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
