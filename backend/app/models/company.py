from sqlalchemy import Column, String, JSON, Boolean, Float, Integer, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from ..core.db import Base

class Company(Base):
    __tablename__ = "companies"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    search_id = Column(UUID(as_uuid=True), ForeignKey("searches.id"), index=True, nullable=True)
    name = Column(String, nullable=False)
    website = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    rating = Column(Float, nullable=True)
    review_count = Column(Integer, nullable=True)
    place_id = Column(String, index=True, nullable=True)

    is_enriched = Column(Boolean, nullable=False, default=False)
    enrichment_data = Column(JSON, nullable=True)  # merged EnrichmentResult record
    enriched_at = Column(DateTime, nullable=True)
    clay_enrichment_status = Column(String, nullable=True)  # "pending" | "completed"

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    search = relationship("Search", back_populates="companies")
    reports = relationship("Report", back_populates="company")
