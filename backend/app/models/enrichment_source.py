from sqlalchemy import Column, String, Boolean, Enum, DateTime
from datetime import datetime
import enum
from ..core.db import Base

class SourcePriority(str, enum.Enum):
    FIRST = "FIRST"
    SECOND = "SECOND"
    THIRD = "THIRD"
    DO_NOT_USE = "DO_NOT_USE"

class EnrichmentSource(Base):
    """
    Admin-configured enrichment vendor ranking.

    At most one row may hold each of FIRST/SECOND/THIRD. The database does not
    enforce this; the priority resolver and the admin update path do.
    """
    __tablename__ = "enrichment_sources"

    source_name = Column(String, primary_key=True)  # "hunter", "apollo", ...
    display_name = Column(String, nullable=False)
    priority = Column(Enum(SourcePriority), nullable=False, default=SourcePriority.DO_NOT_USE)
    is_enabled = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
