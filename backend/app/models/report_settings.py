from sqlalchemy import Column, Integer, JSON, DateTime
from datetime import datetime
from ..core.db import Base

class ReportSettings(Base):
    __tablename__ = "report_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    settings_data = Column(JSON, nullable=False)  # {"enhanced": {...}, "bi": {...}}
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
