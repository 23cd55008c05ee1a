from sqlalchemy import Column, Integer, String, Text, DateTime
from datetime import datetime
from ..core.db import Base

class ApiCredential(Base):
    __tablename__ = "api_credentials"

    id = Column(Integer, primary_key=True, autoincrement=True)
    service = Column(String, unique=True, index=True, nullable=False)  # "hunter", "zoominfo", ...
    encrypted_key = Column(Text, nullable=False)   # Fernet token
    username = Column(String, nullable=True)       # ZoomInfo JWT auth
    client_id = Column(String, nullable=True)
    status = Column(String, nullable=False, default="Saved")
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
