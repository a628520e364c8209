from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from wallet_hub.database import Base

class KeyValueEntry(Base):
    __tablename__ = "kv_entries"
    id = Column(Integer, primary_key=True)
    key = Column(String, unique=True, index=True, nullable=False)
    value = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
