"""
SQLAlchemy ORM models for persistence.
"""
from datetime import datetime
from sqlalchemy import BigInteger, Column, DateTime, Float, String, Text

from db import Base


class LandmarkORM(Base):
    __tablename__ = "locations"

    id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    source = Column(String, nullable=False)
    timestamp = Column(BigInteger, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
