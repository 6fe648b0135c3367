from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from app.database import Base
from app.models._ids import new_id


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    email = Column(String(200), unique=True, index=True, nullable=False)
    password_hash = Column(String(100), nullable=False)
    specialization = Column(String(200))
    phone = Column(String(20))
    status = Column(String(20), default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
