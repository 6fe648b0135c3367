from sqlalchemy import Column, String, Numeric, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.database import Base
from app.models._ids import new_id


class Bill(Base):
    __tablename__ = "bills"

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id", ondelete="SET NULL"), index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), default="pending")  # pending | paid | cancelled
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
