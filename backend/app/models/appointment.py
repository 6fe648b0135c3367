from sqlalchemy import Column, String, Date, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from app.database import Base
from app.models._ids import new_id


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=new_id)
    patient_id = Column(String(36), ForeignKey("patients.id", ondelete="CASCADE"), index=True)
    doctor_id = Column(String(36), ForeignKey("doctors.id", ondelete="CASCADE"), index=True)
    date = Column(Date, nullable=False, index=True)
    time = Column(String(10))
    status = Column(String(20), default="pending")  # pending | confirmed | completed | cancelled
    reason = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
