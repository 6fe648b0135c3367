from sqlalchemy import Column, String, Date, DateTime
from sqlalchemy.sql import func
from app.database import Base
from app.models._ids import new_id


class Patient(Base):
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), unique=True, index=True)  # session-provider user id
    name = Column(String(200), nullable=False)
    email = Column(String(200), index=True, nullable=False)
    phone = Column(String(20))
    date_of_birth = Column(Date)
    condition = Column(String(200))
    status = Column(String(20), default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
