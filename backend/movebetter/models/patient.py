from sqlalchemy import Column, String, Date, Text, ForeignKey
from .base import Base, TimestampMixin, generate_uuid


class PatientStatus:
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"

    ALL = (ACTIVE, INACTIVE, COMPLETED)


class Patient(Base, TimestampMixin):
    __tablename__ = "patients"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("profiles.id"), nullable=True)
    name = Column(String(200), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    birth_date = Column(Date, nullable=True)
    cpf = Column(String(14), nullable=True)
    address = Column(String(300), nullable=True)
    emergency_contact = Column(String(200), nullable=True)
    emergency_phone = Column(String(30), nullable=True)
    medical_history = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=PatientStatus.ACTIVE, index=True)
    created_by = Column(String, ForeignKey("profiles.id"), nullable=True)
