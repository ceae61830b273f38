from sqlalchemy import Column, String, Date, Time, Text, Integer, ForeignKey
from .base import Base, TimestampMixin, generate_uuid


class AppointmentStatus:
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

    ALL = (SCHEDULED, COMPLETED, CANCELLED, NO_SHOW)


class Appointment(Base, TimestampMixin):
    __tablename__ = "appointments"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id", ondelete="CASCADE"), nullable=True, index=True)
    session_type = Column(String(100), nullable=False)
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, default=60)
    # Transitions are unchecked: any update may set any status
    status = Column(String(20), nullable=False, default=AppointmentStatus.SCHEDULED, index=True)
    notes = Column(Text, nullable=True)
    observations = Column(Text, nullable=True)
    created_by = Column(String, ForeignKey("profiles.id"), nullable=True)
