from sqlalchemy import Column, String, Boolean, ForeignKey, JSON
from .base import Base, TimestampMixin, generate_uuid


class UserRole:
    ADMIN = "admin"
    PATIENT = "patient"


class Profile(Base, TimestampMixin):
    """Clinic staff account (physiotherapist / administrator)."""
    __tablename__ = "profiles"

    id = Column(String, primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.ADMIN)
    phone = Column(String(30), nullable=True)
    crefito = Column(String(30), nullable=True)  # Professional council registration
    cpf_cnpj = Column(String(20), nullable=True)
    cep = Column(String(10), nullable=True)
    street = Column(String(200), nullable=True)
    number = Column(String(20), nullable=True)
    neighborhood = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(2), nullable=True)
    is_active = Column(Boolean, default=True)


class PatientAppAccess(Base, TimestampMixin):
    """Login granted to a patient for the patient-facing app."""
    __tablename__ = "patient_app_access"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("profiles.id"), nullable=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    allowed_pages = Column(JSON, default=list)
    is_active = Column(Boolean, default=True)
    created_by = Column(String, ForeignKey("profiles.id"), nullable=True)
