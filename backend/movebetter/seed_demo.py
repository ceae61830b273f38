"""
Demo data seeder for MoveBetter.

Creates a demo clinic account with known credentials, a demo patient with app
access, default financial categories, one package and a few credit card rates
so a fresh install has something to click through.

Credentials:
  Clinic : admin@movebetter.demo    / Admin1234!
  Patient: paciente@movebetter.demo / Paciente1234!

Idempotent: safe to call on every startup.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.orm import Session

from .core.security import get_password_hash
from .models.base import Base, SessionLocal, generate_uuid
from .models.financial import FinancialCategory, TransactionType
from .models.package import CreditCardRate, Package
from .models.patient import Patient
from .models.user import PatientAppAccess, Profile, UserRole

logger = logging.getLogger(__name__)

DEMO_ADMIN_EMAIL = "admin@movebetter.demo"
DEMO_ADMIN_PASSWORD = "Admin1234!"

DEMO_PATIENT_NAME = "Maria Demo"
DEMO_PATIENT_EMAIL = "paciente@movebetter.demo"
DEMO_PATIENT_PASSWORD = "Paciente1234!"

DEMO_PACKAGE_NAME = "Pacote 10 sessões"

DEFAULT_CATEGORIES = (
    ("Sessões", TransactionType.INCOME, "#10B981"),
    ("Pacotes", TransactionType.INCOME, "#3B82F6"),
    ("Aluguel", TransactionType.EXPENSE, "#EF4444"),
    ("Materiais", TransactionType.EXPENSE, "#F59E0B"),
)

DEFAULT_RATES = (("2x", "3.50"), ("3x", "4.50"), ("6x", "7.90"), ("12x", "12.50"))


def seed_demo_data(session_factory: Optional[Callable[[], Session]] = None) -> None:
    """Create the demo account, patient, categories, package and rates if missing."""
    db = (session_factory or SessionLocal)()
    try:
        Base.metadata.create_all(bind=db.get_bind())
        admin = _seed_admin(db)
        patient = _seed_patient(db, admin.id)
        _seed_patient_access(db, patient.id, admin.id)
        _seed_categories(db)
        _seed_package(db)
        _seed_rates(db)
    finally:
        db.close()


# ── helpers ──────────────────────────────────────────────────────────────────

def _seed_admin(db) -> Profile:
    admin = db.query(Profile).filter(Profile.email == DEMO_ADMIN_EMAIL).first()
    if not admin:
        admin = Profile(
            id=generate_uuid(),
            name="Clínica Demo",
            email=DEMO_ADMIN_EMAIL,
            hashed_password=get_password_hash(DEMO_ADMIN_PASSWORD),
            role=UserRole.ADMIN,
            crefito="DEMO-000000-F",
        )
        db.add(admin)
        db.commit()
        db.refresh(admin)
        logger.info("Created demo clinic account %s", DEMO_ADMIN_EMAIL)
    return admin


def _seed_patient(db, admin_id: str) -> Patient:
    patient = db.query(Patient).filter(Patient.email == DEMO_PATIENT_EMAIL).first()
    if not patient:
        patient = Patient(
            id=generate_uuid(),
            name=DEMO_PATIENT_NAME,
            email=DEMO_PATIENT_EMAIL,
            phone="(11) 99999-0000",
            birth_date=date(1985, 3, 12),
            medical_history="Paciente de demonstração.",
            created_by=admin_id,
        )
        db.add(patient)
        db.commit()
        db.refresh(patient)
        logger.info("Created demo patient %s", patient.name)
    return patient


def _seed_patient_access(db, patient_id: str, admin_id: str) -> None:
    if db.query(PatientAppAccess).filter(PatientAppAccess.email == DEMO_PATIENT_EMAIL).first():
        return
    db.add(PatientAppAccess(
        patient_id=patient_id,
        email=DEMO_PATIENT_EMAIL,
        password_hash=get_password_hash(DEMO_PATIENT_PASSWORD),
        allowed_pages=["dashboard", "exercises", "ranking"],
        created_by=admin_id,
    ))
    db.commit()
    logger.info("Granted app access to %s", DEMO_PATIENT_EMAIL)


def _seed_categories(db) -> None:
    existing = {name for (name,) in db.query(FinancialCategory.name).all()}
    missing = [c for c in DEFAULT_CATEGORIES if c[0] not in existing]
    for name, kind, color in missing:
        db.add(FinancialCategory(name=name, type=kind, color=color))
    if missing:
        db.commit()
        logger.info("Created %d financial categories", len(missing))


def _seed_package(db) -> None:
    if db.query(Package).filter(Package.name == DEMO_PACKAGE_NAME).first():
        return
    db.add(Package(
        name=DEMO_PACKAGE_NAME,
        description="Dez sessões de fisioterapia domiciliar",
        price=Decimal("1200.00"),
        sessions_included=10,
        validity_days=60,
        services=["Fisioterapia domiciliar", "Plano de exercícios"],
    ))
    db.commit()
    logger.info("Created demo package %s", DEMO_PACKAGE_NAME)


def _seed_rates(db) -> None:
    existing = {name for (name,) in db.query(CreditCardRate.name).all()}
    missing = [r for r in DEFAULT_RATES if r[0] not in existing]
    for name, rate in missing:
        db.add(CreditCardRate(name=name, rate=Decimal(rate)))
    if missing:
        db.commit()
        logger.info("Created %d credit card rates", len(missing))
