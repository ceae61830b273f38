"""
Server-side procedures callable through ``BackendClient.rpc``.

Each procedure receives the open ``UnitOfWork`` and runs inside its single
transaction, so every check and the write that depends on it commit together.
"""
import logging
from datetime import date, timedelta
from typing import List, Optional

from ..core.security import get_password_hash, verify_password
from ..models.base import utcnow
from ..models.clinical import MedicalRecordStatus, PatientEvolution, PatientMedicalRecord
from ..models.package import Package, PatientPackage
from ..models.patient import Patient
from ..models.plan import PatientScore, PlanExercise, TreatmentPlan
from ..models.user import PatientAppAccess
from .client import UnitOfWork, coerce_value, row_to_dict
from .errors import BackendError, ErrorCode

logger = logging.getLogger(__name__)

POINTS_PER_EXERCISE = 10


def _coerced(model, values: dict) -> dict:
    columns = model.__table__.columns
    unknown = [key for key in values if key not in columns]
    if unknown:
        raise BackendError(f"Unknown column(s) for {model.__tablename__}: {', '.join(unknown)}", ErrorCode.INVALID_REQUEST)
    return {key: coerce_value(columns[key], value) for key, value in values.items()}


def _public_access(row: dict) -> dict:
    return {key: value for key, value in row.items() if key != "password_hash"}


def create_evolution(uow: UnitOfWork, evolution: dict) -> dict:
    """Insert an evolution only while its medical record exists and is open."""
    values = _coerced(PatientEvolution, evolution)
    record_id = values.get("medical_record_id")
    db = uow.session

    record = (
        db.query(PatientMedicalRecord)
        .filter(PatientMedicalRecord.id == record_id, PatientMedicalRecord.is_active.is_(True))
        .with_for_update()
        .first()
    )
    if record is None:
        raise BackendError("Medical record not found", ErrorCode.NOT_FOUND)
    if record.status != MedicalRecordStatus.ACTIVE:
        raise BackendError("Medical record is discharged; evolutions are closed", ErrorCode.RULE_VIOLATION)
    if values.get("patient_id") and values["patient_id"] != record.patient_id:
        raise BackendError("Evolution patient does not match the medical record", ErrorCode.RULE_VIOLATION)
    values["patient_id"] = record.patient_id

    score = values.get("progress_score")
    if score is None or not 0 <= int(score) <= 10:
        raise BackendError("progress_score must be between 0 and 10", ErrorCode.RULE_VIOLATION)

    latest = (
        db.query(PatientEvolution)
        .filter(PatientEvolution.medical_record_id == record.id, PatientEvolution.is_active.is_(True))
        .order_by(PatientEvolution.created_at.desc())
        .first()
    )
    if latest is not None and values.get("previous_score") is None:
        values["previous_score"] = latest.progress_score

    obj = PatientEvolution(**values)
    db.add(obj)
    return uow.record_insert(obj)


def assign_package(
    uow: UnitOfWork,
    patient_id: str,
    package_id: str,
    final_price=None,
    assigned_date: Optional[str] = None,
) -> dict:
    """Give a patient a package; the partial unique index rejects a second active one."""
    db = uow.session
    package = db.query(Package).filter(Package.id == package_id, Package.is_active.is_(True)).first()
    if package is None:
        raise BackendError("Package not found", ErrorCode.NOT_FOUND)
    if db.query(Patient).filter(Patient.id == patient_id).first() is None:
        raise BackendError("Patient not found", ErrorCode.NOT_FOUND)

    values = _coerced(PatientPackage, {
        "patient_id": patient_id,
        "package_id": package_id,
        "final_price": final_price if final_price is not None else package.price,
        "assigned_date": assigned_date or date.today(),
    })
    values["expiry_date"] = values["assigned_date"] + timedelta(days=package.validity_days or 0)

    obj = PatientPackage(**values)
    db.add(obj)
    return uow.record_insert(obj)


def _award_points(uow: UnitOfWork, patient_id: str) -> None:
    db = uow.session
    score = db.query(PatientScore).filter(PatientScore.patient_id == patient_id).first()
    if score is None:
        score = PatientScore(
            patient_id=patient_id,
            total_points=POINTS_PER_EXERCISE,
            completed_exercises=1,
            last_activity_date=date.today(),
        )
        db.add(score)
        uow.record_insert(score)
        return
    old = row_to_dict(score)
    score.total_points = (score.total_points or 0) + POINTS_PER_EXERCISE
    score.completed_exercises = (score.completed_exercises or 0) + 1
    score.last_activity_date = date.today()
    uow.record_update(score, old)


def set_plan_exercise_completion(
    uow: UnitOfWork,
    plan_exercise_id: str,
    is_completed: bool,
    treatment_plan_id: Optional[str] = None,
) -> dict:
    """Toggle one exercise and recompute the owning plan's progress in the same transaction.

    With ``treatment_plan_id`` the exercise must belong to that plan.
    """
    db = uow.session
    query = db.query(PlanExercise).filter(PlanExercise.id == plan_exercise_id)
    if treatment_plan_id is not None:
        query = query.filter(PlanExercise.treatment_plan_id == treatment_plan_id)
    item = query.with_for_update().first()
    if item is None:
        raise BackendError("Plan exercise not found", ErrorCode.NOT_FOUND)

    was_completed = bool(item.is_completed)
    old = row_to_dict(item)
    item.is_completed = bool(is_completed)
    item.completed_at = utcnow() if is_completed else None
    row = uow.record_update(item, old)

    plan = db.query(TreatmentPlan).filter(TreatmentPlan.id == item.treatment_plan_id).first()
    items: List[PlanExercise] = db.query(PlanExercise).filter(PlanExercise.treatment_plan_id == plan.id).all()
    done = sum(1 for pe in items if pe.is_completed)
    progress = round(done / len(items) * 100) if items else 0
    if plan.progress_percentage != progress:
        plan_old = row_to_dict(plan)
        plan.progress_percentage = progress
        uow.record_update(plan, plan_old)

    if is_completed and not was_completed and plan.patient_id:
        _award_points(uow, plan.patient_id)

    logger.info("Plan %s progress now %s%% (%s/%s)", plan.id, progress, done, len(items))
    return {"plan_exercise": row, "progress_percentage": progress}


def create_patient_access(
    uow: UnitOfWork,
    patient_id: str,
    email: str,
    password: str,
    allowed_pages: Optional[List[str]] = None,
    created_by: Optional[str] = None,
) -> dict:
    """Grant app access to a patient; the password is hashed here, never by the caller."""
    if not password or len(password) < 6:
        raise BackendError("Password must be at least 6 characters", ErrorCode.RULE_VIOLATION)
    db = uow.session
    if db.query(Patient).filter(Patient.id == patient_id).first() is None:
        raise BackendError("Patient not found", ErrorCode.NOT_FOUND)

    obj = PatientAppAccess(
        patient_id=patient_id,
        email=email.strip().lower(),
        password_hash=get_password_hash(password),
        allowed_pages=list(allowed_pages or []),
        created_by=created_by,
    )
    db.add(obj)
    return _public_access(uow.record_insert(obj))


def authenticate_patient(uow: UnitOfWork, email: str, password: str) -> dict:
    db = uow.session
    access = (
        db.query(PatientAppAccess)
        .filter(PatientAppAccess.email == (email or "").strip().lower(), PatientAppAccess.is_active.is_(True))
        .first()
    )
    if access is None or not verify_password(password, access.password_hash):
        raise BackendError("Credenciais inválidas", ErrorCode.INVALID_CREDENTIALS)

    row = _public_access(row_to_dict(access))
    patient = db.query(Patient).filter(Patient.id == access.patient_id).first()
    row["patients"] = {"id": patient.id, "name": patient.name, "email": patient.email} if patient else None
    return row


PROCEDURES = {
    "create_evolution": create_evolution,
    "assign_package": assign_package,
    "set_plan_exercise_completion": set_plan_exercise_completion,
    "create_patient_access": create_patient_access,
    "authenticate_patient": authenticate_patient,
}
