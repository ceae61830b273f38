"""Medical records, evolutions and pre-evaluations.

Invariants live in the datastore: a second open record per patient trips a
unique index, and evolutions are only accepted through ``create_evolution``.
Both surface as 409 through the ``BackendError`` handler.
"""
from fastapi import APIRouter, Depends, HTTPException, Response, status

from ..core.permissions import PERM_MANAGE_CLINICAL_RECORDS, require_permission
from ..datastore.client import BackendClient
from ..models.clinical import MedicalRecordStatus
from ..schemas import EvolutionCreate, MedicalRecordCreate, PreEvaluationAnswers, PreEvaluationCreate
from .deps import get_backend

router = APIRouter(tags=["clinical"])


def _require_patient(backend: BackendClient, patient_id: str) -> dict:
    patient = backend.table("patients").select("id, name").eq("id", patient_id).maybe_single().execute().data
    if patient is None:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


# ── Medical records ──────────────────────────────────────────────────────────

@router.get("/patients/{patient_id}/medical-records")
def list_medical_records(
    patient_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    return (
        backend.table("patient_medical_records")
        .select("*")
        .eq("patient_id", patient_id)
        .eq("is_active", True)
        .order("created_at", desc=True)
        .execute()
        .data
    )


@router.post("/patients/{patient_id}/medical-records", status_code=status.HTTP_201_CREATED)
def create_medical_record(
    patient_id: str,
    record_in: MedicalRecordCreate,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    _require_patient(backend, patient_id)
    values = {
        **record_in.model_dump(exclude_none=True),
        "patient_id": patient_id,
        "status": MedicalRecordStatus.ACTIVE,
    }
    return backend.table("patient_medical_records").insert(values).single().execute().data


@router.post("/medical-records/{record_id}/discharge")
def discharge_medical_record(
    record_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    rows = (
        backend.table("patient_medical_records")
        .update({"status": MedicalRecordStatus.DISCHARGED})
        .eq("id", record_id)
        .eq("is_active", True)
        .execute()
        .data
    )
    if not rows:
        raise HTTPException(status_code=404, detail="Medical record not found")
    return rows[0]


# ── Evolutions ───────────────────────────────────────────────────────────────

@router.get("/patients/{patient_id}/evolutions")
def list_evolutions(
    patient_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    return (
        backend.table("patient_evolutions")
        .select("*")
        .eq("patient_id", patient_id)
        .eq("is_active", True)
        .order("created_at", desc=True)
        .execute()
        .data
    )


@router.post("/evolutions", status_code=status.HTTP_201_CREATED)
def create_evolution(
    evolution_in: EvolutionCreate,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    """404 when the record is missing, 409 when it is discharged or belongs to another patient."""
    return backend.rpc("create_evolution", {"evolution": evolution_in.model_dump(exclude_none=True)}).data


# ── Pre-evaluations ──────────────────────────────────────────────────────────

@router.get("/patients/{patient_id}/pre-evaluations")
def list_pre_evaluations(
    patient_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    return (
        backend.table("patient_pre_evaluations")
        .select("*")
        .eq("patient_id", patient_id)
        .order("created_at", desc=True)
        .execute()
        .data
    )


@router.post("/pre-evaluations", status_code=status.HTTP_201_CREATED)
def create_pre_evaluation(
    evaluation_in: PreEvaluationCreate,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    _require_patient(backend, evaluation_in.patient_id)
    values = evaluation_in.model_dump(exclude_none=True)
    return backend.table("patient_pre_evaluations").insert(values).single().execute().data


@router.get("/pre-evaluations/{evaluation_id}")
def get_pre_evaluation(
    evaluation_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    row = (
        backend.table("patient_pre_evaluations")
        .select("*, patients(name)")
        .eq("id", evaluation_id)
        .maybe_single()
        .execute()
        .data
    )
    if row is None:
        raise HTTPException(status_code=404, detail="Pre-evaluation not found")
    return row


@router.put("/pre-evaluations/{evaluation_id}")
def update_pre_evaluation(
    evaluation_id: str,
    answers: PreEvaluationAnswers,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    changes = answers.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    rows = backend.table("patient_pre_evaluations").update(changes).eq("id", evaluation_id).execute().data
    if not rows:
        raise HTTPException(status_code=404, detail="Pre-evaluation not found")
    return rows[0]


@router.delete("/pre-evaluations/{evaluation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_pre_evaluation(
    evaluation_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    if not backend.table("patient_pre_evaluations").delete().eq("id", evaluation_id).execute().data:
        raise HTTPException(status_code=404, detail="Pre-evaluation not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
