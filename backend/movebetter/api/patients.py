"""Patient CRUD plus per-patient clinical lists and app access."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..core.permissions import PERM_MANAGE_PATIENTS, require_permission
from ..datastore.client import BackendClient
from ..schemas import PatientAccessCreate, PatientCreate, PatientUpdate
from ..services.filters import filter_by_text
from ..stores.access import PUBLIC_COLUMNS
from .deps import get_backend

router = APIRouter(prefix="/patients", tags=["patients"])


@router.get("")
def list_patients(
    q: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_PATIENTS)),
):
    query = backend.table("patients").select("*")
    if status_filter and status_filter != "all":
        query = query.eq("status", status_filter)
    rows = query.order("created_at", desc=True).execute().data
    return filter_by_text(rows, q, ("name", "email", "phone", "cpf"))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_patient(
    patient_in: PatientCreate,
    backend: BackendClient = Depends(get_backend),
    current_user=Depends(require_permission(PERM_MANAGE_PATIENTS)),
):
    values = {**patient_in.model_dump(exclude_none=True), "created_by": current_user.id}
    return backend.table("patients").insert(values).single().execute().data


@router.get("/{patient_id}")
def get_patient(
    patient_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_PATIENTS)),
):
    patient = backend.table("patients").select("*").eq("id", patient_id).maybe_single().execute().data
    if patient is None:
        raise HTTPException(status_code=404, detail="Patient not found")
    return patient


@router.put("/{patient_id}")
def update_patient(
    patient_id: str,
    patient_in: PatientUpdate,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_PATIENTS)),
):
    changes = patient_in.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    rows = backend.table("patients").update(changes).eq("id", patient_id).execute().data
    if not rows:
        raise HTTPException(status_code=404, detail="Patient not found")
    return rows[0]


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_patient(
    patient_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_PATIENTS)),
):
    rows = backend.table("patients").delete().eq("id", patient_id).execute().data
    if not rows:
        raise HTTPException(status_code=404, detail="Patient not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{patient_id}/access")
def list_patient_access(
    patient_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_PATIENTS)),
):
    return backend.table("patient_app_access").select(PUBLIC_COLUMNS).eq("patient_id", patient_id).execute().data


@router.post("/{patient_id}/access", status_code=status.HTTP_201_CREATED)
def grant_patient_access(
    patient_id: str,
    access_in: PatientAccessCreate,
    backend: BackendClient = Depends(get_backend),
    current_user=Depends(require_permission(PERM_MANAGE_PATIENTS)),
):
    if access_in.patient_id != patient_id:
        raise HTTPException(status_code=400, detail="patient_id does not match the URL")
    return backend.rpc("create_patient_access", {
        "patient_id": patient_id,
        "email": access_in.email,
        "password": access_in.password,
        "allowed_pages": access_in.allowed_pages,
        "created_by": current_user.id,
    }).data
