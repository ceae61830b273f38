"""Session scheduling."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..core.permissions import PERM_MANAGE_SCHEDULE, require_permission
from ..datastore.client import BackendClient
from ..schemas import AppointmentCreate, AppointmentUpdate
from ..services.filters import filter_by_text
from .deps import get_backend

router = APIRouter(prefix="/appointments", tags=["appointments"])

SELECT = "*, patients(name, phone)"


@router.get("")
def list_appointments(
    q: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_SCHEDULE)),
):
    query = backend.table("appointments").select(SELECT)
    if status_filter and status_filter != "all":
        query = query.eq("status", status_filter)
    if start_date:
        query = query.gte("appointment_date", start_date)
    if end_date:
        query = query.lte("appointment_date", end_date)
    rows = query.order("appointment_date").order("appointment_time").execute().data
    return filter_by_text(rows, q, ("session_type", "patients.name"))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_appointment(
    appointment_in: AppointmentCreate,
    backend: BackendClient = Depends(get_backend),
    current_user=Depends(require_permission(PERM_MANAGE_SCHEDULE)),
):
    values = {**appointment_in.model_dump(exclude_none=True), "created_by": current_user.id}
    return backend.table("appointments").insert(values).select(SELECT).single().execute().data


@router.put("/{appointment_id}")
def update_appointment(
    appointment_id: str,
    appointment_in: AppointmentUpdate,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_SCHEDULE)),
):
    changes = appointment_in.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    rows = backend.table("appointments").update(changes).eq("id", appointment_id).select(SELECT).execute().data
    if not rows:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return rows[0]


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_SCHEDULE)),
):
    if not backend.table("appointments").delete().eq("id", appointment_id).execute().data:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
