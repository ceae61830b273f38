"""Treatment plans ("trilhas"), their exercises, and the exercise library."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from ..core.permissions import PERM_MANAGE_CLINICAL_RECORDS, require_permission
from ..datastore.client import BackendClient
from ..schemas import ExerciseCreate, PlanExerciseCreate, TreatmentPlanCreate
from ..services.filters import filter_by_text
from .deps import get_backend

router = APIRouter(prefix="/treatment-plans", tags=["treatment-plans"])
exercise_router = APIRouter(prefix="/exercises", tags=["exercises"])

PLAN_SELECT = "*, patients(name)"
PLAN_EXERCISE_SELECT = "*, exercises(name, description, instructions, difficulty_level, duration_minutes)"


class CompletionToggle(BaseModel):
    is_completed: bool


@router.get("")
def list_plans(
    q: Optional[str] = None,
    patient_id: Optional[str] = None,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    query = backend.table("treatment_plans").select(PLAN_SELECT)
    if patient_id:
        query = query.eq("patient_id", patient_id)
    rows = query.order("created_at", desc=True).execute().data
    return filter_by_text(rows, q, ("name", "patients.name"))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_plan(
    plan_in: TreatmentPlanCreate,
    backend: BackendClient = Depends(get_backend),
    current_user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    values = {**plan_in.model_dump(exclude_none=True), "created_by": current_user.id}
    return backend.table("treatment_plans").insert(values).select(PLAN_SELECT).single().execute().data


@router.get("/{plan_id}/exercises")
def list_plan_exercises(
    plan_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    return (
        backend.table("plan_exercises")
        .select(PLAN_EXERCISE_SELECT)
        .eq("treatment_plan_id", plan_id)
        .order("day_number")
        .order("created_at")
        .execute()
        .data
    )


@router.post("/{plan_id}/exercises", status_code=status.HTTP_201_CREATED)
def add_plan_exercise(
    plan_id: str,
    item_in: PlanExerciseCreate,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    if item_in.treatment_plan_id != plan_id:
        raise HTTPException(status_code=400, detail="treatment_plan_id does not match the URL")
    values = item_in.model_dump(exclude_none=True)
    return backend.table("plan_exercises").insert(values).select(PLAN_EXERCISE_SELECT).single().execute().data


@router.delete("/{plan_id}/exercises/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_plan_exercise(
    plan_id: str,
    item_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    deleted = (
        backend.table("plan_exercises").delete().eq("id", item_id).eq("treatment_plan_id", plan_id).execute().data
    )
    if not deleted:
        raise HTTPException(status_code=404, detail="Plan exercise not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{plan_id}/exercises/{item_id}/completion")
def toggle_plan_exercise(
    plan_id: str,
    item_id: str,
    body: CompletionToggle,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    """Mark an exercise done or pending; returns the row and the plan's new progress."""
    return backend.rpc(
        "set_plan_exercise_completion",
        {"plan_exercise_id": item_id, "is_completed": body.is_completed, "treatment_plan_id": plan_id},
    ).data


@exercise_router.get("")
def list_exercises(
    q: Optional[str] = None,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    rows = backend.table("exercises").select("*").eq("is_active", True).order("name").execute().data
    return filter_by_text(rows, q, ("name", "category"))


@exercise_router.post("", status_code=status.HTTP_201_CREATED)
def create_exercise(
    exercise_in: ExerciseCreate,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    return backend.table("exercises").insert(exercise_in.model_dump(exclude_none=True)).single().execute().data


@exercise_router.delete("/{exercise_id}", status_code=status.HTTP_204_NO_CONTENT)
def retire_exercise(
    exercise_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    # Soft delete: existing plans keep their reference
    if not backend.table("exercises").update({"is_active": False}).eq("id", exercise_id).execute().data:
        raise HTTPException(status_code=404, detail="Exercise not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
