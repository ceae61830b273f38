"""Session packages, proposals, credit card rates and packages assigned to patients."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..core.permissions import PERM_MANAGE_FINANCE, require_permission
from ..datastore.client import BackendClient
from ..models.package import PatientPackageStatus, ProposalStatus
from ..schemas import CreditCardRateCreate, PackageAssign, PackageCreate, ProposalCreate
from ..services.pricing import price_proposal
from .deps import get_backend

router = APIRouter(tags=["packages"])

PROPOSAL_SELECT = "*, packages(name, sessions_included)"
PATIENT_PACKAGE_SELECT = "*, packages(name, sessions_included), patients(name)"


# ── Packages ─────────────────────────────────────────────────────────────────

@router.get("/packages")
def list_packages(
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    return backend.table("packages").select("*").eq("is_active", True).order("created_at", desc=True).execute().data


@router.post("/packages", status_code=status.HTTP_201_CREATED)
def create_package(
    package_in: PackageCreate,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    return backend.table("packages").insert(package_in.model_dump(exclude_none=True)).single().execute().data


@router.delete("/packages/{package_id}", status_code=status.HTTP_204_NO_CONTENT)
def retire_package(
    package_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    if not backend.table("packages").update({"is_active": False}).eq("id", package_id).execute().data:
        raise HTTPException(status_code=404, detail="Package not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Patient packages ─────────────────────────────────────────────────────────

@router.get("/patient-packages")
def list_patient_packages(
    patient_id: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    query = backend.table("patient_packages").select(PATIENT_PACKAGE_SELECT)
    if patient_id:
        query = query.eq("patient_id", patient_id)
    if status_filter and status_filter != "all":
        query = query.eq("status", status_filter)
    return query.order("created_at", desc=True).execute().data


@router.post("/patient-packages", status_code=status.HTTP_201_CREATED)
def assign_package(
    assignment: PackageAssign,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    """409 when the patient already holds an active package."""
    return backend.rpc("assign_package", assignment.model_dump()).data


@router.post("/patient-packages/{patient_package_id}/cancel")
def cancel_patient_package(
    patient_package_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    rows = (
        backend.table("patient_packages")
        .update({"status": PatientPackageStatus.CANCELLED})
        .eq("id", patient_package_id)
        .execute()
        .data
    )
    if not rows:
        raise HTTPException(status_code=404, detail="Patient package not found")
    return rows[0]


# ── Proposals ────────────────────────────────────────────────────────────────

@router.get("/proposals")
def list_proposals(
    status_filter: Optional[str] = Query(None, alias="status"),
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    query = backend.table("package_proposals").select(PROPOSAL_SELECT)
    if status_filter and status_filter != "all":
        query = query.eq("status", status_filter)
    return query.order("created_at", desc=True).execute().data


@router.post("/proposals", status_code=status.HTTP_201_CREATED)
def create_proposal(
    proposal_in: ProposalCreate,
    backend: BackendClient = Depends(get_backend),
    current_user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    """The final price is always computed here from the active credit card rates."""
    values = proposal_in.model_dump(exclude_none=True)
    values["final_price"] = price_proposal(backend, values)
    values.update(status=ProposalStatus.PENDING, created_date=date.today(), created_by=current_user.id)
    return backend.table("package_proposals").insert(values).select(PROPOSAL_SELECT).single().execute().data


def _set_proposal_status(backend: BackendClient, proposal_id: str, new_status: str) -> dict:
    rows = (
        backend.table("package_proposals")
        .update({"status": new_status})
        .eq("id", proposal_id)
        .select(PROPOSAL_SELECT)
        .execute()
        .data
    )
    if not rows:
        raise HTTPException(status_code=404, detail="Proposal not found")
    return rows[0]


@router.post("/proposals/{proposal_id}/approve")
def approve_proposal(
    proposal_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    return _set_proposal_status(backend, proposal_id, ProposalStatus.APPROVED)


@router.post("/proposals/{proposal_id}/reject")
def reject_proposal(
    proposal_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    return _set_proposal_status(backend, proposal_id, ProposalStatus.REJECTED)


# ── Credit card rates ────────────────────────────────────────────────────────

@router.get("/credit-card-rates")
def list_rates(
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    return backend.table("credit_card_rates").select("*").eq("is_active", True).order("name").execute().data


@router.post("/credit-card-rates", status_code=status.HTTP_201_CREATED)
def create_rate(
    rate_in: CreditCardRateCreate,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    return backend.table("credit_card_rates").insert(rate_in.model_dump()).single().execute().data
