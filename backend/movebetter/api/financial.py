"""Financial transactions and categories."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..core.permissions import PERM_MANAGE_FINANCE, require_permission
from ..datastore.client import BackendClient
from ..schemas import FinancialCategoryCreate, FinancialTransactionCreate
from ..services.filters import filter_by_text
from .deps import get_backend

router = APIRouter(tags=["financial"])

TRANSACTION_SELECT = "*, financial_categories(name, color), patients(name)"


@router.get("/financial-transactions")
def list_transactions(
    q: Optional[str] = None,
    type_filter: Optional[str] = Query(None, alias="type"),
    payment_status: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    query = backend.table("financial_transactions").select(TRANSACTION_SELECT)
    if type_filter and type_filter != "all":
        query = query.eq("type", type_filter)
    if payment_status and payment_status != "all":
        query = query.eq("payment_status", payment_status)
    if start_date:
        query = query.gte("transaction_date", start_date)
    if end_date:
        query = query.lte("transaction_date", end_date)
    rows = query.order("transaction_date", desc=True).order("created_at", desc=True).execute().data
    return filter_by_text(rows, q, ("description", "patients.name", "financial_categories.name"))


@router.post("/financial-transactions", status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction_in: FinancialTransactionCreate,
    backend: BackendClient = Depends(get_backend),
    current_user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    values = {**transaction_in.model_dump(exclude_none=True), "created_by": current_user.id}
    return (
        backend.table("financial_transactions").insert(values).select(TRANSACTION_SELECT).single().execute().data
    )


@router.get("/financial-categories")
def list_categories(
    type_filter: Optional[str] = Query(None, alias="type"),
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    query = backend.table("financial_categories").select("*").eq("is_active", True)
    if type_filter:
        query = query.eq("type", type_filter)
    return query.order("name").execute().data


@router.post("/financial-categories", status_code=status.HTTP_201_CREATED)
def create_category(
    category_in: FinancialCategoryCreate,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    return backend.table("financial_categories").insert(category_in.model_dump()).single().execute().data


@router.delete("/financial-categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    """Hard delete; the foreign key rejects it (409) while transactions still use the category."""
    if not backend.table("financial_categories").delete().eq("id", category_id).execute().data:
        raise HTTPException(status_code=404, detail="Category not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
