"""Downloadable documents: financial report, pre-evaluation sheet, package proposal."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import HTMLResponse

from ..core.permissions import PERM_MANAGE_CLINICAL_RECORDS, PERM_MANAGE_FINANCE, PERM_VIEW_REPORTS, require_permission
from ..datastore.client import BackendClient
from ..reports.financial import build_financial_pdf, build_report
from ..reports.pre_evaluation import build_pre_evaluation_pdf, render_pre_evaluation_html
from ..reports.proposal import build_proposal_pdf
from ..utils.formatting import (
    content_disposition,
    financial_report_filename,
    pre_evaluation_filename,
    proposal_filename,
)
from .deps import get_backend

router = APIRouter(tags=["reports"])

UNKNOWN_PATIENT = "Paciente"


def _pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(filename)},
    )


def _load_pre_evaluation(backend: BackendClient, evaluation_id: str) -> dict:
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


def _patient_name(row: dict) -> str:
    return (row.get("patients") or {}).get("name") or UNKNOWN_PATIENT


@router.get("/reports/financial")
def financial_report(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_VIEW_REPORTS)),
):
    """PDF of income, expenses and balance for transactions dated within [start_date, end_date]."""
    transactions = (
        backend.table("financial_transactions")
        .select("*, financial_categories(name, color), patients(name)")
        .order("transaction_date", desc=True)
        .order("created_at", desc=True)
        .execute()
        .data
    )
    report = build_report(transactions, start_date, end_date)
    return _pdf_response(build_financial_pdf(report), financial_report_filename(start_date, end_date))


@router.get("/pre-evaluations/{evaluation_id}/pdf")
def pre_evaluation_pdf(
    evaluation_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    row = _load_pre_evaluation(backend, evaluation_id)
    name = _patient_name(row)
    return _pdf_response(build_pre_evaluation_pdf(row, name), pre_evaluation_filename(name))


@router.get("/pre-evaluations/{evaluation_id}/print", response_class=HTMLResponse)
def pre_evaluation_print(
    evaluation_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_CLINICAL_RECORDS)),
):
    row = _load_pre_evaluation(backend, evaluation_id)
    return HTMLResponse(render_pre_evaluation_html(row, _patient_name(row)))


@router.get("/proposals/{proposal_id}/pdf")
def proposal_pdf(
    proposal_id: str,
    backend: BackendClient = Depends(get_backend),
    _user=Depends(require_permission(PERM_MANAGE_FINANCE)),
):
    row = (
        backend.table("package_proposals")
        .select("*, packages(name, sessions_included)")
        .eq("id", proposal_id)
        .maybe_single()
        .execute()
        .data
    )
    if row is None:
        raise HTTPException(status_code=404, detail="Proposal not found")
    return _pdf_response(build_proposal_pdf(row), proposal_filename(row.get("patient_name")))
