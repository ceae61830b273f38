"""Dashboard endpoints."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..core.permissions import PERM_VIEW_REPORTS, require_permission
from ..datastore.client import BackendClient
from ..services.dashboard import DashboardService
from .deps import get_backend

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def get_dashboard(backend: BackendClient = Depends(get_backend)) -> DashboardService:
    return DashboardService(backend)


@router.get("/stats")
async def get_stats(
    service: DashboardService = Depends(get_dashboard),
    _user=Depends(require_permission(PERM_VIEW_REPORTS)),
):
    """Headline numbers; a query that times out reports 0 instead of failing the request."""
    stats = await service.fetch_stats()
    return stats.to_dict()


@router.get("/upcoming")
def get_upcoming(
    today: Optional[date] = None,
    limit: int = Query(5, ge=1, le=50),
    service: DashboardService = Depends(get_dashboard),
    _user=Depends(require_permission(PERM_VIEW_REPORTS)),
):
    return service.upcoming_sessions(today=today, limit=limit)


@router.get("/activities")
def get_activities(
    limit: int = Query(8, ge=1, le=50),
    service: DashboardService = Depends(get_dashboard),
    _user=Depends(require_permission(PERM_VIEW_REPORTS)),
):
    return service.recent_activities(limit=limit)


@router.get("/leaderboard")
def get_leaderboard(
    limit: int = Query(10, ge=1, le=100),
    service: DashboardService = Depends(get_dashboard),
    _user=Depends(require_permission(PERM_VIEW_REPORTS)),
):
    return service.leaderboard(limit=limit)
