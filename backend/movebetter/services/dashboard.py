"""
Dashboard aggregates: headline stats, upcoming sessions, recent activity, ranking.

The four headline queries run concurrently and each is bounded by its own
timeout; one slow or failing query only zeroes its own number.
"""
import asyncio
import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import Callable, Dict, List, Optional

from ..core.config import settings
from ..datastore.client import BackendClient
from ..models.appointment import AppointmentStatus
from ..models.patient import PatientStatus

logger = logging.getLogger(__name__)

UNKNOWN_PATIENT = "Paciente não identificado"


@dataclass
class DashboardStats:
    active_patients: int = 0
    completed_sessions: int = 0
    progress_rate: int = 0
    gamification_points: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class DashboardService:
    def __init__(self, client: BackendClient, timeout: Optional[float] = None):
        self.client = client
        self.timeout = settings.DASHBOARD_QUERY_TIMEOUT_SECONDS if timeout is None else timeout

    # -- headline queries (blocking; run in worker threads) -------------------

    def count_active_patients(self) -> int:
        return self.client.table("patients").select("id", count="exact").eq("status", PatientStatus.ACTIVE).execute().count

    def count_completed_sessions(self) -> int:
        return (
            self.client.table("appointments")
            .select("id", count="exact")
            .eq("status", AppointmentStatus.COMPLETED)
            .execute()
            .count
        )

    def average_progress(self) -> int:
        rows = self.client.table("treatment_plans").select("progress_percentage").eq("is_active", True).execute().data
        if not rows:
            return 0
        return round(sum(r["progress_percentage"] or 0 for r in rows) / len(rows))

    def total_points(self) -> int:
        rows = self.client.table("patient_scores").select("total_points").execute().data
        return sum(r["total_points"] or 0 for r in rows)

    def _queries(self) -> Dict[str, Callable[[], int]]:
        return {
            "active_patients": self.count_active_patients,
            "completed_sessions": self.count_completed_sessions,
            "progress_rate": self.average_progress,
            "gamification_points": self.total_points,
        }

    async def _bounded(self, name: str, query: Callable[[], int]) -> int:
        try:
            return await asyncio.wait_for(asyncio.to_thread(query), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Dashboard query %s timed out after %ss", name, self.timeout)
        except Exception as exc:
            logger.warning("Dashboard query %s failed: %s", name, exc)
        return 0

    async def fetch_stats(self) -> DashboardStats:
        queries = self._queries()
        results = await asyncio.gather(*(self._bounded(name, query) for name, query in queries.items()))
        stats = DashboardStats(**dict(zip(queries, results)))
        logger.debug("Dashboard stats: %s", stats)
        return stats

    # -- lists ----------------------------------------------------------------

    def upcoming_sessions(self, today: Optional[date] = None, limit: int = 5) -> List[dict]:
        rows = (
            self.client.table("appointments")
            .select("*, patients(name)")
            .eq("status", AppointmentStatus.SCHEDULED)
            .gte("appointment_date", (today or date.today()).isoformat())
            .order("appointment_date")
            .order("appointment_time")
            .limit(limit)
            .execute()
            .data
        )
        for row in rows:
            row["patient_name"] = (row.get("patients") or {}).get("name") or UNKNOWN_PATIENT
        return rows

    def recent_activities(self, limit: int = 8) -> List[dict]:
        appointments = (
            self.client.table("appointments")
            .select("id, created_at, session_type, patient_id, patients(name)")
            .order("created_at", desc=True).limit(5).execute().data
        )
        patients = (
            self.client.table("patients").select("id, name, created_at")
            .order("created_at", desc=True).limit(3).execute().data
        )
        plans = (
            self.client.table("treatment_plans")
            .select("id, name, created_at, patient_id, patients(name)")
            .order("created_at", desc=True).limit(3).execute().data
        )

        activities = [
            {
                "id": a["id"],
                "type": "appointment",
                "description": f"Agendamento: {a['session_type']}",
                "date": a["created_at"],
                "patient_name": (a.get("patients") or {}).get("name"),
            }
            for a in appointments
        ]
        activities += [
            {
                "id": p["id"],
                "type": "patient",
                "description": "Novo paciente cadastrado",
                "date": p["created_at"],
                "patient_name": p["name"],
            }
            for p in patients
        ]
        activities += [
            {
                "id": t["id"],
                "type": "treatment_plan",
                "description": f"Nova trilha: {t['name']}",
                "date": t["created_at"],
                "patient_name": (t.get("patients") or {}).get("name"),
            }
            for t in plans
        ]
        activities.sort(key=lambda a: a["date"], reverse=True)
        return activities[:limit]

    def leaderboard(self, limit: int = 10) -> List[dict]:
        rows = (
            self.client.table("patient_scores")
            .select("*, patients(name)")
            .order("total_points", desc=True)
            .limit(limit)
            .execute()
            .data
        )
        return [
            {
                "position": index,
                "patient_id": row["patient_id"],
                "patient_name": (row.get("patients") or {}).get("name") or UNKNOWN_PATIENT,
                "total_points": row["total_points"],
                "completed_exercises": row["completed_exercises"],
                "level_number": row["level_number"],
            }
            for index, row in enumerate(rows, start=1)
        ]
