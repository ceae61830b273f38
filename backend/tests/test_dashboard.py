"""Tests for dashboard aggregates and the per-query timeout."""
import asyncio
import time
from datetime import date, timedelta

import pytest

from movebetter.services.dashboard import UNKNOWN_PATIENT, DashboardService


@pytest.fixture()
def clinic(backend):
    """Two active patients, one completed session, plans at 40% and 80%, 30 points."""
    ana = backend.table("patients").insert({"name": "Ana"}).single().execute().data
    bia = backend.table("patients").insert({"name": "Bia"}).single().execute().data
    backend.table("patients").insert({"name": "Caio", "status": "inactive"}).execute()
    backend.table("appointments").insert([
        {"patient_id": ana["id"], "session_type": "Fisio", "appointment_date": "2024-01-01",
         "appointment_time": "09:00", "status": "completed"},
        {"patient_id": bia["id"], "session_type": "Fisio", "appointment_date": "2024-01-02",
         "appointment_time": "09:00", "status": "cancelled"},
    ]).execute()
    backend.table("treatment_plans").insert([
        {"name": "Trilha A", "patient_id": ana["id"], "progress_percentage": 40},
        {"name": "Trilha B", "patient_id": bia["id"], "progress_percentage": 80},
        {"name": "Antiga", "patient_id": bia["id"], "progress_percentage": 0, "is_active": False},
    ]).execute()
    backend.table("patient_scores").insert([
        {"patient_id": ana["id"], "total_points": 10},
        {"patient_id": bia["id"], "total_points": 20},
    ]).execute()
    return {"ana": ana, "bia": bia}


class TestStats:
    def test_all_four_stats(self, backend, clinic):
        stats = asyncio.run(DashboardService(backend).fetch_stats())
        assert stats.to_dict() == {
            "active_patients": 2,
            "completed_sessions": 1,
            "progress_rate": 60,
            "gamification_points": 30,
        }

    def test_timed_out_query_contributes_zero(self, backend, clinic):
        service = DashboardService(backend, timeout=0.2)
        original = service.count_completed_sessions

        def slow():
            time.sleep(1.0)
            return original()

        service.count_completed_sessions = slow
        stats = asyncio.run(service.fetch_stats())
        assert stats.completed_sessions == 0
        assert stats.active_patients == 2
        assert stats.progress_rate == 60
        assert stats.gamification_points == 30

    def test_failed_query_contributes_zero(self, backend, clinic):
        service = DashboardService(backend)

        def broken():
            raise RuntimeError("connection reset")

        service.total_points = broken
        stats = asyncio.run(service.fetch_stats())
        assert stats.gamification_points == 0
        assert stats.active_patients == 2

    def test_empty_clinic(self, backend):
        stats = asyncio.run(DashboardService(backend).fetch_stats())
        assert stats.progress_rate == 0
        assert stats.gamification_points == 0


class TestLists:
    def test_upcoming_sessions(self, backend, clinic):
        today = date(2030, 5, 10)
        backend.table("appointments").insert([
            {"patient_id": clinic["ana"]["id"], "session_type": "Fisio", "appointment_time": "15:00",
             "appointment_date": today.isoformat()},
            {"patient_id": clinic["bia"]["id"], "session_type": "Fisio", "appointment_time": "08:00",
             "appointment_date": today.isoformat()},
            {"session_type": "Avaliação", "appointment_time": "08:00",
             "appointment_date": (today + timedelta(days=1)).isoformat()},
            {"patient_id": clinic["ana"]["id"], "session_type": "Fisio", "appointment_time": "08:00",
             "appointment_date": (today - timedelta(days=1)).isoformat()},
        ]).execute()
        rows = DashboardService(backend).upcoming_sessions(today=today)
        assert [r["patient_name"] for r in rows] == ["Bia", "Ana", UNKNOWN_PATIENT]

    def test_recent_activities(self, backend, clinic):
        activities = DashboardService(backend).recent_activities()
        assert len(activities) <= 8
        kinds = {a["type"] for a in activities}
        assert kinds == {"appointment", "patient", "treatment_plan"}
        descriptions = {a["description"] for a in activities}
        assert "Novo paciente cadastrado" in descriptions
        assert "Nova trilha: Trilha A" in descriptions
        dates = [a["date"] for a in activities]
        assert dates == sorted(dates, reverse=True)

    def test_leaderboard(self, backend, clinic):
        board = DashboardService(backend).leaderboard()
        assert [(e["position"], e["patient_name"], e["total_points"]) for e in board] == [
            (1, "Bia", 20),
            (2, "Ana", 10),
        ]
