"""Tests for server-side procedures: the clinical, package and gamification invariants."""
from datetime import date, timedelta

import pytest

from movebetter.datastore.errors import BackendError, ErrorCode
from movebetter.datastore.procedures import POINTS_PER_EXERCISE

from .conftest import make_medical_record


def _evolution(record, **overrides):
    return {
        "medical_record_id": record["id"],
        "queixas_relatos": "Menos dor ao acordar",
        "conduta_atendimento": "Mobilização lombar",
        "progress_score": 6,
        **overrides,
    }


class TestMedicalRecords:
    def test_second_active_record_is_rejected(self, backend, patient):
        make_medical_record(backend, patient["id"])
        with pytest.raises(BackendError) as exc_info:
            make_medical_record(backend, patient["id"])
        assert exc_info.value.code == ErrorCode.UNIQUE_VIOLATION

    def test_new_record_allowed_after_discharge(self, backend, patient):
        first = make_medical_record(backend, patient["id"])
        backend.table("patient_medical_records").update({"status": "discharged"}).eq("id", first["id"]).execute()
        second = make_medical_record(backend, patient["id"])
        assert second["status"] == "active"


class TestCreateEvolution:
    def test_evolution_on_open_record(self, backend, patient):
        record = make_medical_record(backend, patient["id"])
        row = backend.rpc("create_evolution", {"evolution": _evolution(record)}).data
        assert row["patient_id"] == patient["id"]
        assert row["progress_score"] == 6
        assert row["previous_score"] is None

    def test_previous_score_carried_forward(self, backend, patient):
        record = make_medical_record(backend, patient["id"])
        backend.rpc("create_evolution", {"evolution": _evolution(record, progress_score=4)})
        second = backend.rpc("create_evolution", {"evolution": _evolution(record, progress_score=7)}).data
        assert second["previous_score"] == 4

    def test_missing_record_is_not_found(self, backend, patient):
        with pytest.raises(BackendError) as exc_info:
            backend.rpc("create_evolution", {"evolution": _evolution({"id": "nope"})})
        assert exc_info.value.code == ErrorCode.NOT_FOUND

    def test_discharged_record_rejects_evolution(self, backend, patient):
        record = make_medical_record(backend, patient["id"])
        backend.table("patient_medical_records").update({"status": "discharged"}).eq("id", record["id"]).execute()
        with pytest.raises(BackendError) as exc_info:
            backend.rpc("create_evolution", {"evolution": _evolution(record)})
        assert exc_info.value.code == ErrorCode.RULE_VIOLATION
        assert backend.table("patient_evolutions").select("id").execute().data == []

    def test_closed_record_is_not_found(self, backend, patient):
        record = make_medical_record(backend, patient["id"])
        backend.table("patient_medical_records").update({"is_active": False}).eq("id", record["id"]).execute()
        with pytest.raises(BackendError) as exc_info:
            backend.rpc("create_evolution", {"evolution": _evolution(record)})
        assert exc_info.value.code == ErrorCode.NOT_FOUND

    def test_patient_mismatch_rejected(self, backend, patient):
        record = make_medical_record(backend, patient["id"])
        other = backend.table("patients").insert({"name": "Outro"}).single().execute().data
        with pytest.raises(BackendError) as exc_info:
            backend.rpc("create_evolution", {"evolution": _evolution(record, patient_id=other["id"])})
        assert exc_info.value.code == ErrorCode.RULE_VIOLATION

    @pytest.mark.parametrize("score", [-1, 11])
    def test_score_out_of_range(self, backend, patient, score):
        record = make_medical_record(backend, patient["id"])
        with pytest.raises(BackendError) as exc_info:
            backend.rpc("create_evolution", {"evolution": _evolution(record, progress_score=score)})
        assert exc_info.value.code == ErrorCode.RULE_VIOLATION


class TestAssignPackage:
    @pytest.fixture()
    def package(self, backend):
        return backend.table("packages").insert(
            {"name": "10 sessões", "price": "1200.00", "sessions_included": 10, "validity_days": 60}
        ).single().execute().data

    def test_assign_sets_expiry_and_price(self, backend, patient, package):
        row = backend.rpc("assign_package", {
            "patient_id": patient["id"], "package_id": package["id"], "assigned_date": "2024-01-01",
        }).data
        assert row["status"] == "active"
        assert row["expiry_date"] == date(2024, 1, 1) + timedelta(days=60)
        assert str(row["final_price"]) == "1200.00"

    def test_second_active_package_rejected(self, backend, patient, package):
        backend.rpc("assign_package", {"patient_id": patient["id"], "package_id": package["id"]})
        with pytest.raises(BackendError) as exc_info:
            backend.rpc("assign_package", {"patient_id": patient["id"], "package_id": package["id"]})
        assert exc_info.value.code == ErrorCode.UNIQUE_VIOLATION

    def test_unknown_package(self, backend, patient):
        with pytest.raises(BackendError) as exc_info:
            backend.rpc("assign_package", {"patient_id": patient["id"], "package_id": "nope"})
        assert exc_info.value.code == ErrorCode.NOT_FOUND


class TestPlanExerciseCompletion:
    @pytest.fixture()
    def plan_items(self, backend, patient):
        plan = backend.table("treatment_plans").insert(
            {"name": "Trilha lombar", "patient_id": patient["id"]}
        ).single().execute().data
        exercise = backend.table("exercises").insert({"name": "Ponte"}).single().execute().data
        items = backend.table("plan_exercises").insert([
            {"treatment_plan_id": plan["id"], "exercise_id": exercise["id"], "day_number": 1},
            {"treatment_plan_id": plan["id"], "exercise_id": exercise["id"], "day_number": 2},
        ]).execute().data
        return plan, items

    def test_completion_updates_progress_and_points(self, backend, patient, plan_items):
        plan, items = plan_items
        result = backend.rpc(
            "set_plan_exercise_completion", {"plan_exercise_id": items[0]["id"], "is_completed": True}
        ).data
        assert result["progress_percentage"] == 50
        assert result["plan_exercise"]["is_completed"] is True
        assert result["plan_exercise"]["completed_at"] is not None

        stored_plan = backend.table("treatment_plans").select("progress_percentage").eq("id", plan["id"]).single().execute().data
        assert stored_plan["progress_percentage"] == 50
        score = backend.table("patient_scores").select("*").eq("patient_id", patient["id"]).single().execute().data
        assert score["total_points"] == POINTS_PER_EXERCISE
        assert score["completed_exercises"] == 1

    def test_repeat_completion_awards_no_extra_points(self, backend, patient, plan_items):
        _, items = plan_items
        params = {"plan_exercise_id": items[0]["id"], "is_completed": True}
        backend.rpc("set_plan_exercise_completion", params)
        backend.rpc("set_plan_exercise_completion", params)
        score = backend.table("patient_scores").select("*").eq("patient_id", patient["id"]).single().execute().data
        assert score["total_points"] == POINTS_PER_EXERCISE

    def test_uncomplete_clears_timestamp(self, backend, plan_items):
        _, items = plan_items
        backend.rpc("set_plan_exercise_completion", {"plan_exercise_id": items[0]["id"], "is_completed": True})
        result = backend.rpc(
            "set_plan_exercise_completion", {"plan_exercise_id": items[0]["id"], "is_completed": False}
        ).data
        assert result["progress_percentage"] == 0
        assert result["plan_exercise"]["completed_at"] is None


class TestPatientAccess:
    def test_grant_hides_hash_and_authenticates(self, backend, patient):
        row = backend.rpc("create_patient_access", {
            "patient_id": patient["id"], "email": " Ana@Example.com ", "password": "segredo1",
        }).data
        assert "password_hash" not in row
        assert row["email"] == "ana@example.com"

        access = backend.rpc("authenticate_patient", {"email": "ana@example.com", "password": "segredo1"}).data
        assert "password_hash" not in access
        assert access["patients"]["name"] == "Ana Souza"

    def test_wrong_password(self, backend, patient):
        backend.rpc("create_patient_access", {
            "patient_id": patient["id"], "email": "ana@example.com", "password": "segredo1",
        })
        with pytest.raises(BackendError) as exc_info:
            backend.rpc("authenticate_patient", {"email": "ana@example.com", "password": "errada"})
        assert exc_info.value.code == ErrorCode.INVALID_CREDENTIALS

    def test_short_password_rejected(self, backend, patient):
        with pytest.raises(BackendError) as exc_info:
            backend.rpc("create_patient_access", {
                "patient_id": patient["id"], "email": "ana@example.com", "password": "123",
            })
        assert exc_info.value.code == ErrorCode.RULE_VIOLATION

    def test_duplicate_email_rejected(self, backend, patient):
        params = {"patient_id": patient["id"], "email": "ana@example.com", "password": "segredo1"}
        backend.rpc("create_patient_access", params)
        with pytest.raises(BackendError) as exc_info:
            backend.rpc("create_patient_access", params)
        assert exc_info.value.code == ErrorCode.UNIQUE_VIOLATION
