"""Tests for the form controller and the patient session context."""
import json
import threading
from datetime import datetime, timedelta

from movebetter.forms import Form
from movebetter.schemas import EvolutionCreate, PatientCreate, PatientUpdate
from movebetter.services.session import STORAGE_KEY, JsonFileStorage, MemoryStorage, SessionContext
from movebetter.stores.base import OperationResult
from movebetter.utils.formatting import format_cpf

ACCESS = {
    "id": "acc-1",
    "patient_id": "pat-1",
    "email": "ana@example.com",
    "allowed_pages": ["dashboard", "exercises"],
    "patients": {"id": "pat-1", "name": "Ana Souza", "email": "ana@example.com"},
}


class RecordingAction:
    def __init__(self, success=True):
        self.success = success
        self.calls = []

    def __call__(self, payload):
        self.calls.append(payload)
        return OperationResult(success=self.success, data=payload)


# ---------------------------------------------------------------------------
# Form
# ---------------------------------------------------------------------------

class TestForm:
    def test_valid_submit_runs_action_then_resets_and_closes(self):
        action = RecordingAction()
        form = Form(PatientCreate, action, formatters={"cpf": format_cpf})
        form.open()
        form.set("name", "Ana Souza")
        assert form.set("cpf", "12345678901") == "123.456.789-01"
        result = form.submit()

        assert result.success
        assert action.calls == [{"name": "Ana Souza", "cpf": "123.456.789-01", "status": "active"}]
        assert form.is_open is False
        assert form.values == {}

    def test_invalid_input_never_reaches_action(self):
        action = RecordingAction()
        form = Form(PatientCreate, action)
        form.open({"name": "A", "email": "not-an-email"})
        assert form.submit() is None
        assert action.calls == []
        assert set(form.errors) == {"name", "email"}
        assert form.is_open is True

    def test_failed_action_keeps_form_open_with_values(self):
        action = RecordingAction(success=False)
        form = Form(PatientCreate, action)
        form.open({"name": "Ana Souza"})
        result = form.submit()
        assert result.success is False
        assert form.is_open is True
        assert form.values["name"] == "Ana Souza"

    def test_blank_optional_fields_become_missing(self):
        action = RecordingAction()
        form = Form(PatientCreate, action)
        form.open({"name": "Ana Souza", "email": "", "phone": "  "})
        form.submit()
        assert action.calls[0] == {"name": "Ana Souza", "status": "active"}

    def test_partial_form_sends_only_filled_fields(self):
        action = RecordingAction()
        form = Form(PatientUpdate, action, partial=True)
        form.open({"phone": "11988887777"})
        form.submit()
        assert action.calls == [{"phone": "11988887777"}]

    def test_out_of_range_score_blocks_submit(self):
        action = RecordingAction()
        form = Form(EvolutionCreate, action)
        form.open({"medical_record_id": "r1", "queixas_relatos": "x", "conduta_atendimento": "y", "progress_score": 11})
        assert form.submit() is None
        assert "progress_score" in form.errors

    def test_second_submit_while_running_is_ignored(self):
        started, release = threading.Event(), threading.Event()
        calls = []

        def slow_action(payload):
            calls.append(payload)
            started.set()
            release.wait(timeout=5)
            return OperationResult(success=True)

        form = Form(PatientCreate, slow_action)
        form.open({"name": "Ana Souza"})
        worker = threading.Thread(target=form.submit)
        worker.start()
        started.wait(timeout=5)
        assert form.is_submitting is True
        assert form.submit() is None
        release.set()
        worker.join(timeout=5)
        assert len(calls) == 1
        assert form.is_submitting is False


# ---------------------------------------------------------------------------
# Patient session
# ---------------------------------------------------------------------------

class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class TestSessionContext:
    def test_login_then_current(self):
        ctx = SessionContext(MemoryStorage(), ttl=timedelta(hours=1))
        session = ctx.login(ACCESS, token="jwt")
        assert session.patient_name == "Ana Souza"
        assert ctx.current() == session
        assert ctx.is_authenticated
        assert session.can_view("exercises")
        assert not session.can_view("financial")

    def test_expired_session_is_cleared_on_read(self):
        clock = FakeClock(datetime(2024, 1, 1, 8, 0))
        storage = MemoryStorage()
        ctx = SessionContext(storage, ttl=timedelta(minutes=30), clock=clock)
        ctx.login(ACCESS)
        clock.now += timedelta(minutes=29)
        assert ctx.current() is not None
        clock.now += timedelta(minutes=1)
        assert ctx.current() is None
        assert storage.get(STORAGE_KEY) is None

    def test_logout(self):
        ctx = SessionContext(MemoryStorage())
        ctx.login(ACCESS)
        ctx.logout()
        assert ctx.current() is None

    def test_malformed_session_is_discarded(self):
        storage = MemoryStorage()
        storage.set(STORAGE_KEY, json.dumps({"unexpected": True}))
        ctx = SessionContext(storage)
        assert ctx.current() is None
        assert storage.get(STORAGE_KEY) is None

    def test_file_storage_survives_a_new_context(self, tmp_path):
        path = str(tmp_path / "session.json")
        SessionContext(JsonFileStorage(path)).login(ACCESS)
        restored = SessionContext(JsonFileStorage(path)).current()
        assert restored.patient_id == "pat-1"
        assert restored.allowed_pages == ["dashboard", "exercises"]
