"""HTTP-level tests: auth, entity routes, invariant errors, documents and the audit trail."""
from movebetter.core.security import create_access_token, decode_access_token
from movebetter.datastore.errors import ErrorCode

from .conftest import ADMIN_EMAIL, ADMIN_PASSWORD, make_medical_record


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class TestAuth:
    def test_register_returns_user_and_token(self, client):
        resp = client.post("/api/auth/register", json={
            "name": "Carla Fisio", "email": "Carla@Clinica.com", "password": "segredo1", "cpf": "12345678901",
        })
        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["user"]["email"] == "carla@clinica.com"
        assert body["user"]["role"] == "admin"
        assert decode_access_token(body["token"])["sub"] == body["user"]["id"]

    def test_register_duplicate_email(self, client, admin):
        resp = client.post("/api/auth/register", json={"name": "Outra", "email": ADMIN_EMAIL, "password": "segredo1"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "User already exists"}

    def test_register_invalid_body(self, client):
        resp = client.post("/api/auth/register", json={"name": "X", "email": "sem-arroba", "password": "1"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Dados inválidos"
        assert {d["field"] for d in body["details"]} == {"name", "email", "password"}

    def test_login(self, client, admin):
        resp = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
        assert resp.status_code == 200
        assert resp.json()["user"]["id"] == admin.id

    def test_login_wrong_password(self, client, admin):
        resp = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": "errada"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid credentials"}

    def test_patient_login_never_returns_hash(self, client, backend, patient):
        backend.rpc("create_patient_access", {
            "patient_id": patient["id"], "email": "ana@example.com", "password": "segredo1",
            "allowed_pages": ["exercises"],
        })
        resp = client.post("/api/auth/patient", json={"email": "ana@example.com", "password": "segredo1"})
        assert resp.status_code == 200
        body = resp.json()
        assert "password_hash" not in body["data"]
        assert body["data"]["allowed_pages"] == ["exercises"]
        claims = decode_access_token(body["token"])
        assert claims["role"] == "patient"
        assert claims["patient_id"] == patient["id"]

    def test_patient_login_bad_credentials(self, client):
        resp = client.post("/api/auth/patient", json={"email": "ninguem@example.com", "password": "x"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Credenciais inválidas"}

    def test_me_and_profile_update(self, client, auth_headers):
        assert client.get("/api/auth/me", headers=auth_headers).json()["email"] == ADMIN_EMAIL
        resp = client.put("/api/auth/profile", headers=auth_headers, json={"phone": "11912345678", "cep": "01310100"})
        assert resp.status_code == 200
        assert resp.json()["phone"] == "11912345678"

    def test_entity_routes_require_token(self, client):
        resp = client.get("/api/patients")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Not authenticated"}

    def test_patient_token_cannot_reach_staff_routes(self, client, backend, patient):
        access = backend.rpc("create_patient_access", {
            "patient_id": patient["id"], "email": "ana@example.com", "password": "segredo1",
        }).data
        token = create_access_token({"sub": access["id"], "role": "patient"})
        resp = client.get("/api/patients", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class TestPatients:
    def test_crud(self, client, auth_headers, admin):
        created = client.post("/api/patients", headers=auth_headers, json={"name": "Bruno Lima", "phone": "11977776666"})
        assert created.status_code == 201
        patient_id = created.json()["id"]
        assert created.json()["created_by"] == admin.id

        listed = client.get("/api/patients", headers=auth_headers, params={"q": "bruno"}).json()
        assert [p["id"] for p in listed] == [patient_id]

        updated = client.put(f"/api/patients/{patient_id}", headers=auth_headers, json={"status": "inactive"})
        assert updated.json()["status"] == "inactive"
        assert client.get("/api/patients", headers=auth_headers, params={"status": "active"}).json() == []

        assert client.delete(f"/api/patients/{patient_id}", headers=auth_headers).status_code == 204
        missing = client.get(f"/api/patients/{patient_id}", headers=auth_headers)
        assert missing.status_code == 404
        assert missing.json() == {"error": "Patient not found"}

    def test_empty_update_is_rejected(self, client, auth_headers, patient):
        resp = client.put(f"/api/patients/{patient['id']}", headers=auth_headers, json={})
        assert resp.status_code == 400

    def test_grant_access_hides_hash(self, client, auth_headers, patient):
        resp = client.post(f"/api/patients/{patient['id']}/access", headers=auth_headers, json={
            "patient_id": patient["id"], "email": "ana@example.com", "password": "segredo1",
        })
        assert resp.status_code == 201
        listed = client.get(f"/api/patients/{patient['id']}/access", headers=auth_headers).json()
        assert len(listed) == 1
        assert "password_hash" not in listed[0]


class TestScheduleAndPlans:
    def test_appointment_embeds_patient(self, client, auth_headers, patient):
        resp = client.post("/api/appointments", headers=auth_headers, json={
            "patient_id": patient["id"], "session_type": "Fisioterapia",
            "appointment_date": "2031-03-10", "appointment_time": "09:30",
        })
        assert resp.status_code == 201
        assert resp.json()["patients"]["name"] == "Ana Souza"
        listed = client.get("/api/appointments", headers=auth_headers, params={"status": "scheduled"}).json()
        assert len(listed) == 1

    def test_plan_completion_flow(self, client, auth_headers, patient):
        plan = client.post("/api/treatment-plans", headers=auth_headers,
                           json={"name": "Trilha ombro", "patient_id": patient["id"]}).json()
        exercise = client.post("/api/exercises", headers=auth_headers, json={"name": "Rotação externa"}).json()
        item = client.post(f"/api/treatment-plans/{plan['id']}/exercises", headers=auth_headers, json={
            "treatment_plan_id": plan["id"], "exercise_id": exercise["id"], "day_number": 1,
        })
        assert item.status_code == 201

        done = client.post(
            f"/api/treatment-plans/{plan['id']}/exercises/{item.json()['id']}/completion",
            headers=auth_headers, json={"is_completed": True},
        )
        assert done.status_code == 200
        assert done.json()["progress_percentage"] == 100

    def test_completion_through_another_plan_is_not_found(self, client, auth_headers, patient, backend):
        plan_a = client.post("/api/treatment-plans", headers=auth_headers,
                             json={"name": "Plano A", "patient_id": patient["id"]}).json()
        plan_b = client.post("/api/treatment-plans", headers=auth_headers,
                             json={"name": "Plano B", "patient_id": patient["id"]}).json()
        exercise = client.post("/api/exercises", headers=auth_headers, json={"name": "Ponte"}).json()
        item = client.post(f"/api/treatment-plans/{plan_a['id']}/exercises", headers=auth_headers, json={
            "treatment_plan_id": plan_a["id"], "exercise_id": exercise["id"], "day_number": 1,
        }).json()

        resp = client.post(
            f"/api/treatment-plans/{plan_b['id']}/exercises/{item['id']}/completion",
            headers=auth_headers, json={"is_completed": True},
        )
        assert resp.status_code == 404
        row = backend.table("plan_exercises").select("is_completed").eq("id", item["id"]).single().execute().data
        assert row["is_completed"] is False
        plan = backend.table("treatment_plans").select("progress_percentage").eq("id", plan_a["id"]).single().execute().data
        assert plan["progress_percentage"] == 0

    def test_plan_exercise_id_mismatch(self, client, auth_headers):
        resp = client.post("/api/treatment-plans/p1/exercises", headers=auth_headers, json={
            "treatment_plan_id": "p2", "exercise_id": "e1", "day_number": 1,
        })
        assert resp.status_code == 400


class TestClinical:
    RECORD = {
        "visit_reason": "Dor lombar", "current_condition": "Dor ao sentar",
        "medical_history": "Sem cirurgias", "treatment_plan": "Core",
    }

    def test_second_open_record_conflicts(self, client, auth_headers, patient):
        url = f"/api/patients/{patient['id']}/medical-records"
        assert client.post(url, headers=auth_headers, json=self.RECORD).status_code == 201
        conflict = client.post(url, headers=auth_headers, json=self.RECORD)
        assert conflict.status_code == 409
        assert conflict.json()["code"] == ErrorCode.UNIQUE_VIOLATION.value

    def test_record_for_unknown_patient(self, client, auth_headers):
        resp = client.post("/api/patients/nope/medical-records", headers=auth_headers, json=self.RECORD)
        assert resp.status_code == 404

    def test_evolution_errors(self, client, auth_headers, backend, patient):
        body = {"queixas_relatos": "Melhor", "conduta_atendimento": "Alongamento", "progress_score": 7}
        missing = client.post("/api/evolutions", headers=auth_headers, json={**body, "medical_record_id": "nope"})
        assert missing.status_code == 404

        record = make_medical_record(backend, patient["id"])
        ok = client.post("/api/evolutions", headers=auth_headers, json={**body, "medical_record_id": record["id"]})
        assert ok.status_code == 201

        discharged = client.post(f"/api/medical-records/{record['id']}/discharge", headers=auth_headers)
        assert discharged.json()["status"] == "discharged"
        refused = client.post("/api/evolutions", headers=auth_headers, json={**body, "medical_record_id": record["id"]})
        assert refused.status_code == 409

    def test_score_out_of_range_is_validation_error(self, client, auth_headers):
        resp = client.post("/api/evolutions", headers=auth_headers, json={
            "medical_record_id": "r", "queixas_relatos": "x", "conduta_atendimento": "y", "progress_score": 12,
        })
        assert resp.status_code == 400
        assert resp.json()["error"] == "Dados inválidos"

    def test_pre_evaluation_documents(self, client, auth_headers, patient):
        created = client.post("/api/pre-evaluations", headers=auth_headers, json={
            "patient_id": patient["id"], "queixa_principal": "Dor no joelho",
        })
        assert created.status_code == 201
        evaluation_id = created.json()["id"]

        pdf = client.get(f"/api/pre-evaluations/{evaluation_id}/pdf", headers=auth_headers)
        assert pdf.status_code == 200
        assert pdf.headers["content-type"] == "application/pdf"
        assert 'filename="pre-avaliacao-ana-souza-' in pdf.headers["content-disposition"]
        assert pdf.content.startswith(b"%PDF")

        html = client.get(f"/api/pre-evaluations/{evaluation_id}/print", headers=auth_headers)
        assert "Dor no joelho" in html.text
        assert "Não informado" in html.text

        updated = client.put(f"/api/pre-evaluations/{evaluation_id}", headers=auth_headers, json={"fumante": "Não"})
        assert updated.json()["fumante"] == "Não"
        assert updated.json()["queixa_principal"] == "Dor no joelho"

    def test_pre_evaluation_pdf_for_name_outside_latin1(self, client, auth_headers, backend):
        patient = backend.table("patients").insert({"name": "Nguyễn Văn Anh"}).single().execute().data
        created = client.post("/api/pre-evaluations", headers=auth_headers, json={
            "patient_id": patient["id"], "queixa_principal": "Dor no ombro",
        }).json()

        pdf = client.get(f"/api/pre-evaluations/{created['id']}/pdf", headers=auth_headers)
        assert pdf.status_code == 200
        assert 'filename="pre-avaliacao-nguyen-van-anh-' in pdf.headers["content-disposition"]
        assert "filename*=UTF-8''pre-avaliacao-nguy%E1%BB%85n-" in pdf.headers["content-disposition"]
        assert pdf.content.startswith(b"%PDF")

    def test_unknown_pre_evaluation(self, client, auth_headers):
        assert client.get("/api/pre-evaluations/nope/pdf", headers=auth_headers).status_code == 404


class TestFinance:
    def test_category_in_use_cannot_be_deleted(self, client, auth_headers):
        category = client.post("/api/financial-categories", headers=auth_headers,
                               json={"name": "Sessões", "type": "income"}).json()
        tx = client.post("/api/financial-transactions", headers=auth_headers, json={
            "category_id": category["id"], "description": "Sessão Ana", "amount": "180.00",
            "type": "income", "transaction_date": "2024-03-05",
        })
        assert tx.status_code == 201
        assert tx.json()["financial_categories"]["name"] == "Sessões"

        resp = client.delete(f"/api/financial-categories/{category['id']}", headers=auth_headers)
        assert resp.status_code == 409

    def test_unused_category_is_deleted(self, client, auth_headers):
        category = client.post("/api/financial-categories", headers=auth_headers,
                               json={"name": "Materiais", "type": "expense"}).json()
        assert client.delete(f"/api/financial-categories/{category['id']}", headers=auth_headers).status_code == 204

    def test_financial_report_pdf(self, client, auth_headers):
        client.post("/api/financial-transactions", headers=auth_headers, json={
            "description": "Aluguel", "amount": "900", "type": "expense", "transaction_date": "2024-03-01",
        })
        resp = client.get("/api/reports/financial", headers=auth_headers,
                          params={"start_date": "2024-03-01", "end_date": "2024-03-31"})
        assert resp.status_code == 200
        assert resp.content.startswith(b"%PDF")
        assert "relatorio-financeiro-01-03-2024-31-03-2024.pdf" in resp.headers["content-disposition"]

    def test_proposal_price_is_computed_server_side(self, client, auth_headers):
        client.post("/api/credit-card-rates", headers=auth_headers, json={"name": "3x", "rate": "10"})
        resp = client.post("/api/proposals", headers=auth_headers, json={
            "patient_name": "Helena", "package_price": "1000", "transport_cost": "100",
            "payment_method": "credit", "installments": 3,
        })
        assert resp.status_code == 201
        assert float(resp.json()["final_price"]) == 1210.0
        pdf = client.get(f"/api/proposals/{resp.json()['id']}/pdf", headers=auth_headers)
        assert pdf.content.startswith(b"%PDF")


# ---------------------------------------------------------------------------
# Dashboard, audit trail, health
# ---------------------------------------------------------------------------

class TestDashboardAndAudit:
    def test_dashboard_stats(self, client, auth_headers, patient):
        resp = client.get("/api/dashboard/stats", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json() == {
            "active_patients": 1,
            "completed_sessions": 0,
            "progress_rate": 0,
            "gamification_points": 0,
        }

    def test_patient_reads_are_audited(self, client, auth_headers, admin, patient):
        client.get(f"/api/patients/{patient['id']}", headers=auth_headers)
        logs = client.get("/api/admin/audit-logs", headers=auth_headers, params={"resource_type": "patients"}).json()
        assert len(logs) == 1
        assert logs[0]["user_id"] == admin.id
        assert logs[0]["action"] == "view"
        assert logs[0]["resource_id"] == patient["id"]

    def test_finance_routes_are_not_audited(self, client, auth_headers):
        client.get("/api/financial-categories", headers=auth_headers)
        assert client.get("/api/admin/audit-logs", headers=auth_headers).json() == []

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"
