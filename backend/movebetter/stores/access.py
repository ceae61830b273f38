from typing import List, Optional

from .base import EntityStore, OperationResult

# Never select password_hash into the cache
PUBLIC_COLUMNS = "id, patient_id, user_id, email, allowed_pages, is_active, created_by, created_at, updated_at"


class PatientAccessStore(EntityStore):
    table = "patient_app_access"
    select_columns = f"{PUBLIC_COLUMNS}, patients(name, email)"
    messages = {
        "fetch_error": "Erro ao carregar acessos de pacientes",
        "create_success": "Acesso criado com sucesso",
        "create_error": "Erro ao criar acesso do paciente",
        "update_success": "Acesso atualizado com sucesso",
        "update_error": "Erro ao atualizar acesso",
        "delete_success": "Acesso removido com sucesso",
        "delete_error": "Erro ao deletar acesso",
    }

    def __init__(self, client, notifier=None, refetch_debounce=None, created_by: Optional[str] = None, **scope):
        super().__init__(client, notifier, refetch_debounce, **scope)
        self.created_by = created_by

    def grant(
        self,
        patient_id: str,
        email: str,
        password: str,
        allowed_pages: Optional[List[str]] = None,
    ) -> OperationResult:
        """Create the login; hashing happens inside ``create_patient_access``."""
        return self.run_procedure(
            "create",
            "create_patient_access",
            {
                "patient_id": patient_id,
                "email": email,
                "password": password,
                "allowed_pages": allowed_pages,
                "created_by": self.created_by,
            },
        )

    def create(self, data: dict) -> OperationResult:
        # A plain insert would bypass server-side hashing
        return self.grant(data.get("patient_id"), data.get("email", ""), data.get("password", ""), data.get("allowed_pages"))

    def update(self, row_id: str, changes: dict) -> OperationResult:
        changes = {k: v for k, v in changes.items() if k not in ("password", "password_hash")}
        return super().update(row_id, changes)

    def revoke(self, access_id: str) -> OperationResult:
        return self.delete(access_id)
