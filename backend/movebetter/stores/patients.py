from typing import List, Optional

from ..services.filters import filter_by_text, filter_by_value
from .base import EntityStore


class PatientStore(EntityStore):
    table = "patients"
    messages = {
        "fetch_error": "Erro ao carregar pacientes",
        "create_success": "Paciente adicionado com sucesso",
        "create_error": "Erro ao adicionar paciente",
        "update_success": "Paciente atualizado com sucesso",
        "update_error": "Erro ao atualizar paciente",
        "delete_success": "Paciente removido com sucesso",
        "delete_error": "Erro ao deletar paciente",
    }

    def __init__(self, client, notifier=None, refetch_debounce=None, created_by: Optional[str] = None, **scope):
        super().__init__(client, notifier, refetch_debounce, **scope)
        self.created_by = created_by

    def prepare_create(self, data: dict) -> dict:
        values = dict(data)
        if self.created_by and not values.get("created_by"):
            values["created_by"] = self.created_by
        return values

    def search(self, query: Optional[str] = None, status: Optional[str] = None) -> List[dict]:
        rows = filter_by_value(self.rows, "status", status)
        return filter_by_text(rows, query, ("name", "email", "phone", "cpf"))
