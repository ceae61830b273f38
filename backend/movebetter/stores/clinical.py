"""Medical records, evolutions and pre-evaluations, each scoped to one patient."""
from typing import Optional

from ..models.clinical import MedicalRecordStatus
from .base import EntityStore, OperationResult


class MedicalRecordStore(EntityStore):
    table = "patient_medical_records"
    base_filters = {"is_active": True}
    messages = {
        "fetch_error": "Erro ao carregar prontuários",
        "create_success": "Prontuário adicionado com sucesso",
        "create_error": "Erro ao adicionar prontuário",
        "update_success": "Prontuário atualizado com sucesso",
        "update_error": "Erro ao atualizar prontuário",
        "delete_success": "Prontuário encerrado com sucesso",
        "delete_error": "Erro ao encerrar prontuário",
    }

    def __init__(self, client, patient_id: Optional[str] = None, notifier=None, refetch_debounce=None):
        super().__init__(client, notifier, refetch_debounce, patient_id=patient_id)
        self.patient_id = patient_id

    def prepare_create(self, data: dict) -> dict:
        values = {"status": MedicalRecordStatus.ACTIVE, **data}
        if self.patient_id:
            values.setdefault("patient_id", self.patient_id)
        return values

    def discharge(self, record_id: str) -> OperationResult:
        return self.update(record_id, {"status": MedicalRecordStatus.DISCHARGED})

    def close_record(self, record_id: str) -> OperationResult:
        return self.soft_delete(record_id)

    def active_record(self) -> Optional[dict]:
        return next((r for r in self.rows if r.get("status") == MedicalRecordStatus.ACTIVE), None)

    def has_active_record(self) -> bool:
        return self.active_record() is not None


class EvolutionStore(EntityStore):
    table = "patient_evolutions"
    base_filters = {"is_active": True}
    messages = {
        "fetch_error": "Erro ao carregar evoluções",
        "create_success": "Evolução adicionada com sucesso",
        "create_error": "Erro ao adicionar evolução",
        "update_success": "Evolução atualizada com sucesso",
        "update_error": "Erro ao atualizar evolução",
        "delete_success": "Evolução encerrada com sucesso",
        "delete_error": "Erro ao encerrar evolução",
    }

    def __init__(self, client, patient_id: Optional[str] = None, notifier=None, refetch_debounce=None):
        super().__init__(client, notifier, refetch_debounce, patient_id=patient_id)
        self.patient_id = patient_id

    def add_evolution(self, data: dict) -> OperationResult:
        """Insert through ``create_evolution`` so the open-record check and the write are atomic."""
        values = dict(data)
        if self.patient_id:
            values.setdefault("patient_id", self.patient_id)
        return self.run_procedure("create", "create_evolution", {"evolution": values})

    create = add_evolution

    def close_evolution(self, evolution_id: str) -> OperationResult:
        return self.soft_delete(evolution_id)

    def latest_score(self) -> Optional[int]:
        return self.rows[0]["progress_score"] if self.rows else None


class PreEvaluationStore(EntityStore):
    table = "patient_pre_evaluations"
    messages = {
        "fetch_error": "Erro ao carregar pré-avaliações",
        "create_success": "Pré-avaliação salva com sucesso",
        "create_error": "Erro ao salvar pré-avaliação",
        "update_success": "Pré-avaliação atualizada com sucesso",
        "update_error": "Erro ao atualizar pré-avaliação",
        "delete_success": "Pré-avaliação removida com sucesso",
        "delete_error": "Erro ao remover pré-avaliação",
    }

    def __init__(self, client, patient_id: Optional[str] = None, notifier=None, refetch_debounce=None):
        super().__init__(client, notifier, refetch_debounce, patient_id=patient_id)
        self.patient_id = patient_id

    def prepare_create(self, data: dict) -> dict:
        values = dict(data)
        if self.patient_id:
            values.setdefault("patient_id", self.patient_id)
        return values
