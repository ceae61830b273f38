"""Exercise library, treatment plans ("trilhas") and the exercises inside a plan."""
from typing import Optional

from .base import EntityStore, OperationResult


class ExerciseStore(EntityStore):
    table = "exercises"
    base_filters = {"is_active": True}
    messages = {
        "fetch_error": "Erro ao carregar exercícios",
        "create_success": "Exercício adicionado com sucesso",
        "create_error": "Erro ao adicionar exercício",
        "update_success": "Exercício atualizado com sucesso",
        "update_error": "Erro ao atualizar exercício",
        "delete_success": "Exercício removido com sucesso",
        "delete_error": "Erro ao remover exercício",
    }

    def delete(self, row_id: str) -> OperationResult:
        # Plans keep pointing at retired exercises
        return self.soft_delete(row_id)


class TreatmentPlanStore(EntityStore):
    table = "treatment_plans"
    select_columns = "*, patients(name)"
    messages = {
        "fetch_error": "Erro ao carregar trilhas",
        "create_success": "Trilha adicionada com sucesso",
        "create_error": "Erro ao adicionar trilha",
        "update_success": "Trilha atualizada com sucesso",
        "update_error": "Erro ao atualizar trilha",
        "delete_success": "Trilha removida com sucesso",
        "delete_error": "Erro ao deletar trilha",
    }

    def active(self):
        return [row for row in self.rows if row.get("is_active")]


class PlanExerciseStore(EntityStore):
    table = "plan_exercises"
    select_columns = (
        "*, exercises(name, description, instructions, difficulty_level, duration_minutes, image_url, video_url)"
    )
    order_by = (("day_number", False), ("created_at", False))
    messages = {
        "fetch_error": "Erro ao carregar exercícios do plano",
        "create_success": "Exercício adicionado ao plano com sucesso",
        "create_error": "Erro ao adicionar exercício ao plano",
        "update_success": "Exercício do plano atualizado",
        "update_error": "Erro ao atualizar exercício",
        "delete_success": "Exercício removido do plano",
        "delete_error": "Erro ao remover exercício do plano",
        "toggle_success": "Exercício atualizado",
        "toggle_error": "Erro ao atualizar exercício",
    }

    def __init__(self, client, treatment_plan_id: Optional[str] = None, notifier=None, refetch_debounce=None):
        super().__init__(client, notifier, refetch_debounce, treatment_plan_id=treatment_plan_id)
        self.treatment_plan_id = treatment_plan_id

    def add(self, data: dict) -> OperationResult:
        values = dict(data)
        if self.treatment_plan_id:
            values.setdefault("treatment_plan_id", self.treatment_plan_id)
        return self.create(values)

    def remove(self, plan_exercise_id: str) -> OperationResult:
        return self.delete(plan_exercise_id)

    def toggle_completion(self, plan_exercise_id: str, is_completed: bool) -> OperationResult:
        """Mark done / pending; the plan's progress and the patient's points update with it."""
        return self.run_procedure(
            "toggle",
            "set_plan_exercise_completion",
            {
                "plan_exercise_id": plan_exercise_id,
                "is_completed": is_completed,
                "treatment_plan_id": self.filters.get("treatment_plan_id"),
            },
            result_key="plan_exercise",
        )

    def by_day(self) -> dict:
        days: dict = {}
        for row in self.rows:
            days.setdefault(row.get("day_number"), []).append(row)
        return days
