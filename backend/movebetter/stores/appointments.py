from datetime import date
from typing import List, Optional

from ..models.appointment import AppointmentStatus
from ..services.filters import filter_by_date_range, filter_by_text, filter_by_value, to_date
from .base import EntityStore, OperationResult


class AppointmentStore(EntityStore):
    table = "appointments"
    select_columns = "*, patients(name, phone)"
    order_by = (("appointment_date", False), ("appointment_time", False))
    messages = {
        "fetch_error": "Erro ao carregar agendamentos",
        "create_success": "Agendamento criado com sucesso",
        "create_error": "Erro ao criar agendamento",
        "update_success": "Agendamento atualizado com sucesso",
        "update_error": "Erro ao atualizar agendamento",
        "delete_success": "Agendamento removido com sucesso",
        "delete_error": "Erro ao remover agendamento",
    }

    def set_status(self, appointment_id: str, status: str) -> OperationResult:
        # Any status may follow any other
        return self.update(appointment_id, {"status": status})

    def upcoming(self, today: Optional[date] = None, limit: int = 5) -> List[dict]:
        today = today or date.today()
        rows = [
            row for row in self.rows
            if row.get("status") == AppointmentStatus.SCHEDULED and to_date(row.get("appointment_date")) >= today
        ]
        return rows[:limit]

    def search(self, query=None, status=None, start=None, end=None) -> List[dict]:
        rows = filter_by_value(self.rows, "status", status)
        rows = filter_by_date_range(rows, "appointment_date", start, end)
        return filter_by_text(rows, query, ("patients.name", "session_type", "notes"))
