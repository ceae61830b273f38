"""Session packages, package sales (proposals) and packages assigned to patients."""
from datetime import date
from decimal import Decimal
from typing import Optional

from ..models.package import PatientPackageStatus, ProposalStatus
from ..services.pricing import find_rate, price_proposal
from .base import EntityStore, OperationResult


class PackageStore(EntityStore):
    table = "packages"
    base_filters = {"is_active": True}
    messages = {
        "fetch_error": "Erro ao carregar pacotes",
        "create_success": "Pacote criado com sucesso",
        "create_error": "Erro ao criar pacote",
        "update_success": "Pacote atualizado com sucesso",
        "update_error": "Erro ao atualizar pacote",
        "delete_success": "Pacote removido com sucesso",
        "delete_error": "Erro ao remover pacote",
    }

    def delete(self, row_id: str) -> OperationResult:
        return self.soft_delete(row_id)


class CreditCardRateStore(EntityStore):
    table = "credit_card_rates"
    base_filters = {"is_active": True}
    order_by = (("name", False),)
    messages = {
        "fetch_error": "Erro ao carregar taxas",
        "create_success": "Taxa criada com sucesso",
        "create_error": "Erro ao criar taxa",
        "update_success": "Taxa atualizada com sucesso",
        "update_error": "Erro ao atualizar taxa",
        "delete_success": "Taxa removida com sucesso",
        "delete_error": "Erro ao remover taxa",
    }

    def rate_for(self, installments: int) -> Decimal:
        return find_rate(self.rows, installments)


class ProposalStore(EntityStore):
    table = "package_proposals"
    select_columns = "*, packages(name, sessions_included)"
    messages = {
        "fetch_error": "Erro ao carregar propostas",
        "create_success": "Proposta criada com sucesso",
        "create_error": "Erro ao criar proposta",
        "update_success": "Proposta atualizada com sucesso",
        "update_error": "Erro ao atualizar proposta",
        "delete_success": "Proposta removida com sucesso",
        "delete_error": "Erro ao remover proposta",
    }

    def prepare_create(self, data: dict) -> dict:
        values = {"status": ProposalStatus.PENDING, "created_date": date.today(), **data}
        values["final_price"] = price_proposal(self.client, values)
        return values

    def approve(self, proposal_id: str) -> OperationResult:
        return self.update(proposal_id, {"status": ProposalStatus.APPROVED})

    def reject(self, proposal_id: str) -> OperationResult:
        return self.update(proposal_id, {"status": ProposalStatus.REJECTED})


class PatientPackageStore(EntityStore):
    table = "patient_packages"
    select_columns = "*, packages(name, sessions_included), patients(name)"
    messages = {
        "fetch_error": "Erro ao carregar pacotes dos pacientes",
        "create_success": "Pacote atribuído com sucesso",
        "create_error": "Erro ao atribuir pacote",
        "update_success": "Pacote do paciente atualizado",
        "update_error": "Erro ao atualizar pacote do paciente",
        "delete_success": "Pacote do paciente removido",
        "delete_error": "Erro ao remover pacote do paciente",
    }

    def assign(self, patient_id: str, package_id: str, final_price=None, assigned_date=None) -> OperationResult:
        """Assign through ``assign_package``; a second active package for the patient is rejected."""
        return self.run_procedure(
            "create",
            "assign_package",
            {
                "patient_id": patient_id,
                "package_id": package_id,
                "final_price": final_price,
                "assigned_date": assigned_date,
            },
        )

    def cancel(self, patient_package_id: str) -> OperationResult:
        return self.update(patient_package_id, {"status": PatientPackageStatus.CANCELLED})

    def active_package(self, patient_id: str) -> Optional[dict]:
        return next(
            (
                row for row in self.rows
                if row.get("patient_id") == patient_id and row.get("status") == PatientPackageStatus.ACTIVE
            ),
            None,
        )
