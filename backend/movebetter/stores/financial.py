from decimal import Decimal
from typing import Dict, List

from ..models.financial import TransactionType
from ..services.filters import filter_by_date_range, filter_by_text, filter_by_value
from .base import EntityStore


class FinancialCategoryStore(EntityStore):
    """Categories; deleting one still referenced by a transaction fails with a foreign-key violation."""

    table = "financial_categories"
    base_filters = {"is_active": True}
    order_by = (("name", False),)
    messages = {
        "fetch_error": "Erro ao carregar categorias",
        "create_success": "Categoria criada com sucesso",
        "create_error": "Erro ao criar categoria",
        "update_success": "Categoria atualizada com sucesso",
        "update_error": "Erro ao atualizar categoria",
        "delete_success": "Categoria removida com sucesso",
        "delete_error": "Erro ao remover categoria",
    }

    def of_type(self, transaction_type: str) -> List[dict]:
        return [row for row in self.rows if row.get("type") == transaction_type]


class FinancialTransactionStore(EntityStore):
    table = "financial_transactions"
    select_columns = "*, financial_categories(name, color), patients(name)"
    order_by = (("transaction_date", True), ("created_at", True))
    messages = {
        "fetch_error": "Erro ao carregar transações",
        "create_success": "Transação criada com sucesso",
        "create_error": "Erro ao criar transação",
        "update_success": "Transação atualizada com sucesso",
        "update_error": "Erro ao atualizar transação",
        "delete_success": "Transação removida com sucesso",
        "delete_error": "Erro ao remover transação",
    }

    def search(self, query=None, transaction_type=None, payment_status=None, start=None, end=None) -> List[dict]:
        rows = filter_by_value(self.rows, "type", transaction_type)
        rows = filter_by_value(rows, "payment_status", payment_status)
        rows = filter_by_date_range(rows, "transaction_date", start, end)
        return filter_by_text(rows, query, ("description", "financial_categories.name", "patients.name"))

    def totals(self, rows=None) -> Dict[str, Decimal]:
        rows = self.rows if rows is None else rows
        income = sum((Decimal(str(r["amount"])) for r in rows if r.get("type") == TransactionType.INCOME), Decimal("0"))
        expense = sum((Decimal(str(r["amount"])) for r in rows if r.get("type") == TransactionType.EXPENSE), Decimal("0"))
        return {"income": income, "expense": expense, "balance": income - expense}
