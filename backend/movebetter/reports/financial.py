"""Financial report for a date range: totals, per-category sums and the latest transactions."""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from ..models.financial import TransactionType
from ..services.filters import DateLike, filter_by_date_range
from ..utils.formatting import format_currency, format_date_br
from .common import EXPENSE_COLOR, INCOME_COLOR, ClinicPDF, pdf_text

NO_CATEGORY = "Sem categoria"
RECENT_LIMIT = 10
DESCRIPTION_WIDTH = 25


@dataclass
class FinancialReport:
    start_date: Optional[str]
    end_date: Optional[str]
    transactions: List[dict]
    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    income_by_category: Dict[str, Decimal] = field(default_factory=dict)
    expenses_by_category: Dict[str, Decimal] = field(default_factory=dict)

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expenses

    @property
    def recent(self) -> List[dict]:
        return self.transactions[:RECENT_LIMIT]


def category_name(transaction: dict) -> str:
    return (transaction.get("financial_categories") or {}).get("name") or NO_CATEGORY


def build_report(transactions: List[dict], start: DateLike = None, end: DateLike = None) -> FinancialReport:
    """Keep transactions dated within [start, end] (inclusive) and aggregate them.

    Rows are expected newest first, as the transaction store keeps them.
    """
    selected = filter_by_date_range(transactions, "transaction_date", start, end)
    report = FinancialReport(
        start_date=str(start) if start else None,
        end_date=str(end) if end else None,
        transactions=selected,
    )
    for tx in selected:
        amount = Decimal(str(tx.get("amount") or 0))
        name = category_name(tx)
        if tx.get("type") == TransactionType.INCOME:
            report.total_income += amount
            report.income_by_category[name] = report.income_by_category.get(name, Decimal("0")) + amount
        elif tx.get("type") == TransactionType.EXPENSE:
            report.total_expenses += amount
            report.expenses_by_category[name] = report.expenses_by_category.get(name, Decimal("0")) + amount
    return report


def _short(description: str) -> str:
    description = description or ""
    if len(description) > DESCRIPTION_WIDTH:
        return description[:DESCRIPTION_WIDTH] + "..."
    return description


def build_financial_pdf(report: FinancialReport) -> bytes:
    period = f"Período: {format_date_br(report.start_date, '-')} à {format_date_br(report.end_date, '-')}"
    pdf = ClinicPDF("Relatório Financeiro", period)

    pdf.section("Resumo Financeiro")
    pdf.line_text(f"Total de Receitas: {format_currency(report.total_income)}", color=INCOME_COLOR)
    pdf.line_text(f"Total de Despesas: {format_currency(report.total_expenses)}", color=EXPENSE_COLOR)
    balance_color = INCOME_COLOR if report.balance >= 0 else EXPENSE_COLOR
    pdf.line_text(f"Saldo Final: {format_currency(report.balance)}", style="B", color=balance_color)

    for title, sums in (
        ("Receitas por Categoria", report.income_by_category),
        ("Despesas por Categoria", report.expenses_by_category),
    ):
        if sums:
            pdf.section(title)
            for name, amount in sums.items():
                pdf.line_text(f"{name}: {format_currency(amount)}", indent=5)

    if report.recent:
        pdf.section("Últimas Transações")
        widths = (30, 70, 45, 35)
        pdf.set_font("Helvetica", "B", 10)
        for width, heading in zip(widths, ("Data", "Descrição", "Categoria", "Valor")):
            pdf.cell(width, 7, pdf_text(heading), border="B")
        pdf.ln(8)
        pdf.set_font("Helvetica", size=10)
        for tx in report.recent:
            color = INCOME_COLOR if tx.get("type") == TransactionType.INCOME else EXPENSE_COLOR
            pdf.set_text_color(*color)
            cells = (
                format_date_br(tx.get("transaction_date")),
                _short(tx.get("description")),
                category_name(tx),
                format_currency(tx.get("amount")),
            )
            for width, text in zip(widths, cells):
                pdf.cell(width, 7, pdf_text(text))
            pdf.ln(7)
        pdf.set_text_color(0, 0, 0)

    return pdf.to_bytes()
