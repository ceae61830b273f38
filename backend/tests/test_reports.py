"""Tests for the financial report, the pre-evaluation sheet and the proposal document."""
from decimal import Decimal

from movebetter.reports.financial import NO_CATEGORY, build_financial_pdf, build_report
from movebetter.reports.pre_evaluation import (
    build_pre_evaluation_pdf,
    render_pre_evaluation_html,
    sheet_lines,
)
from movebetter.reports.proposal import build_proposal_pdf, payment_label
from movebetter.utils.formatting import NOT_INFORMED

TRANSACTIONS = [
    {"transaction_date": "2024-03-31", "type": "expense", "amount": "300.00", "description": "Aluguel da sala",
     "financial_categories": {"name": "Aluguel"}},
    {"transaction_date": "2024-03-15", "type": "income", "amount": "150.00", "description": "Sessão avulsa",
     "financial_categories": {"name": "Sessões"}},
    {"transaction_date": "2024-03-01", "type": "income", "amount": "1200.00", "description": "Pacote 10 sessões",
     "financial_categories": None},
    {"transaction_date": "2024-02-29", "type": "income", "amount": "999.00", "description": "Fora do período",
     "financial_categories": {"name": "Sessões"}},
]


class TestFinancialReport:
    def test_bounds_are_inclusive(self):
        report = build_report(TRANSACTIONS, "2024-03-01", "2024-03-31")
        assert len(report.transactions) == 3
        assert report.total_income == Decimal("1350.00")
        assert report.total_expenses == Decimal("300.00")
        assert report.balance == Decimal("1050.00")

    def test_day_outside_each_bound_is_excluded(self):
        report = build_report(TRANSACTIONS, "2024-03-02", "2024-03-30")
        assert [tx["description"] for tx in report.transactions] == ["Sessão avulsa"]

    def test_category_sums_with_fallback(self):
        report = build_report(TRANSACTIONS, "2024-03-01", "2024-03-31")
        assert report.income_by_category == {"Sessões": Decimal("150.00"), NO_CATEGORY: Decimal("1200.00")}
        assert report.expenses_by_category == {"Aluguel": Decimal("300.00")}

    def test_missing_bound_keeps_everything(self):
        assert len(build_report(TRANSACTIONS, None, "2024-01-01").transactions) == 4

    def test_pdf_bytes(self):
        data = build_financial_pdf(build_report(TRANSACTIONS, "2024-03-01", "2024-03-31"))
        assert data.startswith(b"%PDF")

    def test_empty_period_still_renders(self):
        assert build_financial_pdf(build_report([], "2024-01-01", "2024-01-31")).startswith(b"%PDF")


class TestPreEvaluationSheet:
    ANSWERS = {"queixa_principal": "Dor no ombro", "escala_dor": "7", "fumante": "  ", "created_at": "2024-04-02"}

    def test_unanswered_questions_are_not_informed(self):
        lines = {label: value for _, label, value in sheet_lines(self.ANSWERS)}
        assert lines["Queixa Principal"] == "Dor no ombro"
        assert lines["Fumante"] == NOT_INFORMED
        assert lines["Hobby"] == NOT_INFORMED

    def test_sections_in_print_order(self):
        sections = []
        for section, _, _ in sheet_lines({}):
            if section not in sections:
                sections.append(section)
        assert sections[0] == "DADOS GERAIS"
        assert sections[-1] == "INFORMAÇÕES ADICIONAIS"

    def test_html_sheet(self):
        html = render_pre_evaluation_html(self.ANSWERS, "Ana <Souza>")
        assert "Dor no ombro" in html
        assert NOT_INFORMED in html
        assert "02/04/2024" in html
        assert "Ana &lt;Souza&gt;" in html

    def test_pdf_sheet(self):
        assert build_pre_evaluation_pdf(self.ANSWERS, "Ana Souza").startswith(b"%PDF")


class TestProposal:
    def test_payment_labels(self):
        assert payment_label({"payment_method": "credit", "installments": 3}) == "Cartão de Crédito em 3x"
        assert payment_label({"payment_method": "pix"}) == "PIX"
        assert payment_label({}) == NOT_INFORMED

    def test_pdf(self):
        proposal = {
            "patient_name": "Helena", "package_name": "Pacote 10 sessões", "package_price": "1000.00",
            "transport_cost": "100.00", "other_costs": "50.00", "other_costs_note": "Material",
            "payment_method": "credit", "installments": 3, "final_price": "1265.00",
            "created_date": "2024-04-02",
        }
        assert build_proposal_pdf(proposal).startswith(b"%PDF")
