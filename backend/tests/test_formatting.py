"""Tests for Brazilian display formats, list filters and proposal pricing."""
from datetime import date, datetime
from decimal import Decimal

import pytest

from movebetter.services.filters import filter_by_date_range, filter_by_text, filter_by_value, is_date_in_range
from movebetter.services.pricing import calculate_final_price, find_rate
from movebetter.utils.formatting import (
    NOT_INFORMED,
    content_disposition,
    financial_report_filename,
    format_cep,
    format_cpf,
    format_cpf_cnpj,
    format_currency,
    format_date_br,
    format_phone,
    or_not_informed,
    pre_evaluation_filename,
    proposal_filename,
)


class TestDocumentMasks:
    def test_full_cpf(self):
        assert format_cpf("12345678901") == "123.456.789-01"

    def test_short_input_is_left_alone(self):
        assert format_cpf("123") == "123"

    def test_partial_cpf_is_masked_progressively(self):
        assert format_cpf("1234567") == "123.456.7"

    def test_extra_digits_are_truncated(self):
        formatted = format_cpf("123456789012345")
        assert formatted == "123.456.789-01"
        assert len(formatted) == 14

    def test_punctuation_is_ignored(self):
        assert format_cpf("123.456.789-01") == "123.456.789-01"

    def test_cnpj_after_eleven_digits(self):
        assert format_cpf_cnpj("12345678000195") == "12.345.678/0001-95"
        assert format_cpf_cnpj("12345678901") == "123.456.789-01"

    def test_cep(self):
        assert format_cep("01310100") == "01310-100"
        assert format_cep("0131") == "0131"

    def test_phone(self):
        assert format_phone("11987654321") == "(11) 98765-4321"
        assert format_phone("1133334444") == "(11) 3333-4444"


class TestDisplayValues:
    def test_currency(self):
        assert format_currency(Decimal("1234.5")) == "R$ 1.234,50"
        assert format_currency(0) == "R$ 0,00"
        assert format_currency("-10") == "-R$ 10,00"
        assert format_currency(1234567.891) == "R$ 1.234.567,89"

    def test_dates(self):
        assert format_date_br("2024-03-05") == "05/03/2024"
        assert format_date_br(datetime(2024, 3, 5, 23, 59)) == "05/03/2024"
        assert format_date_br(None, "-") == "-"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_not_informed(self, value):
        assert or_not_informed(value) == NOT_INFORMED

    def test_not_informed_keeps_answers(self):
        assert or_not_informed("Sim") == "Sim"
        assert or_not_informed(0) == "0"


class TestFileNames:
    def test_pre_evaluation(self):
        assert pre_evaluation_filename("Ana  Maria Souza", date(2024, 4, 1)) == "pre-avaliacao-ana-maria-souza-2024-04-01.pdf"

    def test_proposal(self):
        assert proposal_filename("João Lima", "2024-04-01") == "proposta-joão-lima-2024-04-01.pdf"

    def test_financial_report(self):
        assert financial_report_filename("2024-01-01", "2024-01-31") == "relatorio-financeiro-01-01-2024-31-01-2024.pdf"
        assert financial_report_filename(None, None) == "relatorio-financeiro-inicio-hoje.pdf"

    def test_content_disposition_keeps_header_ascii(self):
        value = content_disposition("pre-avaliacao-nguyễn-văn-anh-2024-04-01.pdf")
        value.encode("latin-1")
        assert 'filename="pre-avaliacao-nguyen-van-anh-2024-04-01.pdf"' in value
        assert "filename*=UTF-8''pre-avaliacao-nguy%E1%BB%85n-v%C4%83n-anh-2024-04-01.pdf" in value


class TestFilters:
    ROWS = [
        {"id": 1, "transaction_date": "2024-01-01", "status": "paid", "description": "Sessão", "patients": {"name": "Ana"}},
        {"id": 2, "transaction_date": "2024-01-15", "status": "pending", "description": "Aluguel", "patients": None},
        {"id": 3, "transaction_date": "2024-01-31", "status": "paid", "description": "Pacote", "patients": {"name": "Bia"}},
    ]

    def test_date_range_is_inclusive(self):
        rows = filter_by_date_range(self.ROWS, "transaction_date", "2024-01-01", "2024-01-31")
        assert [r["id"] for r in rows] == [1, 2, 3]

    def test_one_day_outside_either_bound_is_excluded(self):
        rows = filter_by_date_range(self.ROWS, "transaction_date", "2024-01-02", "2024-01-30")
        assert [r["id"] for r in rows] == [2]

    def test_missing_bound_disables_range(self):
        assert is_date_in_range("1999-01-01", None, "2024-01-01") is True

    def test_text_search_reaches_embedded_rows(self):
        assert [r["id"] for r in filter_by_text(self.ROWS, "BIA", ("description", "patients.name"))] == [3]
        assert len(filter_by_text(self.ROWS, "  ", ("description",))) == 3

    def test_value_filter(self):
        assert [r["id"] for r in filter_by_value(self.ROWS, "status", "paid")] == [1, 3]
        assert len(filter_by_value(self.ROWS, "status", "all")) == 3


class TestPricing:
    RATES = [
        {"name": "3x", "rate": "10.00", "is_active": True},
        {"name": "6x", "rate": "15.00", "is_active": False},
    ]

    def test_pix_is_plain_sum(self):
        assert calculate_final_price("1000", "50", "25.50", "pix") == Decimal("1075.50")

    def test_credit_adds_installment_rate(self):
        rate = find_rate(self.RATES, 3)
        assert rate == Decimal("10.00")
        assert calculate_final_price("1000", "100", "0", "credit", 3, rate) == Decimal("1210.00")

    def test_inactive_or_missing_rate_is_zero(self):
        assert find_rate(self.RATES, 6) == Decimal("0")
        assert find_rate(self.RATES, 12) == Decimal("0")

    def test_rate_ignored_for_debit(self):
        assert calculate_final_price("100", payment_method="debit", rate=Decimal("10")) == Decimal("100.00")

    def test_rounds_to_cents(self):
        assert calculate_final_price("99.99", payment_method="credit", installments=2, rate=Decimal("3.33")) == Decimal("103.32")
