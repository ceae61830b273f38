"""Brazilian display formats: CPF/CNPJ/CEP masks, dates, currency and report file names."""
import re
import unicodedata
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union
from urllib.parse import quote

NOT_INFORMED = "Não informado"


def only_digits(value: Optional[str]) -> str:
    return re.sub(r"\D", "", value or "")


def _mask(digits: str, groups, separators) -> str:
    out, start = "", 0
    for size, sep in zip(groups, separators):
        chunk = digits[start:start + size]
        if not chunk:
            break
        out += (sep if start else "") + chunk
        start += size
    return out


def format_cpf(value: Optional[str]) -> str:
    """Progressive ``000.000.000-00`` mask; digits past the eleventh are dropped."""
    digits = only_digits(value)[:11]
    return _mask(digits, (3, 3, 3, 2), ("", ".", ".", "-"))


def format_cnpj(value: Optional[str]) -> str:
    digits = only_digits(value)[:14]
    return _mask(digits, (2, 3, 3, 4, 2), ("", ".", ".", "/", "-"))


def format_cpf_cnpj(value: Optional[str]) -> str:
    """CPF mask up to 11 digits, CNPJ mask beyond that."""
    digits = only_digits(value)
    return format_cpf(digits) if len(digits) <= 11 else format_cnpj(digits)


def format_cep(value: Optional[str]) -> str:
    digits = only_digits(value)[:8]
    return _mask(digits, (5, 3), ("", "-"))


def format_phone(value: Optional[str]) -> str:
    digits = only_digits(value)[:11]
    if len(digits) <= 2:
        return digits
    if len(digits) <= 10:
        return f"({digits[:2]}) {digits[2:6]}" + (f"-{digits[6:]}" if len(digits) > 6 else "")
    return f"({digits[:2]}) {digits[2:7]}-{digits[7:]}"


DateLike = Union[date, datetime, str, None]


def _as_date(value: DateLike) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def format_date_br(value: DateLike, default: str = "") -> str:
    parsed = _as_date(value)
    return parsed.strftime("%d/%m/%Y") if parsed else default


def format_currency(value) -> str:
    """``1234.5`` -> ``R$ 1.234,50``"""
    amount = Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    whole, cents = f"{abs(amount):.2f}".split(".")
    groups = []
    while whole:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    return f"{sign}R$ {'.'.join(groups)},{cents}"


def or_not_informed(value) -> str:
    if value is None:
        return NOT_INFORMED
    text = str(value).strip()
    return text if text else NOT_INFORMED


def slugify_name(name: Optional[str]) -> str:
    """Lower-case the name and collapse each whitespace run into ``-``."""
    return re.sub(r"\s+", "-", (name or "").strip().lower())


def pre_evaluation_filename(patient_name: str, on: DateLike = None) -> str:
    day = _as_date(on) or date.today()
    return f"pre-avaliacao-{slugify_name(patient_name)}-{day.isoformat()}.pdf"


def proposal_filename(patient_name: str, on: DateLike = None) -> str:
    day = _as_date(on) or date.today()
    return f"proposta-{slugify_name(patient_name)}-{day.isoformat()}.pdf"


def content_disposition(filename: str) -> str:
    """``attachment`` header value with an ASCII ``filename`` and the UTF-8 original in ``filename*``."""
    fallback = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    fallback = fallback.replace('"', "").replace("\\", "")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def financial_report_filename(start: DateLike, end: DateLike) -> str:
    first = format_date_br(start, "inicio").replace("/", "-")
    last = format_date_br(end, "hoje").replace("/", "-")
    return f"relatorio-financeiro-{first}-{last}.pdf"
