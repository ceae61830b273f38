"""Package proposal pricing."""
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from ..models.package import PaymentMethod

CENT = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(str(value or 0))


def installment_label(installments: int) -> str:
    return f"{int(installments)}x"


def find_rate(rates: Iterable[dict], installments: int) -> Decimal:
    """Percent rate of the active credit card rate named ``<installments>x``; 0 if none."""
    label = installment_label(installments)
    for rate in rates:
        if rate.get("name") == label and rate.get("is_active", True):
            return _money(rate.get("rate"))
    return Decimal("0")


def calculate_final_price(
    package_price,
    transport_cost=0,
    other_costs=0,
    payment_method: str = PaymentMethod.PIX,
    installments: int = 1,
    rate: Optional[Decimal] = None,
) -> Decimal:
    base = _money(package_price) + _money(transport_cost) + _money(other_costs)
    if payment_method == PaymentMethod.CREDIT:
        base += base * _money(rate) / Decimal("100")
    return base.quantize(CENT, rounding=ROUND_HALF_UP)


def price_proposal(client, values: dict) -> Decimal:
    """Final price for a proposal payload, using the datastore's active credit card rates."""
    installments = values.get("installments") or 1
    rates = client.table("credit_card_rates").select("*").eq("is_active", True).execute().data
    return calculate_final_price(
        values.get("package_price"),
        values.get("transport_cost"),
        values.get("other_costs"),
        values.get("payment_method") or PaymentMethod.PIX,
        installments,
        find_rate(rates, installments),
    )
