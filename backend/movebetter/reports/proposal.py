"""Package sale proposal handed to the patient."""
from ..models.package import PaymentMethod
from ..utils.formatting import format_currency, format_date_br, or_not_informed
from .common import ClinicPDF

PAYMENT_LABELS = {
    PaymentMethod.PIX: "PIX",
    PaymentMethod.CASH: "Dinheiro",
    PaymentMethod.DEBIT: "Cartão de Débito",
    PaymentMethod.CREDIT: "Cartão de Crédito",
}


def payment_label(proposal: dict) -> str:
    label = PAYMENT_LABELS.get(proposal.get("payment_method"), or_not_informed(proposal.get("payment_method")))
    if proposal.get("payment_method") == PaymentMethod.CREDIT:
        label += f" em {proposal.get('installments') or 1}x"
    return label


def build_proposal_pdf(proposal: dict) -> bytes:
    package_name = proposal.get("package_name") or (proposal.get("packages") or {}).get("name")
    pdf = ClinicPDF("Proposta de Pacote", f"Emitida em {format_date_br(proposal.get('created_date') or proposal.get('created_at'))}")

    pdf.section("Paciente")
    pdf.field("Nome", or_not_informed(proposal.get("patient_name")))

    pdf.section("Pacote")
    pdf.field("Pacote", or_not_informed(package_name))
    pdf.field("Valor do pacote", format_currency(proposal.get("package_price")))
    pdf.field("Transporte", format_currency(proposal.get("transport_cost")))
    if proposal.get("other_costs"):
        note = proposal.get("other_costs_note")
        pdf.field("Outros custos", format_currency(proposal.get("other_costs")) + (f" ({note})" if note else ""))

    pdf.section("Pagamento")
    pdf.field("Forma de pagamento", payment_label(proposal))
    pdf.field("Valor final", format_currency(proposal.get("final_price")))
    pdf.field("Válida até", format_date_br(proposal.get("expiry_date"), "Não informado"))
    return pdf.to_bytes()
