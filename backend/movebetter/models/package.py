from sqlalchemy import Column, String, Date, Text, Boolean, Integer, Numeric, ForeignKey, JSON, Index, text
from .base import Base, TimestampMixin, generate_uuid


class ProposalStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PatientPackageStatus:
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class PaymentMethod:
    PIX = "pix"
    CASH = "cash"
    DEBIT = "debit"
    CREDIT = "credit"


class Package(Base, TimestampMixin):
    __tablename__ = "packages"

    id = Column(String, primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    sessions_included = Column(Integer, nullable=False, default=0)
    validity_days = Column(Integer, nullable=False, default=30)
    services = Column(JSON, default=list)
    is_active = Column(Boolean, nullable=False, default=True)


class PackageProposal(Base, TimestampMixin):
    """Priced offer of a package to a (possibly not yet registered) patient."""
    __tablename__ = "package_proposals"

    id = Column(String, primary_key=True, default=generate_uuid)
    package_id = Column(String, ForeignKey("packages.id", ondelete="SET NULL"), nullable=True)
    package_name = Column(String(200), nullable=True)
    patient_name = Column(String(200), nullable=False)
    package_price = Column(Numeric(10, 2), nullable=False)
    transport_cost = Column(Numeric(10, 2), nullable=False, default=0)
    other_costs = Column(Numeric(10, 2), nullable=False, default=0)
    other_costs_note = Column(Text, nullable=True)
    payment_method = Column(String(20), nullable=False)
    installments = Column(Integer, nullable=False, default=1)
    final_price = Column(Numeric(10, 2), nullable=False)
    created_date = Column(Date, nullable=True)
    expiry_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default=ProposalStatus.PENDING)
    created_by = Column(String, ForeignKey("profiles.id"), nullable=True)


class PatientPackage(Base, TimestampMixin):
    __tablename__ = "patient_packages"
    __table_args__ = (
        Index(
            "uq_patient_packages_one_active_per_patient",
            "patient_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    package_id = Column(String, ForeignKey("packages.id"), nullable=False)
    final_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default=PatientPackageStatus.ACTIVE)
    assigned_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=True)
    sessions_used = Column(Integer, nullable=False, default=0)


class CreditCardRate(Base, TimestampMixin):
    __tablename__ = "credit_card_rates"

    id = Column(String, primary_key=True, default=generate_uuid)
    name = Column(String(20), nullable=False)  # Installment label, e.g. "3x"
    rate = Column(Numeric(5, 2), nullable=False)  # Percent added to the base price
    is_active = Column(Boolean, nullable=False, default=True)
