from sqlalchemy import Column, String, Date, Text, Boolean, Numeric, ForeignKey
from .base import Base, TimestampMixin, generate_uuid


class TransactionType:
    INCOME = "income"
    EXPENSE = "expense"

    ALL = (INCOME, EXPENSE)


class PaymentStatus:
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"

    ALL = (PENDING, PAID, OVERDUE, CANCELLED)


class FinancialCategory(Base, TimestampMixin):
    __tablename__ = "financial_categories"

    id = Column(String, primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False)
    type = Column(String(10), nullable=False)
    color = Column(String(9), nullable=False, default="#3B82F6")
    is_active = Column(Boolean, nullable=False, default=True)


class FinancialTransaction(Base, TimestampMixin):
    __tablename__ = "financial_transactions"

    id = Column(String, primary_key=True, default=generate_uuid)
    # RESTRICT: a category cannot be deleted while a transaction points at it
    category_id = Column(
        String, ForeignKey("financial_categories.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    patient_id = Column(String, ForeignKey("patients.id", ondelete="SET NULL"), nullable=True, index=True)
    description = Column(String(300), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    type = Column(String(10), nullable=False, index=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING)
    transaction_date = Column(Date, nullable=False, index=True)
    due_date = Column(Date, nullable=True)
    payment_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(String, ForeignKey("profiles.id"), nullable=True)
