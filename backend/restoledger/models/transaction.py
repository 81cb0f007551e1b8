from datetime import date
from decimal import Decimal

from sqlalchemy import Integer, Date, DateTime, func, ForeignKey, Numeric, String, Boolean, Index, false
from sqlalchemy.orm import Mapped, mapped_column
from restoledger.db.base import Base

class FinancialTransaction(Base):
    __tablename__ = "financial_transactions"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(ForeignKey("restaurants.id", ondelete="CASCADE"), index=True)

    description: Mapped[str] = mapped_column(String(256))
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2))
    type: Mapped[str] = mapped_column(String(16))
    status: Mapped[str] = mapped_column(String(16), default="PENDING", index=True)
    due_date: Mapped[date] = mapped_column(Date, index=True)
    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(32), nullable=True)

    category_id: Mapped[int | None] = mapped_column(ForeignKey("transaction_categories.id", ondelete="SET NULL"), nullable=True, index=True)
    supplier_id: Mapped[int | None] = mapped_column(ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True)
    bank_account_id: Mapped[int | None] = mapped_column(ForeignKey("bank_accounts.id"), nullable=True, index=True)
    order_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    recipient_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    recurrence_frequency: Mapped[str | None] = mapped_column(String(16), nullable=True)
    recurrence_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # template -> generated instance (one level)
    parent_transaction_id: Mapped[int | None] = mapped_column(
        ForeignKey("financial_transactions.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # debit <-> credit legs of a transfer
    related_transaction_id: Mapped[int | None] = mapped_column(
        ForeignKey("financial_transactions.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())


Index("ix_financial_transactions_restaurant_due", FinancialTransaction.restaurant_id, FinancialTransaction.due_date)
