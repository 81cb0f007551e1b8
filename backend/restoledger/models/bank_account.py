from decimal import Decimal

from sqlalchemy import String, Integer, DateTime, func, ForeignKey, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from restoledger.db.base import Base

class BankAccount(Base):
    __tablename__ = "bank_accounts"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    restaurant_id: Mapped[int] = mapped_column(ForeignKey("restaurants.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(128))
    type: Mapped[str] = mapped_column(String(16), default="CASH")
    # only ever moved by services.accounts.adjust_balance
    balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), server_default="0")
    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())
