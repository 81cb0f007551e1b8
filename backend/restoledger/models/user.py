from sqlalchemy import String, Integer, DateTime, func, ForeignKey, Boolean, false
from sqlalchemy.orm import Mapped, mapped_column
from restoledger.db.base import Base

class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    restaurant_id: Mapped[int | None] = mapped_column(ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=True, index=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(16), default="viewer")
    is_superadmin: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())
