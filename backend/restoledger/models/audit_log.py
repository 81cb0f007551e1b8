from datetime import datetime

from sqlalchemy import Integer, DateTime, func, String, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from restoledger.db.base import Base


class AuditLog(Base):
    """Append-only trail of mutating calls, one row per call.

    ``restaurant_id`` is a plain column so the trail survives tenant deletion.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_tenant_time", "restaurant_id", "created_at"),
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    restaurant_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    username: Mapped[str] = mapped_column(String(64), index=True)
    action: Mapped[str] = mapped_column(String(64))
    entity_type: Mapped[str] = mapped_column(String(64))
    entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
