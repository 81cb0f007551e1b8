import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from restoledger.models.audit_log import AuditLog

log = logging.getLogger(__name__)


def log_event(
    s: Session,
    username: str,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    details: dict | None = None,
    restaurant_id: int | None = None,
) -> AuditLog:
    """Record one mutating call; runs after the ledger unit has committed."""
    row = AuditLog(
        restaurant_id=restaurant_id,
        username=username or "unknown",
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )
    s.add(row)
    s.commit()
    log.debug("audit %s %s:%s by %s", action, entity_type, entity_id, username)
    return row


def list_events(
    s: Session,
    restaurant_id: int,
    username: str | None = None,
    entity_type: str | None = None,
    entity_id: int | None = None,
    action: str | None = None,
    start: date | None = None,
    end: date | None = None,
    limit: int = 200,
) -> list[AuditLog]:
    q = select(AuditLog).where(AuditLog.restaurant_id == restaurant_id)
    if username:
        q = q.where(AuditLog.username == username)
    if entity_type:
        q = q.where(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        q = q.where(AuditLog.entity_id == entity_id)
    if action:
        q = q.where(AuditLog.action == action)
    if start is not None:
        q = q.where(AuditLog.created_at >= datetime.combine(start, time.min))
    if end is not None:
        q = q.where(AuditLog.created_at < datetime.combine(end + timedelta(days=1), time.min))
    q = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit)
    return s.execute(q).scalars().all()
