from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from restoledger.api.deps import db, require_admin, restaurant_id
from restoledger.core.errors import ValidationError
from restoledger.schemas.audit import AuditOut
from restoledger.services.audit import list_events

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("", response_model=list[AuditOut])
def list_audit(
    s: Session = Depends(db),
    admin=Depends(require_admin),
    rid: int = Depends(restaurant_id),
    username: str | None = Query(default=None),
    entity_type: str | None = Query(default=None, alias="entityType"),
    entity_id: int | None = Query(default=None, alias="entityId"),
    action: str | None = Query(default=None),
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
):
    if start and end and start > end:
        raise ValidationError("start must be on or before end")
    return list_events(
        s,
        rid,
        username=username,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        start=start,
        end=end,
        limit=limit,
    )
