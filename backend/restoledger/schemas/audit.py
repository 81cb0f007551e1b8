from datetime import datetime

from restoledger.schemas.common import CamelModel


class AuditOut(CamelModel):
    id: int
    created_at: datetime
    restaurant_id: int | None = None
    username: str
    action: str
    entity_type: str
    entity_id: int | None
    details: dict | None
