from datetime import date
from io import BytesIO
import re

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from restoledger.api.deps import db, can_view, restaurant_id
from restoledger.core.errors import ValidationError
from restoledger.models.restaurant import Restaurant
from restoledger.services.reports import build_cash_flow_report

router = APIRouter(prefix="/financial/reports", tags=["reports"])


def _safe_part(v: str) -> str:
    s = (v or "").strip()
    s = re.sub(r"\s+", "_", s)
    s = re.sub(r"[^A-Za-z0-9._-]+", "_", s)
    s = re.sub(r"_+", "_", s).strip("_")
    return (s[:40] or "unknown")


@router.get("/cash-flow")
def cash_flow(
    start: date = Query(...),
    end: date = Query(...),
    s: Session = Depends(db),
    u=Depends(can_view),
    rid: int = Depends(restaurant_id),
):
    if start > end:
        raise ValidationError("start must be on or before end")

    buf = BytesIO()
    build_cash_flow_report(s, rid, start, end, buf)
    buf.seek(0)

    restaurant = s.execute(select(Restaurant).where(Restaurant.id == rid)).scalar_one()
    filename = f"{_safe_part(restaurant.name)}_cash_flow_{start}_to_{end}.xlsx"
    return StreamingResponse(
        buf,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
