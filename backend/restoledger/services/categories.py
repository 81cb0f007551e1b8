import logging

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from restoledger.core.errors import ConflictError, NotFoundError
from restoledger.models.category import TransactionCategory
from restoledger.models.transaction import FinancialTransaction

log = logging.getLogger(__name__)


def require_category(s: Session, restaurant_id: int, category_id: int) -> TransactionCategory:
    c = s.execute(
        select(TransactionCategory).where(
            TransactionCategory.id == category_id,
            TransactionCategory.restaurant_id == restaurant_id,
        )
    ).scalar_one_or_none()
    if c is None:
        raise NotFoundError("category_not_found")
    return c


def list_categories(s: Session, restaurant_id: int) -> list[TransactionCategory]:
    return s.execute(
        select(TransactionCategory)
        .where(TransactionCategory.restaurant_id == restaurant_id)
        .order_by(TransactionCategory.name.asc(), TransactionCategory.id.asc())
    ).scalars().all()


def create_category(s: Session, restaurant_id: int, name: str, category_type: str) -> TransactionCategory:
    c = TransactionCategory(restaurant_id=restaurant_id, name=name, type=category_type)
    s.add(c)
    s.commit()
    s.refresh(c)
    log.info("category created restaurant=%s category=%s", restaurant_id, c.id)
    return c


def update_category(
    s: Session,
    restaurant_id: int,
    category_id: int,
    name: str | None = None,
    category_type: str | None = None,
) -> TransactionCategory:
    c = require_category(s, restaurant_id, category_id)

    if category_type is not None and category_type != c.type:
        refs = s.execute(
            select(func.count(FinancialTransaction.id)).where(FinancialTransaction.category_id == category_id)
        ).scalar_one()
        # referenced categories may only be renamed
        if refs:
            raise ConflictError("category_in_use")
        c.type = category_type

    if name is not None:
        nm = name.strip()
        if nm:
            c.name = nm

    s.add(c)
    s.commit()
    s.refresh(c)
    log.info("category updated restaurant=%s category=%s", restaurant_id, category_id)
    return c
