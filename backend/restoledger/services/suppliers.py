import logging

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from restoledger.core.errors import ConflictError, NotFoundError, ValidationError
from restoledger.models.supplier import Supplier
from restoledger.models.transaction import FinancialTransaction

log = logging.getLogger(__name__)

_FIELDS = ("name", "cnpj", "email", "phone", "contact_name", "address", "city", "state")


def require_supplier(s: Session, restaurant_id: int, supplier_id: int) -> Supplier:
    sp = s.execute(
        select(Supplier).where(Supplier.id == supplier_id, Supplier.restaurant_id == restaurant_id)
    ).scalar_one_or_none()
    if sp is None:
        raise NotFoundError("supplier_not_found")
    return sp


def list_suppliers(s: Session, restaurant_id: int) -> list[Supplier]:
    return s.execute(
        select(Supplier).where(Supplier.restaurant_id == restaurant_id).order_by(Supplier.name.asc(), Supplier.id.asc())
    ).scalars().all()


def create_supplier(s: Session, restaurant_id: int, data: dict) -> Supplier:
    if not data.get("name"):
        raise ValidationError("supplier name is required")
    sp = Supplier(restaurant_id=restaurant_id, **{k: data.get(k) for k in _FIELDS})
    s.add(sp)
    s.commit()
    s.refresh(sp)
    log.info("supplier created restaurant=%s supplier=%s", restaurant_id, sp.id)
    return sp


def update_supplier(s: Session, restaurant_id: int, supplier_id: int, changes: dict) -> Supplier:
    sp = require_supplier(s, restaurant_id, supplier_id)
    if "name" in changes and not changes["name"]:
        raise ValidationError("supplier name is required")
    for k, v in changes.items():
        if k in _FIELDS:
            setattr(sp, k, v)
    s.add(sp)
    s.commit()
    s.refresh(sp)
    log.info("supplier updated restaurant=%s supplier=%s", restaurant_id, supplier_id)
    return sp


def delete_supplier(s: Session, restaurant_id: int, supplier_id: int) -> Supplier:
    sp = require_supplier(s, restaurant_id, supplier_id)
    refs = s.execute(
        select(func.count(FinancialTransaction.id)).where(FinancialTransaction.supplier_id == supplier_id)
    ).scalar_one()
    if refs:
        raise ConflictError("supplier_has_transactions")
    s.delete(sp)
    s.commit()
    log.info("supplier deleted restaurant=%s supplier=%s", restaurant_id, supplier_id)
    return sp
