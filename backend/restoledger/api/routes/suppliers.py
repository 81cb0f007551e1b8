from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from restoledger.api.deps import db, can_view, can_manage, restaurant_id
from restoledger.schemas.supplier import SupplierIn, SupplierOut
from restoledger.services.audit import log_event
from restoledger.services.suppliers import create_supplier, delete_supplier, list_suppliers, update_supplier

router = APIRouter(prefix="/financial/suppliers", tags=["suppliers"])


@router.get("", response_model=list[SupplierOut])
def list_all(s: Session = Depends(db), u=Depends(can_view), rid: int = Depends(restaurant_id)):
    return list_suppliers(s, rid)


@router.post("", response_model=SupplierOut, status_code=201)
def create(body: SupplierIn, s: Session = Depends(db), u=Depends(can_manage), rid: int = Depends(restaurant_id)):
    sp = create_supplier(s, rid, body.model_dump())
    log_event(s, username=u.get("sub"), action="supplier.create", entity_type="supplier", entity_id=sp.id, details={"name": sp.name}, restaurant_id=rid)
    return sp


@router.put("/{supplier_id}", response_model=SupplierOut)
def update(supplier_id: int, body: SupplierIn, s: Session = Depends(db), u=Depends(can_manage), rid: int = Depends(restaurant_id)):
    sp = update_supplier(s, rid, supplier_id, body.changes())
    log_event(s, username=u.get("sub"), action="supplier.update", entity_type="supplier", entity_id=sp.id, details={"name": sp.name}, restaurant_id=rid)
    return sp


@router.delete("/{supplier_id}", status_code=204)
def delete(supplier_id: int, s: Session = Depends(db), u=Depends(can_manage), rid: int = Depends(restaurant_id)):
    sp = delete_supplier(s, rid, supplier_id)
    log_event(s, username=u.get("sub"), action="supplier.delete", entity_type="supplier", entity_id=supplier_id, details={"name": sp.name}, restaurant_id=rid)
    return Response(status_code=204)
