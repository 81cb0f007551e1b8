from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from restoledger.api.deps import db, can_view, can_manage, restaurant_id
from restoledger.schemas.category import CategoryCreate, CategoryOut, CategoryUpdate
from restoledger.services.audit import log_event
from restoledger.services.categories import create_category, list_categories, update_category

router = APIRouter(prefix="/financial/categories", tags=["categories"])


@router.get("", response_model=list[CategoryOut])
def list_all(s: Session = Depends(db), u=Depends(can_view), rid: int = Depends(restaurant_id)):
    return list_categories(s, rid)


@router.post("", response_model=CategoryOut, status_code=201)
def create(body: CategoryCreate, s: Session = Depends(db), u=Depends(can_manage), rid: int = Depends(restaurant_id)):
    c = create_category(s, rid, body.name, body.type)
    log_event(s, username=u.get("sub"), action="category.create", entity_type="category", entity_id=c.id, details={"name": c.name, "type": c.type}, restaurant_id=rid)
    return c


@router.put("/{category_id}", response_model=CategoryOut)
def update(category_id: int, body: CategoryUpdate, s: Session = Depends(db), u=Depends(can_manage), rid: int = Depends(restaurant_id)):
    c = update_category(s, rid, category_id, name=body.name, category_type=body.type)
    log_event(s, username=u.get("sub"), action="category.update", entity_type="category", entity_id=c.id, details={"name": c.name, "type": c.type}, restaurant_id=rid)
    return c
