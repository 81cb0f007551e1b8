from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from restoledger.api.deps import db, require_admin, restaurant_id
from restoledger.schemas.user import UserCreate, UserOut, UserUpdate
from restoledger.services import users as user_service
from restoledger.services.audit import log_event

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserOut])
def list_users(s: Session = Depends(db), u=Depends(require_admin), rid: int = Depends(restaurant_id)):
    return user_service.list_users(s, rid)


@router.post("", response_model=UserOut, status_code=201)
def create_user(body: UserCreate, s: Session = Depends(db), u=Depends(require_admin), rid: int = Depends(restaurant_id)):
    user = user_service.create_user(s, rid, body.username, body.password, body.role)
    log_event(
        s,
        username=u.get("sub"),
        action="user.create",
        entity_type="user",
        entity_id=user.id,
        details={"username": user.username, "role": user.role},
        restaurant_id=rid,
    )
    return user


@router.patch("/{user_id}", response_model=UserOut)
def update_user(user_id: int, body: UserUpdate, s: Session = Depends(db), u=Depends(require_admin), rid: int = Depends(restaurant_id)):
    user = user_service.update_user(s, rid, user_id, role=body.role, password=body.password)
    log_event(
        s,
        username=u.get("sub"),
        action="user.update",
        entity_type="user",
        entity_id=user.id,
        details={"role": user.role, "password_changed": body.password is not None},
        restaurant_id=rid,
    )
    return user


@router.delete("/{user_id}", status_code=204)
def delete_user(user_id: int, s: Session = Depends(db), u=Depends(require_admin), rid: int = Depends(restaurant_id)):
    user = user_service.delete_user(s, rid, user_id, u.get("sub"))
    log_event(
        s,
        username=u.get("sub"),
        action="user.delete",
        entity_type="user",
        entity_id=user_id,
        details={"username": user.username, "role": user.role},
        restaurant_id=rid,
    )
    return Response(status_code=204)
