import jwt
from fastapi import Depends, Header, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from restoledger.db.session import SessionLocal
from restoledger.core.errors import NotFoundError
from restoledger.core.security import decode_token, permissions_for
from restoledger.models.restaurant import Restaurant

bearer = HTTPBearer()

def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()

def current_user(creds: HTTPAuthorizationCredentials = Depends(bearer)):
    try:
        return decode_token(creds.credentials)
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="invalid_token")

def require_permission(permission: str):
    def _check(u=Depends(current_user)):
        perms = permissions_for(u.get("role"), bool(u.get("superadmin")))
        if "all:manage" in perms or permission in perms:
            return u
        raise HTTPException(status_code=403, detail=f"permission_required:{permission}")
    return _check

can_view = require_permission("financial:view")
can_manage = require_permission("financial:manage")
require_admin = require_permission("users:manage")

def restaurant_id(
    u=Depends(current_user),
    x_restaurant_id: int | None = Header(default=None),
    s: Session = Depends(db),
) -> int:
    # superadmins act on whichever restaurant they select
    if u.get("superadmin") and x_restaurant_id is not None:
        rid = x_restaurant_id
    else:
        rid = u.get("restaurant_id")
    if rid is None:
        if u.get("superadmin"):
            raise HTTPException(status_code=400, detail="restaurant_context_required")
        raise HTTPException(status_code=403, detail="user_without_restaurant")
    if s.get(Restaurant, int(rid)) is None:
        raise NotFoundError("restaurant_not_found")
    return int(rid)
