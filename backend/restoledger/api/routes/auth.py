import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import select
from restoledger.api.deps import db
from restoledger.schemas.auth import LoginIn, TokenOut
from restoledger.models.user import User
from restoledger.core.security import verify_password, create_access_token

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/login", response_model=TokenOut)
def login(body: LoginIn, s: Session = Depends(db)):
    username = body.username.strip().lower()
    u = s.execute(select(User).where(User.username == username)).scalar_one_or_none()
    if not u or not verify_password(body.password, u.password_hash):
        log.warning("failed login for %r", username)
        raise HTTPException(status_code=401, detail="bad_credentials")
    if u.restaurant_id is None and not u.is_superadmin:
        raise HTTPException(status_code=403, detail="user_without_restaurant")
    token = create_access_token(
        sub=u.username,
        role=u.role,
        restaurant_id=u.restaurant_id,
        superadmin=bool(u.is_superadmin),
    )
    return {
        "access_token": token,
        "role": u.role,
        "restaurant_id": u.restaurant_id,
        "is_superadmin": bool(u.is_superadmin),
    }
