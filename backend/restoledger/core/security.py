from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from restoledger.core.config import settings

pwd = CryptContext(schemes=["bcrypt"], deprecated="auto")

ROLE_PERMISSIONS: dict[str, set[str]] = {
    "viewer": {"financial:view"},
    "manager": {"financial:view", "financial:manage"},
    "admin": {"financial:view", "financial:manage", "users:manage"},
}

def _clip(p: str) -> str:
    # bcrypt only looks at the first 72 bytes
    b = p.encode("utf-8")
    if len(b) > 72:
        p = b[:72].decode("utf-8", errors="ignore")
    return p

def hash_password(p: str) -> str:
    if p is None:
        raise ValueError("password is required")
    return pwd.hash(_clip(str(p)))

def verify_password(p: str, hashed: str) -> bool:
    if p is None or hashed is None:
        return False
    return pwd.verify(_clip(str(p)), hashed)

def permissions_for(role: str | None, superadmin: bool = False) -> set[str]:
    if superadmin:
        return {"all:manage"}
    return set(ROLE_PERMISSIONS.get((role or "").lower(), set()))

def create_access_token(sub: str, role: str, restaurant_id: int | None = None, superadmin: bool = False) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": sub,
        "role": role,
        "restaurant_id": restaurant_id,
        "superadmin": bool(superadmin),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.jwt_expires_min)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)

def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
