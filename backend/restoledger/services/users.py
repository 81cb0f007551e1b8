import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from restoledger.core.errors import ConflictError, NotFoundError
from restoledger.core.security import hash_password
from restoledger.models.user import User

log = logging.getLogger(__name__)


def require_user(s: Session, restaurant_id: int, user_id: int) -> User:
    user = s.execute(
        select(User).where(User.id == user_id, User.restaurant_id == restaurant_id)
    ).scalar_one_or_none()
    if user is None:
        raise NotFoundError("user_not_found")
    return user


def list_users(s: Session, restaurant_id: int) -> list[User]:
    return s.execute(
        select(User).where(User.restaurant_id == restaurant_id).order_by(User.username.asc())
    ).scalars().all()


def create_user(s: Session, restaurant_id: int, username: str, password: str, role: str) -> User:
    # usernames are global: they are the login key
    taken = s.execute(select(User.id).where(User.username == username)).scalar_one_or_none()
    if taken is not None:
        raise ConflictError("user_exists")
    user = User(restaurant_id=restaurant_id, username=username, password_hash=hash_password(password), role=role)
    s.add(user)
    s.commit()
    s.refresh(user)
    log.info("user created restaurant=%s user=%s role=%s", restaurant_id, user.id, role)
    return user


def update_user(s: Session, restaurant_id: int, user_id: int, role: str | None = None, password: str | None = None) -> User:
    user = require_user(s, restaurant_id, user_id)
    if role is not None:
        user.role = role
    if password is not None:
        user.password_hash = hash_password(password)
    s.commit()
    s.refresh(user)
    return user


def delete_user(s: Session, restaurant_id: int, user_id: int, acting_username: str) -> User:
    user = require_user(s, restaurant_id, user_id)
    if user.username == acting_username:
        raise ConflictError("cannot_delete_self")
    s.delete(user)
    s.commit()
    log.info("user deleted restaurant=%s user=%s", restaurant_id, user_id)
    return user
