import logging
import os
from sqlalchemy import select
from restoledger.core.logging import setup_logging
from restoledger.db.session import SessionLocal
from restoledger.models.restaurant import Restaurant
from restoledger.models.user import User
from restoledger.core.security import hash_password

log = logging.getLogger(__name__)

def main():
    setup_logging()
    slug = os.environ.get("SEED_RESTAURANT_SLUG", "demo")
    name = os.environ.get("SEED_RESTAURANT_NAME", "Demo Restaurant")
    username = os.environ.get("SEED_ADMIN_USER", "admin")
    password = os.environ.get("SEED_ADMIN_PASS", "admin123")

    db = SessionLocal()
    try:
        restaurant = db.execute(select(Restaurant).where(Restaurant.slug == slug)).scalar_one_or_none()
        if restaurant is None:
            restaurant = Restaurant(name=name, slug=slug)
            db.add(restaurant)
            db.flush()
            log.info("seeded restaurant %s", slug)

        existing = db.execute(select(User).where(User.username == username)).scalar_one_or_none()
        if existing is None:
            db.add(User(restaurant_id=restaurant.id, username=username, password_hash=hash_password(password), role="admin"))
            log.info("seeded admin user %s", username)
        db.commit()
    finally:
        db.close()

if __name__ == "__main__":
    main()
