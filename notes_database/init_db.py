"""
Database initialization and demo seeding.

Run this script to create all required tables in the database and seed the
demo account.
"""
import logging

from .db import engine as default_engine, SessionLocal
from .models import Base, User, Note, utcnow

logger = logging.getLogger(__name__)

DEMO_USERNAME = "user"
DEMO_EMAIL = "user@example.com"
DEMO_PASSWORD = "123"
DEMO_NOTE_TITLE = "Добро пожаловать!"
DEMO_NOTE_CONTENT = "Это ваша первая заметка. 🎉"
DEMO_NOTE_TAGS = ["важное", "приветствие"]


# PUBLIC_INTERFACE
def init_db(engine=None):
    """Initializes the database by creating all tables if they do not exist."""
    Base.metadata.create_all(bind=engine or default_engine)


# PUBLIC_INTERFACE
def seed_demo_data(db, hash_password):
    """
    Insert the demo user and its note when the store holds no users yet.
    `hash_password` turns the demo password into its stored form.
    Returns True when something was inserted.
    """
    if db.query(User).first() is not None:
        return False
    user = User(
        username=DEMO_USERNAME,
        email=DEMO_EMAIL,
        hashed_password=hash_password(DEMO_PASSWORD),
    )
    db.add(user)
    db.flush()
    now = utcnow()
    db.add(Note(
        user_id=user.id,
        title=DEMO_NOTE_TITLE,
        content=DEMO_NOTE_CONTENT,
        tags=list(DEMO_NOTE_TAGS),
        created_at=now,
        updated_at=now,
    ))
    db.commit()
    logger.info("Seeded demo user %r with one note", DEMO_USERNAME)
    return True


def main():
    from notes_backend.api.security import get_password_hash

    init_db()
    session = SessionLocal()
    try:
        seed_demo_data(session, get_password_hash)
    finally:
        session.close()
    print("Database tables created successfully.")


if __name__ == "__main__":
    main()
