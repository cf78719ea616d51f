import logging

from sqlalchemy.exc import IntegrityError

from notes_database.models import User, Note, utcnow
from .errors import ValidationError, ConflictError, AuthError, NotFoundError
from .security import get_password_hash, verify_password

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6

WELCOME_TITLE = "Добро пожаловать! 👋"
WELCOME_TAGS = ["приветствие", "инструкция"]


def welcome_content(username):
    return (
        f"Привет, {username}! Добро пожаловать в приложение для заметок. "
        "Это ваша первая заметка. Вы можете ее отредактировать или удалить."
    )


# PUBLIC_INTERFACE
class IdentityStore:
    """
    User registration, credential checks and profile lookup.
    """

    def __init__(self, db):
        self.db = db

    def get_user_by_username(self, username):
        return self.db.query(User).filter(User.username == username).first()

    def get_user_by_email(self, email):
        return self.db.query(User).filter(User.email == email).first()

    def register(self, username, email, password):
        """
        Create a user together with its welcome note.
        Returns the (user, welcome_note) pair.
        """
        missing = {"username": not username, "email": not email, "password": not password}
        if any(missing.values()):
            raise ValidationError("All fields are required.", fields=missing)
        if len(username) < MIN_USERNAME_LENGTH:
            raise ValidationError(f"Username must be at least {MIN_USERNAME_LENGTH} characters.")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        if "@" not in email:
            raise ValidationError("Invalid email.")

        if self.get_user_by_username(username):
            raise ConflictError("Username already taken.")
        if self.get_user_by_email(email):
            raise ConflictError("Email already in use.")

        user = User(username=username, email=email, hashed_password=get_password_hash(password))
        try:
            self.db.add(user)
            self.db.flush()

            now = utcnow()
            note = Note(
                user_id=user.id,
                title=WELCOME_TITLE,
                content=welcome_content(username),
                tags=list(WELCOME_TAGS),
                is_favorite=False,
                created_at=now,
                updated_at=now,
            )
            self.db.add(note)
            self.db.commit()
        except IntegrityError:
            # Lost a race with another registration for the same username or email
            self.db.rollback()
            logger.warning("Registration for %r hit a uniqueness constraint", username)
            raise ConflictError("Username or email already in use.")
        self.db.refresh(user)
        self.db.refresh(note)
        logger.info("Registered user %s (id=%s)", user.username, user.id)
        return user, note

    def authenticate(self, username, password):
        """Check an exact username/password pair for an active user and stamp last_login."""
        user = self.get_user_by_username(username)
        if user is None or not user.is_active or not verify_password(password, user.hashed_password):
            logger.warning("Failed login for %r", username)
            raise AuthError("Invalid username or password.")
        user.last_login = utcnow()
        self.db.commit()
        self.db.refresh(user)
        logger.info("User %s logged in", user.id)
        return user

    def get_profile(self, user_id):
        user = self.db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
        if user is None:
            raise NotFoundError("User not found.")
        return user

    def deactivate(self, user_id):
        user = self.get_profile(user_id)
        user.is_active = False
        self.db.commit()
        logger.info("Deactivated user %s", user_id)
        return user

    def counts(self):
        return self.db.query(User).count(), self.db.query(Note).count()
