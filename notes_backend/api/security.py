"""
Password hashing and session tokens.

A session token is an HS256 JWT whose `sub` claim is the user id. Tokens are
signed and expire; the server keeps no session table.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from notes_database.models import User
from .config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from .errors import AuthError

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


# PUBLIC_INTERFACE
def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Generates JWT access token for the given user id."""
    expire = datetime.now(timezone.utc) + (
        expires_delta if expires_delta is not None else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return jwt.encode({"sub": str(user_id), "exp": expire}, SECRET_KEY, algorithm=ALGORITHM)


def _strip_scheme(token: str) -> str:
    scheme, _, rest = token.strip().partition(" ")
    if rest and scheme.lower() == "bearer":
        return rest.strip()
    return token.strip()


# PUBLIC_INTERFACE
def decode_token(token: Optional[str]) -> int:
    """
    Turn a presented token into a user id.
    Accepts a bare token or one prefixed with "Bearer".
    """
    if not token or not token.strip():
        raise AuthError("Authorization required.")
    try:
        payload = jwt.decode(_strip_scheme(token), SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        logger.warning("Rejected token: bad signature, malformed or expired")
        raise AuthError("Invalid token.")
    sub = payload.get("sub")
    try:
        return int(sub)
    except (TypeError, ValueError):
        logger.warning("Rejected token: non-numeric subject")
        raise AuthError("Invalid token.")


# PUBLIC_INTERFACE
class SessionValidator:
    """Maps a presented token to the active user it was issued for."""

    def __init__(self, db):
        self.db = db

    def resolve(self, token: Optional[str]) -> User:
        user_id = decode_token(token)
        user = self.db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
        if user is None:
            logger.warning("Rejected token for unknown or inactive user %s", user_id)
            raise AuthError("User not found.")
        return user
