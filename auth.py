import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from config import get_settings
from database import get_db, new_id, utcnow
from errors import AuthenticationError
from policy import Actor
from schemas.shared import Role

logger = logging.getLogger(__name__)


@lru_cache()
def get_pwd_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(password: str) -> str:
    return get_pwd_context(get_settings().BCRYPT_ROUNDS).hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return get_pwd_context(get_settings().BCRYPT_ROUNDS).verify(plain_password, hashed_password)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str):
    settings = get_settings()
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def verify_credentials(email: str, password: str):
    """Return the user row for a matching email/password pair."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT id, email, role, password_hash FROM users WHERE email = ?", (normalize_email(email),))
        row = cursor.fetchone()
    if not row or not verify_password(password, row["password_hash"]):
        logger.warning("Failed login attempt for %s", email)
        raise AuthenticationError("Incorrect email or password.")
    return row


def create_session(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Persist a session for the user and return the bearer token bound to it.

    Sessions that have already expired are purged on the way in.
    """
    session_id = new_id()
    if expires_delta is None:
        expires_delta = timedelta(minutes=get_settings().ACCESS_TOKEN_EXPIRE_MINUTES)
    expires_at = (datetime.now(timezone.utc) + expires_delta).isoformat()
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM sessions WHERE expires_at <= ?", (utcnow(),))
        cursor.execute(
            "INSERT INTO sessions (id, user_id, created_at, expires_at) VALUES (?, ?, ?, ?)",
            (session_id, user_id, utcnow(), expires_at)
        )
        conn.commit()
    return create_access_token({"sub": user_id, "sid": session_id}, expires_delta)


def resolve_session(token: str):
    """Return (session id, Actor) for a live session token."""
    payload = decode_access_token(token)
    if not payload or not payload.get("sid") or not payload.get("sub"):
        raise AuthenticationError("Invalid or expired session.")
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT s.id AS session_id, s.expires_at, u.id, u.email, u.role
            FROM sessions s
            JOIN users u ON u.id = s.user_id
            WHERE s.id = ? AND s.user_id = ?
        """, (payload["sid"], payload["sub"]))
        row = cursor.fetchone()
    if not row:
        raise AuthenticationError("Invalid or expired session.")
    if datetime.fromisoformat(row["expires_at"]) <= datetime.now(timezone.utc):
        raise AuthenticationError("Invalid or expired session.")
    return row["session_id"], Actor(id=row["id"], email=row["email"], role=Role(row["role"]))


def revoke_session(session_id: str) -> None:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
        conn.commit()


def ensure_admin(email: str, password: str) -> Optional[str]:
    """Create an admin account unless the email is already registered."""
    email = normalize_email(email)
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT id FROM users WHERE email = ?", (email,))
        if cursor.fetchone():
            return None
        user_id = new_id()
        cursor.execute(
            "INSERT INTO users (id, email, password_hash, role, created_at) VALUES (?, ?, ?, ?, ?)",
            (user_id, email, hash_password(password), Role.ADMIN.value, utcnow())
        )
        conn.commit()
    logger.info("Bootstrap admin %s created", email)
    return user_id
