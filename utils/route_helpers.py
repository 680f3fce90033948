import re
from typing import Optional
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from auth import resolve_session
from errors import AuthenticationError, ValidationError
from policy import Action, Actor, authorize

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def validate_object_id(value: str, label: str = "ID") -> str:
    """Reject malformed identifiers before they reach the store."""
    if not OBJECT_ID_PATTERN.match(value or ""):
        raise ValidationError(f"Invalid {label} format.")
    return value.lower()


def get_current_session(token: Optional[str] = Depends(oauth2_scheme)):
    if not token:
        raise AuthenticationError("User not authenticated.")
    return resolve_session(token)


def get_current_actor(session=Depends(get_current_session)) -> Actor:
    return session[1]


def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    authorize(actor, Action.MANAGE_USERS)
    return actor


def user_summary(row, prefix: str = "") -> Optional[dict]:
    """Public view of a user joined into another record; None if the user is gone."""
    if row[f"{prefix}id"] is None:
        return None
    return {"id": row[f"{prefix}id"], "email": row[f"{prefix}email"], "role": row[f"{prefix}role"]}
