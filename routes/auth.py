import logging
import sqlite3
from fastapi import APIRouter, Body, Depends
from auth import create_session, hash_password, normalize_email, revoke_session, verify_credentials
from database import get_db, new_id, utcnow
from errors import ConflictError, NotFoundError, ValidationError
from policy import Actor
from schemas.auth import RegisterRequest, LoginRequest, LoginResponse, UserResponse, ProfileResponse, ProfileUpdate
from schemas.shared import MessageResponse, Role
from utils.route_helpers import get_current_actor, get_current_session, validate_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])

# Never writable through the profile endpoint.
PROTECTED_PROFILE_FIELDS = {"id", "_id", "role", "password", "password_hash", "created_at"}


def get_user_by_id(user_id: str):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT id, email, role, created_at FROM users WHERE id = ?", (user_id,))
        return cursor.fetchone()


def get_user_or_404(user_id: str):
    row = get_user_by_id(user_id)
    if not row:
        raise NotFoundError("User not found.")
    return row


@router.post("/register", response_model=UserResponse, status_code=201)
def register(user: RegisterRequest):
    if not user.email or not user.password:
        raise ValidationError("Email and password are required.")
    if user.role is not None and user.role != Role.USER:
        # Elevated roles are granted by an admin, never self-declared.
        logger.warning("Registration for %s requested role %s; storing role user", user.email, user.role.value)
    user_id = new_id()
    hashed = hash_password(user.password)
    with get_db() as conn:
        cursor = conn.cursor()
        try:
            cursor.execute(
                "INSERT INTO users (id, email, password_hash, role, created_at) VALUES (?, ?, ?, ?, ?)",
                (user_id, user.email, hashed, Role.USER.value, utcnow())
            )
        except sqlite3.IntegrityError:
            raise ConflictError("Email address already registered.")
        conn.commit()
    logger.info("Registered user %s", user_id)
    return UserResponse(id=user_id, email=user.email, role=Role.USER)


@router.post("/login", response_model=LoginResponse)
def login(login_data: LoginRequest):
    if not login_data.email or not login_data.password:
        raise ValidationError("Email and password are required.")
    user = verify_credentials(login_data.email, login_data.password)
    access_token = create_session(user["id"])
    return LoginResponse(id=user["id"], email=user["email"], role=user["role"], access_token=access_token)


@router.post("/logout", response_model=MessageResponse)
def logout(session=Depends(get_current_session)):
    session_id, actor = session
    revoke_session(session_id)
    logger.info("User %s logged out", actor.id)
    return MessageResponse(detail="Successfully logged out.")


@router.get("/profile", response_model=ProfileResponse)
def get_profile(actor: Actor = Depends(get_current_actor)):
    row = get_user_or_404(actor.id)
    return ProfileResponse(**dict(row))


@router.put("/profile", response_model=ProfileResponse)
def update_profile(updates: dict = Body(...), actor: Actor = Depends(get_current_actor)):
    cleaned = {k: v for k, v in updates.items() if k not in PROTECTED_PROFILE_FIELDS}
    try:
        profile = ProfileUpdate(**cleaned)
    except ValueError as exc:
        raise ValidationError(str(exc))
    if profile.email is not None and profile.email != actor.email:
        with get_db() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute("UPDATE users SET email = ? WHERE id = ?", (normalize_email(profile.email), actor.id))
            except sqlite3.IntegrityError:
                raise ConflictError("Email address already registered.")
            conn.commit()
    row = get_user_or_404(actor.id)
    return ProfileResponse(**dict(row))


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(user_id: str, actor: Actor = Depends(get_current_actor)):
    row = get_user_or_404(validate_object_id(user_id, "User ID"))
    return UserResponse(id=row["id"], email=row["email"], role=row["role"])
