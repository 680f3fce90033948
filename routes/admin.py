import logging
from typing import List
from fastapi import APIRouter, Depends
import cascade
from database import get_db
from errors import ValidationError
from policy import Action, Actor, Resource, authorize
from routes.auth import get_user_or_404
from schemas.auth import ProfileResponse, RoleUpdate
from schemas.posts import CascadeResponse
from schemas.shared import Role
from utils.route_helpers import require_admin, validate_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/admin", tags=["admin"])


def count_admins() -> int:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT COUNT(*) FROM users WHERE role = ?", (Role.ADMIN.value,))
        return cursor.fetchone()[0]


@router.get("/users", response_model=List[ProfileResponse])
def list_users(admin: Actor = Depends(require_admin)):
    """Admin: all accounts, newest first."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT id, email, role, created_at FROM users ORDER BY created_at DESC, rowid DESC")
        rows = cursor.fetchall()
    return [ProfileResponse(**dict(r)) for r in rows]


@router.get("/users/{user_id}", response_model=ProfileResponse)
def get_user(user_id: str, admin: Actor = Depends(require_admin)):
    row = get_user_or_404(validate_object_id(user_id, "User ID"))
    return ProfileResponse(**dict(row))


@router.put("/users/{user_id}", response_model=ProfileResponse)
def update_user_role(user_id: str, update: RoleUpdate, admin: Actor = Depends(require_admin)):
    """Admin: change a user's role."""
    user_id = validate_object_id(user_id, "User ID")
    authorize(admin, Action.CHANGE_ROLE, Resource(owner_id=user_id))
    row = get_user_or_404(user_id)
    if row["role"] == Role.ADMIN.value and update.role != Role.ADMIN and count_admins() <= 1:
        logger.warning("Demoting %s leaves no admin account", user_id)
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("UPDATE users SET role = ? WHERE id = ?", (update.role.value, user_id))
        conn.commit()
    logger.info("Admin %s set role of %s to %s", admin.id, user_id, update.role.value)
    return ProfileResponse(**dict(get_user_or_404(user_id)))


@router.delete("/users/{user_id}", response_model=CascadeResponse)
def delete_user(user_id: str, admin: Actor = Depends(require_admin)):
    """Admin: delete an account with its posts, comments, likes, follows and sessions."""
    user_id = validate_object_id(user_id, "User ID")
    authorize(admin, Action.DELETE_USER, Resource(owner_id=user_id))
    if user_id == admin.id:
        raise ValidationError("Admins cannot delete their own account.")
    get_user_or_404(user_id)
    report = cascade.delete_user(user_id)
    if not report.complete:
        logger.error("User %s deleted with failed cleanup steps: %s", user_id, ", ".join(report.failed_steps))
    logger.info("Admin %s deleted user %s", admin.id, user_id)
    return CascadeResponse(
        detail="User and associated data deleted successfully.",
        deleted=report.deleted,
        failed_steps=report.failed_steps,
    )
