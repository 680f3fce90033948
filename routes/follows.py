import logging
import sqlite3
from typing import List
from fastapi import APIRouter, Depends
from database import get_db, new_id, utcnow
from errors import ConflictError, NotFoundError
from policy import Action, Actor, Resource, authorize
from routes.auth import get_user_or_404
from schemas.posts import FollowResponse
from schemas.shared import MessageResponse
from utils.route_helpers import get_current_actor, user_summary, validate_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/content", tags=["follows"])


def list_edges(column: str, user_id: str, populate: str) -> List[FollowResponse]:
    """Edges where `column` equals user_id, with the user on the `populate` side joined in."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(f"""
            SELECT f.id, f.follower_id, f.following_id, f.created_at,
                   u.id AS other_id, u.email AS other_email, u.role AS other_role
            FROM follows f
            LEFT JOIN users u ON u.id = f.{populate}_id
            WHERE f.{column}_id = ?
            ORDER BY f.created_at DESC, f.rowid DESC
        """, (user_id,))
        rows = cursor.fetchall()
    return [
        FollowResponse(
            id=r["id"],
            follower_id=r["follower_id"],
            following_id=r["following_id"],
            created_at=r["created_at"],
            **{populate: user_summary(r, "other_")}
        )
        for r in rows
    ]


@router.post("/follow/{user_id}", response_model=FollowResponse, status_code=201)
def follow_user(user_id: str, actor: Actor = Depends(get_current_actor)):
    user_id = validate_object_id(user_id, "User ID")
    authorize(actor, Action.FOLLOW, Resource(owner_id=user_id))
    get_user_or_404(user_id)
    follow_id = new_id()
    created_at = utcnow()
    with get_db() as conn:
        cursor = conn.cursor()
        try:
            cursor.execute(
                "INSERT INTO follows (id, follower_id, following_id, created_at) VALUES (?, ?, ?, ?)",
                (follow_id, actor.id, user_id, created_at)
            )
        except sqlite3.IntegrityError:
            raise ConflictError("You are already following this user.")
        conn.commit()
    logger.info("User %s followed %s", actor.id, user_id)
    return FollowResponse(id=follow_id, follower_id=actor.id, following_id=user_id, created_at=created_at)


@router.delete("/unfollow/{user_id}", response_model=MessageResponse)
def unfollow_user(user_id: str, actor: Actor = Depends(get_current_actor)):
    user_id = validate_object_id(user_id, "User ID")
    authorize(actor, Action.UNFOLLOW, Resource(owner_id=user_id))
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM follows WHERE follower_id = ? AND following_id = ?", (actor.id, user_id))
        if cursor.rowcount == 0:
            raise NotFoundError("You are not following this user.")
        conn.commit()
    return MessageResponse(detail="Successfully unfollowed user.")


@router.get("/followers/{user_id}", response_model=List[FollowResponse])
def get_followers(user_id: str, actor: Actor = Depends(get_current_actor)):
    """Users who follow user_id."""
    return list_edges("following", validate_object_id(user_id, "User ID"), populate="follower")


@router.get("/following/{user_id}", response_model=List[FollowResponse])
def get_following(user_id: str, actor: Actor = Depends(get_current_actor)):
    """Users that user_id follows."""
    return list_edges("follower", validate_object_id(user_id, "User ID"), populate="following")
