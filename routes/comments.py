import logging
from typing import List
from fastapi import APIRouter, Depends
import cascade
from database import get_db, new_id, utcnow
from errors import NotFoundError, ValidationError
from policy import Action, Actor, Resource, authorize
from schemas.posts import CommentCreate, CommentResponse
from schemas.shared import MessageResponse
from utils.route_helpers import get_current_actor, user_summary, validate_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/content", tags=["comments"])

COMMENT_SELECT = """
    SELECT c.id, c.post_id, c.user_id, c.text, c.created_at,
           u.id AS author_id, u.email AS author_email, u.role AS author_role
    FROM comments c
    LEFT JOIN users u ON u.id = c.user_id
"""


def comment_from_row(row) -> CommentResponse:
    return CommentResponse(
        id=row["id"],
        post_id=row["post_id"],
        user=user_summary(row, "author_"),
        text=row["text"],
        created_at=row["created_at"],
    )


def get_comment_row(comment_id: str):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(COMMENT_SELECT + " WHERE c.id = ?", (comment_id,))
        return cursor.fetchone()


def get_post_comments(post_id: str) -> List[CommentResponse]:
    """Comments on a post in the order they were added."""
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(COMMENT_SELECT + " WHERE c.post_id = ? ORDER BY c.created_at ASC, c.rowid ASC", (post_id,))
        return [comment_from_row(r) for r in cursor.fetchall()]


def get_post_owner(post_id: str):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT user_id FROM posts WHERE id = ?", (post_id,))
        row = cursor.fetchone()
        return row["user_id"] if row else None


@router.post("/{post_id}/comment", response_model=CommentResponse, status_code=201)
def create_comment(post_id: str, comment: CommentCreate, actor: Actor = Depends(get_current_actor)):
    post_id = validate_object_id(post_id, "Post ID")
    if not comment.text:
        raise ValidationError("Comment text is required.")
    authorize(actor, Action.CREATE_COMMENT)
    if get_post_owner(post_id) is None:
        raise NotFoundError("Post not found.")
    comment_id = new_id()
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "INSERT INTO comments (id, post_id, user_id, text, created_at) VALUES (?, ?, ?, ?, ?)",
            (comment_id, post_id, actor.id, comment.text, utcnow())
        )
        conn.commit()
    return comment_from_row(get_comment_row(comment_id))


@router.put("/comment/{comment_id}", response_model=CommentResponse)
def update_comment(comment_id: str, comment: CommentCreate, actor: Actor = Depends(get_current_actor)):
    comment_id = validate_object_id(comment_id, "Comment ID")
    if not comment.text:
        raise ValidationError("New comment text is required.")
    row = get_comment_row(comment_id)
    if not row:
        raise NotFoundError("Comment not found.")
    authorize(actor, Action.EDIT_COMMENT, Resource(owner_id=row["user_id"]))
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("UPDATE comments SET text = ? WHERE id = ?", (comment.text, comment_id))
        conn.commit()
    return comment_from_row(get_comment_row(comment_id))


@router.delete("/comment/{comment_id}", response_model=MessageResponse)
def delete_comment(comment_id: str, actor: Actor = Depends(get_current_actor)):
    comment_id = validate_object_id(comment_id, "Comment ID")
    row = get_comment_row(comment_id)
    if not row:
        raise NotFoundError("Comment not found.")
    # The parent post may already be gone; then only author/admin rules apply.
    post_owner_id = get_post_owner(row["post_id"])
    authorize(actor, Action.DELETE_COMMENT, Resource(owner_id=row["user_id"], post_owner_id=post_owner_id))
    cascade.delete_comment(comment_id)
    return MessageResponse(detail="Comment deleted successfully.")
