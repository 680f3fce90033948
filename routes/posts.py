import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
import cascade
import moderation
from database import get_db, new_id, utcnow
from errors import InternalError, NotFoundError, ValidationError
from file_utils import get_post_media_url, infer_media_type, release_media, save_post_media
from policy import Action, Actor, Resource, authorize
from routes.comments import get_post_comments
from schemas.posts import MAX_CAPTION_LENGTH, CascadeResponse, LikeResponse, ModerationRequest, PostResponse, PostUpdate, ShareResponse
from schemas.shared import ModerationStatus
from utils.route_helpers import get_current_actor, user_summary, validate_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/content", tags=["posts"])

POST_SELECT = """
    SELECT p.id, p.user_id, p.media_url, p.media_type, p.caption, p.share_count, p.status, p.created_at,
           u.id AS author_id, u.email AS author_email, u.role AS author_role
    FROM posts p
    LEFT JOIN users u ON u.id = p.user_id
"""


def get_post_row(post_id: str):
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(POST_SELECT + " WHERE p.id = ?", (post_id,))
        return cursor.fetchone()


def get_post_or_404(post_id: str):
    row = get_post_row(post_id)
    if not row:
        raise NotFoundError("Post not found.")
    return row


def get_post_likes(post_id: str) -> List[str]:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT user_id FROM post_likes WHERE post_id = ? ORDER BY created_at ASC", (post_id,))
        return [r["user_id"] for r in cursor.fetchall()]


def get_post_response(row) -> PostResponse:
    likes = get_post_likes(row["id"])
    return PostResponse(
        id=row["id"],
        user=user_summary(row, "author_"),
        media_url=get_post_media_url(row["media_url"]),
        media_type=row["media_type"],
        caption=row["caption"],
        likes=likes,
        like_count=len(likes),
        comments=get_post_comments(row["id"]),
        share_count=row["share_count"],
        created_at=row["created_at"],
        status=row["status"],
    )


def list_posts(where: str, params: tuple, order: str = "DESC") -> List[PostResponse]:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(f"{POST_SELECT} WHERE {where} ORDER BY p.created_at {order}, p.rowid {order}", params)
        rows = cursor.fetchall()
    return [get_post_response(r) for r in rows]


def count_likes(cursor, post_id: str) -> int:
    cursor.execute("SELECT COUNT(*) FROM post_likes WHERE post_id = ?", (post_id,))
    return cursor.fetchone()[0]


@router.post("/upload", response_model=PostResponse, status_code=201)
def upload_post(
    media: Optional[UploadFile] = File(None),
    caption: Optional[str] = Form(None),
    actor: Actor = Depends(get_current_actor)
):
    if media is None:
        raise ValidationError("No file uploaded.")
    if caption is not None and len(caption) > MAX_CAPTION_LENGTH:
        raise ValidationError(f"Caption must be at most {MAX_CAPTION_LENGTH} characters long")
    media_type = infer_media_type(media.content_type)
    locator = save_post_media(media.file.read(), media.filename, media_type)
    post_id = new_id()
    try:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO posts (id, user_id, media_url, media_type, caption, share_count, status, created_at) "
                "VALUES (?, ?, ?, ?, ?, 0, ?, ?)",
                (post_id, actor.id, locator, media_type.value, caption, ModerationStatus.PENDING.value, utcnow())
            )
            conn.commit()
    except InternalError:
        release_media(locator)
        raise
    logger.info("User %s uploaded %s post %s", actor.id, media_type.value, post_id)
    return get_post_response(get_post_or_404(post_id))


@router.get("", response_model=List[PostResponse])
def list_approved_posts(actor: Actor = Depends(get_current_actor)):
    """Public feed, newest first."""
    return list_posts("p.status = ?", (ModerationStatus.APPROVED.value,))


@router.get("/pending-moderation", response_model=List[PostResponse])
def list_pending_posts(actor: Actor = Depends(get_current_actor)):
    """Admin: moderation queue, oldest first."""
    authorize(actor, Action.MODERATE_POST)
    return list_posts("p.status = ?", (ModerationStatus.PENDING.value,), order="ASC")


@router.get("/shared/{post_id}", response_model=PostResponse)
def get_shared_post(post_id: str):
    """Public link to an approved post; no session required."""
    post_id = validate_object_id(post_id, "Post ID")
    row = get_post_row(post_id)
    if not row or not moderation.can_view(None, row["user_id"], ModerationStatus(row["status"])):
        raise NotFoundError("Post not found or not available for sharing.")
    return get_post_response(row)


@router.get("/user/{user_id}", response_model=List[PostResponse])
def list_user_posts(user_id: str, actor: Actor = Depends(get_current_actor)):
    user_id = validate_object_id(user_id, "User ID")
    statuses = [s.value for s in moderation.visible_statuses(actor)]
    placeholders = ", ".join("?" for _ in statuses)
    return list_posts(f"p.user_id = ? AND p.status IN ({placeholders})", (user_id, *statuses))


@router.get("/{post_id}", response_model=PostResponse)
def get_post(post_id: str, actor: Actor = Depends(get_current_actor)):
    row = get_post_or_404(validate_object_id(post_id, "Post ID"))
    authorize(actor, Action.VIEW_POST, Resource(owner_id=row["user_id"], status=ModerationStatus(row["status"])))
    return get_post_response(row)


@router.put("/{post_id}", response_model=PostResponse)
def update_post(post_id: str, post: PostUpdate, actor: Actor = Depends(get_current_actor)):
    post_id = validate_object_id(post_id, "Post ID")
    row = get_post_or_404(post_id)
    authorize(actor, Action.EDIT_POST, Resource(owner_id=row["user_id"]))
    fields = post.dict(exclude_unset=True)
    if "caption" in fields:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("UPDATE posts SET caption = ? WHERE id = ?", (fields["caption"], post_id))
            conn.commit()
    return get_post_response(get_post_or_404(post_id))


@router.delete("/{post_id}", response_model=CascadeResponse)
def delete_post(post_id: str, actor: Actor = Depends(get_current_actor)):
    post_id = validate_object_id(post_id, "Post ID")
    row = get_post_or_404(post_id)
    authorize(actor, Action.DELETE_POST, Resource(owner_id=row["user_id"]))
    report = cascade.delete_post(post_id, row["media_url"])
    logger.info("User %s deleted post %s", actor.id, post_id)
    return CascadeResponse(
        detail="Post and associated comments deleted successfully.",
        deleted=report.deleted,
        failed_steps=report.failed_steps,
    )


@router.post("/{post_id}/like", response_model=LikeResponse)
def like_post(post_id: str, actor: Actor = Depends(get_current_actor)):
    post_id = validate_object_id(post_id, "Post ID")
    authorize(actor, Action.LIKE)
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT 1 FROM posts WHERE id = ?", (post_id,))
        if not cursor.fetchone():
            raise NotFoundError("Post not found.")
        # Primary key (post_id, user_id) makes a repeated like a no-op.
        cursor.execute(
            "INSERT OR IGNORE INTO post_likes (post_id, user_id, created_at) VALUES (?, ?, ?)",
            (post_id, actor.id, utcnow())
        )
        likes = count_likes(cursor, post_id)
        conn.commit()
    return LikeResponse(id=post_id, likes=likes)


@router.delete("/{post_id}/unlike", response_model=LikeResponse)
def unlike_post(post_id: str, actor: Actor = Depends(get_current_actor)):
    post_id = validate_object_id(post_id, "Post ID")
    authorize(actor, Action.UNLIKE)
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT 1 FROM posts WHERE id = ?", (post_id,))
        if not cursor.fetchone():
            raise NotFoundError("Post not found.")
        cursor.execute("DELETE FROM post_likes WHERE post_id = ? AND user_id = ?", (post_id, actor.id))
        likes = count_likes(cursor, post_id)
        conn.commit()
    return LikeResponse(id=post_id, likes=likes)


@router.put("/{post_id}/moderate", response_model=PostResponse)
def moderate_post(post_id: str, req: ModerationRequest, actor: Actor = Depends(get_current_actor)):
    """Admin: approve or reject a post."""
    post_id = validate_object_id(post_id, "Post ID")
    row = get_post_or_404(post_id)
    new_status = moderation.transition(actor, ModerationStatus(row["status"]), req.status)
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("UPDATE posts SET status = ? WHERE id = ?", (new_status.value, post_id))
        conn.commit()
    logger.info("Admin %s moved post %s from %s to %s", actor.id, post_id, row["status"], new_status.value)
    return get_post_response(get_post_or_404(post_id))


@router.post("/{post_id}/share", response_model=ShareResponse)
def share_post(post_id: str, actor: Actor = Depends(get_current_actor)):
    post_id = validate_object_id(post_id, "Post ID")
    authorize(actor, Action.SHARE)
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("UPDATE posts SET share_count = share_count + 1 WHERE id = ?", (post_id,))
        if cursor.rowcount == 0:
            raise NotFoundError("Post not found.")
        cursor.execute("SELECT share_count FROM posts WHERE id = ?", (post_id,))
        share_count = cursor.fetchone()["share_count"]
        conn.commit()
    return ShareResponse(id=post_id, share_count=share_count)
