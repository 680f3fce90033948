"""Referential cleanup for user, post and comment deletion.

The store enforces no foreign keys, so removing a user or a post runs an
ordered pipeline of delete steps. Every step is idempotent and commits on its
own connection: a failed step is logged and recorded, later steps still run,
and only a failure of the final root-record step is raised to the caller.
There is no rollback.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence
from database import get_db
from errors import InternalError
from file_utils import release_media

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CascadeStep:
    name: str
    run: Callable[[], int]
    root: bool = False


@dataclass
class CascadeReport:
    deleted: Dict[str, int] = field(default_factory=dict)
    failed_steps: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_steps


def _execute(sql: str, params: tuple) -> int:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(sql, params)
        conn.commit()
        return cursor.rowcount


def _delete(sql: str, *params) -> Callable[[], int]:
    return lambda: _execute(sql, params)


def _release_all(locators: Callable[[], Sequence[str]]) -> Callable[[], int]:
    def run() -> int:
        return sum(1 for locator in locators() if release_media(locator))
    return run


def run_pipeline(subject: str, steps: Sequence[CascadeStep]) -> CascadeReport:
    report = CascadeReport()
    for step in steps:
        try:
            count = step.run()
        except InternalError:
            if step.root:
                logger.error("Cascade for %s failed deleting the root record", subject)
                raise
            logger.error("Cascade step %s for %s failed", step.name, subject, exc_info=True)
            report.failed_steps.append(step.name)
            continue
        report.deleted[step.name] = count
        logger.info("Cascade step %s for %s removed %d record(s)", step.name, subject, count)
    return report


def _user_post_locators(user_id: str) -> List[str]:
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT media_url FROM posts WHERE user_id = ?", (user_id,))
        return [row["media_url"] for row in cursor.fetchall()]


def user_deletion_steps(user_id: str) -> List[CascadeStep]:
    owned_posts = "SELECT id FROM posts WHERE user_id = ?"
    return [
        CascadeStep("media", _release_all(lambda: _user_post_locators(user_id))),
        CascadeStep("post_comments", _delete(f"DELETE FROM comments WHERE post_id IN ({owned_posts})", user_id)),
        CascadeStep("post_likes", _delete(f"DELETE FROM post_likes WHERE post_id IN ({owned_posts})", user_id)),
        CascadeStep("posts", _delete("DELETE FROM posts WHERE user_id = ?", user_id)),
        CascadeStep("authored_comments", _delete("DELETE FROM comments WHERE user_id = ?", user_id)),
        CascadeStep("likes", _delete("DELETE FROM post_likes WHERE user_id = ?", user_id)),
        CascadeStep("follows", _delete("DELETE FROM follows WHERE follower_id = ? OR following_id = ?", user_id, user_id)),
        CascadeStep("sessions", _delete("DELETE FROM sessions WHERE user_id = ?", user_id)),
        CascadeStep("user", _delete("DELETE FROM users WHERE id = ?", user_id), root=True),
    ]


def post_deletion_steps(post_id: str, media_locator: str) -> List[CascadeStep]:
    return [
        CascadeStep("media", _release_all(lambda: [media_locator])),
        CascadeStep("comments", _delete("DELETE FROM comments WHERE post_id = ?", post_id)),
        CascadeStep("likes", _delete("DELETE FROM post_likes WHERE post_id = ?", post_id)),
        CascadeStep("post", _delete("DELETE FROM posts WHERE id = ?", post_id), root=True),
    ]


def delete_user(user_id: str) -> CascadeReport:
    return run_pipeline(f"user {user_id}", user_deletion_steps(user_id))


def delete_post(post_id: str, media_locator: str) -> CascadeReport:
    return run_pipeline(f"post {post_id}", post_deletion_steps(post_id, media_locator))


def delete_comment(comment_id: str) -> CascadeReport:
    # A post's comment list is read from the comments table, so dropping the
    # record also drops the post's reference to it.
    steps = [CascadeStep("comment", _delete("DELETE FROM comments WHERE id = ?", comment_id), root=True)]
    return run_pipeline(f"comment {comment_id}", steps)
