"""Authorization decisions for every mutating and visibility-sensitive route.

`decide` is a pure function of the acting user, the action and a description
of the target resource. Routes call `authorize`, which turns a non-allow
decision into the matching error.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from errors import AuthorizationError, ValidationError
from schemas.shared import ModerationStatus, Role


@dataclass(frozen=True)
class Actor:
    """The authenticated identity making a request, resolved once per request."""
    id: str
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class Resource:
    owner_id: Optional[str] = None
    # Only set for comments: the owner of the commented post.
    post_owner_id: Optional[str] = None
    status: Optional[ModerationStatus] = None


class Action(str, Enum):
    VIEW_POST = "view_post"
    EDIT_POST = "edit_post"
    DELETE_POST = "delete_post"
    MODERATE_POST = "moderate_post"
    CREATE_COMMENT = "create_comment"
    EDIT_COMMENT = "edit_comment"
    DELETE_COMMENT = "delete_comment"
    LIKE = "like"
    UNLIKE = "unlike"
    SHARE = "share"
    FOLLOW = "follow"
    UNFOLLOW = "unfollow"
    MANAGE_USERS = "manage_users"
    CHANGE_ROLE = "change_role"
    DELETE_USER = "delete_user"


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    INVALID = "invalid"


ADMIN_ONLY_ACTIONS = {Action.MODERATE_POST, Action.MANAGE_USERS, Action.CHANGE_ROLE, Action.DELETE_USER}
OWNER_ACTIONS = {Action.EDIT_POST, Action.DELETE_POST, Action.EDIT_COMMENT, Action.DELETE_COMMENT}
OPEN_ACTIONS = {Action.CREATE_COMMENT, Action.LIKE, Action.UNLIKE, Action.SHARE, Action.UNFOLLOW}

DENIAL_MESSAGES = {
    Action.VIEW_POST: "Forbidden: You do not have access to this post.",
    Action.EDIT_POST: "Forbidden: You can only update your own posts.",
    Action.DELETE_POST: "Forbidden: You can only delete your own posts.",
    Action.MODERATE_POST: "Forbidden: Only admins can perform this action.",
    Action.EDIT_COMMENT: "Forbidden: You can only update your own comments.",
    Action.DELETE_COMMENT: "Forbidden: You can only delete your own comments or comments on your posts.",
    Action.MANAGE_USERS: "Forbidden: Only admins can perform this action.",
    Action.CHANGE_ROLE: "Forbidden: Only admins can perform this action.",
    Action.DELETE_USER: "Forbidden: Only admins can perform this action.",
}


def decide(actor: Actor, action: Action, resource: Resource = Resource()) -> Decision:
    if action == Action.FOLLOW:
        # Self-follow is malformed input, not a permission question.
        if resource.owner_id == actor.id:
            return Decision.INVALID
        return Decision.ALLOW

    if actor.is_admin:
        return Decision.ALLOW

    if action in ADMIN_ONLY_ACTIONS:
        return Decision.DENY

    if action in OPEN_ACTIONS:
        return Decision.ALLOW

    if action == Action.VIEW_POST:
        if resource.status == ModerationStatus.APPROVED or resource.owner_id == actor.id:
            return Decision.ALLOW
        return Decision.DENY

    if action in OWNER_ACTIONS:
        if resource.owner_id == actor.id:
            return Decision.ALLOW
        if action == Action.DELETE_COMMENT and resource.post_owner_id == actor.id:
            return Decision.ALLOW
        return Decision.DENY

    return Decision.DENY


def authorize(actor: Actor, action: Action, resource: Resource = Resource()) -> None:
    decision = decide(actor, action, resource)
    if decision == Decision.INVALID:
        raise ValidationError("You cannot follow yourself.")
    if decision == Decision.DENY:
        raise AuthorizationError(DENIAL_MESSAGES.get(action, "Forbidden."))
