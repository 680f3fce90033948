"""Post moderation lifecycle.

pending -> approved | rejected, and approved <-> rejected afterwards. Only
admins move a post between states; nothing ever returns to pending.
"""

from typing import Optional
from errors import AuthorizationError, ValidationError
from policy import Action, Actor, Resource, authorize
from schemas.shared import ModerationStatus

TRANSITIONS = {
    ModerationStatus.PENDING: {ModerationStatus.APPROVED, ModerationStatus.REJECTED},
    ModerationStatus.APPROVED: {ModerationStatus.APPROVED, ModerationStatus.REJECTED},
    ModerationStatus.REJECTED: {ModerationStatus.APPROVED, ModerationStatus.REJECTED},
}


def parse_status(value) -> ModerationStatus:
    try:
        return ModerationStatus(value)
    except ValueError:
        raise ValidationError('Invalid moderation status. Must be "approved" or "rejected".')


def transition(actor: Actor, current: ModerationStatus, target) -> ModerationStatus:
    """Validate a moderation request and return the post's new status."""
    authorize(actor, Action.MODERATE_POST)
    target = parse_status(target)
    if target not in TRANSITIONS[current]:
        raise ValidationError('Invalid moderation status. Must be "approved" or "rejected".')
    return target


def is_public(status: ModerationStatus) -> bool:
    """Visible in the feed and on the shared-link endpoint."""
    return status == ModerationStatus.APPROVED


def can_view(actor: Optional[Actor], owner_id: str, status: ModerationStatus) -> bool:
    if actor is None:
        return is_public(status)
    try:
        authorize(actor, Action.VIEW_POST, Resource(owner_id=owner_id, status=status))
    except AuthorizationError:
        return False
    return True


def visible_statuses(actor: Actor):
    """Statuses a listing may include for this actor."""
    if actor.is_admin:
        return list(ModerationStatus)
    return [ModerationStatus.APPROVED]
