"""Role and ownership rules for every protected action.

Each action maps to the roles that may always perform it and whether the
resource owner (reporter, author, or the profile's own user) may perform it.
Callers resolve the resource first, so a missing record surfaces as a 404
before any 403 decision is made.
"""
from enum import Enum
from typing import NamedTuple, Optional

from flask import current_app

from civicwatch.utils.errors import Forbidden


class Action(str, Enum):
    VIEW_USER = "view_user"
    UPDATE_USER = "update_user"
    CHANGE_ROLE = "change_role"
    LIST_USERS = "list_users"
    VIEW_USER_ISSUES = "view_user_issues"
    CREATE_ISSUE = "create_issue"
    UPDATE_ISSUE = "update_issue"
    DELETE_ISSUE = "delete_issue"
    UPVOTE_ISSUE = "upvote_issue"
    ADD_COMMENT = "add_comment"
    DELETE_COMMENT = "delete_comment"
    VIEW_STATS = "view_stats"


class Rule(NamedTuple):
    roles: frozenset
    owner_allowed: bool = False
    any_authenticated: bool = False


ANY = Rule(roles=frozenset(), any_authenticated=True)

RULES: dict[Action, Rule] = {
    Action.VIEW_USER: Rule(frozenset({"ADMIN"}), owner_allowed=True),
    Action.UPDATE_USER: Rule(frozenset({"ADMIN"}), owner_allowed=True),
    Action.CHANGE_ROLE: Rule(frozenset({"ADMIN"})),
    Action.LIST_USERS: Rule(frozenset({"ADMIN"})),
    Action.VIEW_USER_ISSUES: Rule(frozenset({"ADMIN", "OFFICIAL"}), owner_allowed=True),
    Action.CREATE_ISSUE: ANY,
    Action.UPDATE_ISSUE: Rule(frozenset({"ADMIN", "OFFICIAL"}), owner_allowed=True),
    # Officials triage reports but never remove them.
    Action.DELETE_ISSUE: Rule(frozenset({"ADMIN"}), owner_allowed=True),
    Action.UPVOTE_ISSUE: ANY,
    Action.ADD_COMMENT: ANY,
    Action.DELETE_COMMENT: Rule(frozenset({"ADMIN"}), owner_allowed=True),
    Action.VIEW_STATS: Rule(frozenset({"ADMIN"})),
}


def is_allowed(actor_id: Optional[str], actor_role: Optional[str], action: Action, owner_id: Optional[str] = None) -> bool:
    if not actor_id:
        return False
    rule = RULES[action]
    if rule.any_authenticated:
        return True
    if actor_role in rule.roles:
        return True
    return rule.owner_allowed and owner_id is not None and owner_id == actor_id


def authorize(actor, action: Action, owner_id: Optional[str] = None, message: Optional[str] = None) -> None:
    """Raise :class:`Forbidden` unless ``actor`` may perform ``action``."""
    actor_id = getattr(actor, "id", None)
    actor_role = getattr(actor, "role", None)
    if is_allowed(actor_id, actor_role, action, owner_id=owner_id):
        return
    current_app.logger.warning(
        "Authorization denied",
        extra={"user_id": actor_id, "role": actor_role, "action": action.value, "owner_id": owner_id},
    )
    raise Forbidden(message)
