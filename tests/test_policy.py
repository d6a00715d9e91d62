import pytest

from civicwatch.utils.errors import Forbidden
from civicwatch.utils.policy import Action, authorize, is_allowed

OWNER = "owner-id"
STRANGER = "stranger-id"


@pytest.mark.parametrize(
    "action, role, actor, expected",
    [
        (Action.UPDATE_ISSUE, "CITIZEN", OWNER, True),
        (Action.UPDATE_ISSUE, "CITIZEN", STRANGER, False),
        (Action.UPDATE_ISSUE, "OFFICIAL", STRANGER, True),
        (Action.UPDATE_ISSUE, "ADMIN", STRANGER, True),
        (Action.DELETE_ISSUE, "CITIZEN", OWNER, True),
        (Action.DELETE_ISSUE, "OFFICIAL", STRANGER, False),
        (Action.DELETE_ISSUE, "ADMIN", STRANGER, True),
        (Action.DELETE_COMMENT, "CITIZEN", OWNER, True),
        (Action.DELETE_COMMENT, "OFFICIAL", STRANGER, False),
        (Action.VIEW_USER_ISSUES, "OFFICIAL", STRANGER, True),
        (Action.VIEW_USER, "OFFICIAL", STRANGER, False),
        (Action.VIEW_USER, "CITIZEN", OWNER, True),
        (Action.CHANGE_ROLE, "ADMIN", STRANGER, True),
        (Action.CHANGE_ROLE, "OFFICIAL", OWNER, False),
        (Action.LIST_USERS, "OFFICIAL", STRANGER, False),
        (Action.UPVOTE_ISSUE, "CITIZEN", STRANGER, True),
        (Action.ADD_COMMENT, "CITIZEN", STRANGER, True),
        (Action.CREATE_ISSUE, "CITIZEN", STRANGER, True),
        (Action.VIEW_STATS, "ADMIN", STRANGER, True),
        (Action.VIEW_STATS, "OFFICIAL", STRANGER, False),
    ],
)
def test_rule_table(action, role, actor, expected):
    assert is_allowed(actor, role, action, owner_id=OWNER) is expected


def test_anonymous_actor_is_never_allowed():
    assert is_allowed(None, None, Action.UPVOTE_ISSUE) is False
    assert is_allowed(None, "ADMIN", Action.UPDATE_ISSUE, owner_id=None) is False


def test_owner_rule_requires_a_known_owner():
    assert is_allowed(STRANGER, "CITIZEN", Action.UPDATE_USER, owner_id=None) is False


def test_every_action_has_a_rule():
    for action in Action:
        is_allowed(OWNER, "CITIZEN", action, owner_id=OWNER)


def test_authorize_raises_forbidden_with_message(app):
    class Actor:
        id = STRANGER
        role = "CITIZEN"

    with app.app_context():
        authorize(Actor(), Action.ADD_COMMENT)
        with pytest.raises(Forbidden) as excinfo:
            authorize(Actor(), Action.DELETE_ISSUE, owner_id=OWNER, message="Not authorized to delete this issue")
    assert excinfo.value.status_code == 403
    assert excinfo.value.message == "Not authorized to delete this issue"
