"""Profile, role management, and per-user issue listing endpoints."""
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError
from wtforms import StringField
from wtforms.validators import AnyOf, DataRequired, Length

from civicwatch.extensions import db
from civicwatch.models import ISSUE_CATEGORIES, ISSUE_STATUSES, USER_ROLES, User
from civicwatch.utils.errors import NotFound
from civicwatch.utils.forms import ApiForm, IfProvided, request_json, strip_value
from civicwatch.utils.pagination import list_envelope, parse_choice_filter, parse_page_request
from civicwatch.utils.policy import Action, authorize
from civicwatch.utils.queries import list_issues, list_users, user_activity_counts

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


class ProfileUpdateForm(ApiForm):
    name = StringField(
        "Name",
        filters=[strip_value],
        validators=[IfProvided(), DataRequired(message="Name cannot be empty"), Length(min=2, max=50)],
    )
    profile_picture = StringField(
        "Profile picture", name="profilePicture", filters=[strip_value], validators=[IfProvided(), Length(max=1024)]
    )


class RoleUpdateForm(ApiForm):
    role = StringField(
        "Role",
        filters=[strip_value],
        validators=[DataRequired(message="Invalid role"), AnyOf(USER_ROLES, message="Invalid role")],
    )


def _user_or_404(user_id: str) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def _save(user: User) -> None:
    try:
        db.session.add(user)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise


@users_bp.route("", methods=["GET"])
@login_required
def list_all_users():
    authorize(current_user, Action.LIST_USERS, message="Not authorized. Admin access required")
    page_request = parse_page_request(request.args)
    role = parse_choice_filter(request.args, "role", USER_ROLES)
    users, total = list_users(db.session, page_request, role=role)
    return jsonify(list_envelope("users", users, total, page_request))


@users_bp.route("/<string:user_id>", methods=["GET"])
@login_required
def get_user(user_id: str):
    user = _user_or_404(user_id)
    authorize(current_user, Action.VIEW_USER, owner_id=user.id, message="Not authorized to view this user")
    payload = {**user.to_dict(), **user_activity_counts(db.session, user.id)}
    return jsonify({"status": "success", "data": {"user": payload}})


@users_bp.route("/<string:user_id>", methods=["PUT"])
@login_required
def update_user(user_id: str):
    user = _user_or_404(user_id)
    authorize(current_user, Action.UPDATE_USER, owner_id=user.id, message="Not authorized to update this user")
    changes = ProfileUpdateForm.from_json(request_json()).validated_data()
    if changes["name"] is not None:
        user.name = changes["name"]
    if changes["profile_picture"] is not None:
        user.profile_picture = changes["profile_picture"] or None
    _save(user)
    return jsonify({"status": "success", "data": {"user": user.to_dict()}})


@users_bp.route("/<string:user_id>/issues", methods=["GET"])
@login_required
def get_user_issues(user_id: str):
    user = _user_or_404(user_id)
    authorize(
        current_user, Action.VIEW_USER_ISSUES, owner_id=user.id, message="Not authorized to view this user's issues"
    )
    page_request = parse_page_request(request.args)
    status = parse_choice_filter(request.args, "status", ISSUE_STATUSES)
    category = parse_choice_filter(request.args, "category", ISSUE_CATEGORIES)
    issues, total = list_issues(db.session, page_request, status=status, category=category, reporter_id=user.id)
    return jsonify(list_envelope("issues", issues, total, page_request))


@users_bp.route("/<string:user_id>/role", methods=["PUT"])
@login_required
def update_user_role(user_id: str):
    user = _user_or_404(user_id)
    authorize(current_user, Action.CHANGE_ROLE, message="Not authorized. Admin access required")
    new_role = RoleUpdateForm.from_json(request_json()).validated_data()["role"]
    old_role = user.role
    user.role = new_role
    _save(user)
    current_app.logger.info(
        "User role changed",
        extra={"user_id": user.id, "old_role": old_role, "new_role": new_role, "actor_id": current_user.id},
    )
    return jsonify({"status": "success", "data": {"user": user.to_dict()}})
