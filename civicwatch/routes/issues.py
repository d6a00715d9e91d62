"""Issue reporting, triage, voting, and discussion endpoints."""
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from wtforms import FloatField, StringField
from wtforms.validators import AnyOf, DataRequired, Length, NumberRange
from wtforms.validators import ValidationError as FieldValidationError

from civicwatch.extensions import db
from civicwatch.models import ISSUE_CATEGORIES, ISSUE_STATUSES
from civicwatch.utils.discussion import CommentService
from civicwatch.utils.forms import ApiForm, IfProvided, StringListField, request_json, strip_value
from civicwatch.utils.issue_lifecycle import IssueService
from civicwatch.utils.notifier import get_notifier
from civicwatch.utils.pagination import list_envelope, parse_choice_filter, parse_page_request
from civicwatch.utils.queries import list_comments, list_issues

issues_bp = Blueprint("issues", __name__, url_prefix="/api/issues")


class IssueCreateForm(ApiForm):
    title = StringField(
        "Title", filters=[strip_value], validators=[DataRequired(message="Title is required"), Length(max=100)]
    )
    description = StringField(
        "Description",
        filters=[strip_value],
        validators=[DataRequired(message="Description is required"), Length(max=1000)],
    )
    location = StringField(
        "Location", filters=[strip_value], validators=[DataRequired(message="Location is required"), Length(max=255)]
    )
    latitude = FloatField("Latitude", validators=[IfProvided(), NumberRange(min=-90, max=90)])
    longitude = FloatField("Longitude", validators=[IfProvided(), NumberRange(min=-180, max=180)])
    category = StringField(
        "Category",
        filters=[strip_value],
        validators=[DataRequired(message="Invalid category"), AnyOf(ISSUE_CATEGORIES, message="Invalid category")],
    )
    images = StringListField("Images")

    def validate_images(self, field):
        limit = int(current_app.config.get("MAX_ISSUE_IMAGES", 10))
        if len(field.data or []) > limit:
            raise FieldValidationError(f"At most {limit} images are allowed")
        if any(len(ref) > 1024 for ref in field.data or []):
            raise FieldValidationError("Image reference is too long")


class IssueUpdateForm(ApiForm):
    title = StringField(
        "Title", filters=[strip_value], validators=[IfProvided(), DataRequired(message="Title cannot be empty"), Length(max=100)]
    )
    description = StringField(
        "Description",
        filters=[strip_value],
        validators=[IfProvided(), DataRequired(message="Description cannot be empty"), Length(max=1000)],
    )
    status = StringField(
        "Status", filters=[strip_value], validators=[IfProvided(), AnyOf(ISSUE_STATUSES, message="Invalid status")]
    )
    category = StringField(
        "Category", filters=[strip_value], validators=[IfProvided(), AnyOf(ISSUE_CATEGORIES, message="Invalid category")]
    )


class CommentForm(ApiForm):
    content = StringField(
        "Content",
        filters=[strip_value],
        validators=[DataRequired(message="Comment content is required"), Length(max=500)],
    )


def _issue_service() -> IssueService:
    return IssueService(db.session, get_notifier(current_app))


def _comment_service() -> CommentService:
    return CommentService(db.session, _issue_service())


def _actor():
    return current_user._get_current_object()


@issues_bp.route("", methods=["GET"])
def list_all_issues():
    page_request = parse_page_request(request.args)
    status = parse_choice_filter(request.args, "status", ISSUE_STATUSES)
    category = parse_choice_filter(request.args, "category", ISSUE_CATEGORIES)
    issues, total = list_issues(db.session, page_request, status=status, category=category)
    return jsonify(list_envelope("issues", issues, total, page_request))


@issues_bp.route("/<int:issue_id>", methods=["GET"])
def get_issue(issue_id: int):
    issue = _issue_service().get_or_404(issue_id)
    payload = issue.to_dict()
    payload["comments"] = [comment.to_dict() for comment in list_comments(db.session, issue.id)]
    return jsonify({"status": "success", "data": {"issue": payload}})


@issues_bp.route("", methods=["POST"])
@login_required
def create_issue():
    fields = IssueCreateForm.from_json(request_json()).validated_data()
    issue = _issue_service().create(_actor(), fields)
    return jsonify({"status": "success", "data": {"issue": issue.to_dict()}}), 201


@issues_bp.route("/<int:issue_id>", methods=["PUT"])
@login_required
def update_issue(issue_id: int):
    service = _issue_service()
    issue = service.require_update(_actor(), issue_id)
    changes = IssueUpdateForm.from_json(request_json()).validated_data()
    issue = service.apply_update(issue, changes)
    return jsonify({"status": "success", "data": {"issue": issue.to_dict()}})


@issues_bp.route("/<int:issue_id>", methods=["DELETE"])
@login_required
def delete_issue(issue_id: int):
    _issue_service().delete(_actor(), issue_id)
    return jsonify({"status": "success", "message": "Issue deleted successfully"})


@issues_bp.route("/<int:issue_id>/upvote", methods=["POST"])
@login_required
def upvote_issue(issue_id: int):
    issue = _issue_service().upvote(_actor(), issue_id)
    return jsonify({"status": "success", "data": {"issue": issue.to_dict()}})


@issues_bp.route("/<int:issue_id>/comments", methods=["POST"])
@login_required
def add_comment(issue_id: int):
    service = _comment_service()
    issue = service.issues.get_or_404(issue_id)
    content = CommentForm.from_json(request_json()).validated_data()["content"]
    comment = service.add(_actor(), issue.id, content)
    return jsonify({"status": "success", "data": {"comment": comment.to_dict()}}), 201


@issues_bp.route("/<int:issue_id>/comments", methods=["GET"])
def get_comments(issue_id: int):
    comments = _comment_service().for_issue(issue_id)
    return jsonify(
        {
            "status": "success",
            "results": len(comments),
            "data": {"comments": [comment.to_dict() for comment in comments]},
        }
    )
