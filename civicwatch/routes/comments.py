"""Standalone comment endpoints."""
from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required

from civicwatch.extensions import db
from civicwatch.utils.discussion import CommentService
from civicwatch.utils.issue_lifecycle import IssueService
from civicwatch.utils.notifier import get_notifier

comments_bp = Blueprint("comments", __name__, url_prefix="/api/comments")


@comments_bp.route("/<int:comment_id>", methods=["DELETE"])
@login_required
def delete_comment(comment_id: int):
    service = CommentService(db.session, IssueService(db.session, get_notifier(current_app)))
    service.delete(current_user._get_current_object(), comment_id)
    return jsonify({"status": "success", "message": "Comment deleted successfully"})
