"""Admin dashboard endpoints."""
from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from civicwatch.extensions import db
from civicwatch.utils.policy import Action, authorize
from civicwatch.utils.queries import platform_stats

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.route("/stats", methods=["GET"])
@login_required
def stats():
    authorize(current_user, Action.VIEW_STATS, message="Not authorized. Admin access required")
    return jsonify({"status": "success", "data": {"stats": platform_stats(db.session)}})
