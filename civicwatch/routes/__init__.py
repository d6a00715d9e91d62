"""Blueprint registration and service-level routes."""
from flask import Blueprint, Flask, jsonify
from sqlalchemy import text

from civicwatch.extensions import db
from .admin import admin_bp
from .auth import auth_bp
from .comments import comments_bp
from .issues import issues_bp
from .users import users_bp

main_bp = Blueprint("main", __name__)


@main_bp.route("/api/health", methods=["GET"])
def health():
    db.session.execute(text("SELECT 1"))
    return jsonify({"status": "success", "message": "ok"})


def register_blueprints(app: Flask) -> None:
    for blueprint in (main_bp, auth_bp, issues_bp, comments_bp, users_bp, admin_bp):
        app.register_blueprint(blueprint)
