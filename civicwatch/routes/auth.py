"""Registration, login, and session introspection for bearer-token clients."""
from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required
from sqlalchemy.exc import IntegrityError
from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length
from wtforms.validators import ValidationError as FieldValidationError

from civicwatch.extensions import db
from civicwatch.models import User
from civicwatch.utils.errors import Conflict
from civicwatch.utils.forms import ApiForm, request_json, strip_value
from civicwatch.utils.identity import authenticate, issue_token
from civicwatch.utils.security import password_meets_policy

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _lower(value):
    return value.lower() if isinstance(value, str) else value


class RegistrationForm(ApiForm):
    name = StringField("Name", filters=[strip_value], validators=[DataRequired(message="Name is required"), Length(min=2, max=50)])
    email = StringField(
        "Email",
        filters=[strip_value, _lower],
        validators=[DataRequired(message="Email is required"), Email(message="Please enter a valid email address"), Length(max=255)],
    )
    password = PasswordField("Password", validators=[DataRequired(message="Password is required")])

    def validate_password(self, field):
        ok, reason = password_meets_policy(field.data)
        if not ok:
            raise FieldValidationError(reason)


class LoginForm(ApiForm):
    email = StringField("Email", filters=[strip_value, _lower], validators=[DataRequired(message="Email is required")])
    password = PasswordField("Password", validators=[DataRequired(message="Password is required")])


def _session_payload(user: User) -> dict:
    return {"status": "success", "token": issue_token(user), "data": {"user": user.to_dict()}}


@auth_bp.route("/register", methods=["POST"])
def register():
    data = RegistrationForm.from_json(request_json()).validated_data()
    if User.query.filter_by(email=data["email"]).first():
        raise Conflict("An account with this email already exists")

    user = User(name=data["name"], email=data["email"], role="CITIZEN")
    user.set_password(data["password"])
    try:
        db.session.add(user)
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise Conflict("An account with this email already exists") from exc

    current_app.logger.info("User registered", extra={"user_id": user.id})
    return jsonify(_session_payload(user)), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    data = LoginForm.from_json(request_json()).validated_data()
    user = authenticate(data["email"], data["password"])
    current_app.logger.info("User logged in", extra={"user_id": user.id})
    return jsonify(_session_payload(user))


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify({"status": "success", "data": {"user": current_user.to_dict()}})
