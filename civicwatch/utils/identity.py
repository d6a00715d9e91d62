"""Bearer-token issuance and verification for the JSON API.

Tokens are HS256 JWTs signed with ``JWT_SECRET``. The ``sub`` claim holds the
user id; ``role`` is informational only because every request re-reads the
user row, so a role change or a deleted account takes effect immediately.
"""
from datetime import datetime, timezone
from typing import Optional

from flask import current_app
from jose import ExpiredSignatureError, JWTError, jwt

from civicwatch.extensions import db
from civicwatch.models import User
from civicwatch.utils.errors import InvalidToken, TokenExpired, Unauthenticated

BEARER_PREFIX = "Bearer "


def issue_token(user: User) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.id,
        "role": user.role,
        "iat": now,
        "exp": now + current_app.config["JWT_EXPIRES"],
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET"], algorithm=current_app.config["JWT_ALGORITHM"])


def extract_bearer_token(header_value: Optional[str]) -> str:
    if not header_value or not header_value.startswith(BEARER_PREFIX):
        raise Unauthenticated()
    token = header_value[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthenticated()
    return token


def decode_token(token: str) -> dict:
    try:
        claims = jwt.decode(
            token,
            current_app.config["JWT_SECRET"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
        )
    except ExpiredSignatureError as exc:
        raise TokenExpired() from exc
    except JWTError as exc:
        raise InvalidToken() from exc
    if not claims.get("sub"):
        raise InvalidToken()
    return claims


def resolve_bearer(header_value: Optional[str]) -> User:
    """Turn an ``Authorization`` header into a live user or raise an auth error."""
    claims = decode_token(extract_bearer_token(header_value))
    user = db.session.get(User, str(claims["sub"]))
    if user is None:
        raise Unauthenticated("The user belonging to this token no longer exists")
    return user


def authenticate(email: str, password: str) -> User:
    user = User.query.filter_by(email=(email or "").strip().lower()).first()
    if user is None or not user.check_password(password or ""):
        raise Unauthenticated("Incorrect email or password")
    return user
