import itertools

import pytest

from civicwatch.app import create_app
from civicwatch.extensions import db
from civicwatch.models import User
from civicwatch.utils.errors import NotificationDispatchFailure
from civicwatch.utils.identity import issue_token

_counter = itertools.count(1)


class RecordingMailer:
    def __init__(self):
        self.sent = []

    def send(self, subject, recipients, text_body, html_body):
        self.sent.append(
            {"subject": subject, "recipients": list(recipients), "text_body": text_body, "html_body": html_body}
        )


class FailingMailer:
    def __init__(self):
        self.attempts = 0

    def send(self, subject, recipients, text_body, html_body):
        self.attempts += 1
        raise NotificationDispatchFailure("SMTP relay unavailable")


@pytest.fixture
def app(tmp_path):
    app = create_app("testing", {"LOG_DIR": str(tmp_path / "logs")})
    app.extensions["notifier"].mailer = RecordingMailer()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def mailer(app):
    return app.extensions["notifier"].mailer


@pytest.fixture
def make_user(app):
    def _make_user(role="CITIZEN", name=None, email=None, password="Secret123"):
        n = next(_counter)
        with app.app_context():
            user = User(name=name or f"User {n}", email=email or f"user{n}@civicwatch.org", role=role)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            token = issue_token(user)
            return {
                "id": user.id,
                "email": user.email,
                "role": user.role,
                "token": token,
                "headers": {"Authorization": f"Bearer {token}"},
            }

    return _make_user


@pytest.fixture
def citizen(make_user):
    return make_user("CITIZEN", name="Casey Citizen")


@pytest.fixture
def other_citizen(make_user):
    return make_user("CITIZEN", name="Robin Neighbour")


@pytest.fixture
def official(make_user):
    return make_user("OFFICIAL", name="Olu Official")


@pytest.fixture
def admin(make_user):
    return make_user("ADMIN", name="Ada Admin")


ISSUE_BODY = {
    "title": "Pothole",
    "description": "Big pothole on 5th",
    "location": "5th Ave",
    "category": "ROADS",
}


@pytest.fixture
def make_issue(client):
    def _make_issue(user, **overrides):
        body = {**ISSUE_BODY, **overrides}
        response = client.post("/api/issues", json=body, headers=user["headers"])
        assert response.status_code == 201, response.get_json()
        return response.get_json()["data"]["issue"]

    return _make_issue


@pytest.fixture
def app_log(app, caplog):
    """Capture records from the application logger, which does not propagate."""
    app.logger.addHandler(caplog.handler)
    yield caplog
    app.logger.removeHandler(caplog.handler)
