import logging

from civicwatch.app import create_app
from civicwatch.extensions import db
from civicwatch.models import User
from civicwatch.utils.logger import ContextFormatter


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "success"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.get_json()["status"] == "error"


def test_wrong_method_uses_error_envelope(client):
    response = client.patch("/api/issues")
    assert response.status_code == 405
    assert response.get_json()["status"] == "error"


def test_unexpected_errors_do_not_leak_details(app):
    @app.route("/api/boom")
    def boom():
        raise RuntimeError("database password is hunter2")

    response = app.test_client().get("/api/boom")
    assert response.status_code == 500
    body = response.get_json()
    assert body == {"status": "error", "message": "Something went wrong. Please try again later."}


def test_security_and_cors_headers(client):
    response = client.get("/api/issues", headers={"Origin": "http://localhost:3000"})
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "Access-Control-Allow-Origin" in response.headers


def test_default_admin_is_seeded(tmp_path):
    app = create_app(
        "testing",
        {
            "LOG_DIR": str(tmp_path / "logs"),
            "DEFAULT_ADMIN_EMAIL": "Root@CivicWatch.org",
            "DEFAULT_ADMIN_PASSWORD": "rootpass99",
        },
    )
    with app.app_context():
        admin = User.query.filter_by(email="root@civicwatch.org").one()
        assert admin.role == "ADMIN"
        assert admin.check_password("rootpass99")
        db.drop_all()


def test_create_admin_command_promotes_existing_user(app, citizen):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["create-admin", citizen["email"], "Casey Citizen", "--password", "newpass123"])
    assert result.exit_code == 0, result.output
    with app.app_context():
        assert db.session.get(User, citizen["id"]).role == "ADMIN"


def test_log_lines_carry_extra_context():
    formatter = ContextFormatter(fmt="%(levelname)s | %(message)s")
    record = logging.makeLogRecord(
        {"levelname": "INFO", "msg": "Issue deleted", "issue_id": 7, "actor_id": "abc", "comments_removed": 2}
    )
    assert formatter.format(record) == "INFO | Issue deleted | actor_id=abc comments_removed=2 issue_id=7"


def test_plain_log_lines_are_unchanged():
    formatter = ContextFormatter(fmt="%(levelname)s | %(message)s")
    record = logging.makeLogRecord({"levelname": "WARNING", "msg": "Something %s", "args": ("odd",)})
    assert formatter.format(record) == "WARNING | Something odd"


def test_client_errors_are_logged_with_request_path(client, app_log):
    client.get("/api/issues/424242")
    messages = [record.getMessage() for record in app_log.records]
    assert "GET /api/issues/424242 -> 404 NotFound: Issue not found" in messages
