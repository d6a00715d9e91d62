import pytest

from civicwatch.utils.email_service import Mailer
from civicwatch.utils.notifier import NotificationDispatcher

from .conftest import ISSUE_BODY, FailingMailer, RecordingMailer


def test_issue_creation_notifies_reporter_and_admins(client, citizen, admin, mailer):
    response = client.post("/api/issues", json=ISSUE_BODY, headers=citizen["headers"])
    assert response.status_code == 201
    issue_id = response.get_json()["data"]["issue"]["id"]

    assert len(mailer.sent) == 2
    to_reporter, to_admins = mailer.sent
    assert to_reporter["recipients"] == [citizen["email"]]
    assert f"#{issue_id}" in to_reporter["subject"]
    assert "Pothole" in to_reporter["text_body"]
    assert to_admins["recipients"] == [admin["email"]]
    assert "Casey Citizen" in to_admins["html_body"]


def test_status_change_email_names_both_statuses(client, citizen, official, make_issue, mailer):
    issue = make_issue(citizen)
    mailer.sent.clear()
    client.put(f"/api/issues/{issue['id']}", json={"status": "IN_PROGRESS"}, headers=official["headers"])
    assert len(mailer.sent) == 1
    message = mailer.sent[0]
    assert message["recipients"] == [citizen["email"]]
    assert "from Reported to In progress" in message["text_body"]


def test_mail_failure_never_fails_the_request(app, client, citizen, official, admin):
    failing = FailingMailer()
    app.extensions["notifier"].mailer = failing

    created = client.post("/api/issues", json=ISSUE_BODY, headers=citizen["headers"])
    assert created.status_code == 201
    issue_id = created.get_json()["data"]["issue"]["id"]
    assert client.get(f"/api/issues/{issue_id}").status_code == 200

    updated = client.put(f"/api/issues/{issue_id}", json={"status": "CLOSED"}, headers=official["headers"])
    assert updated.status_code == 200
    assert updated.get_json()["data"]["issue"]["status"] == "CLOSED"
    assert failing.attempts == 3


def test_failed_delivery_is_logged_with_kind_issue_and_reason(app, client, citizen, app_log):
    app.extensions["notifier"].mailer = FailingMailer()
    created = client.post("/api/issues", json=ISSUE_BODY, headers=citizen["headers"])
    issue_id = created.get_json()["data"]["issue"]["id"]

    failures = [record.getMessage() for record in app_log.records if record.levelname == "WARNING"]
    assert f"Notification issue_created for issue {issue_id} failed: SMTP relay unavailable" in failures


def test_unconfigured_smtp_is_logged_not_raised(app, client, citizen):
    app.extensions["notifier"].mailer = Mailer()
    app.config["MAIL_SERVER"] = ""
    response = client.post("/api/issues", json=ISSUE_BODY, headers=citizen["headers"])
    assert response.status_code == 201


def test_disabled_notifications_skip_delivery(app, client, citizen, mailer):
    app.extensions["notifier"].enabled = False
    client.post("/api/issues", json=ISSUE_BODY, headers=citizen["headers"])
    assert mailer.sent == []


def test_async_dispatch_runs_on_worker_pool(app):
    recording = RecordingMailer()
    dispatcher = NotificationDispatcher(app, mailer=recording)
    dispatcher.run_async = True
    issue = {"id": 7, "title": "Leaking hydrant", "category": "WATER", "location": "Main St", "status": "REPORTED"}
    reporter = {"name": "Casey Citizen", "email": "casey@civicwatch.org"}

    dispatcher.dispatch("status_changed", issue=issue, reporter=reporter, old_status="REPORTED", new_status="RESOLVED")
    dispatcher.shutdown()

    assert len(recording.sent) == 1
    assert recording.sent[0]["recipients"] == ["casey@civicwatch.org"]
    assert "Resolved" in recording.sent[0]["subject"]


def test_unknown_kind_is_a_programming_error(app):
    dispatcher = NotificationDispatcher(app, mailer=RecordingMailer())
    with pytest.raises(ValueError, match="carrier_pigeon"):
        dispatcher.dispatch("carrier_pigeon", issue={})
