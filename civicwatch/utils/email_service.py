"""SMTP-backed mailer for issue notifications."""
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import List

from flask import current_app, render_template

from civicwatch.utils.errors import NotificationDispatchFailure

STATUS_LABELS = {
    "REPORTED": "Reported",
    "UNDER_REVIEW": "Under review",
    "IN_PROGRESS": "In progress",
    "RESOLVED": "Resolved",
    "CLOSED": "Closed",
}


def status_label(status: str | None) -> str:
    return STATUS_LABELS.get(status or "", status or "")


def render_email(template: str, subject: str, context: dict) -> tuple[str, str]:
    """Return the plaintext and HTML bodies for ``template``."""
    ctx = {
        **context,
        "subject": subject,
        "frontend_url": current_app.config.get("FRONTEND_URL", ""),
        "status_label": status_label,
    }
    text_body = render_template(f"email/{template}.txt", **ctx)
    html_body = render_template(f"email/{template}.html", **ctx)
    return text_body, html_body


class Mailer:
    """Delivers one message per call; every failure surfaces as NotificationDispatchFailure."""

    def send(self, subject: str, recipients: List[str], text_body: str, html_body: str) -> None:
        recipients = [r for r in recipients if r]
        if not recipients:
            raise NotificationDispatchFailure("No recipients resolved for email dispatch")

        host = current_app.config.get("MAIL_SERVER")
        if not host:
            raise NotificationDispatchFailure("MAIL_SERVER is not configured")

        sender = current_app.config.get("MAIL_DEFAULT_SENDER")
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = ", ".join(recipients)
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid()
        msg.set_content(text_body)
        msg.add_alternative(html_body, subtype="html")

        port = int(current_app.config.get("MAIL_PORT", 25))
        username = current_app.config.get("MAIL_USERNAME")
        password = current_app.config.get("MAIL_PASSWORD")
        use_tls = bool(current_app.config.get("MAIL_USE_TLS"))
        use_ssl = bool(current_app.config.get("MAIL_USE_SSL"))
        timeout = int(current_app.config.get("MAIL_TIMEOUT", 15))

        try:
            if use_ssl:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(host, port, context=context, timeout=timeout) as server:
                    if username and password:
                        server.login(username, password)
                    server.send_message(msg)
            else:
                with smtplib.SMTP(host, port, timeout=timeout) as server:
                    server.ehlo()
                    if use_tls:
                        server.starttls(context=ssl.create_default_context())
                    if username and password:
                        server.login(username, password)
                    server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:  # pragma: no cover - external I/O
            raise NotificationDispatchFailure(str(exc)) from exc


def compose_issue_created(issue: dict, reporter: dict) -> dict:
    subject = f"Issue #{issue['id']} reported: {issue['title']}"
    text_body, html_body = render_email("issue_created", subject, {"issue": issue, "reporter": reporter})
    return {"subject": subject, "recipients": [reporter.get("email")], "text_body": text_body, "html_body": html_body}


def compose_admin_new_issue(issue: dict, reporter: dict, admin_emails: List[str]) -> dict:
    subject = f"New {issue['category'].replace('_', ' ').title()} issue: {issue['title']}"
    text_body, html_body = render_email("admin_new_issue", subject, {"issue": issue, "reporter": reporter})
    return {"subject": subject, "recipients": list(admin_emails), "text_body": text_body, "html_body": html_body}


def compose_status_changed(issue: dict, reporter: dict, old_status: str, new_status: str) -> dict:
    subject = f"Issue #{issue['id']} is now {status_label(new_status)}"
    text_body, html_body = render_email(
        "status_changed",
        subject,
        {"issue": issue, "reporter": reporter, "old_status": old_status, "new_status": new_status},
    )
    return {"subject": subject, "recipients": [reporter.get("email")], "text_body": text_body, "html_body": html_body}
