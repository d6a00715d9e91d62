"""Best-effort notification dispatch decoupled from the request that triggers it.

Handlers commit first and then hand plain-dict snapshots to the dispatcher.
Sends run on a small thread pool inside an application context; a failed send
is logged and dropped and never reaches the client or rolls anything back.
"""
import atexit
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from flask import Flask

from civicwatch.utils.email_service import (
    Mailer,
    compose_admin_new_issue,
    compose_issue_created,
    compose_status_changed,
)
from civicwatch.utils.errors import NotificationDispatchFailure

COMPOSERS: dict[str, Callable[..., dict]] = {
    "issue_created": compose_issue_created,
    "admin_new_issue": compose_admin_new_issue,
    "status_changed": compose_status_changed,
}


class NotificationDispatcher:
    def __init__(self, app: Flask, mailer: Optional[Mailer] = None) -> None:
        self.app = app
        self.mailer = mailer or Mailer()
        self.enabled = bool(app.config.get("NOTIFICATIONS_ENABLED", True))
        self.run_async = bool(app.config.get("NOTIFICATIONS_ASYNC", True))
        self.max_workers = int(app.config.get("NOTIFICATION_WORKERS", 4))
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="notify")
                atexit.register(self.shutdown)
            return self._executor

    def dispatch(self, kind: str, **payload) -> None:
        if kind not in COMPOSERS:
            raise ValueError(f"Unknown notification kind: {kind}")
        if not self.enabled:
            self.app.logger.debug("Notifications disabled; skipping %s", kind)
            return
        if self.run_async:
            self._get_executor().submit(self._deliver, kind, payload)
        else:
            self._deliver(kind, payload)

    def _deliver(self, kind: str, payload: dict) -> None:
        issue_id = (payload.get("issue") or {}).get("id")
        with self.app.app_context():
            try:
                message = COMPOSERS[kind](**payload)
                self.mailer.send(**message)
                self.app.logger.info("Notification %s for issue %s sent", kind, issue_id)
            except NotificationDispatchFailure as exc:
                self.app.logger.warning("Notification %s for issue %s failed: %s", kind, issue_id, exc)
            except Exception:
                self.app.logger.exception("Unexpected error delivering notification %s for issue %s", kind, issue_id)

    def shutdown(self) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)


def get_notifier(app: Flask) -> NotificationDispatcher:
    return app.extensions["notifier"]
