"""Creation, update, status change, upvote, and deletion of issues.

Status is a closed set but transitions are unrestricted: any actor allowed to
update an issue may move it to any status, including backwards for manual
correction. Notifications fire only after the write is committed.
"""
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from civicwatch.models import Comment, Issue, User
from civicwatch.utils.errors import NotFound
from civicwatch.utils.notifier import NotificationDispatcher
from civicwatch.utils.policy import Action, authorize

UPDATABLE_FIELDS = ("title", "description", "status", "category")


class IssueService:
    def __init__(self, session, notifier: NotificationDispatcher) -> None:
        self.session = session
        self.notifier = notifier

    def get_or_404(self, issue_id: int) -> Issue:
        issue = self.session.get(Issue, issue_id)
        if issue is None:
            raise NotFound("Issue not found")
        return issue

    def create(self, actor: User, fields: dict) -> Issue:
        authorize(actor, Action.CREATE_ISSUE)
        issue = Issue(
            title=fields["title"],
            description=fields["description"],
            location=fields["location"],
            latitude=fields.get("latitude"),
            longitude=fields.get("longitude"),
            category=fields["category"],
            images=list(fields.get("images") or []),
            status="REPORTED",
            upvotes=0,
            reporter_id=actor.id,
        )
        self._commit(issue)
        current_app.logger.info(
            "Issue created", extra={"issue_id": issue.id, "reporter_id": actor.id, "category": issue.category}
        )

        snapshot = issue.to_dict(include_reporter=False)
        reporter = actor.public_payload()
        admin_emails = [
            email for (email,) in self.session.query(User.email).filter(User.role == "ADMIN").order_by(User.email).all()
        ]
        self.notifier.dispatch("issue_created", issue=snapshot, reporter=reporter)
        if admin_emails:
            self.notifier.dispatch("admin_new_issue", issue=snapshot, reporter=reporter, admin_emails=admin_emails)
        else:
            current_app.logger.debug("No admin accounts to notify", extra={"issue_id": issue.id})
        return issue

    def require_update(self, actor: User, issue_id: int) -> Issue:
        issue = self.get_or_404(issue_id)
        authorize(actor, Action.UPDATE_ISSUE, owner_id=issue.reporter_id, message="Not authorized to update this issue")
        return issue

    def apply_update(self, issue: Issue, changes: dict) -> Issue:
        old_status = issue.status
        new_status: Optional[str] = changes.get("status")
        status_changed = bool(new_status) and new_status != old_status

        for field in UPDATABLE_FIELDS:
            value = changes.get(field)
            if value is not None:
                setattr(issue, field, value)
        self._commit(issue)

        if status_changed:
            current_app.logger.info(
                "Issue status changed", extra={"issue_id": issue.id, "old_status": old_status, "new_status": new_status}
            )
            reporter = issue.reporter.public_payload() if issue.reporter else {}
            self.notifier.dispatch(
                "status_changed",
                issue=issue.to_dict(include_reporter=False),
                reporter=reporter,
                old_status=old_status,
                new_status=new_status,
            )
        return issue

    def delete(self, actor: User, issue_id: int) -> None:
        issue = self.get_or_404(issue_id)
        authorize(actor, Action.DELETE_ISSUE, owner_id=issue.reporter_id, message="Not authorized to delete this issue")
        try:
            # Comments go first and in the same transaction so none can outlive the issue.
            removed = (
                self.session.query(Comment)
                .filter(Comment.issue_id == issue.id)
                .delete(synchronize_session=False)
            )
            self.session.delete(issue)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        current_app.logger.info(
            "Issue deleted", extra={"issue_id": issue_id, "actor_id": actor.id, "comments_removed": removed}
        )

    def upvote(self, actor: User, issue_id: int) -> Issue:
        issue = self.get_or_404(issue_id)
        authorize(actor, Action.UPVOTE_ISSUE)
        try:
            self.session.query(Issue).filter(Issue.id == issue.id).update(
                {Issue.upvotes: Issue.upvotes + 1}, synchronize_session=False
            )
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        self.session.refresh(issue)
        return issue

    def _commit(self, instance) -> None:
        try:
            self.session.add(instance)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
