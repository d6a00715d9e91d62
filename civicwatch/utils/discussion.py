"""Comment threads attached to issues."""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from civicwatch.models import Comment, User
from civicwatch.utils.errors import NotFound
from civicwatch.utils.issue_lifecycle import IssueService
from civicwatch.utils.policy import Action, authorize
from civicwatch.utils.queries import list_comments


class CommentService:
    def __init__(self, session, issues: IssueService) -> None:
        self.session = session
        self.issues = issues

    def add(self, actor: User, issue_id: int, content: str) -> Comment:
        issue = self.issues.get_or_404(issue_id)
        authorize(actor, Action.ADD_COMMENT)
        comment = Comment(content=content, issue_id=issue.id, author_id=actor.id)
        try:
            self.session.add(comment)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        current_app.logger.info("Comment added", extra={"comment_id": comment.id, "issue_id": issue.id})
        return comment

    def for_issue(self, issue_id: int) -> list[Comment]:
        issue = self.issues.get_or_404(issue_id)
        return list_comments(self.session, issue.id)

    def delete(self, actor: User, comment_id: int) -> None:
        comment = self.session.get(Comment, comment_id)
        if comment is None:
            raise NotFound("Comment not found")
        authorize(actor, Action.DELETE_COMMENT, owner_id=comment.author_id, message="Not authorized to delete this comment")
        try:
            self.session.delete(comment)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise
        current_app.logger.info("Comment deleted", extra={"comment_id": comment_id, "actor_id": actor.id})
