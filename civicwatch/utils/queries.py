"""Filtered, paginated reads over issues, users, and comments."""
from typing import Iterable, Optional

from sqlalchemy import func

from civicwatch.models import ISSUE_CATEGORIES, ISSUE_STATUSES, USER_ROLES, Comment, Issue, User
from civicwatch.utils.pagination import PageRequest, paginate

NEWEST_ISSUES_FIRST = (Issue.created_at.desc(), Issue.id.desc())
NEWEST_COMMENTS_FIRST = (Comment.created_at.desc(), Comment.id.desc())


def issue_filter_query(session, status: Optional[str] = None, category: Optional[str] = None, reporter_id: Optional[str] = None):
    query = session.query(Issue)
    if status:
        query = query.filter(Issue.status == status)
    if category:
        query = query.filter(Issue.category == category)
    if reporter_id:
        query = query.filter(Issue.reporter_id == reporter_id)
    return query


def comment_counts(session, issue_ids: Iterable[int]) -> dict[int, int]:
    ids = list(issue_ids)
    if not ids:
        return {}
    rows = (
        session.query(Comment.issue_id, func.count(Comment.id))
        .filter(Comment.issue_id.in_(ids))
        .group_by(Comment.issue_id)
        .all()
    )
    return {issue_id: count for issue_id, count in rows}


def list_issues(session, page_request: PageRequest, **filters) -> tuple[list[dict], int]:
    query = issue_filter_query(session, **filters)
    issues, total = paginate(query, page_request, NEWEST_ISSUES_FIRST)
    counts = comment_counts(session, [issue.id for issue in issues])
    payloads = [issue.to_dict(comment_count=counts.get(issue.id, 0)) for issue in issues]
    return payloads, total


def list_comments(session, issue_id: int) -> list[Comment]:
    return session.query(Comment).filter(Comment.issue_id == issue_id).order_by(*NEWEST_COMMENTS_FIRST).all()


def issue_counts(session, user_ids: Iterable[str]) -> dict[str, int]:
    ids = list(user_ids)
    if not ids:
        return {}
    rows = (
        session.query(Issue.reporter_id, func.count(Issue.id))
        .filter(Issue.reporter_id.in_(ids))
        .group_by(Issue.reporter_id)
        .all()
    )
    return {user_id: count for user_id, count in rows}


def list_users(session, page_request: PageRequest, role: Optional[str] = None) -> tuple[list[dict], int]:
    query = session.query(User)
    if role:
        query = query.filter(User.role == role)
    users, total = paginate(query, page_request, (User.created_at.asc(), User.email.asc()))
    counts = issue_counts(session, [user.id for user in users])
    payloads = []
    for user in users:
        payload = user.to_dict()
        payload["issueCount"] = counts.get(user.id, 0)
        payloads.append(payload)
    return payloads, total


def user_activity_counts(session, user_id: str) -> dict:
    issues = session.query(func.count(Issue.id)).filter(Issue.reporter_id == user_id).scalar() or 0
    comments = session.query(func.count(Comment.id)).filter(Comment.author_id == user_id).scalar() or 0
    return {"issueCount": issues, "commentCount": comments}


def _grouped_counts(session, column, keys: Iterable[str]) -> dict[str, int]:
    counts = dict.fromkeys(keys, 0)
    for key, count in session.query(column, func.count()).group_by(column).all():
        counts[key] = count
    return counts


def platform_stats(session) -> dict:
    """Totals for the admin dashboard; every known status, category and role is present."""
    return {
        "totalUsers": session.query(func.count(User.id)).scalar() or 0,
        "totalIssues": session.query(func.count(Issue.id)).scalar() or 0,
        "totalComments": session.query(func.count(Comment.id)).scalar() or 0,
        "issuesByStatus": _grouped_counts(session, Issue.status, ISSUE_STATUSES),
        "issuesByCategory": _grouped_counts(session, Issue.category, ISSUE_CATEGORIES),
        "usersByRole": _grouped_counts(session, User.role, USER_ROLES),
    }
