"""Core data models for accounts, reported issues, and discussion threads."""
import uuid
from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from civicwatch.extensions import db


def generate_uuid() -> str:
	return str(uuid.uuid4())


USER_ROLES: tuple[str, ...] = (
	"CITIZEN",
	"OFFICIAL",
	"ADMIN",
)

ISSUE_CATEGORIES: tuple[str, ...] = (
	"ROADS",
	"WATER",
	"ELECTRICITY",
	"SANITATION",
	"PUBLIC_SAFETY",
	"ENVIRONMENT",
	"PUBLIC_PROPERTY",
	"OTHER",
)

ISSUE_STATUSES: tuple[str, ...] = (
	"REPORTED",
	"UNDER_REVIEW",
	"IN_PROGRESS",
	"RESOLVED",
	"CLOSED",
)


def _in_clause(column: str, values: tuple[str, ...]) -> str:
	quoted = ",".join(f"'{v}'" for v in values)
	return f"{column} IN ({quoted})"


class User(UserMixin, db.Model):
	__tablename__ = "users"

	id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
	name = db.Column(db.String(150), nullable=False)
	email = db.Column(db.String(255), unique=True, nullable=False, index=True)
	password_hash = db.Column(db.String(255), nullable=False)
	role = db.Column(db.String(20), nullable=False, default="CITIZEN", index=True)
	profile_picture = db.Column(db.String(1024), nullable=True)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
	updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

	__table_args__ = (
		db.CheckConstraint(_in_clause("role", USER_ROLES), name="ck_user_role_valid"),
	)

	issues = db.relationship("Issue", back_populates="reporter", lazy="dynamic")
	comments = db.relationship("Comment", back_populates="author", lazy="dynamic")

	def set_password(self, password: str) -> None:
		self.password_hash = generate_password_hash(password, method="pbkdf2:sha256", salt_length=16)

	def check_password(self, password: str) -> bool:
		return check_password_hash(self.password_hash, password)

	def public_payload(self) -> dict:
		"""Projection safe to embed next to issues and comments."""
		return {
			"id": self.id,
			"name": self.name,
			"email": self.email,
			"role": self.role,
			"profilePicture": self.profile_picture,
		}

	def to_dict(self) -> dict:
		payload = self.public_payload()
		payload["createdAt"] = _iso(self.created_at)
		payload["updatedAt"] = _iso(self.updated_at)
		return payload


class Issue(db.Model):
	__tablename__ = "issues"

	id = db.Column(db.Integer, primary_key=True)
	title = db.Column(db.String(255), nullable=False)
	description = db.Column(db.Text, nullable=False)
	location = db.Column(db.String(255), nullable=False)
	latitude = db.Column(db.Float, nullable=True)
	longitude = db.Column(db.Float, nullable=True)
	category = db.Column(db.String(30), nullable=False, index=True)
	status = db.Column(db.String(20), nullable=False, default="REPORTED", index=True)
	upvotes = db.Column(db.Integer, nullable=False, default=0)
	images = db.Column(db.JSON, nullable=False, default=list)
	reporter_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
	updated_at = db.Column(
		db.DateTime,
		default=datetime.utcnow,
		onupdate=datetime.utcnow,
		nullable=False,
	)

	__table_args__ = (
		db.CheckConstraint(_in_clause("category", ISSUE_CATEGORIES), name="ck_issue_category_valid"),
		db.CheckConstraint(_in_clause("status", ISSUE_STATUSES), name="ck_issue_status_valid"),
		db.CheckConstraint("upvotes >= 0", name="ck_issue_upvotes_non_negative"),
		db.Index("ix_issues_status_category", "status", "category"),
	)

	reporter = db.relationship("User", back_populates="issues")
	comments = db.relationship(
		"Comment",
		back_populates="issue",
		lazy="dynamic",
		passive_deletes=True,
	)

	def to_dict(self, include_reporter: bool = True, comment_count: int | None = None) -> dict:
		payload = {
			"id": self.id,
			"title": self.title,
			"description": self.description,
			"location": self.location,
			"latitude": self.latitude,
			"longitude": self.longitude,
			"category": self.category,
			"status": self.status,
			"upvotes": self.upvotes,
			"images": list(self.images or []),
			"reporterId": self.reporter_id,
			"createdAt": _iso(self.created_at),
			"updatedAt": _iso(self.updated_at),
		}
		if include_reporter and self.reporter is not None:
			payload["reporter"] = self.reporter.public_payload()
		if comment_count is not None:
			payload["commentCount"] = comment_count
		return payload


class Comment(db.Model):
	__tablename__ = "comments"

	id = db.Column(db.Integer, primary_key=True)
	content = db.Column(db.String(500), nullable=False)
	author_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
	issue_id = db.Column(db.Integer, db.ForeignKey("issues.id"), nullable=False, index=True)
	created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

	author = db.relationship("User", back_populates="comments")
	issue = db.relationship("Issue", back_populates="comments")

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"content": self.content,
			"issueId": self.issue_id,
			"authorId": self.author_id,
			"author": self.author.public_payload() if self.author else None,
			"createdAt": _iso(self.created_at),
		}


def _iso(value: datetime | None) -> str | None:
	return value.isoformat() if value else None
