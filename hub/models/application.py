"""
Community Hub
Application form models.

An ApplicationForm carries three optional role tiers (admin ⊃ moderator ⊃
viewer) that decide who may administer, review and submit. Submissions are
removed together with their form.
"""

from hub.models import db, iso, utcnow


SUBMISSION_STATUSES = {"pending", "accepted", "denied"}
DECISION_STATUSES = {"accepted", "denied"}
DEFAULT_FORM_CATEGORY = "General"


class ApplicationForm(db.Model):
    __tablename__ = "application_forms"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    questions = db.Column(db.JSON, nullable=False, default=list)
    admin_role_id = db.Column(db.String(32), nullable=True)
    moderator_role_id = db.Column(db.String(32), nullable=True)
    viewer_role_id = db.Column(db.String(32), nullable=True)
    accepted_roles = db.Column(db.JSON, nullable=False, default=list)
    category = db.Column(db.String(100), default=DEFAULT_FORM_CATEGORY)
    webhook_url = db.Column(db.String(500), nullable=True)
    webhook_role_id = db.Column(db.String(32), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    submissions = db.relationship(
        "ApplicationSubmission", backref="form", cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "questions": self.questions or [],
            "admin_role_id": self.admin_role_id,
            "moderator_role_id": self.moderator_role_id,
            "viewer_role_id": self.viewer_role_id,
            "accepted_roles": self.accepted_roles or [],
            "category": self.category,
            "webhook_url": self.webhook_url,
            "webhook_role_id": self.webhook_role_id,
            "is_active": bool(self.is_active),
            "created_by": self.created_by,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }

    def to_public_dict(self):
        """Applicant-facing view without webhook or role configuration."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "questions": self.questions or [],
            "category": self.category,
            "is_active": bool(self.is_active),
        }


class ApplicationSubmission(db.Model):
    __tablename__ = "application_submissions"

    id = db.Column(db.Integer, primary_key=True)
    form_id = db.Column(
        db.Integer, db.ForeignKey("application_forms.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    status = db.Column(db.String(20), default="pending", nullable=False, index=True)
    responses = db.Column(db.JSON, nullable=False, default=dict)
    admin_notes = db.Column(db.Text, nullable=True)
    submitted_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reviewed_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    applicant = db.relationship("User", foreign_keys=[user_id], lazy="joined")
    reviewer = db.relationship("User", foreign_keys=[reviewed_by])

    def to_dict(self):
        return {
            "id": self.id,
            "form_id": self.form_id,
            "form_name": self.form.name if self.form else None,
            "user_id": self.user_id,
            "username": self.applicant.username if self.applicant else None,
            "discord_id": self.applicant.discord_id if self.applicant else None,
            "avatar": self.applicant.avatar if self.applicant else None,
            "status": self.status,
            "responses": self.responses or {},
            "admin_notes": self.admin_notes,
            "submitted_at": iso(self.submitted_at),
            "reviewed_at": iso(self.reviewed_at),
            "reviewed_by": self.reviewed_by,
            "reviewed_by_username": self.reviewer.username if self.reviewer else None,
        }
