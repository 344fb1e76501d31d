"""
Application service: forms, submissions and reviews.

Access tiers come from ``access_service.application_access``; this module
owns the data rules:
    - a form needs a name and at least one question
    - only active forms accept submissions
    - one pending submission per user per form
    - accepting a submission grants every ``accepted_roles`` id via the bot
"""

import logging

from hub.core.exceptions import NotFoundError, ValidationError
from hub.integrations.discord_gateway import discord_gateway
from hub.models import db, utcnow
from hub.models.application import (
    DECISION_STATUSES, DEFAULT_FORM_CATEGORY, ApplicationForm, ApplicationSubmission,
)

logger = logging.getLogger(__name__)

_ROLE_FIELDS = ("admin_role_id", "moderator_role_id", "viewer_role_id", "webhook_role_id")


def _role_or_none(value):
    value = str(value).strip() if value is not None else ""
    return value or None


def _validated_questions(questions):
    if not isinstance(questions, list) or not questions:
        raise ValidationError("At least one question is required")
    return questions


def create_form(data, actor_id):
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("Name and questions are required")
    form = ApplicationForm(
        name=name,
        description=data.get("description") or "",
        questions=_validated_questions(data.get("questions")),
        accepted_roles=[str(r) for r in data.get("accepted_roles") or []],
        category=data.get("category") or DEFAULT_FORM_CATEGORY,
        webhook_url=data.get("webhook_url") or None,
        is_active=bool(data.get("is_active", True)),
        created_by=actor_id,
        **{field: _role_or_none(data.get(field)) for field in _ROLE_FIELDS},
    )
    db.session.add(form)
    db.session.flush()
    logger.info("Application form created id=%s name=%s by=%s", form.id, form.name, actor_id)
    return form


def update_form(form, data):
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Name cannot be empty")
        form.name = name
    if "questions" in data:
        form.questions = _validated_questions(data.get("questions"))
    if "description" in data:
        form.description = data.get("description") or ""
    if "accepted_roles" in data:
        form.accepted_roles = [str(r) for r in data.get("accepted_roles") or []]
    if "category" in data:
        form.category = data.get("category") or DEFAULT_FORM_CATEGORY
    if "webhook_url" in data:
        form.webhook_url = data.get("webhook_url") or None
    if "is_active" in data:
        form.is_active = bool(data.get("is_active"))
    for field in _ROLE_FIELDS:
        if field in data:
            setattr(form, field, _role_or_none(data.get(field)))
    db.session.flush()
    logger.info("Application form updated id=%s", form.id)
    return form


def delete_form(form):
    db.session.delete(form)
    db.session.flush()
    logger.info("Application form deleted id=%s", form.id)


def get_active_form(form_id):
    form = db.session.get(ApplicationForm, form_id)
    if form is None or not form.is_active:
        raise NotFoundError("Application", form_id)
    return form


def has_pending_submission(form_id, user_id) -> bool:
    return db.session.query(ApplicationSubmission.id).filter_by(
        form_id=form_id, user_id=user_id, status="pending",
    ).first() is not None


def submit(form, principal, responses):
    if not responses or not isinstance(responses, (dict, list)):
        raise ValidationError("Responses are required")
    if has_pending_submission(form.id, principal.id):
        raise ValidationError("You already have a pending submission for this application")

    submission = ApplicationSubmission(
        form_id=form.id,
        user_id=principal.id,
        responses=responses,
        status="pending",
    )
    db.session.add(submission)
    db.session.flush()
    logger.info("Application submitted form=%s submission=%s user=%s", form.id, submission.id, principal.id)
    return submission


def review(form, submission_id, reviewer, status, admin_notes=None):
    if status not in DECISION_STATUSES:
        raise ValidationError("Invalid status", details={"allowed": sorted(DECISION_STATUSES)})

    submission = ApplicationSubmission.query.filter_by(id=submission_id, form_id=form.id).first()
    if submission is None:
        raise NotFoundError("Submission", submission_id)

    submission.status = status
    submission.admin_notes = admin_notes
    submission.reviewed_at = utcnow()
    submission.reviewed_by = reviewer.id
    db.session.flush()
    logger.info("Submission %s %s by=%s", submission.id, status, reviewer.id)
    return submission


def grant_accepted_roles(form, applicant):
    """Assign the form's accepted roles; returns the role ids that failed."""
    failed = []
    for role_id in form.accepted_roles or []:
        result = discord_gateway.add_member_role(applicant.discord_id, str(role_id))
        if not result.ok:
            logger.warning(
                "Could not grant role %s to %s for form %s: %s",
                role_id, applicant.discord_id, form.id, result.error,
            )
            failed.append(str(role_id))
    return failed


def list_submissions(form_id, status=None):
    q = ApplicationSubmission.query.filter_by(form_id=form_id)
    if status:
        q = q.filter_by(status=status)
    return q.order_by(ApplicationSubmission.submitted_at.desc(), ApplicationSubmission.id.desc()).all()


def user_submissions(user_id, form_id=None):
    q = ApplicationSubmission.query.filter_by(user_id=user_id)
    if form_id is not None:
        q = q.filter_by(form_id=form_id)
    return q.order_by(ApplicationSubmission.submitted_at.desc(), ApplicationSubmission.id.desc()).all()
