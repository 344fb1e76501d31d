"""
Community Hub
Application blueprint: role-gated forms, submissions and reviews.

Endpoints:
    /api/applications                                   GET, POST
    /api/applications/public                            GET
    /api/applications/<id>                              GET, PUT, DELETE
    /api/applications/<id>/submit                       POST
    /api/applications/<id>/submissions                  GET
    /api/applications/<app_id>/submissions/<sub_id>     PUT
    /api/applications/<id>/my-submissions               GET
    /api/my-applications                                GET

Access tiers (administer ⊂ review ⊂ submit) come from
``access_service.application_access``.
"""

import logging

from flask import Blueprint, g, jsonify, request

from hub.auth import require_admin, require_auth
from hub.models.application import ApplicationForm
from hub.services import access_service as access
from hub.services import application_service
from hub.services.notification import NotificationService
from hub.utils.errors import E, api_error
from hub.utils.helpers import db_commit_or_error, get_or_404

logger = logging.getLogger(__name__)

application_bp = Blueprint("applications", __name__, url_prefix="/api")


def _active_forms():
    return (
        ApplicationForm.query
        .filter(ApplicationForm.is_active.is_(True))
        .order_by(ApplicationForm.category, ApplicationForm.name)
        .all()
    )


# ═══════════════════════════════════════════════════════════════════════════
#  FORMS
# ═══════════════════════════════════════════════════════════════════════════

@application_bp.route("/applications", methods=["GET"])
@require_auth
def list_applications():
    """Active forms the caller can review; admins see every active form."""
    forms = [f for f in _active_forms() if access.application_access(g.principal, f).can_review]
    return jsonify([f.to_dict() for f in forms])


@application_bp.route("/applications/public", methods=["GET"])
@require_auth
def public_applications():
    result = []
    for form in _active_forms():
        d = form.to_public_dict()
        d["can_submit"] = access.application_access(g.principal, form).can_submit
        result.append(d)
    return jsonify(result)


@application_bp.route("/applications", methods=["POST"])
@require_admin
def create_application():
    form = application_service.create_form(request.get_json(silent=True) or {}, g.principal.id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(form.to_dict()), 201


@application_bp.route("/applications/<int:form_id>", methods=["GET"])
@require_auth
def get_application(form_id):
    form, err = get_or_404(ApplicationForm, form_id, "Application")
    if err:
        return err
    caps = access.application_access(g.principal, form)
    if not caps.can_review and not form.is_active:
        return api_error(E.FORBIDDEN, "Application is not active")

    d = form.to_dict() if caps.can_review else form.to_public_dict()
    d["permissions"] = {
        "can_submit": caps.can_submit,
        "can_review": caps.can_review,
        "can_administer": caps.can_administer,
    }
    return jsonify(d)


@application_bp.route("/applications/<int:form_id>", methods=["PUT"])
@require_auth
def update_application(form_id):
    form, err = get_or_404(ApplicationForm, form_id, "Application")
    if err:
        return err
    if not access.application_access(g.principal, form).can_administer:
        return api_error(E.FORBIDDEN, "Access denied")

    application_service.update_form(form, request.get_json(silent=True) or {})
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(form.to_dict())


@application_bp.route("/applications/<int:form_id>", methods=["DELETE"])
@require_admin
def delete_application(form_id):
    form, err = get_or_404(ApplicationForm, form_id, "Application")
    if err:
        return err
    application_service.delete_form(form)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True})


# ═══════════════════════════════════════════════════════════════════════════
#  SUBMISSIONS
# ═══════════════════════════════════════════════════════════════════════════

@application_bp.route("/applications/<int:form_id>/submit", methods=["POST"])
@require_auth
def submit_application(form_id):
    form = application_service.get_active_form(form_id)
    if not access.application_access(g.principal, form).can_submit:
        return api_error(E.FORBIDDEN, "You do not have permission to submit this application")

    responses = (request.get_json(silent=True) or {}).get("responses")
    submission = application_service.submit(form, g.principal, responses)
    err = db_commit_or_error()
    if err:
        return err

    NotificationService.application_submitted(form, submission, g.current_user)
    return jsonify(submission.to_dict()), 201


@application_bp.route("/applications/<int:form_id>/submissions", methods=["GET"])
@require_auth
def list_submissions(form_id):
    form, err = get_or_404(ApplicationForm, form_id, "Application")
    if err:
        return err
    if not access.application_access(g.principal, form).can_review:
        return api_error(E.FORBIDDEN, "Access denied")

    submissions = application_service.list_submissions(form.id, request.args.get("status"))
    return jsonify([s.to_dict() for s in submissions])


@application_bp.route("/applications/<int:form_id>/submissions/<int:submission_id>", methods=["PUT"])
@require_auth
def review_submission(form_id, submission_id):
    form, err = get_or_404(ApplicationForm, form_id, "Application")
    if err:
        return err
    if not access.application_access(g.principal, form).can_review:
        return api_error(E.FORBIDDEN, "Access denied")

    data = request.get_json(silent=True) or {}
    submission = application_service.review(
        form, submission_id, g.principal, data.get("status"), data.get("admin_notes"),
    )
    err = db_commit_or_error()
    if err:
        return err

    applicant = submission.applicant
    failed_roles = []
    if submission.status == "accepted" and applicant is not None:
        failed_roles = application_service.grant_accepted_roles(form, applicant)
    if applicant is not None:
        NotificationService.application_decision(form, submission, applicant, notes=data.get("admin_notes"))

    d = submission.to_dict()
    if failed_roles:
        d["failed_roles"] = failed_roles
    return jsonify(d)


@application_bp.route("/my-applications", methods=["GET"])
@require_auth
def my_applications():
    return jsonify([s.to_dict() for s in application_service.user_submissions(g.principal.id)])


@application_bp.route("/applications/<int:form_id>/my-submissions", methods=["GET"])
@require_auth
def my_submissions(form_id):
    submissions = application_service.user_submissions(g.principal.id, form_id=form_id)
    return jsonify([s.to_dict() for s in submissions])
