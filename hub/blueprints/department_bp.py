"""
Community Hub
Department blueprint: departments, organizations and their rosters.

Endpoints:
    /api/departments                                GET, POST
    /api/departments/classification/<type>          GET
    /api/departments/admin/all                      GET
    /api/departments/<id>                           PUT, DELETE
    /api/departments/<id>/roster                    GET, POST
    /api/departments/<id>/roster/<member_id>        PUT, DELETE

The whole blueprint answers 404 while both ENABLE_DEPARTMENTS and
ENABLE_ORGANIZATIONS are off; each classification is additionally gated by
its own flag.
Roster reads need the timeclock bind (503 otherwise).
"""

import logging

from flask import Blueprint, g, jsonify, request

from hub.auth import require_admin, require_auth
from hub.middleware.features import guard_blueprint, is_enabled
from hub.models.department import CLASSIFICATIONS, Department
from hub.services import access_service as access
from hub.services import department_service, timeclock_service
from hub.utils.errors import E, api_error
from hub.utils.helpers import db_commit_or_error, get_or_404

logger = logging.getLogger(__name__)

department_bp = Blueprint("departments", __name__, url_prefix="/api/departments")
guard_blueprint(department_bp, "ENABLE_DEPARTMENTS", "ENABLE_ORGANIZATIONS")


def _classification_enabled(classification):
    flag = department_service.CLASSIFICATION_FLAGS.get(classification)
    return bool(flag) and is_enabled(flag)


def _timeclock_unavailable():
    return api_error(E.UNAVAILABLE, "Department features are not available - database connection failed")


def _load_department(department_id):
    """Return (department, err): 404 when missing, 403 without roster access."""
    department, err = get_or_404(Department, department_id, "Department")
    if err:
        return None, err
    if not access.department_access(g.principal, department):
        return None, api_error(E.FORBIDDEN, "Access denied")
    return department, None


# ═══════════════════════════════════════════════════════════════════════════
#  DEPARTMENTS
# ═══════════════════════════════════════════════════════════════════════════

@department_bp.route("", methods=["GET"])
@require_auth
def list_departments():
    departments = [
        d for d in department_service.list_departments()
        if access.department_access(g.principal, d)
    ]
    return jsonify(department_service.serialize_departments(departments))


@department_bp.route("/classification/<string:classification>", methods=["GET"])
@require_auth
def list_by_classification(classification):
    if classification not in CLASSIFICATIONS or not _classification_enabled(classification):
        return api_error(E.FEATURE_DISABLED, f"{classification} features are disabled")
    if not timeclock_service.is_available():
        return _timeclock_unavailable()

    departments = [
        d for d in department_service.list_departments(classification=classification)
        if access.department_access(g.principal, d)
    ]
    return jsonify(department_service.serialize_departments(departments))


@department_bp.route("/admin/all", methods=["GET"])
@require_admin
def list_all_departments():
    departments = department_service.list_departments(include_inactive=True)
    return jsonify(department_service.serialize_departments(departments))


@department_bp.route("", methods=["POST"])
@require_admin
def create_department():
    department = department_service.create_department(request.get_json(silent=True) or {}, g.principal.id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(department.to_dict(roster_count=0)), 201


@department_bp.route("/<int:department_id>", methods=["PUT"])
@require_admin
def update_department(department_id):
    department, err = get_or_404(Department, department_id, "Department")
    if err:
        return err
    department_service.update_department(department, request.get_json(silent=True) or {})
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(department.to_dict())


@department_bp.route("/<int:department_id>", methods=["DELETE"])
@require_admin
def delete_department(department_id):
    department, err = get_or_404(Department, department_id, "Department")
    if err:
        return err
    department_service.delete_department(department)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True})


# ═══════════════════════════════════════════════════════════════════════════
#  ROSTER
# ═══════════════════════════════════════════════════════════════════════════

@department_bp.route("/<int:department_id>/roster", methods=["GET"])
@require_auth
def get_roster(department_id):
    department, err = _load_department(department_id)
    if err:
        return err
    if not _classification_enabled(department.classification):
        return api_error(E.FEATURE_DISABLED, f"{department.classification} features are disabled")
    if not timeclock_service.is_available():
        return _timeclock_unavailable()

    return jsonify({
        "department": department.to_dict(),
        "roster": department_service.roster(department),
    })


@department_bp.route("/<int:department_id>/roster", methods=["POST"])
@require_auth
def add_roster_member(department_id):
    department, err = _load_department(department_id)
    if err:
        return err
    entry = department_service.add_member(department, request.get_json(silent=True) or {}, g.principal.id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(entry.to_dict()), 201


@department_bp.route("/<int:department_id>/roster/<int:member_id>", methods=["PUT"])
@require_auth
def update_roster_member(department_id, member_id):
    department, err = _load_department(department_id)
    if err:
        return err
    entry = department_service.update_member(department, member_id, request.get_json(silent=True) or {})
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(entry.to_dict())


@department_bp.route("/<int:department_id>/roster/<int:member_id>", methods=["DELETE"])
@require_auth
def remove_roster_member(department_id, member_id):
    department, err = _load_department(department_id)
    if err:
        return err
    department_service.remove_member(department, member_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True})
