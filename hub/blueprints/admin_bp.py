"""
Community Hub
Admin blueprint: branding, self-assignable roles, profile and hub management.

Endpoints:
    BRANDING    /api/settings/branding                          GET (public), PUT (admin)
    ROLES       /api/roles/self-assignable                      GET
                /api/roles/self-assignable/<id>/toggle          POST
                /api/admin/roles/self-assignable                GET, POST (admin)
                /api/admin/roles/self-assignable/<id>           PUT, DELETE (admin)
    PROFILE     /api/profile                                    GET
    MANAGEMENT  /api/management/users                           GET
                /api/management/users/<id>/ban                  POST
                /api/management/users/<id>/unban                POST
"""

import logging

from flask import Blueprint, g, jsonify, request

from hub.auth import require_admin, require_auth, require_management
from hub.core.roles import decode_roles
from hub.integrations.discord_gateway import discord_gateway
from hub.models.settings import SelfAssignableRole
from hub.services import management_service, settings_service, staff_service
from hub.utils.errors import E, api_error
from hub.utils.helpers import db_commit_or_error, get_or_404

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/api")


# ═══════════════════════════════════════════════════════════════════════════
#  BRANDING
# ═══════════════════════════════════════════════════════════════════════════

@admin_bp.route("/settings/branding", methods=["GET"])
def get_branding():
    return jsonify(settings_service.get_branding())


@admin_bp.route("/settings/branding", methods=["PUT"])
@require_admin
def update_branding():
    settings_service.update_branding(request.get_json(silent=True) or {}, g.principal.id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(settings_service.get_branding())


# ═══════════════════════════════════════════════════════════════════════════
#  SELF-ASSIGNABLE ROLES
# ═══════════════════════════════════════════════════════════════════════════

@admin_bp.route("/roles/self-assignable", methods=["GET"])
@require_auth
def self_assignable_roles():
    """Active roles, each flagged with whether the caller holds it on Discord right now."""
    held = set(discord_gateway.get_member_role_ids(g.principal.discord_id))
    return jsonify([
        role.to_dict(has_role=role.role_id in held)
        for role in settings_service.list_roles(active_only=True)
    ])


@admin_bp.route("/roles/self-assignable/<int:role_pk>/toggle", methods=["POST"])
@require_auth
def toggle_self_assignable_role(role_pk):
    action = (request.get_json(silent=True) or {}).get("action")
    role, ok = settings_service.toggle_role(role_pk, g.principal.discord_id, action)
    if not ok:
        return api_error(E.INTERNAL, "Failed to update role on Discord")
    logger.info("User %s %s self-assignable role %s", g.principal.id, action, role.role_id)
    return jsonify({
        "message": f"Role {'added' if action == 'add' else 'removed'} successfully",
        "action": action,
        "roleName": role.name,
    })


@admin_bp.route("/admin/roles/self-assignable", methods=["GET"])
@require_admin
def list_self_assignable_roles():
    return jsonify([r.to_dict() for r in settings_service.list_roles(active_only=False)])


@admin_bp.route("/admin/roles/self-assignable", methods=["POST"])
@require_admin
def create_self_assignable_role():
    role = settings_service.create_role(request.get_json(silent=True) or {}, g.principal.id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(role.to_dict()), 201


@admin_bp.route("/admin/roles/self-assignable/<int:role_pk>", methods=["PUT"])
@require_admin
def update_self_assignable_role(role_pk):
    role, err = get_or_404(SelfAssignableRole, role_pk, "Role")
    if err:
        return err
    settings_service.update_role(role, request.get_json(silent=True) or {})
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(role.to_dict())


@admin_bp.route("/admin/roles/self-assignable/<int:role_pk>", methods=["DELETE"])
@require_admin
def delete_self_assignable_role(role_pk):
    role, err = get_or_404(SelfAssignableRole, role_pk, "Role")
    if err:
        return err
    settings_service.delete_role(role)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True})


# ═══════════════════════════════════════════════════════════════════════════
#  PROFILE
# ═══════════════════════════════════════════════════════════════════════════

@admin_bp.route("/profile", methods=["GET"])
@require_auth
def profile():
    """Basic profile, enriched with the player record when one is available."""
    user = g.current_user
    body = {
        "discord_id": user.discord_id,
        "username": user.username,
        "avatar": user.avatar,
        "discriminator": user.discriminator,
        "roles": decode_roles(user.roles),
        "is_admin": bool(user.is_admin),
        "trustScore": 0,
        "kicks": [],
        "warnings": [],
        "bans": [],
        "commends": [],
    }
    record = staff_service.player_record(user.discord_id)
    if record:
        body.update(record)
    return jsonify(body)


# ═══════════════════════════════════════════════════════════════════════════
#  MANAGEMENT
# ═══════════════════════════════════════════════════════════════════════════

@admin_bp.route("/management/users", methods=["GET"])
@require_management
def list_users():
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", 20, type=int)
    search = (request.args.get("search") or "").strip() or None
    return jsonify(management_service.list_users(page=page, limit=limit, search=search))


@admin_bp.route("/management/users/<int:user_id>/ban", methods=["POST"])
@require_management
def ban_user(user_id):
    reason = (request.get_json(silent=True) or {}).get("reason")
    user = management_service.ban_user(user_id, reason, g.principal)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "User banned successfully", "user": user.to_management_dict()})


@admin_bp.route("/management/users/<int:user_id>/unban", methods=["POST"])
@require_management
def unban_user(user_id):
    user = management_service.unban_user(user_id, g.principal)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "User unbanned successfully", "user": user.to_management_dict()})
