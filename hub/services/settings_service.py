"""
Site settings: branding key/value pairs and self-assignable Discord roles.
"""

import logging

from hub.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from hub.integrations.discord_gateway import discord_gateway
from hub.models import db
from hub.models.settings import BRANDING_KEYS, SelfAssignableRole, SystemSetting

logger = logging.getLogger(__name__)

TOGGLE_ACTIONS = {"add", "remove"}


# ── Branding ─────────────────────────────────────────────────────────────────

def get_setting(key, default=None):
    row = SystemSetting.query.filter_by(setting_key=key).first()
    return row.setting_value if row and row.setting_value is not None else default


def set_setting(key, value):
    row = SystemSetting.query.filter_by(setting_key=key).first()
    if row is None:
        row = SystemSetting(setting_key=key)
        db.session.add(row)
    row.setting_value = value
    return row


def get_branding():
    return {key: get_setting(key) for key in BRANDING_KEYS}


def update_branding(data, actor_id):
    for key in BRANDING_KEYS:
        if key in data:
            set_setting(key, data.get(key) or None)
    db.session.flush()
    logger.info("Branding updated by=%s keys=%s", actor_id, sorted(k for k in BRANDING_KEYS if k in data))
    return get_branding()


# ── Self-assignable roles ────────────────────────────────────────────────────

def list_roles(active_only=True):
    q = SelfAssignableRole.query
    if active_only:
        q = q.filter(SelfAssignableRole.is_active.is_(True))
    return q.order_by(SelfAssignableRole.display_order, SelfAssignableRole.name).all()


def _role_fields(data):
    role_id = str(data.get("role_id") or "").strip()
    name = (data.get("name") or "").strip()
    if not role_id or not name:
        raise ValidationError("Role ID and name are required")
    try:
        display_order = int(data.get("display_order") or 0)
    except (TypeError, ValueError):
        raise ValidationError("display_order must be a number")
    return {
        "role_id": role_id,
        "name": name,
        "description": data.get("description") or "",
        "icon_url": data.get("icon_url") or None,
        "emoji": data.get("emoji") or None,
        "can_add": bool(data.get("can_add", True)),
        "can_remove": bool(data.get("can_remove", True)),
        "is_active": bool(data.get("is_active", True)),
        "display_order": display_order,
    }


def _ensure_unique_role(role_id, exclude_id=None):
    q = SelfAssignableRole.query.filter_by(role_id=role_id)
    if exclude_id is not None:
        q = q.filter(SelfAssignableRole.id != exclude_id)
    if q.first() is not None:
        raise ValidationError("A role with this ID already exists")


def create_role(data, actor_id):
    fields = _role_fields(data)
    _ensure_unique_role(fields["role_id"])
    role = SelfAssignableRole(created_by=actor_id, **fields)
    db.session.add(role)
    db.session.flush()
    logger.info("Self-assignable role created id=%s role_id=%s", role.id, role.role_id)
    return role


def update_role(role, data):
    fields = _role_fields(data)
    _ensure_unique_role(fields["role_id"], exclude_id=role.id)
    for key, value in fields.items():
        setattr(role, key, value)
    db.session.flush()
    return role


def delete_role(role):
    db.session.delete(role)
    db.session.flush()
    logger.info("Self-assignable role deleted id=%s", role.id)


def toggle_role(role_pk, discord_id, action):
    """Add or remove a self-assignable role on the caller's Discord account."""
    if action not in TOGGLE_ACTIONS:
        raise ValidationError('Invalid action. Must be "add" or "remove"')

    role = SelfAssignableRole.query.filter_by(id=role_pk, is_active=True).first()
    if role is None:
        raise NotFoundError("Role", role_pk)
    if action == "add" and not role.can_add:
        raise ForbiddenError("This role cannot be self-assigned")
    if action == "remove" and not role.can_remove:
        raise ForbiddenError("This role cannot be self-removed")

    if action == "add":
        result = discord_gateway.add_member_role(discord_id, role.role_id)
    else:
        result = discord_gateway.remove_member_role(discord_id, role.role_id)
    return role, result.ok
