"""
User service: create or refresh hub users from a Discord login.
"""

import logging

from flask import current_app

from hub.core.roles import encode_roles
from hub.integrations.discord_gateway import discord_gateway
from hub.models import db, utcnow
from hub.models.user import User

logger = logging.getLogger(__name__)


def fetch_member_roles(discord_id):
    """Guild roles held by ``discord_id`` as ``[{"id", "name"}]``.

    A member outside the guild, or a failed bot call, yields an empty list
    so the login still succeeds with no roles.
    """
    member = discord_gateway.get_guild_member(discord_id)
    if not member.ok or not isinstance(member.data, dict):
        logger.info("Guild member lookup failed for %s: %s", discord_id, member.error)
        return []
    held = [str(r) for r in member.data.get("roles", [])]
    if not held:
        return []

    names = {}
    guild_roles = discord_gateway.get_guild_roles()
    if guild_roles.ok and isinstance(guild_roles.data, list):
        names = {str(r.get("id")): r.get("name") for r in guild_roles.data if isinstance(r, dict)}
    return [{"id": role_id, "name": names.get(role_id) or role_id} for role_id in held]


def sync_discord_user(profile, roles):
    """Upsert the ``users`` row for a Discord profile with its current roles."""
    discord_id = str(profile["id"])
    admin_role_id = current_app.config.get("DISCORD_ADMIN_ROLE_ID")
    is_admin = bool(admin_role_id) and any(r["id"] == str(admin_role_id) for r in roles)

    user = User.query.filter_by(discord_id=discord_id).first()
    if user is None:
        user = User(discord_id=discord_id)
        db.session.add(user)
        logger.info("New user from Discord login: %s", discord_id)

    user.username = profile.get("username") or discord_id
    user.discriminator = profile.get("discriminator") or "0"
    user.avatar = profile.get("avatar")
    user.roles = encode_roles(roles)
    user.is_admin = is_admin
    user.last_login = utcnow()
    db.session.flush()
    return user
