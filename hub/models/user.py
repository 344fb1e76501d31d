"""
Community Hub
Identity model.

Users are created on first Discord login and refreshed on every login.
``roles`` holds the raw JSON role list exactly as fetched from the guild;
it is decoded once per request by ``hub.auth`` into a ``Principal``.
"""

from hub.core.roles import decode_roles
from hub.models import db, iso, utcnow


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    discord_id = db.Column(db.String(32), unique=True, nullable=False, index=True)
    username = db.Column(db.String(100), nullable=False)
    discriminator = db.Column(db.String(10), default="0")
    avatar = db.Column(db.String(255), nullable=True)
    roles = db.Column(db.Text, default="[]", comment="JSON list of {id, name}")
    is_admin = db.Column(db.Boolean, default=False, nullable=False)

    is_hub_banned = db.Column(db.Boolean, default=False, nullable=False)
    hub_ban_reason = db.Column(db.Text, nullable=True)
    hub_banned_by = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
    )
    hub_banned_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    last_login = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self, include_roles=True):
        d = {
            "id": self.id,
            "discord_id": self.discord_id,
            "username": self.username,
            "discriminator": self.discriminator,
            "avatar": self.avatar,
            "is_admin": bool(self.is_admin),
            "is_hub_banned": bool(self.is_hub_banned),
            "created_at": iso(self.created_at),
            "last_login": iso(self.last_login),
        }
        if include_roles:
            d["roles"] = decode_roles(self.roles)
        return d

    def to_summary(self):
        """Compact form embedded in ticket / roster payloads."""
        return {
            "id": self.id,
            "discord_id": self.discord_id,
            "username": self.username,
            "avatar": self.avatar,
        }

    def to_management_dict(self):
        d = self.to_dict(include_roles=False)
        d.update({
            "hub_ban_reason": self.hub_ban_reason,
            "hub_banned_by": self.hub_banned_by,
            "hub_banned_at": iso(self.hub_banned_at),
        })
        return d

    def __repr__(self):
        return f"<User {self.id}: {self.username}>"
