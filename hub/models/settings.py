"""
Community Hub
Site settings and self-assignable Discord roles.
"""

from hub.models import db, iso, utcnow

BRANDING_KEYS = ("custom_logo_url", "community_name")


class SystemSetting(db.Model):
    __tablename__ = "system_settings"

    id = db.Column(db.Integer, primary_key=True)
    setting_key = db.Column(db.String(100), unique=True, nullable=False)
    setting_value = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class SelfAssignableRole(db.Model):
    __tablename__ = "self_assignable_roles"

    id = db.Column(db.Integer, primary_key=True)
    role_id = db.Column(db.String(32), unique=True, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, default="")
    icon_url = db.Column(db.String(500), nullable=True)
    emoji = db.Column(db.String(50), nullable=True)
    can_add = db.Column(db.Boolean, default=True, nullable=False)
    can_remove = db.Column(db.Boolean, default=True, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    display_order = db.Column(db.Integer, default=0, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self, has_role=None):
        d = {
            "id": self.id,
            "role_id": self.role_id,
            "name": self.name,
            "description": self.description,
            "icon_url": self.icon_url,
            "emoji": self.emoji,
            "can_add": bool(self.can_add),
            "can_remove": bool(self.can_remove),
            "is_active": bool(self.is_active),
            "display_order": self.display_order,
            "created_at": iso(self.created_at),
        }
        if has_role is not None:
            d["hasRole"] = has_role
        return d
