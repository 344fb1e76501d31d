"""
Community Hub
Department roster models.

A Department (or organization) is visible to holders of ``roster_view_id``.
Roster entries reference members by Discord id; callsigns are the
department prefix plus a member number and are unique inside a department.
"""

from hub.models import db, iso, utcnow


CLASSIFICATIONS = {"department", "organization"}


class Department(db.Model):
    __tablename__ = "departments"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    db_name = db.Column(
        db.String(100), unique=True, nullable=False,
        comment="Department key used by the timeclock database",
    )
    callsign_prefix = db.Column(db.String(20), nullable=True)
    roster_view_id = db.Column(db.String(32), nullable=False)
    classification = db.Column(db.String(20), default="department", nullable=False)
    disable_callsigns = db.Column(db.Boolean, default=False, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    roster = db.relationship("RosterEntry", backref="department", lazy="dynamic")

    def to_dict(self, roster_count=None):
        d = {
            "id": self.id,
            "name": self.name,
            "db_name": self.db_name,
            "callsign_prefix": self.callsign_prefix,
            "roster_view_id": self.roster_view_id,
            "classification": self.classification,
            "disable_callsigns": bool(self.disable_callsigns),
            "is_active": bool(self.is_active),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
        if roster_count is not None:
            d["roster_count"] = roster_count
        return d

    def callsign_for(self, number):
        if self.disable_callsigns or number is None:
            return None
        return f"{self.callsign_prefix or ''}{number}"


class RosterEntry(db.Model):
    __tablename__ = "department_roster"
    __table_args__ = (
        db.UniqueConstraint("department_id", "discord_id", name="uq_roster_member"),
    )

    id = db.Column(db.Integer, primary_key=True)
    department_id = db.Column(
        db.Integer, db.ForeignKey("departments.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    discord_id = db.Column(db.String(32), nullable=False)
    callsign_number = db.Column(db.String(20), nullable=True)
    full_callsign = db.Column(db.String(50), nullable=True)
    added_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self, member=None):
        return {
            "id": self.id,
            "department_id": self.department_id,
            "discord_id": self.discord_id,
            "callsign_number": self.callsign_number,
            "full_callsign": self.full_callsign,
            "added_by": self.added_by,
            "username": member.username if member else None,
            "avatar": member.avatar if member else None,
            "created_at": iso(self.created_at),
        }
