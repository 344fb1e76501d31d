"""
Community Hub
External staff-record tables (player record).

Owned by the game server's staff tooling and mapped through the ``staff``
SQLAlchemy bind. The hub only reads them to enrich ``/api/profile``.
"""

from hub.models import db, iso

STAFF_BIND = "staff"


class StaffUser(db.Model):
    __bind_key__ = STAFF_BIND
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    discord_id = db.Column(db.String(32), nullable=False, index=True)
    username = db.Column(db.String(100), nullable=True)
    trust_score = db.Column(db.Integer, nullable=False, default=0)
    playtime_minutes = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=True)
    last_seen = db.Column(db.DateTime, nullable=True)

    def to_dict(self):
        return {
            "player_name": self.username,
            "trustScore": self.trust_score or 0,
            "playtime_minutes": self.playtime_minutes or 0,
            "first_seen": iso(self.created_at),
            "last_seen": iso(self.last_seen),
        }


class _PunitiveRecord(db.Model):
    __abstract__ = True
    __bind_key__ = STAFF_BIND

    id = db.Column(db.Integer, primary_key=True)
    discord_id = db.Column(db.String(32), nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)
    issued_by = db.Column(db.String(100), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "reason": self.reason,
            "issued_by": self.issued_by,
            "created_at": iso(self.created_at),
        }


class StaffKick(_PunitiveRecord):
    __tablename__ = "kicks"


class StaffWarning(_PunitiveRecord):
    __tablename__ = "warnings"


class StaffBan(_PunitiveRecord):
    __tablename__ = "bans"

    expires_at = db.Column(db.DateTime, nullable=True, comment="NULL = permanent")

    def to_dict(self):
        d = super().to_dict()
        d["expires_at"] = iso(self.expires_at)
        return d


class StaffCommend(_PunitiveRecord):
    __tablename__ = "commends"
