"""
Community Hub
External timeclock table.

Lives in a separate database owned by the in-game timeclock; mapped through
the ``timeclock`` SQLAlchemy bind and only ever read by the hub.
"""

from hub.models import db

TIMECLOCK_BIND = "timeclock"


class TimeclockEntry(db.Model):
    __bind_key__ = TIMECLOCK_BIND
    __tablename__ = "timeclock_i"

    id = db.Column(db.Integer, primary_key=True)
    identifier = db.Column(db.String(32), nullable=False, index=True, comment="Discord id")
    department = db.Column(db.String(100), nullable=False, index=True)
    minutes = db.Column(db.Integer, nullable=False, default=0)
    timestamp = db.Column(db.DateTime, nullable=False, index=True)
