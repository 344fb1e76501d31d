"""
Player record reads from the external ``staff`` bind.

Only consulted while ENABLE_PLAYER_RECORD is on and STAFF_DATABASE_URL is
configured. Any read failure degrades to "no record" so the profile page
falls back to its defaults instead of erroring.
"""

import logging

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from hub.middleware.features import is_enabled
from hub.models import db
from hub.models.staff import STAFF_BIND, StaffBan, StaffCommend, StaffKick, StaffUser, StaffWarning

logger = logging.getLogger(__name__)

PUNITIVE_MODELS = {
    "kicks": StaffKick,
    "warnings": StaffWarning,
    "bans": StaffBan,
    "commends": StaffCommend,
}


def is_available() -> bool:
    binds = current_app.config.get("SQLALCHEMY_BINDS") or {}
    return is_enabled("ENABLE_PLAYER_RECORD") and bool(binds.get(STAFF_BIND))


def find_by_discord_id(discord_id):
    return StaffUser.query.filter_by(discord_id=str(discord_id)).first()


def punitive_records(discord_id) -> dict:
    """Kicks, warnings, bans and commends for one player, newest first."""
    return {
        key: [
            row.to_dict()
            for row in model.query.filter_by(discord_id=str(discord_id)).order_by(model.created_at.desc())
        ]
        for key, model in PUNITIVE_MODELS.items()
    }


def player_record(discord_id):
    """Staff record merged with its punitive history, or None when absent or unreachable."""
    if not is_available():
        return None
    try:
        staff_user = find_by_discord_id(discord_id)
        if staff_user is None:
            return None
        record = staff_user.to_dict()
        record.update(punitive_records(discord_id))
        return record
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Staff database read failed for %s: %s", discord_id, exc)
        return None
