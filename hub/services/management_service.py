"""
Management service: user directory and hub bans.

A hub ban blocks every authenticated route at the authentication boundary;
Discord membership is untouched.
"""

import logging
import math

from sqlalchemy import or_

from hub.core.exceptions import NotFoundError, ValidationError
from hub.models import db, utcnow
from hub.models.user import User

logger = logging.getLogger(__name__)


def list_users(page=1, limit=20, search=None):
    page = max(int(page or 1), 1)
    limit = min(max(int(limit or 20), 1), 100)

    q = User.query
    if search:
        like = f"%{search}%"
        q = q.filter(or_(User.username.ilike(like), User.discord_id.like(like)))

    total = q.count()
    users = (
        q.order_by(User.created_at.desc(), User.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
        .all()
    )
    banned_by_ids = {u.hub_banned_by for u in users if u.hub_banned_by}
    names = {}
    if banned_by_ids:
        names = dict(db.session.query(User.id, User.username).filter(User.id.in_(banned_by_ids)).all())

    rows = []
    for u in users:
        row = u.to_management_dict()
        row["banned_by_name"] = names.get(u.hub_banned_by)
        rows.append(row)

    return {
        "users": rows,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if total else 0,
        },
    }


def _get_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def ban_user(user_id, reason, actor):
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Ban reason is required")
    user = _get_user(user_id)
    if user.is_hub_banned:
        raise ValidationError("User is already banned")
    if user.is_admin or user.id == actor.id:
        raise ValidationError("Cannot ban this user")

    user.is_hub_banned = True
    user.hub_ban_reason = reason
    user.hub_banned_by = actor.id
    user.hub_banned_at = utcnow()
    db.session.flush()
    logger.warning("User %s hub-banned by %s: %s", user.id, actor.id, reason)
    return user


def unban_user(user_id, actor):
    user = _get_user(user_id)
    if not user.is_hub_banned:
        raise ValidationError("User is not banned")

    user.is_hub_banned = False
    user.hub_ban_reason = None
    user.hub_banned_by = None
    user.hub_banned_at = None
    db.session.flush()
    logger.info("User %s unbanned by %s", user.id, actor.id)
    return user
