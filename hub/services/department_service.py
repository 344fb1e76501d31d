"""
Department service: department CRUD and roster membership.

Callsign rules:
    - callsigns enabled:  ``callsign_number`` required, ``full_callsign`` =
      prefix + number, unique inside the department
    - callsigns disabled: both stay null and roster edits are rejected
"""

import logging

from sqlalchemy import func

from hub.core.exceptions import NotFoundError, ValidationError
from hub.models import db
from hub.models.department import CLASSIFICATIONS, Department, RosterEntry
from hub.models.user import User
from hub.services import timeclock_service

logger = logging.getLogger(__name__)

CLASSIFICATION_FLAGS = {
    "department": "ENABLE_DEPARTMENTS",
    "organization": "ENABLE_ORGANIZATIONS",
}


# ═══════════════════════════════════════════════════════════════════════════
#  DEPARTMENTS
# ═══════════════════════════════════════════════════════════════════════════

def roster_counts(department_ids):
    if not department_ids:
        return {}
    rows = (
        db.session.query(RosterEntry.department_id, func.count(RosterEntry.id))
        .filter(RosterEntry.department_id.in_(department_ids))
        .group_by(RosterEntry.department_id)
        .all()
    )
    return dict(rows)


def serialize_departments(departments):
    counts = roster_counts([d.id for d in departments])
    return [d.to_dict(roster_count=counts.get(d.id, 0)) for d in departments]


def list_departments(classification=None, include_inactive=False):
    q = Department.query
    if not include_inactive:
        q = q.filter(Department.is_active.is_(True))
    if classification:
        q = q.filter(Department.classification == classification)
    return q.order_by(Department.classification, Department.name).all()


def _department_fields(data, department_id=None):
    name = (data.get("name") or "").strip()
    db_name = (data.get("db_name") or "").strip()
    roster_view_id = str(data.get("roster_view_id") or "").strip()
    classification = data.get("classification")
    disable_callsigns = bool(data.get("disable_callsigns", False))
    prefix = (data.get("callsign_prefix") or "").strip()

    if not name or not db_name or not roster_view_id or not classification:
        raise ValidationError("Name, DB name, roster view ID, and classification are required")
    if not disable_callsigns and not prefix:
        raise ValidationError("Callsign prefix is required when callsigns are enabled")
    if classification not in CLASSIFICATIONS:
        raise ValidationError("Invalid classification")

    clash = Department.query.filter(Department.db_name == db_name)
    if department_id is not None:
        clash = clash.filter(Department.id != department_id)
    if clash.first() is not None:
        raise ValidationError("Database name already exists")

    return {
        "name": name,
        "db_name": db_name,
        "callsign_prefix": prefix,
        "roster_view_id": roster_view_id,
        "classification": classification,
        "disable_callsigns": disable_callsigns,
    }


def create_department(data, actor_id):
    department = Department(created_by=actor_id, **_department_fields(data))
    db.session.add(department)
    db.session.flush()
    logger.info("Department created id=%s db_name=%s by=%s", department.id, department.db_name, actor_id)
    return department


def update_department(department, data):
    for key, value in _department_fields(data, department_id=department.id).items():
        setattr(department, key, value)
    if "is_active" in data:
        department.is_active = bool(data.get("is_active"))
    db.session.flush()
    logger.info("Department updated id=%s", department.id)
    return department


def delete_department(department):
    if department.roster.count() > 0:
        raise ValidationError("Cannot delete department with existing roster members")
    db.session.delete(department)
    db.session.flush()
    logger.info("Department deleted id=%s", department.id)


# ═══════════════════════════════════════════════════════════════════════════
#  ROSTER
# ═══════════════════════════════════════════════════════════════════════════

def _member_map(discord_ids):
    if not discord_ids:
        return {}
    users = User.query.filter(User.discord_id.in_(discord_ids)).all()
    return {u.discord_id: u for u in users}


def roster(department, now=None):
    """Roster rows with member profile and this week's timeclock minutes."""
    entries = department.roster.all()
    members = _member_map([e.discord_id for e in entries])
    with_timeclock = timeclock_service.is_available()

    rows = []
    for entry in entries:
        minutes = 0
        if with_timeclock:
            minutes = timeclock_service.weekly_minutes(entry.discord_id, department.db_name, now=now)
        row = entry.to_dict(member=members.get(entry.discord_id))
        row["weekly_timeclock_minutes"] = minutes
        row["weekly_timeclock_formatted"] = timeclock_service.format_short(minutes)
        rows.append(row)

    if department.disable_callsigns:
        rows.sort(key=lambda r: ((r["username"] or "").lower(), r["id"]))
    else:
        rows.sort(key=lambda r: (r["full_callsign"] or "", r["id"]))
    return rows


def _callsign_taken(department, full_callsign, exclude_id=None):
    q = RosterEntry.query.filter_by(department_id=department.id, full_callsign=full_callsign)
    if exclude_id is not None:
        q = q.filter(RosterEntry.id != exclude_id)
    return q.first() is not None


def add_member(department, data, actor_id):
    discord_id = str(data.get("discord_id") or "").strip()
    if not discord_id:
        raise ValidationError("Discord ID is required")
    if RosterEntry.query.filter_by(department_id=department.id, discord_id=discord_id).first():
        raise ValidationError("User is already in this department roster")

    number, full_callsign = None, None
    if not department.disable_callsigns:
        number = str(data.get("callsign_number") or "").strip()
        if not number:
            raise ValidationError("Callsign number is required for this department")
        full_callsign = department.callsign_for(number)
        if _callsign_taken(department, full_callsign):
            raise ValidationError("Callsign already exists in this department")

    entry = RosterEntry(
        department_id=department.id,
        discord_id=discord_id,
        callsign_number=number,
        full_callsign=full_callsign,
        added_by=actor_id,
    )
    db.session.add(entry)
    db.session.flush()
    logger.info("Roster add dept=%s discord_id=%s callsign=%s by=%s",
                department.id, discord_id, full_callsign, actor_id)
    return entry


def get_member(department, member_id):
    entry = RosterEntry.query.filter_by(id=member_id, department_id=department.id).first()
    if entry is None:
        raise NotFoundError("Roster member", member_id)
    return entry


def update_member(department, member_id, data):
    entry = get_member(department, member_id)
    if department.disable_callsigns:
        raise ValidationError("Callsigns are disabled for this department")
    number = str(data.get("callsign_number") or "").strip()
    if not number:
        raise ValidationError("Callsign number is required")
    full_callsign = department.callsign_for(number)
    if _callsign_taken(department, full_callsign, exclude_id=entry.id):
        raise ValidationError("Callsign already exists in this department")

    entry.callsign_number = number
    entry.full_callsign = full_callsign
    db.session.flush()
    logger.info("Roster update dept=%s member=%s callsign=%s", department.id, entry.id, full_callsign)
    return entry


def remove_member(department, member_id):
    entry = get_member(department, member_id)
    db.session.delete(entry)
    db.session.flush()
    logger.info("Roster remove dept=%s member=%s", department.id, member_id)
    return entry
