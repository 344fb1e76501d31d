"""
Ticket service: categories, tickets, messages, participants and audit logs.

Authorization is decided by the caller through ``access_service``; this
module enforces data rules only. Functions flush, the blueprint commits.

Claiming is a conditional UPDATE (``claimed_by IS NULL``) so two supporters
racing for the same ticket cannot both win; the loser gets ConflictError.
"""

import json
import logging

from sqlalchemy import func, or_, update

from hub.core.exceptions import ConflictError, NotFoundError, ValidationError
from hub.models import db, utcnow
from hub.models.ticket import (
    DEFAULT_CATEGORY_COLOR, DEFAULT_CATEGORY_NAME, TICKET_STATUSES, ACTIVE_STATUSES,
    Category, Ticket, TicketLog, TicketMessage, TicketParticipant,
)
from hub.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100


# ═══════════════════════════════════════════════════════════════════════════
#  CATEGORIES
# ═══════════════════════════════════════════════════════════════════════════

def ensure_default_category():
    """Create the "General Support" category on an empty install."""
    if db.session.query(Category.id).first() is not None:
        return None
    category = Category(
        name=DEFAULT_CATEGORY_NAME,
        description="General support requests",
        color=DEFAULT_CATEGORY_COLOR,
    )
    db.session.add(category)
    db.session.flush()
    logger.info("Seeded default ticket category id=%s", category.id)
    return category


def _category_fields(data):
    name = (data.get("name") or "").strip()
    required_role_id = (str(data.get("required_role_id") or "")).strip()
    if not name or not required_role_id:
        raise ValidationError("Name and required role ID are required")
    return {
        "name": name,
        "description": data.get("description") or "",
        "color": data.get("color") or DEFAULT_CATEGORY_COLOR,
        "required_role_id": required_role_id,
        "is_restricted": bool(data.get("is_restricted", False)),
    }


def create_category(data, actor_id):
    category = Category(created_by=actor_id, **_category_fields(data))
    db.session.add(category)
    db.session.flush()
    logger.info("Category created id=%s name=%s by=%s", category.id, category.name, actor_id)
    return category


def update_category(category, data):
    for key, value in _category_fields(data).items():
        setattr(category, key, value)
    db.session.flush()
    logger.info("Category updated id=%s", category.id)
    return category


def delete_category(category):
    in_use = db.session.query(Ticket.id).filter(Ticket.category_id == category.id).first()
    if in_use is not None:
        raise ValidationError("Cannot delete category with existing tickets")
    db.session.delete(category)
    db.session.flush()
    logger.info("Category deleted id=%s", category.id)


def get_category(category_id):
    """Resolve a category id from request input; unknown ids are a 400, not a 404."""
    try:
        category = db.session.get(Category, int(category_id))
    except (TypeError, ValueError):
        category = None
    if category is None:
        raise ValidationError("Invalid category")
    return category


# ═══════════════════════════════════════════════════════════════════════════
#  TICKETS
# ═══════════════════════════════════════════════════════════════════════════

def is_participant(ticket_id, user_id) -> bool:
    return db.session.query(TicketParticipant.id).filter_by(
        ticket_id=ticket_id, user_id=user_id,
    ).first() is not None


def add_log(ticket, user_id, action, details=None):
    log = TicketLog(
        ticket_id=ticket.id,
        user_id=user_id,
        action=action,
        details=json.dumps(details) if details is not None else None,
    )
    db.session.add(log)
    return log


def list_tickets(principal, *, support=False, assigned=False, support_category_ids=None,
                 category_id=None, status=None, limit=DEFAULT_LIST_LIMIT):
    """Ticket listing views.

    - support:  tickets in ``support_category_ids`` (admins: every ticket)
    - assigned: tickets assigned to or claimed by the principal
    - default:  tickets the principal owns or participates in
    """
    q = Ticket.query
    if support:
        if not principal.is_system_admin:
            if not support_category_ids:
                return []
            q = q.filter(Ticket.category_id.in_(support_category_ids))
    elif assigned:
        q = q.filter(or_(Ticket.assigned_to == principal.id, Ticket.claimed_by == principal.id))
    else:
        participating = db.session.query(TicketParticipant.ticket_id).filter(
            TicketParticipant.user_id == principal.id,
        )
        q = q.filter(or_(Ticket.owner_id == principal.id, Ticket.id.in_(participating)))

    if category_id:
        q = q.filter(Ticket.category_id == category_id)
    if status:
        q = q.filter(Ticket.status == status)

    return q.order_by(Ticket.created_at.desc(), Ticket.id.desc()).limit(limit).all()


def create_ticket(principal, category, title, description):
    ticket = Ticket(
        title=title,
        description=description,
        category_id=category.id,
        owner_id=principal.id,
        status="open",
    )
    db.session.add(ticket)
    db.session.flush()
    add_log(ticket, principal.id, "created ticket")
    logger.info("Ticket created id=%s category=%s by=%s", ticket.id, category.id, principal.id)
    return ticket


def add_message(ticket, principal, message, is_staff_reply):
    entry = TicketMessage(
        ticket_id=ticket.id,
        user_id=principal.id,
        message=message,
        is_staff_reply=is_staff_reply,
    )
    db.session.add(entry)
    ticket.updated_at = utcnow()
    add_log(ticket, principal.id, "added message")
    db.session.flush()
    return entry


def change_status(ticket, principal, status):
    if status not in TICKET_STATUSES:
        raise ValidationError("Invalid status", details={"allowed": sorted(TICKET_STATUSES)})
    previous = ticket.status
    ticket.status = status
    ticket.closed_at = utcnow() if status == "closed" else None
    add_log(ticket, principal.id, "changed status", {"from": previous, "to": status})
    db.session.flush()
    logger.info("Ticket %s status %s → %s by=%s", ticket.id, previous, status, principal.id)
    return ticket


def claim_ticket(ticket, principal):
    """Atomically claim an unclaimed ticket."""
    result = db.session.execute(
        update(Ticket)
        .where(Ticket.id == ticket.id, Ticket.claimed_by.is_(None))
        .values(claimed_by=principal.id, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.session.refresh(ticket)
        logger.info("Claim lost: ticket=%s already claimed_by=%s", ticket.id, ticket.claimed_by)
        raise ConflictError("Ticket", "claimed_by", ticket.claimed_by, message="Ticket is already claimed")
    add_log(ticket, principal.id, "claimed ticket")
    db.session.flush()
    db.session.refresh(ticket)
    return ticket


def unclaim_ticket(ticket, principal):
    ticket.claimed_by = None
    add_log(ticket, principal.id, "unclaimed ticket")
    db.session.flush()
    return ticket


def add_participant(ticket, discord_id, actor):
    user = User.query.filter_by(discord_id=str(discord_id)).first()
    if user is None:
        raise NotFoundError("User", discord_id)
    if user.id == ticket.owner_id:
        raise ValidationError("User is the ticket owner")
    if is_participant(ticket.id, user.id):
        raise ValidationError("User is already a participant")

    participant = TicketParticipant(ticket_id=ticket.id, user_id=user.id, added_by=actor.id)
    db.session.add(participant)
    add_log(ticket, actor.id, "added participant", {"user_id": user.id, "username": user.username})
    db.session.flush()
    return participant


def remove_participant(ticket, participant_id, actor):
    participant = TicketParticipant.query.filter_by(id=participant_id, ticket_id=ticket.id).first()
    if participant is None:
        raise NotFoundError("Participant", participant_id)
    username = participant.user.username if participant.user else None
    db.session.delete(participant)
    add_log(ticket, actor.id, "removed participant", {"user_id": participant.user_id, "username": username})
    db.session.flush()
    return participant


def transfer_ticket(ticket, destination, actor):
    previous = ticket.category
    ticket.category_id = destination.id
    add_log(ticket, actor.id, "transferred ticket", {
        "from": previous.name if previous else None,
        "to": destination.name,
    })
    db.session.flush()
    db.session.refresh(ticket)
    logger.info("Ticket %s transferred to category %s by=%s", ticket.id, destination.id, actor.id)
    return ticket


def ticket_detail(ticket):
    d = ticket.to_dict()
    d["messages"] = [m.to_dict() for m in ticket.messages]
    d["logs"] = [entry.to_dict() for entry in ticket.logs]
    d["participants"] = [p.to_dict() for p in ticket.participants]
    return d


def dashboard_stats(principal):
    base = Ticket.query.filter(Ticket.owner_id == principal.id)
    stats = {
        "total": base.count(),
        "open": base.filter(Ticket.status.in_(ACTIVE_STATUSES)).count(),
        "closed": base.filter(Ticket.status == "closed").count(),
    }
    if principal.is_system_admin:
        stats["users"] = db.session.query(func.count(User.id)).scalar()
    return stats
