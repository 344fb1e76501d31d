"""
Community Hub
Ticket blueprint: support categories, tickets, messages and participants.

Endpoints:
    STATS       /api/dashboard/stats                          GET
    CATEGORIES  /api/categories                               GET, POST
                /api/categories/accessible                    GET
                /api/categories/support                       GET
                /api/categories/<id>                          PUT, DELETE
    TICKETS     /api/tickets                                  GET, POST
                /api/tickets/<id>                             GET
                /api/tickets/<id>/messages                    POST
                /api/tickets/<id>/status                      PUT
                /api/tickets/<id>/claim                       PUT
                /api/tickets/<id>/participants                POST
                /api/tickets/<id>/participants/<pid>          DELETE
                /api/tickets/<id>/transfer                    PUT

Every ticket route loads the ticket first (404), then asks
``access_service.ticket_access`` for the caller's capabilities (403).
"""

import logging

from flask import Blueprint, g, jsonify, request

from hub.auth import require_admin, require_auth
from hub.models.ticket import TICKET_STATUSES, Category, Ticket
from hub.services import access_service as access
from hub.services import ticket_service
from hub.services.notification import NotificationService
from hub.utils.errors import E, api_error
from hub.utils.helpers import db_commit_or_error, get_or_404, parse_bool

logger = logging.getLogger(__name__)

ticket_bp = Blueprint("tickets", __name__, url_prefix="/api")


# ── Helpers ──────────────────────────────────────────────────────────────────

def _load_ticket(ticket_id):
    """Return (ticket, caps, err)."""
    ticket, err = get_or_404(Ticket, ticket_id, "Ticket")
    if err:
        return None, None, err
    caps = access.ticket_access(
        g.principal,
        ticket,
        ticket.category,
        ticket_service.is_participant(ticket.id, g.principal.id),
    )
    return ticket, caps, None


def _denied():
    return api_error(E.FORBIDDEN, "Access denied")


# ═══════════════════════════════════════════════════════════════════════════
#  DASHBOARD
# ═══════════════════════════════════════════════════════════════════════════

@ticket_bp.route("/dashboard/stats", methods=["GET"])
@require_auth
def dashboard_stats():
    return jsonify(ticket_service.dashboard_stats(g.principal))


# ═══════════════════════════════════════════════════════════════════════════
#  CATEGORIES
# ═══════════════════════════════════════════════════════════════════════════

@ticket_bp.route("/categories", methods=["GET"])
@require_auth
def list_categories():
    categories = Category.query.order_by(Category.name).all()
    return jsonify([c.to_dict() for c in categories])


@ticket_bp.route("/categories/accessible", methods=["GET"])
@require_auth
def accessible_categories():
    """All categories, each annotated with whether the caller may open a ticket."""
    result = []
    for category in Category.query.order_by(Category.name).all():
        d = category.to_dict()
        d["can_create_ticket"] = access.category_access(g.principal, category).can_create_ticket
        result.append(d)
    return jsonify(result)


@ticket_bp.route("/categories/support", methods=["GET"])
@require_auth
def support_categories():
    categories = Category.query.order_by(Category.name).all()
    return jsonify([
        c.to_dict() for c in categories
        if access.category_access(g.principal, c).has_support_access
    ])


@ticket_bp.route("/categories", methods=["POST"])
@require_admin
def create_category():
    data = request.get_json(silent=True) or {}
    category = ticket_service.create_category(data, g.principal.id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(category.to_dict()), 201


@ticket_bp.route("/categories/<int:category_id>", methods=["PUT"])
@require_admin
def update_category(category_id):
    category, err = get_or_404(Category, category_id, "Category")
    if err:
        return err
    ticket_service.update_category(category, request.get_json(silent=True) or {})
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(category.to_dict())


@ticket_bp.route("/categories/<int:category_id>", methods=["DELETE"])
@require_admin
def delete_category(category_id):
    category, err = get_or_404(Category, category_id, "Category")
    if err:
        return err
    ticket_service.delete_category(category)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"success": True})


# ═══════════════════════════════════════════════════════════════════════════
#  TICKETS
# ═══════════════════════════════════════════════════════════════════════════

@ticket_bp.route("/tickets", methods=["GET"])
@require_auth
def list_tickets():
    support = parse_bool(request.args.get("support"))
    assigned = parse_bool(request.args.get("assigned"))
    limit = request.args.get("limit", ticket_service.DEFAULT_LIST_LIMIT, type=int)
    limit = max(1, min(limit, 500))

    support_ids = None
    if support and not g.principal.is_system_admin:
        support_ids = access.supported_category_ids(g.principal, Category.query.all())

    tickets = ticket_service.list_tickets(
        g.principal,
        support=support,
        assigned=assigned,
        support_category_ids=support_ids,
        category_id=request.args.get("category", type=int),
        status=request.args.get("status"),
        limit=limit,
    )
    return jsonify([t.to_dict() for t in tickets])


@ticket_bp.route("/tickets/<int:ticket_id>", methods=["GET"])
@require_auth
def get_ticket(ticket_id):
    ticket, caps, err = _load_ticket(ticket_id)
    if err:
        return err
    if not caps.can_view:
        return _denied()
    d = ticket_service.ticket_detail(ticket)
    d["permissions"] = caps.to_dict()
    return jsonify(d)


@ticket_bp.route("/tickets", methods=["POST"])
@require_auth
def create_ticket():
    data = request.get_json(silent=True) or {}
    title = (data.get("title") or "").strip()
    description = (data.get("description") or "").strip()
    if not title or not description or not data.get("category_id"):
        return api_error(E.VALIDATION_REQUIRED, "Title, description, and category are required")

    category = ticket_service.get_category(data["category_id"])
    if not access.category_access(g.principal, category).can_create_ticket:
        return api_error(E.FORBIDDEN, "You do not have access to create tickets in this category")

    ticket = ticket_service.create_ticket(g.principal, category, title, description)
    err = db_commit_or_error()
    if err:
        return err

    NotificationService.ticket_event(ticket, "created ticket", g.principal, description=description[:1000])
    return jsonify(ticket.to_dict()), 201


@ticket_bp.route("/tickets/<int:ticket_id>/messages", methods=["POST"])
@require_auth
def add_message(ticket_id):
    ticket, caps, err = _load_ticket(ticket_id)
    if err:
        return err
    if not caps.can_reply:
        return _denied()

    message = ((request.get_json(silent=True) or {}).get("message") or "").strip()
    if not message:
        return api_error(E.VALIDATION_REQUIRED, "Message is required")

    entry = ticket_service.add_message(ticket, g.principal, message, caps.is_treated_as_staff)
    err = db_commit_or_error()
    if err:
        return err

    NotificationService.ticket_event(
        ticket, "added message", g.principal,
        description=f"**{g.principal.username}** replied:\n{message[:1000]}",
    )
    return jsonify(entry.to_dict()), 201


@ticket_bp.route("/tickets/<int:ticket_id>/status", methods=["PUT"])
@require_auth
def change_status(ticket_id):
    ticket, caps, err = _load_ticket(ticket_id)
    if err:
        return err

    status = (request.get_json(silent=True) or {}).get("status")
    if not status:
        return api_error(E.VALIDATION_REQUIRED, "Status is required")
    if status not in TICKET_STATUSES:
        return api_error(E.VALIDATION_INVALID, "Invalid status")
    if not caps.can_set_status(status):
        return _denied()

    previous = ticket.status
    ticket_service.change_status(ticket, g.principal, status)
    err = db_commit_or_error()
    if err:
        return err

    NotificationService.ticket_event(
        ticket, "changed status", g.principal,
        description=f"Status changed from **{previous}** to **{status}** by {g.principal.username}",
    )
    return jsonify(ticket.to_dict())


@ticket_bp.route("/tickets/<int:ticket_id>/claim", methods=["PUT"])
@require_auth
def claim_ticket(ticket_id):
    ticket, caps, err = _load_ticket(ticket_id)
    if err:
        return err

    claim = parse_bool((request.get_json(silent=True) or {}).get("claim"), default=True)
    if claim and not caps.can_claim:
        return _denied()
    if not claim and not caps.can_unclaim:
        return _denied()

    if claim:
        ticket_service.claim_ticket(ticket, g.principal)
    else:
        ticket_service.unclaim_ticket(ticket, g.principal)
    err = db_commit_or_error()
    if err:
        return err

    action = "claimed ticket" if claim else "unclaimed ticket"
    NotificationService.ticket_event(ticket, action, g.principal)
    return jsonify(ticket.to_dict())


@ticket_bp.route("/tickets/<int:ticket_id>/participants", methods=["POST"])
@require_auth
def add_participant(ticket_id):
    ticket, caps, err = _load_ticket(ticket_id)
    if err:
        return err
    if not caps.can_manage_participants:
        return _denied()

    discord_id = (request.get_json(silent=True) or {}).get("discord_id")
    if not discord_id:
        return api_error(E.VALIDATION_REQUIRED, "Discord ID is required")

    participant = ticket_service.add_participant(ticket, discord_id, g.principal)
    err = db_commit_or_error()
    if err:
        return err

    added = participant.user
    NotificationService.ticket_event(
        ticket, "added participant", g.principal,
        description=f"{g.principal.username} added **{added.username}** to the ticket",
    )
    NotificationService.ticket_event(
        ticket, "added participant", g.principal,
        description="You have been added to this ticket",
        mention=added.discord_id,
    )
    return jsonify(participant.to_dict()), 201


@ticket_bp.route("/tickets/<int:ticket_id>/participants/<int:participant_id>", methods=["DELETE"])
@require_auth
def remove_participant(ticket_id, participant_id):
    ticket, caps, err = _load_ticket(ticket_id)
    if err:
        return err
    if not caps.can_manage_participants:
        return _denied()

    participant = ticket_service.remove_participant(ticket, participant_id, g.principal)
    username = participant.user.username if participant.user else participant.user_id
    err = db_commit_or_error()
    if err:
        return err

    NotificationService.ticket_event(
        ticket, "removed participant", g.principal,
        description=f"{g.principal.username} removed **{username}** from the ticket",
    )
    return jsonify({"success": True})


@ticket_bp.route("/tickets/<int:ticket_id>/transfer", methods=["PUT"])
@require_auth
def transfer_ticket(ticket_id):
    ticket, caps, err = _load_ticket(ticket_id)
    if err:
        return err
    if not caps.can_transfer:
        return _denied()

    category_id = (request.get_json(silent=True) or {}).get("category_id")
    if not category_id:
        return api_error(E.VALIDATION_REQUIRED, "Category ID is required")
    destination = ticket_service.get_category(category_id)

    ticket_service.transfer_ticket(ticket, destination, g.principal)
    err = db_commit_or_error()
    if err:
        return err

    NotificationService.ticket_event(
        ticket, "transferred ticket", g.principal,
        description=f"Transferred to **{destination.name}** by {g.principal.username}",
    )
    return jsonify(ticket.to_dict())
