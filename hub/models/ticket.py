"""
Community Hub
Support desk models.

Models:
    - Category: ticket category gated by an optional Discord role
    - Ticket: a support request owned by one user
    - TicketParticipant: extra users invited onto a ticket
    - TicketMessage: conversation entries (staff replies flagged)
    - TicketLog: audit trail of ticket actions

Chain: Category → Ticket → Participant / Message / Log
"""

import json

from hub.models import db, iso, utcnow


# ── Constants ────────────────────────────────────────────────────────────────

TICKET_STATUSES = {"open", "in_progress", "closed", "cancelled"}
ACTIVE_STATUSES = {"open", "in_progress"}
DEFAULT_CATEGORY_COLOR = "#5865F2"
DEFAULT_CATEGORY_NAME = "General Support"


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, default="")
    color = db.Column(db.String(7), default=DEFAULT_CATEGORY_COLOR)
    required_role_id = db.Column(db.String(32), nullable=True)
    is_restricted = db.Column(db.Boolean, default=False, nullable=False)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "required_role_id": self.required_role_id,
            "is_restricted": bool(self.is_restricted),
            "created_by": self.created_by,
            "created_at": iso(self.created_at),
        }


class Ticket(db.Model):
    """A support ticket. ``category_id`` is nulled when its category goes away."""

    __tablename__ = "tickets"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), default="open", nullable=False, index=True)
    category_id = db.Column(
        db.Integer, db.ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    owner_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    assigned_to = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    claimed_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    category = db.relationship("Category", lazy="joined")
    owner = db.relationship("User", foreign_keys=[owner_id], lazy="joined")
    assignee = db.relationship("User", foreign_keys=[assigned_to])
    claimer = db.relationship("User", foreign_keys=[claimed_by])

    messages = db.relationship(
        "TicketMessage", backref="ticket", cascade="all, delete-orphan",
        passive_deletes=True, order_by="TicketMessage.created_at",
    )
    logs = db.relationship(
        "TicketLog", backref="ticket", cascade="all, delete-orphan",
        passive_deletes=True, order_by="TicketLog.created_at",
    )
    participants = db.relationship(
        "TicketParticipant", backref="ticket", cascade="all, delete-orphan",
        passive_deletes=True, order_by="TicketParticipant.added_at",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "category_color": self.category.color if self.category else None,
            "owner_id": self.owner_id,
            "username": self.owner.username if self.owner else None,
            "avatar": self.owner.avatar if self.owner else None,
            "assigned_to": self.assigned_to,
            "claimed_by": self.claimed_by,
            "claimed_by_username": self.claimer.username if self.claimer else None,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
            "closed_at": iso(self.closed_at),
        }


class TicketParticipant(db.Model):
    __tablename__ = "ticket_participants"
    __table_args__ = (
        db.UniqueConstraint("ticket_id", "user_id", name="uq_ticket_participant"),
    )

    id = db.Column(db.Integer, primary_key=True)
    ticket_id = db.Column(
        db.Integer, db.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    added_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    added_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    user = db.relationship("User", foreign_keys=[user_id], lazy="joined")
    adder = db.relationship("User", foreign_keys=[added_by])

    def to_dict(self):
        return {
            "id": self.id,
            "ticket_id": self.ticket_id,
            "user_id": self.user_id,
            "discord_id": self.user.discord_id if self.user else None,
            "username": self.user.username if self.user else None,
            "avatar": self.user.avatar if self.user else None,
            "added_by": self.added_by,
            "added_by_username": self.adder.username if self.adder else None,
            "added_at": iso(self.added_at),
        }


class TicketMessage(db.Model):
    __tablename__ = "ticket_messages"

    id = db.Column(db.Integer, primary_key=True)
    ticket_id = db.Column(
        db.Integer, db.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    message = db.Column(db.Text, nullable=False)
    is_staff_reply = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    author = db.relationship("User", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "ticket_id": self.ticket_id,
            "user_id": self.user_id,
            "username": self.author.username if self.author else None,
            "avatar": self.author.avatar if self.author else None,
            "message": self.message,
            "is_staff_reply": bool(self.is_staff_reply),
            "created_at": iso(self.created_at),
        }


class TicketLog(db.Model):
    __tablename__ = "ticket_logs"

    id = db.Column(db.Integer, primary_key=True)
    ticket_id = db.Column(
        db.Integer, db.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    action = db.Column(db.String(100), nullable=False)
    details = db.Column(db.Text, nullable=True, comment="JSON")
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    actor = db.relationship("User", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "ticket_id": self.ticket_id,
            "user_id": self.user_id,
            "username": self.actor.username if self.actor else None,
            "action": self.action,
            "details": json.loads(self.details) if self.details else None,
            "created_at": iso(self.created_at),
        }
