"""
Discord notifications for ticket and application events.

Delivery is fire-and-forget: a failed webhook is logged and dropped, and no
caller ever branches on the outcome. Sends still run inline in the request,
bounded by the gateway's 3 s webhook timeout with no rate-limit retry.
Authorization decisions are always made before a notification is built.

Routing:
    ticket events           → DISCORD_WEBHOOK_URL
    application submitted   → form.webhook_url (role ping), else DISCORD_WEBHOOK_URL
    application decisions   → DISCORD_APPLICATION_WEBHOOK_URL, else form.webhook_url
"""

import logging
from datetime import datetime, timezone

from flask import current_app

from hub.integrations.discord_gateway import discord_gateway

logger = logging.getLogger(__name__)

TICKET_COLOR = 0xB331FF
SUBMITTED_COLOR = 0x5865F2
DECISION_COLORS = {"accepted": 0x2ECC71, "denied": 0xE74C3C}


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def _field(name, value, inline=True):
    return {"name": name, "value": str(value) if value not in (None, "") else "-", "inline": inline}


def ticket_embed(ticket, action, actor, description=None):
    return {
        "title": f"Ticket #{ticket.id}",
        "description": description or f"**{action}** by {actor.username}",
        "color": TICKET_COLOR,
        "fields": [
            _field("Title", ticket.title, inline=False),
            _field("Category", ticket.category.name if ticket.category else "Uncategorized"),
            _field("Status", ticket.status),
        ],
        "timestamp": _now_iso(),
    }


def application_embed(form, submission, applicant, decision=None, notes=None):
    title = f"Application {decision.capitalize()}" if decision else "Application Submitted"
    fields = [
        _field("Application", form.name),
        _field("Applicant", f"{applicant.username} (<@{applicant.discord_id}>)"),
        _field("Submitted", submission.submitted_at.isoformat() if submission.submitted_at else None),
    ]
    if decision:
        fields.append(_field("Decision", decision.capitalize()))
        fields.append(_field("Notes", notes, inline=False))
    return {
        "title": title,
        "color": DECISION_COLORS.get(decision, SUBMITTED_COLOR),
        "fields": fields,
        "timestamp": _now_iso(),
    }


class NotificationService:
    """Builds embeds and hands them to the Discord gateway."""

    @staticmethod
    def send(url, embed, content=None):
        if not url:
            logger.debug("No webhook configured for %r; skipping", embed.get("title"))
            return False
        payload = {"embeds": [embed]}
        if content:
            payload["content"] = content
        try:
            result = discord_gateway.send_webhook(url, payload)
        except Exception:
            logger.exception("Webhook delivery raised for %r", embed.get("title"))
            return False
        if not result.ok:
            logger.warning("Webhook delivery failed for %r: %s", embed.get("title"), result.error)
        return result.ok

    @staticmethod
    def ticket_event(ticket, action, actor, description=None, mention=None):
        embed = ticket_embed(ticket, action, actor, description)
        content = f"<@{mention}>" if mention else None
        return NotificationService.send(current_app.config.get("DISCORD_WEBHOOK_URL"), embed, content)

    @staticmethod
    def application_submitted(form, submission, applicant):
        embed = application_embed(form, submission, applicant)
        url = form.webhook_url or current_app.config.get("DISCORD_WEBHOOK_URL")
        content = f"<@&{form.webhook_role_id}>" if form.webhook_role_id else None
        return NotificationService.send(url, embed, content)

    @staticmethod
    def application_decision(form, submission, applicant, notes=None):
        embed = application_embed(form, submission, applicant, decision=submission.status, notes=notes)
        url = current_app.config.get("DISCORD_APPLICATION_WEBHOOK_URL") or form.webhook_url
        return NotificationService.send(url, embed, content=f"<@{applicant.discord_id}>")
