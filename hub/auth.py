"""
Community Hub
Authentication boundary.

Resolves the caller once per request, in this order:
    1. ``Authorization: Bearer <jwt>``   (API clients, see jwt_service)
    2. Flask session ``user_id``         (SPA, set by the Discord OAuth callback)

The matching ``users`` row is decoded into an immutable ``Principal`` on
``g.principal``; ``g.current_user`` keeps the ORM row for handlers that need
profile fields. Role JSON is parsed here and nowhere else.

Decorators:
    require_auth        401 when anonymous, 403 when hub-banned
    require_admin       + system admin
    require_management  + admin or MANAGEMENT_ROLE_ID holder
    require_api_key     X-API-Key against GARAGE_API_KEYS (external garage API)
"""

import functools
import hmac
import logging

import jwt as pyjwt
from flask import current_app, g, jsonify, request, session

from hub.core.principal import Principal
from hub.models import db
from hub.models.user import User
from hub.services import access_service as access
from hub.services.jwt_service import decode_access_token
from hub.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# ── Principal resolution ─────────────────────────────────────────────────────

def _user_id_from_bearer():
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    try:
        payload = decode_access_token(header[7:])
    except pyjwt.ExpiredSignatureError:
        logger.info("Expired bearer token on %s", request.path)
        return None
    except pyjwt.InvalidTokenError:
        logger.warning("Invalid bearer token on %s", request.path)
        return None
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None


def load_principal():
    """Populate ``g.principal`` / ``g.current_user`` for this request."""
    g.principal = None
    g.current_user = None

    user_id = _user_id_from_bearer() or session.get("user_id")
    if user_id is None:
        return

    user = db.session.get(User, user_id)
    if user is None:
        session.pop("user_id", None)
        return

    g.current_user = user
    g.principal = Principal.from_user(user)


def banned_response(user):
    return jsonify({
        "error": "Hub banned",
        "code": E.BANNED,
        "reason": user.hub_ban_reason if user else None,
    }), 403


# ── Decorators ───────────────────────────────────────────────────────────────

def _check_authenticated():
    principal = getattr(g, "principal", None)
    if principal is None:
        return api_error(E.UNAUTHENTICATED, "Not authenticated")
    if principal.is_hub_banned:
        logger.warning("Hub-banned user %s rejected on %s", principal.id, request.path)
        return banned_response(g.current_user)
    return None


def require_auth(f):
    """Decorator: require a logged-in, non-banned user."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        err = _check_authenticated()
        if err:
            return err
        return f(*args, **kwargs)
    return decorated


def require_admin(f):
    """Decorator: require a system admin."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        err = _check_authenticated()
        if err:
            return err
        if not access.can_manage_system(g.principal):
            logger.warning("Admin access denied: user=%s path=%s", g.principal.id, request.path)
            return api_error(E.FORBIDDEN, "Admin access required")
        return f(*args, **kwargs)
    return decorated


def require_management(f):
    """Decorator: require the management role (or system admin)."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        err = _check_authenticated()
        if err:
            return err
        role_id = current_app.config.get("MANAGEMENT_ROLE_ID")
        if not access.can_manage_users(g.principal, role_id):
            logger.warning("Management access denied: user=%s path=%s", g.principal.id, request.path)
            return api_error(E.FORBIDDEN, "Management access required")
        return f(*args, **kwargs)
    return decorated


def _parse_api_keys() -> list[str]:
    raw = current_app.config.get("GARAGE_API_KEYS") or ""
    return [k.strip() for k in raw.split(",") if k.strip()]


def require_api_key(f):
    """Decorator: require a valid X-API-Key for server-to-server callers."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        keys = _parse_api_keys()
        if not keys:
            logger.error("GARAGE_API_KEYS is not configured; external garage API is closed")
            return api_error(E.INTERNAL, "Server authentication not configured")

        supplied = request.headers.get("X-API-Key", "").strip()
        if not supplied:
            return api_error(E.UNAUTHENTICATED, "Authentication required. Provide X-API-Key header.")
        if not any(hmac.compare_digest(supplied, key) for key in keys):
            logger.warning("Invalid API key attempt: %s...", supplied[:4])
            return api_error(E.UNAUTHENTICATED, "Invalid API key")
        return f(*args, **kwargs)
    return decorated


# ── CSRF mitigation ──────────────────────────────────────────────────────────

def _check_content_type():
    """
    Mutating API requests with a body must be JSON. HTML forms cannot send
    application/json, so cookie-authenticated cross-site posts are refused.
    """
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        ct = request.content_type or ""
        if "application/json" not in ct and request.content_length:
            return api_error(
                E.VALIDATION_INVALID,
                "Content-Type must be application/json for state-changing requests",
                status=415,
            )
    return None


def init_auth(app):
    """Install the principal loader and JSON content-type guard."""

    @app.before_request
    def _before_request_auth():
        if request.method == "OPTIONS" or request.path.startswith("/static/"):
            return None
        if request.path.startswith("/api/"):
            err = _check_content_type()
            if err:
                return err
        load_principal()
        return None
