"""
Auth Blueprint: Discord OAuth2 login and session endpoints.

  GET  /auth/discord            remember the SPA origin, redirect to Discord
  GET  /auth/discord/callback   exchange code, sync user + roles, set session
  GET  /auth/failure            redirect to <frontend>/auth-failed
  POST /auth/logout             clear the session
  GET  /auth/user               current user with decoded roles
  POST /auth/token              bearer token for the session user
"""

import logging
import secrets
from urllib.parse import quote, urlparse

from flask import Blueprint, current_app, g, jsonify, redirect, request, session

from hub.auth import banned_response, require_auth
from hub.integrations.discord_gateway import discord_gateway
from hub.services.jwt_service import issue_token
from hub.services.user_service import fetch_member_roles, sync_discord_user
from hub.utils.errors import E, api_error
from hub.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _allowed_origins():
    raw = current_app.config.get("CORS_ORIGINS") or ""
    origins = {o.strip().rstrip("/") for o in raw.split(",") if o.strip() and o.strip() != "*"}
    origins.add(current_app.config["FRONTEND_URL"].rstrip("/"))
    return origins


def _request_origin():
    """Origin of the SPA that started the login, if it is one we serve."""
    candidate = request.headers.get("Origin") or request.headers.get("Referer") or ""
    parsed = urlparse(candidate)
    if not parsed.scheme or not parsed.netloc:
        return None
    origin = f"{parsed.scheme}://{parsed.netloc}"
    return origin if origin in _allowed_origins() else None


def _frontend():
    return session.get("frontend_origin") or current_app.config["FRONTEND_URL"].rstrip("/")


def _failure():
    return redirect(f"{_frontend()}/auth-failed")


# ═══════════════════════════════════════════════════════════════
# OAuth2 flow
# ═══════════════════════════════════════════════════════════════

@auth_bp.route("/discord", methods=["GET"])
def discord_login():
    session["frontend_origin"] = _request_origin() or current_app.config["FRONTEND_URL"].rstrip("/")
    state = secrets.token_urlsafe(24)
    session["oauth_state"] = state
    return redirect(discord_gateway.authorize_url(state))


@auth_bp.route("/discord/callback", methods=["GET"])
def discord_callback():
    expected_state = session.pop("oauth_state", None)
    state = request.args.get("state")
    code = request.args.get("code")
    if not code or not expected_state or not state or not secrets.compare_digest(state, expected_state):
        logger.warning("OAuth callback rejected: missing code or state mismatch")
        return _failure()

    token = discord_gateway.exchange_code(code)
    if not token.ok or not isinstance(token.data, dict) or not token.data.get("access_token"):
        logger.warning("OAuth code exchange failed: %s", token.error)
        return _failure()

    profile = discord_gateway.get_current_user(token.data["access_token"])
    if not profile.ok or not isinstance(profile.data, dict) or not profile.data.get("id"):
        logger.warning("Discord profile fetch failed: %s", profile.error)
        return _failure()

    roles = fetch_member_roles(str(profile.data["id"]))
    user = sync_discord_user(profile.data, roles)
    err = db_commit_or_error()
    if err:
        return _failure()

    if user.is_hub_banned:
        logger.info("Banned user %s attempted login", user.id)
        reason = user.hub_ban_reason or "No reason provided"
        return redirect(f"{_frontend()}/banned?reason={quote(reason)}")

    session["user_id"] = user.id
    session.permanent = True
    logger.info("User %s logged in (admin=%s, roles=%d)", user.id, user.is_admin, len(roles))
    return redirect(_frontend())


@auth_bp.route("/failure", methods=["GET"])
def failure():
    return _failure()


# ═══════════════════════════════════════════════════════════════
# Session
# ═══════════════════════════════════════════════════════════════

@auth_bp.route("/logout", methods=["POST"])
def logout():
    session.clear()
    return jsonify({"success": True})


@auth_bp.route("/user", methods=["GET"])
def current_user():
    user = g.current_user
    if user is None:
        return api_error(E.UNAUTHENTICATED, "Not authenticated")
    if user.is_hub_banned:
        return banned_response(user)
    return jsonify(user.to_dict())


@auth_bp.route("/token", methods=["POST"])
@require_auth
def token():
    return jsonify(issue_token(g.current_user))
