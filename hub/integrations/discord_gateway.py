"""
Discord Integration Gateway.

All outbound HTTP calls to Discord (OAuth2, bot REST API, webhooks) go
through this class. Direct ``requests`` calls in services or blueprints are
not allowed.

  - OAuth2 authorization-code exchange and ``/users/@me`` for login
  - Bot-token guild calls: member lookup, role list, role add/remove
  - Webhook delivery for ticket and application notifications
  - Timeout: 10 s per call; one retry after a 429 honouring ``retry_after``
  - Webhooks run inside the request that triggered them: 3 s timeout, no
    429 retry, so a slow Discord adds at most 3 s to that response
  - Every call returns a GatewayResult; nothing raises to the caller

Configuration is read from ``current_app.config`` at call time
(DISCORD_CLIENT_ID, DISCORD_CLIENT_SECRET, DISCORD_BOT_TOKEN, DISCORD_GUILD_ID).

Testability: pass a mock ``session`` to DiscordGateway() in tests, or patch
methods on the module-level ``discord_gateway`` singleton.
"""

from __future__ import annotations

import logging
import time
from typing import Any
from urllib.parse import urlencode

import requests
from flask import current_app

logger = logging.getLogger(__name__)

API_BASE = "https://discord.com/api/v10"
AUTHORIZE_URL = "https://discord.com/oauth2/authorize"
OAUTH_SCOPES = ("identify", "guilds")

_DEFAULT_TIMEOUT = 10
_WEBHOOK_TIMEOUT = 3
_MAX_RETRY_AFTER_SECONDS = 5


class GatewayResult:
    """Structured return value from DiscordGateway calls.

    Attributes:
        ok:           True on HTTP 2xx with no transport error.
        status_code:  HTTP status (None on network-level failure).
        data:         Parsed JSON body (dict or list) or None.
        error:        Human-readable error message or None.
        duration_ms:  Round-trip latency in milliseconds.
    """

    def __init__(
        self,
        ok: bool,
        status_code: int | None,
        data: dict | list | None,
        error: str | None,
        duration_ms: int,
    ) -> None:
        self.ok = ok
        self.status_code = status_code
        self.data = data
        self.error = error
        self.duration_ms = duration_ms

    def __repr__(self):
        return f"<GatewayResult ok={self.ok} status={self.status_code}>"


class DiscordGateway:
    """Discord REST gateway.

    Usage:
        from hub.integrations.discord_gateway import discord_gateway
        result = discord_gateway.add_member_role("1234", "5678")
    """

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session: requests.Session | None = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    # ── Core request dispatcher ──────────────────────────────────────────────

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict | None = None,
        json_body: dict | list | None = None,
        form: dict | None = None,
        timeout: int = _DEFAULT_TIMEOUT,
        retry: bool = True,
    ) -> GatewayResult:
        """Execute one request, retrying once when Discord rate-limits us (unless ``retry`` is off)."""
        kwargs: dict[str, Any] = {"headers": headers or {}, "timeout": timeout}
        if json_body is not None:
            kwargs["json"] = json_body
        if form is not None:
            kwargs["data"] = form

        for attempt in range(2):
            t0 = time.perf_counter()
            try:
                resp = self.session.request(method, url, **kwargs)
            except requests.Timeout:
                logger.warning("Discord request timed out: %s %s", method, _redact(url))
                return GatewayResult(False, None, None, f"Request timed out after {timeout}s", timeout * 1000)
            except requests.RequestException as exc:
                logger.warning("Discord network error: %s %s error=%s", method, _redact(url), exc)
                return GatewayResult(False, None, None, str(exc)[:500], 0)
            duration_ms = int((time.perf_counter() - t0) * 1000)

            if resp.status_code == 429 and attempt == 0 and retry:
                retry_after = _retry_after(resp)
                logger.info("Discord rate limited %s, retrying in %.2fs", _redact(url), retry_after)
                time.sleep(retry_after)
                continue

            data = _json_or_none(resp)
            if resp.ok:
                return GatewayResult(True, resp.status_code, data, None, duration_ms)

            error = f"HTTP {resp.status_code}: {resp.text[:300]}"
            logger.warning("Discord request failed: %s %s %s", method, _redact(url), error)
            return GatewayResult(False, resp.status_code, data, error, duration_ms)

        return GatewayResult(False, 429, None, "Rate limited by Discord", 0)

    def _bot_headers(self) -> dict:
        return {"Authorization": f"Bot {current_app.config.get('DISCORD_BOT_TOKEN')}"}

    def _guild_url(self, suffix: str) -> str:
        return f"{API_BASE}/guilds/{current_app.config.get('DISCORD_GUILD_ID')}{suffix}"

    # ── OAuth2 ───────────────────────────────────────────────────────────────

    def authorize_url(self, state: str) -> str:
        params = {
            "client_id": current_app.config.get("DISCORD_CLIENT_ID"),
            "redirect_uri": current_app.config.get("DISCORD_REDIRECT_URI"),
            "response_type": "code",
            "scope": " ".join(OAUTH_SCOPES),
            "state": state,
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    def exchange_code(self, code: str) -> GatewayResult:
        return self.request(
            "POST",
            f"{API_BASE}/oauth2/token",
            form={
                "client_id": current_app.config.get("DISCORD_CLIENT_ID"),
                "client_secret": current_app.config.get("DISCORD_CLIENT_SECRET"),
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": current_app.config.get("DISCORD_REDIRECT_URI"),
            },
        )

    def get_current_user(self, access_token: str) -> GatewayResult:
        return self.request(
            "GET", f"{API_BASE}/users/@me",
            headers={"Authorization": f"Bearer {access_token}"},
        )

    # ── Guild (bot token) ────────────────────────────────────────────────────

    def get_guild_member(self, discord_id: str) -> GatewayResult:
        return self.request("GET", self._guild_url(f"/members/{discord_id}"), headers=self._bot_headers())

    def get_guild_roles(self) -> GatewayResult:
        return self.request("GET", self._guild_url("/roles"), headers=self._bot_headers())

    def get_member_role_ids(self, discord_id: str) -> list[str]:
        """Live role ids for a member; empty when the lookup fails."""
        result = self.get_guild_member(discord_id)
        if not result.ok or not isinstance(result.data, dict):
            return []
        return [str(r) for r in result.data.get("roles", [])]

    def add_member_role(self, discord_id: str, role_id: str) -> GatewayResult:
        result = self.request(
            "PUT", self._guild_url(f"/members/{discord_id}/roles/{role_id}"),
            headers=self._bot_headers(),
        )
        if result.ok:
            logger.info("Assigned role %s to %s", role_id, discord_id)
        return result

    def remove_member_role(self, discord_id: str, role_id: str) -> GatewayResult:
        result = self.request(
            "DELETE", self._guild_url(f"/members/{discord_id}/roles/{role_id}"),
            headers=self._bot_headers(),
        )
        if result.ok:
            logger.info("Removed role %s from %s", role_id, discord_id)
        return result

    # ── Webhooks ─────────────────────────────────────────────────────────────

    def send_webhook(self, url: str, payload: dict) -> GatewayResult:
        if not url:
            return GatewayResult(False, None, None, "No webhook URL configured", 0)
        return self.request("POST", url, json_body=payload, timeout=_WEBHOOK_TIMEOUT, retry=False)


def _json_or_none(resp):
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return None


def _retry_after(resp) -> float:
    body = _json_or_none(resp) or {}
    try:
        value = float(body.get("retry_after", resp.headers.get("Retry-After", 1)))
    except (TypeError, ValueError, AttributeError):
        value = 1.0
    return max(0.0, min(value, _MAX_RETRY_AFTER_SECONDS))


def _redact(url: str) -> str:
    """Webhook URLs embed their secret token; keep only the route part."""
    if "/webhooks/" in url:
        return url.split("/webhooks/")[0] + "/webhooks/***"
    return url


discord_gateway = DiscordGateway()
