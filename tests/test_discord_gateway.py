"""
DiscordGateway tests with a mocked requests session: rate-limit retry,
transport failures and webhook URL redaction. Nothing leaves the process.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from hub.integrations import discord_gateway as gw_module
from hub.integrations.discord_gateway import DiscordGateway


def _response(status, body=None, headers=None):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.headers = headers or {}
    resp.content = b"x" if body is not None else b""
    resp.json.return_value = body
    resp.text = str(body)
    return resp


@pytest.fixture()
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture()
def gateway(session):
    return DiscordGateway(session=session)


class TestRequest:
    def test_success(self, gateway, session):
        session.request.return_value = _response(200, {"id": "1"})
        result = gateway.request("GET", "https://discord.test/x")
        assert result.ok
        assert result.data == {"id": "1"}

    def test_retries_once_after_429(self, gateway, session):
        session.request.side_effect = [_response(429, {"retry_after": 0.01}), _response(204)]
        with patch.object(gw_module.time, "sleep") as sleep:
            result = gateway.request("PUT", "https://discord.test/roles")
        assert result.ok
        assert session.request.call_count == 2
        sleep.assert_called_once_with(0.01)

    def test_second_429_gives_up(self, gateway, session):
        session.request.return_value = _response(429, {"retry_after": 100})
        with patch.object(gw_module.time, "sleep") as sleep:
            result = gateway.request("PUT", "https://discord.test/roles")
        assert not result.ok
        assert result.status_code == 429
        sleep.assert_called_once_with(5)

    def test_network_error_is_a_result(self, gateway, session):
        session.request.side_effect = requests.ConnectionError("refused")
        result = gateway.request("GET", "https://discord.test/x")
        assert not result.ok
        assert result.status_code is None
        assert "refused" in result.error

    def test_timeout(self, gateway, session):
        session.request.side_effect = requests.Timeout()
        result = gateway.request("GET", "https://discord.test/x", timeout=3)
        assert not result.ok
        assert result.error == "Request timed out after 3s"

    def test_http_error_keeps_body(self, gateway, session):
        session.request.return_value = _response(403, {"message": "Missing Permissions"})
        result = gateway.request("PUT", "https://discord.test/roles")
        assert not result.ok
        assert result.status_code == 403
        assert result.data == {"message": "Missing Permissions"}


class TestGuildCalls:
    def test_member_role_ids(self, app, gateway, session):
        session.request.return_value = _response(200, {"roles": ["1", 2]})
        with app.app_context():
            assert gateway.get_member_role_ids("99") == ["1", "2"]
        url = session.request.call_args.args[1]
        assert url.endswith("/guilds/guild-1/members/99")
        assert session.request.call_args.kwargs["headers"] == {"Authorization": "Bot bot-token"}

    def test_member_lookup_failure(self, app, gateway, session):
        session.request.return_value = _response(404, {"message": "Unknown Member"})
        with app.app_context():
            assert gateway.get_member_role_ids("99") == []

    def test_webhook_without_url(self, gateway, session):
        result = gateway.send_webhook("", {"content": "hi"})
        assert not result.ok
        session.request.assert_not_called()

    def test_webhook_uses_short_timeout(self, gateway, session):
        session.request.return_value = _response(204)
        assert gateway.send_webhook("https://discord.test/api/webhooks/1/abc", {"content": "hi"}).ok
        assert session.request.call_args.kwargs["timeout"] == 3

    def test_webhook_does_not_wait_out_rate_limit(self, gateway, session):
        session.request.return_value = _response(429, {"retry_after": 4})
        with patch.object(gw_module.time, "sleep") as sleep:
            result = gateway.send_webhook("https://discord.test/api/webhooks/1/abc", {"content": "hi"})
        assert not result.ok
        assert result.status_code == 429
        assert session.request.call_count == 1
        sleep.assert_not_called()


def test_webhook_urls_are_redacted():
    assert gw_module._redact("https://discord.com/api/webhooks/1/secret") == "https://discord.com/api/webhooks/***"
    assert gw_module._redact("https://discord.com/api/v10/users/@me") == "https://discord.com/api/v10/users/@me"
