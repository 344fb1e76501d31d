"""
Authentication boundary tests: session and bearer resolution, hub bans,
API-client tokens and the Discord OAuth callback.
"""

from unittest.mock import patch

import pytest

from hub.core.roles import decode_role_ids
from hub.integrations.discord_gateway import GatewayResult, discord_gateway
from hub.models.user import User


def _ok(data):
    return GatewayResult(True, 200, data, None, 0)


class TestCurrentUser:
    def test_anonymous(self, client):
        res = client.get("/auth/user")
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHENTICATED"

    def test_bearer(self, client, make_user, auth_headers):
        user = make_user(username="alice", roles=["role-x"])
        res = client.get("/auth/user", headers=auth_headers(user))
        assert res.status_code == 200
        assert res.get_json()["roles"] == [{"id": "role-x", "name": "role-x"}]

    def test_banned_user_rejected_everywhere(self, client, make_user, auth_headers):
        user = make_user(is_hub_banned=True, ban_reason="griefing")
        res = client.get("/auth/user", headers=auth_headers(user))
        assert res.status_code == 403
        assert res.get_json() == {"error": "Hub banned", "code": "ERR_HUB_BANNED", "reason": "griefing"}
        assert client.get("/api/tickets", headers=auth_headers(user)).status_code == 403

    def test_garbage_token_is_anonymous(self, client):
        res = client.get("/auth/user", headers={"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401

    def test_token_for_deleted_user(self, client, make_user, auth_headers):
        from hub.models import db

        user = make_user()
        headers = auth_headers(user)
        db.session.delete(user)
        db.session.commit()
        assert client.get("/auth/user", headers=headers).status_code == 401

    def test_issue_token(self, client, make_user, auth_headers):
        user = make_user()
        res = client.post("/auth/token", headers=auth_headers(user))
        assert res.status_code == 200
        token = res.get_json()["access_token"]
        again = client.get("/auth/user", headers={"Authorization": f"Bearer {token}"})
        assert again.get_json()["id"] == user.id


def test_form_posts_are_refused(client, make_user, auth_headers):
    user = make_user()
    headers = auth_headers(user)
    headers["Content-Type"] = "application/x-www-form-urlencoded"
    res = client.post("/api/tickets", data="title=x", headers=headers)
    assert res.status_code == 415


# ═════════════════════════════════════════════════════════════════════════════
# OAuth
# ═════════════════════════════════════════════════════════════════════════════


@pytest.fixture()
def discord_login():
    """Patch the gateway calls made by the OAuth callback."""
    profile = {"id": "4242", "username": "newbie", "discriminator": "0", "avatar": "abc"}
    with patch.object(discord_gateway, "exchange_code", return_value=_ok({"access_token": "tok"})), \
            patch.object(discord_gateway, "get_current_user", return_value=_ok(profile)), \
            patch.object(discord_gateway, "get_guild_member", return_value=_ok({"roles": ["role-admin", "r2"]})), \
            patch.object(discord_gateway, "get_guild_roles", return_value=_ok([
                {"id": "role-admin", "name": "Admin"}, {"id": "r2", "name": "Civilian"},
            ])):
        yield profile


class TestOAuth:
    def test_login_redirects_to_discord(self, client):
        res = client.get("/auth/discord", headers={"Origin": "http://hub.test"})
        assert res.status_code == 302
        assert res.headers["Location"].startswith("https://discord.com/oauth2/authorize")
        with client.session_transaction() as sess:
            assert sess["frontend_origin"] == "http://hub.test"
            assert sess["oauth_state"] in res.headers["Location"]

    def test_callback_creates_admin_user(self, client, discord_login):
        with client.session_transaction() as sess:
            sess["oauth_state"] = "s1"
        res = client.get("/auth/discord/callback?code=abc&state=s1")
        assert res.status_code == 302
        assert res.headers["Location"] == "http://hub.test"

        user = User.query.filter_by(discord_id="4242").one()
        assert user.is_admin is True
        assert decode_role_ids(user.roles) == frozenset({"role-admin", "r2"})

        me = client.get("/auth/user").get_json()
        assert me["username"] == "newbie"
        assert {r["name"] for r in me["roles"]} == {"Admin", "Civilian"}

    def test_state_mismatch(self, client, discord_login):
        with client.session_transaction() as sess:
            sess["oauth_state"] = "s1"
        res = client.get("/auth/discord/callback?code=abc&state=other")
        assert res.headers["Location"] == "http://hub.test/auth-failed"
        assert User.query.filter_by(discord_id="4242").first() is None

    def test_banned_login_redirects(self, client, make_user, discord_login):
        make_user(discord_id="4242", is_hub_banned=True, ban_reason="spam")
        with client.session_transaction() as sess:
            sess["oauth_state"] = "s1"
        res = client.get("/auth/discord/callback?code=abc&state=s1")
        assert res.headers["Location"] == "http://hub.test/banned?reason=spam"
        assert client.get("/auth/user").status_code == 401

    def test_logout(self, client, discord_login):
        with client.session_transaction() as sess:
            sess["oauth_state"] = "s1"
        client.get("/auth/discord/callback?code=abc&state=s1")
        assert client.post("/auth/logout").status_code == 200
        assert client.get("/auth/user").status_code == 401
