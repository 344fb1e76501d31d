"""
Admin surface tests: branding, self-assignable roles, profile, health and
hub management (listing, ban, unban).
"""

from datetime import datetime
from unittest.mock import patch

import pytest

from hub.integrations.discord_gateway import GatewayResult, discord_gateway
from hub.models import db
from hub.models.settings import SelfAssignableRole
from hub.models.staff import StaffBan, StaffKick, StaffUser, StaffWarning


class TestBranding:
    def test_public_read_admin_write(self, client, admin, make_user, auth_headers):
        assert client.get("/api/settings/branding").get_json() == {
            "custom_logo_url": None, "community_name": None,
        }
        denied = client.put(
            "/api/settings/branding", json={"community_name": "X"}, headers=auth_headers(make_user()),
        )
        assert denied.status_code == 403

        res = client.put(
            "/api/settings/branding", json={"community_name": "Blue Harbor RP"}, headers=auth_headers(admin),
        )
        assert res.get_json()["community_name"] == "Blue Harbor RP"
        assert client.get("/api/settings/branding").get_json()["community_name"] == "Blue Harbor RP"


@pytest.fixture()
def pingable_role():
    role = SelfAssignableRole(role_id="role-ping", name="Event Pings", can_remove=False)
    db.session.add(role)
    db.session.commit()
    return role


class TestSelfAssignableRoles:
    def test_listing_flags_held_roles(self, client, make_user, auth_headers, pingable_role):
        user = make_user()
        with patch.object(discord_gateway, "get_member_role_ids", return_value=["role-ping"]):
            res = client.get("/api/roles/self-assignable", headers=auth_headers(user))
        assert res.get_json()[0]["hasRole"] is True

    def test_toggle_add(self, client, make_user, auth_headers, pingable_role):
        user = make_user()
        ok = GatewayResult(True, 204, None, None, 0)
        with patch.object(discord_gateway, "add_member_role", return_value=ok) as add:
            res = client.post(
                f"/api/roles/self-assignable/{pingable_role.id}/toggle", json={"action": "add"},
                headers=auth_headers(user),
            )
        assert res.status_code == 200
        assert res.get_json() == {"message": "Role added successfully", "action": "add", "roleName": "Event Pings"}
        add.assert_called_once_with(user.discord_id, "role-ping")

    def test_toggle_remove_not_allowed(self, client, make_user, auth_headers, pingable_role):
        res = client.post(
            f"/api/roles/self-assignable/{pingable_role.id}/toggle", json={"action": "remove"},
            headers=auth_headers(make_user()),
        )
        assert res.status_code == 403

    def test_toggle_discord_failure(self, client, make_user, auth_headers, pingable_role):
        failed = GatewayResult(False, 500, None, "HTTP 500", 0)
        with patch.object(discord_gateway, "add_member_role", return_value=failed):
            res = client.post(
                f"/api/roles/self-assignable/{pingable_role.id}/toggle", json={"action": "add"},
                headers=auth_headers(make_user()),
            )
        assert res.status_code == 500
        assert res.get_json()["error"] == "Failed to update role on Discord"

    def test_invalid_action(self, client, make_user, auth_headers, pingable_role):
        res = client.post(
            f"/api/roles/self-assignable/{pingable_role.id}/toggle", json={"action": "flip"},
            headers=auth_headers(make_user()),
        )
        assert res.status_code == 400

    def test_admin_crud(self, client, admin, auth_headers, pingable_role):
        res = client.post(
            "/api/admin/roles/self-assignable", json={"role_id": "role-ping", "name": "dup"},
            headers=auth_headers(admin),
        )
        assert res.status_code == 400

        res = client.post(
            "/api/admin/roles/self-assignable", json={"role_id": "role-news", "name": "News"},
            headers=auth_headers(admin),
        )
        assert res.status_code == 201
        assert len(client.get("/api/admin/roles/self-assignable", headers=auth_headers(admin)).get_json()) == 2

        res = client.delete(f"/api/admin/roles/self-assignable/{pingable_role.id}", headers=auth_headers(admin))
        assert res.status_code == 200

    def test_non_numeric_display_order(self, client, admin, auth_headers, pingable_role):
        res = client.post(
            "/api/admin/roles/self-assignable",
            json={"role_id": "r1", "name": "R", "display_order": "first"},
            headers=auth_headers(admin),
        )
        assert res.status_code == 400
        assert res.get_json()["error"] == "display_order must be a number"

        res = client.put(
            f"/api/admin/roles/self-assignable/{pingable_role.id}",
            json={"role_id": "role-ping", "name": "Ping", "display_order": [1]},
            headers=auth_headers(admin),
        )
        assert res.status_code == 400
        assert SelfAssignableRole.query.count() == 1


class TestProfile:
    @pytest.fixture()
    def player(self, make_user):
        user = make_user(username="pat", roles=["r1"], discord_id="555")
        db.session.add(StaffUser(discord_id="555", username="Pat Smith", trust_score=87, playtime_minutes=600))
        db.session.add_all([
            StaffWarning(discord_id="555", reason="RDM", issued_by="mod1", created_at=datetime(2026, 10, 1, 12, 0)),
            StaffWarning(discord_id="555", reason="VDM", issued_by="mod2", created_at=datetime(2026, 10, 5, 12, 0)),
            StaffBan(discord_id="555", reason="Exploit", created_at=datetime(2026, 9, 1), expires_at=None),
            StaffKick(discord_id="556", reason="Someone else", created_at=datetime(2026, 9, 1)),
        ])
        db.session.commit()
        return user

    def test_defaults_without_record(self, client, make_user, auth_headers):
        user = make_user(username="pat", roles=["r1"])
        body = client.get("/api/profile", headers=auth_headers(user)).get_json()
        assert body["username"] == "pat"
        assert body["trustScore"] == 0
        assert body["bans"] == []
        assert "player_name" not in body

    def test_player_record(self, client, player, auth_headers):
        body = client.get("/api/profile", headers=auth_headers(player)).get_json()
        assert body["username"] == "pat"
        assert body["player_name"] == "Pat Smith"
        assert body["trustScore"] == 87
        assert [w["reason"] for w in body["warnings"]] == ["VDM", "RDM"]
        assert body["bans"][0]["expires_at"] is None
        assert body["kicks"] == []
        assert body["commends"] == []

    def test_flag_off_uses_defaults(self, app, client, player, auth_headers, monkeypatch):
        monkeypatch.setitem(app.config, "ENABLE_PLAYER_RECORD", False)
        body = client.get("/api/profile", headers=auth_headers(player)).get_json()
        assert body["trustScore"] == 0
        assert body["warnings"] == []

    def test_unconfigured_bind_uses_defaults(self, app, client, player, auth_headers, monkeypatch):
        monkeypatch.setitem(app.config, "SQLALCHEMY_BINDS", {"timeclock": "sqlite:///:memory:"})
        body = client.get("/api/profile", headers=auth_headers(player)).get_json()
        assert body["trustScore"] == 0
        assert "player_name" not in body


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    body = res.get_json()
    assert body["status"] == "OK"
    assert body["features"]["enableTimeclock"] is True
    assert body["features"]["enablePlayerRecord"] is True
    assert body["checks"]["staff"] == {"status": "configured"}


# ═════════════════════════════════════════════════════════════════════════════
# Management
# ═════════════════════════════════════════════════════════════════════════════


@pytest.fixture()
def manager(make_user):
    return make_user(username="manager", roles=["role-management"])


class TestManagement:
    def test_requires_management_role(self, client, make_user, auth_headers):
        res = client.get("/api/management/users", headers=auth_headers(make_user()))
        assert res.status_code == 403

    def test_search(self, client, manager, make_user, auth_headers):
        make_user(username="findme")
        body = client.get("/api/management/users?search=findme", headers=auth_headers(manager)).get_json()
        assert [u["username"] for u in body["users"]] == ["findme"]
        assert body["pagination"]["total"] == 1

    def test_ban_blocks_next_request(self, client, manager, make_user, auth_headers):
        target = make_user()
        headers = auth_headers(target)
        assert client.get("/api/tickets", headers=headers).status_code == 200

        res = client.post(
            f"/api/management/users/{target.id}/ban", json={"reason": "toxicity"}, headers=auth_headers(manager),
        )
        assert res.status_code == 200
        assert res.get_json()["message"] == "User banned successfully"
        assert res.get_json()["user"]["hub_banned_by"] == manager.id

        blocked = client.get("/api/tickets", headers=headers)
        assert blocked.status_code == 403
        assert blocked.get_json()["reason"] == "toxicity"

        res = client.post(f"/api/management/users/{target.id}/unban", headers=auth_headers(manager))
        assert res.get_json()["message"] == "User unbanned successfully"
        assert client.get("/api/tickets", headers=headers).status_code == 200

    def test_ban_requires_reason(self, client, manager, make_user, auth_headers):
        target = make_user()
        res = client.post(f"/api/management/users/{target.id}/ban", json={}, headers=auth_headers(manager))
        assert res.status_code == 400

    def test_cannot_ban_admin_or_self(self, client, manager, admin, auth_headers):
        for target in (admin, manager):
            res = client.post(
                f"/api/management/users/{target.id}/ban", json={"reason": "x"}, headers=auth_headers(manager),
            )
            assert res.status_code == 400

    def test_unknown_user(self, client, manager, auth_headers):
        res = client.post("/api/management/users/999/ban", json={"reason": "x"}, headers=auth_headers(manager))
        assert res.status_code == 404
