"""
Garage tests: redeemable codes, credit accounting, vehicle submission,
access grants, role-based manager permissions and the API-key lookup API.
"""

from datetime import timedelta

import pytest

from hub.models import db, utcnow
from hub.models.garage import GarageCode, GarageRolePermission, GarageSubscription, GarageTier
from hub.services import garage_service

BASE = "/api/garage"
API = "/api/garage/v1"
API_KEY = {"X-API-Key": "test-garage-key"}


@pytest.fixture()
def tier():
    t = GarageTier(name="Gold", price_usd=10, monthly_vouchers=2)
    db.session.add(t)
    db.session.commit()
    return t


@pytest.fixture()
def member(make_user):
    return make_user(username="driver", discord_id="700")


def _subscribe(user, tier, days=30):
    db.session.add(GarageSubscription(user_id=user.id, tier_id=tier.id, expires_at=utcnow() + timedelta(days=days)))
    db.session.commit()


def _credits(user, amount):
    garage_service.add_credits(user.id, amount)
    db.session.commit()


def _submit(client, user, auth_headers, **data):
    body = {"name": "Banshee", "year": 2020, "make": "Bravado", "model": "Banshee 900R"}
    body.update(data)
    return client.post(f"{BASE}/vehicles", json=body, headers=auth_headers(user))


# ═════════════════════════════════════════════════════════════════════════════
# Codes
# ═════════════════════════════════════════════════════════════════════════════


class TestCodes:
    def test_generate_requires_permission(self, client, member, auth_headers):
        res = client.post(
            f"{BASE}/generate-codes", json={"type": "credit", "credit_amount": 5}, headers=auth_headers(member),
        )
        assert res.status_code == 403
        assert res.get_json()["error"] == "Insufficient permissions"

    def test_role_permission_row_grants_generation(self, client, make_user, auth_headers):
        db.session.add(GarageRolePermission(role_id="role-garage", can_generate_codes=True))
        db.session.commit()
        staff = make_user(roles=["role-garage"])
        res = client.post(
            f"{BASE}/generate-codes", json={"type": "credit", "credit_amount": 5, "count": 3},
            headers=auth_headers(staff),
        )
        assert res.status_code == 201
        body = res.get_json()
        assert body["message"] == "Generated 3 codes successfully"
        assert len({c["code"] for c in body["codes"]}) == 3

    @pytest.mark.parametrize("payload", [
        {"type": "voucher"},
        {"type": "credit", "credit_amount": 0},
        {"type": "subscription"},
        {"type": "credit", "credit_amount": 1, "count": 101},
    ])
    def test_generate_validation(self, client, admin, auth_headers, payload):
        res = client.post(f"{BASE}/generate-codes", json=payload, headers=auth_headers(admin))
        assert res.status_code == 400

    def test_credit_code_redeems_once(self, client, admin, member, auth_headers):
        code = client.post(
            f"{BASE}/generate-codes", json={"type": "credit", "credit_amount": 5}, headers=auth_headers(admin),
        ).get_json()["codes"][0]["code"]

        res = client.post(f"{BASE}/redeem", json={"code": code.lower()}, headers=auth_headers(member))
        assert res.status_code == 200
        assert res.get_json() == {
            "success": True, "type": "credit", "amount": 5, "message": "5 credits added to your account",
        }

        again = client.post(f"{BASE}/redeem", json={"code": code}, headers=auth_headers(member))
        assert again.status_code == 400
        assert again.get_json()["error"] == "Invalid or expired code"
        assert garage_service.get_credits(member.id) == 5

    def test_subscription_code(self, client, admin, member, auth_headers, tier):
        code = client.post(
            f"{BASE}/generate-codes", json={"type": "subscription", "tier_id": tier.id},
            headers=auth_headers(admin),
        ).get_json()["codes"][0]["code"]

        res = client.post(f"{BASE}/redeem", json={"code": code}, headers=auth_headers(member))
        assert res.get_json()["message"] == "Subscription activated: Gold"

        dash = client.get(f"{BASE}/dashboard", headers=auth_headers(member)).get_json()
        assert dash["hasAccess"] is True
        assert dash["subscriptions"][0]["vouchers_remaining"] == 2
        assert dash["permissions"]["can_view_manager"] is False

    def test_expired_code_rejected(self, client, member, auth_headers):
        db.session.add(GarageCode(
            code_string="DEADBEEF", code_type="credit", credit_amount=3,
            expires_at=utcnow() - timedelta(days=1),
        ))
        db.session.commit()
        res = client.post(f"{BASE}/redeem", json={"code": "deadbeef"}, headers=auth_headers(member))
        assert res.status_code == 400

    def test_blank_code(self, client, member, auth_headers):
        res = client.post(f"{BASE}/redeem", json={"code": "  "}, headers=auth_headers(member))
        assert res.get_json()["error"] == "Code is required"


# ═════════════════════════════════════════════════════════════════════════════
# Credits & vehicles
# ═════════════════════════════════════════════════════════════════════════════


class TestCredits:
    def test_deduct_never_goes_negative(self, member):
        _credits(member, 3)
        assert garage_service.deduct_credits(member.id, 2) is True
        assert garage_service.deduct_credits(member.id, 2) is False
        db.session.commit()
        assert garage_service.get_credits(member.id) == 1

    def test_deduct_without_balance_row(self, member):
        assert garage_service.deduct_credits(member.id, 1) is False


class TestVehicles:
    def test_subscription_required(self, client, member, auth_headers):
        _credits(member, 10)
        res = _submit(client, member, auth_headers)
        assert res.status_code == 403
        assert res.get_json()["error"] == "Active subscription required to submit vehicles"

    def test_expired_subscription_does_not_count(self, client, member, auth_headers, tier):
        _credits(member, 10)
        _subscribe(member, tier, days=-1)
        assert _submit(client, member, auth_headers).status_code == 403

    def test_insufficient_credits(self, client, member, auth_headers, tier):
        _subscribe(member, tier)
        _credits(member, 1)
        res = _submit(client, member, auth_headers)
        assert res.status_code == 400
        assert res.get_json()["error"] == "Insufficient credits"
        assert garage_service.get_credits(member.id) == 1

    def test_submit_charges_by_kind(self, client, member, auth_headers, tier):
        _subscribe(member, tier)
        _credits(member, 3)
        personal = _submit(client, member, auth_headers)
        assert personal.status_code == 201
        assert garage_service.get_credits(member.id) == 1

        shared = _submit(client, member, auth_headers, is_shared=True)
        assert shared.status_code == 201
        assert garage_service.get_credits(member.id) == 0

        mine = client.get(f"{BASE}/my-vehicles", headers=auth_headers(member)).get_json()
        assert len(mine["owned"]) == 2
        assert mine["owned"][0]["status"]["name"] == "Pending Review"

    def test_name_required(self, client, member, auth_headers, tier):
        _subscribe(member, tier)
        _credits(member, 3)
        assert _submit(client, member, auth_headers, name="").status_code == 400


@pytest.fixture()
def vehicle(client, member, auth_headers, tier):
    _subscribe(member, tier)
    _credits(member, 5)
    return _submit(client, member, auth_headers).get_json()["vehicle_uuid"]


class TestGrants:
    def test_owner_grants_and_revokes(self, client, member, make_user, auth_headers, vehicle):
        friend = make_user(discord_id="701")
        url = f"{BASE}/vehicles/{vehicle}/access"
        assert client.post(url, json={"discord_id": "701"}, headers=auth_headers(member)).status_code == 201
        assert client.post(url, json={"discord_id": "701"}, headers=auth_headers(member)).status_code == 400

        shared = client.get(f"{BASE}/my-vehicles", headers=auth_headers(friend)).get_json()["shared"]
        assert [v["vehicle_uuid"] for v in shared] == [vehicle]

        assert client.delete(f"{url}/701", headers=auth_headers(member)).status_code == 200
        assert client.delete(f"{url}/701", headers=auth_headers(member)).status_code == 404

    def test_owner_cannot_grant_self(self, client, member, auth_headers, vehicle):
        res = client.post(
            f"{BASE}/vehicles/{vehicle}/access", json={"discord_id": "700"}, headers=auth_headers(member),
        )
        assert res.status_code == 400

    def test_stranger_cannot_grant(self, client, make_user, auth_headers, vehicle):
        res = client.post(
            f"{BASE}/vehicles/{vehicle}/access", json={"discord_id": "700"}, headers=auth_headers(make_user()),
        )
        assert res.status_code == 403


class TestManager:
    def test_manager_updates_status(self, client, admin, auth_headers, vehicle):
        statuses = client.get(f"{BASE}/statuses", headers=auth_headers(admin)).get_json()
        approved = next(s for s in statuses if s["name"] == "Approved")
        res = client.put(
            f"{BASE}/manage/vehicles/{vehicle}", json={"status_id": approved["id"], "spawn_code": "banshee2"},
            headers=auth_headers(admin),
        )
        assert res.status_code == 200
        assert res.get_json()["spawn_code"] == "banshee2"

        listing = client.get(f"{BASE}/manage/vehicles?status_id={approved['id']}", headers=auth_headers(admin))
        assert listing.get_json()["pagination"]["total"] == 1

    def test_view_permission_does_not_allow_delete(self, client, make_user, auth_headers, vehicle):
        db.session.add(GarageRolePermission(role_id="role-viewer", can_view_manager=True))
        db.session.commit()
        viewer = make_user(roles=["role-viewer"])
        assert client.get(f"{BASE}/manage/vehicles", headers=auth_headers(viewer)).status_code == 200
        assert client.delete(f"{BASE}/manage/vehicles/{vehicle}", headers=auth_headers(viewer)).status_code == 403

    def test_tier_delete_deactivates(self, client, admin, auth_headers, tier):
        assert client.delete(f"{BASE}/tiers/{tier.id}", headers=auth_headers(admin)).status_code == 200
        assert client.get(f"{BASE}/tiers").get_json() == []
        assert db.session.get(GarageTier, tier.id) is not None

    def test_permissions_upsert(self, client, admin, auth_headers):
        res = client.put(
            f"{BASE}/permissions", json={"role_id": "r1", "permissions": {"can_edit_vehicles": True}},
            headers=auth_headers(admin),
        )
        assert res.status_code == 200
        assert res.get_json()["can_edit_vehicles"] is True
        assert res.get_json()["can_view_manager"] is False


# ═════════════════════════════════════════════════════════════════════════════
# External API
# ═════════════════════════════════════════════════════════════════════════════


class TestExternalApi:
    def test_api_key_required(self, client, vehicle):
        assert client.get(f"{API}/vehicles/{vehicle}").status_code == 401
        assert client.get(f"{API}/vehicles/{vehicle}", headers={"X-API-Key": "nope"}).status_code == 401

    def test_vehicle_lookup(self, client, vehicle):
        res = client.get(f"{API}/vehicles/{vehicle}", headers=API_KEY)
        assert res.status_code == 200
        body = res.get_json()
        assert body["owner_discord_id"] == "700"
        assert body["status_name"] == "Pending Review"

    def test_unknown_vehicle(self, client):
        assert client.get(f"{API}/vehicles/missing", headers=API_KEY).status_code == 404

    def test_access_reasons(self, client, make_user, tier, vehicle):
        outsider = make_user(discord_id="702")
        assert client.get(f"{API}/vehicles/{vehicle}/access/700", headers=API_KEY).get_json() == {
            "access": True, "reason": "owner",
        }
        denied = client.get(f"{API}/vehicles/{vehicle}/access/702", headers=API_KEY)
        assert denied.status_code == 403
        assert denied.get_json() == {"access": False, "error": "Access denied"}

        # personal vehicles never open up through a subscription
        _subscribe(outsider, tier)
        assert client.get(f"{API}/vehicles/{vehicle}/access/702", headers=API_KEY).status_code == 403

    def test_unknown_user_denied(self, client, vehicle):
        assert client.get(f"{API}/vehicles/{vehicle}/access/nobody", headers=API_KEY).status_code == 403

    def test_user_vehicle_uuids(self, client, member, make_user, auth_headers, tier, vehicle):
        subscriber = make_user(discord_id="703")
        _subscribe(subscriber, tier)
        shared = _submit(client, member, auth_headers, is_shared=True).get_json()["vehicle_uuid"]

        res = client.get(f"{API}/users/703/vehicles", headers=API_KEY)
        assert res.get_json() == {"discord_id": "703", "vehicle_uuids": [shared]}

        reason = client.get(f"{API}/vehicles/{shared}/access/703", headers=API_KEY).get_json()["reason"]
        assert reason == "subscription"

        assert client.get(f"{API}/users/nobody/vehicles", headers=API_KEY).status_code == 404
