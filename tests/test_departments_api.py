"""
Department & roster tests: admin CRUD validation, callsign rules, roster
access by role, feature flags and weekly timeclock minutes.
"""

from datetime import datetime, timedelta, timezone

import pytest

from hub.models import db
from hub.models.department import Department
from hub.models.timeclock import TimeclockEntry
from hub.services import department_service

BASE = "/api/departments"


def _payload(**overrides):
    data = {
        "name": "Los Santos Police",
        "db_name": "lspd",
        "callsign_prefix": "1-A-",
        "roster_view_id": "role-lspd",
        "classification": "department",
    }
    data.update(overrides)
    return data


@pytest.fixture()
def department(client, admin, auth_headers):
    res = client.post(BASE, json=_payload(), headers=auth_headers(admin))
    assert res.status_code == 201
    return db.session.get(Department, res.get_json()["id"])


@pytest.fixture()
def officer(make_user):
    return make_user(username="officer", roles=["role-lspd"], discord_id="900")


def _entry(identifier, department, minutes, when):
    db.session.add(TimeclockEntry(identifier=identifier, department=department, minutes=minutes, timestamp=when))
    db.session.commit()


class TestDepartmentCrud:
    def test_required_fields(self, client, admin, auth_headers):
        res = client.post(BASE, json={"name": "x"}, headers=auth_headers(admin))
        assert res.status_code == 400
        assert res.get_json()["error"] == "Name, DB name, roster view ID, and classification are required"

    def test_prefix_required_with_callsigns(self, client, admin, auth_headers):
        res = client.post(BASE, json=_payload(callsign_prefix=""), headers=auth_headers(admin))
        assert res.status_code == 400

    def test_prefix_optional_without_callsigns(self, client, admin, auth_headers):
        res = client.post(
            BASE, json=_payload(callsign_prefix="", disable_callsigns=True), headers=auth_headers(admin),
        )
        assert res.status_code == 201

    def test_invalid_classification(self, client, admin, auth_headers):
        res = client.post(BASE, json=_payload(classification="club"), headers=auth_headers(admin))
        assert res.status_code == 400

    def test_duplicate_db_name(self, client, admin, auth_headers, department):
        res = client.post(BASE, json=_payload(name="Other"), headers=auth_headers(admin))
        assert res.status_code == 400
        assert res.get_json()["error"] == "Database name already exists"

    def test_non_admin_cannot_create(self, client, officer, auth_headers):
        assert client.post(BASE, json=_payload(), headers=auth_headers(officer)).status_code == 403

    def test_delete_blocked_with_roster(self, client, admin, auth_headers, department):
        client.post(
            f"{BASE}/{department.id}/roster", json={"discord_id": "1", "callsign_number": "10"},
            headers=auth_headers(admin),
        )
        res = client.delete(f"{BASE}/{department.id}", headers=auth_headers(admin))
        assert res.status_code == 400

    def test_listing_filtered_by_role(self, client, officer, make_user, auth_headers, department):
        assert [d["id"] for d in client.get(BASE, headers=auth_headers(officer)).get_json()] == [department.id]
        assert client.get(BASE, headers=auth_headers(make_user())).get_json() == []


class TestRoster:
    def test_callsign_built_from_prefix(self, client, officer, auth_headers, department):
        res = client.post(
            f"{BASE}/{department.id}/roster", json={"discord_id": "900", "callsign_number": "15"},
            headers=auth_headers(officer),
        )
        assert res.status_code == 201
        assert res.get_json()["full_callsign"] == "1-A-15"

    def test_callsign_unique(self, client, officer, auth_headers, department):
        url = f"{BASE}/{department.id}/roster"
        client.post(url, json={"discord_id": "1", "callsign_number": "15"}, headers=auth_headers(officer))
        res = client.post(url, json={"discord_id": "2", "callsign_number": "15"}, headers=auth_headers(officer))
        assert res.status_code == 400
        assert res.get_json()["error"] == "Callsign already exists in this department"

    def test_member_unique(self, client, officer, auth_headers, department):
        url = f"{BASE}/{department.id}/roster"
        client.post(url, json={"discord_id": "1", "callsign_number": "15"}, headers=auth_headers(officer))
        res = client.post(url, json={"discord_id": "1", "callsign_number": "16"}, headers=auth_headers(officer))
        assert res.status_code == 400

    def test_callsign_number_required(self, client, officer, auth_headers, department):
        res = client.post(
            f"{BASE}/{department.id}/roster", json={"discord_id": "1"}, headers=auth_headers(officer),
        )
        assert res.status_code == 400

    def test_disabled_callsigns(self, client, admin, auth_headers):
        dept = client.post(
            BASE, json=_payload(db_name="ems", disable_callsigns=True), headers=auth_headers(admin),
        ).get_json()
        url = f"{BASE}/{dept['id']}/roster"
        res = client.post(url, json={"discord_id": "1", "callsign_number": "9"}, headers=auth_headers(admin))
        assert res.status_code == 201
        assert res.get_json()["full_callsign"] is None

        res = client.put(f"{url}/{res.get_json()['id']}", json={"callsign_number": "3"}, headers=auth_headers(admin))
        assert res.status_code == 400

    def test_update_and_remove(self, client, officer, auth_headers, department):
        url = f"{BASE}/{department.id}/roster"
        member = client.post(
            url, json={"discord_id": "1", "callsign_number": "15"}, headers=auth_headers(officer),
        ).get_json()
        res = client.put(f"{url}/{member['id']}", json={"callsign_number": "20"}, headers=auth_headers(officer))
        assert res.get_json()["full_callsign"] == "1-A-20"
        assert client.delete(f"{url}/{member['id']}", headers=auth_headers(officer)).status_code == 200
        assert client.delete(f"{url}/{member['id']}", headers=auth_headers(officer)).status_code == 404

    def test_roster_forbidden_without_role(self, client, make_user, auth_headers, department):
        res = client.get(f"{BASE}/{department.id}/roster", headers=auth_headers(make_user()))
        assert res.status_code == 403

    def test_roster_changes_forbidden_without_role(self, client, officer, make_user, auth_headers, department):
        url = f"{BASE}/{department.id}/roster"
        member = client.post(
            url, json={"discord_id": "1", "callsign_number": "15"}, headers=auth_headers(officer),
        ).get_json()
        outsider = auth_headers(make_user(username="outsider"))

        res = client.post(url, json={"discord_id": "2", "callsign_number": "16"}, headers=outsider)
        assert res.status_code == 403
        res = client.put(f"{url}/{member['id']}", json={"callsign_number": "20"}, headers=outsider)
        assert res.status_code == 403
        assert client.delete(f"{url}/{member['id']}", headers=outsider).status_code == 403

        roster = client.get(url, headers=auth_headers(officer)).get_json()["roster"]
        assert [r["full_callsign"] for r in roster] == ["1-A-15"]

    def test_roster_missing_department(self, client, officer, auth_headers):
        assert client.get(f"{BASE}/999/roster", headers=auth_headers(officer)).status_code == 404

    def test_roster_sorted_with_weekly_minutes(self, client, officer, auth_headers, department):
        url = f"{BASE}/{department.id}/roster"
        client.post(url, json={"discord_id": "900", "callsign_number": "20"}, headers=auth_headers(officer))
        client.post(url, json={"discord_id": "901", "callsign_number": "10"}, headers=auth_headers(officer))

        now = datetime.now(timezone.utc).replace(tzinfo=None)
        _entry("900", "lspd", 90, now)
        _entry("900", "lspd", 600, now - timedelta(days=8))
        _entry("900", "sast", 30, now)

        body = client.get(url, headers=auth_headers(officer)).get_json()
        assert [r["full_callsign"] for r in body["roster"]] == ["1-A-10", "1-A-20"]
        mine = body["roster"][1]
        assert mine["username"] == "officer"
        assert mine["weekly_timeclock_minutes"] == 90
        assert mine["weekly_timeclock_formatted"] == "1h 30m"


def test_week_window_is_monday_to_monday(department):
    department_service.add_member(department, {"discord_id": "7", "callsign_number": "1"}, None)
    db.session.commit()

    wednesday = datetime(2026, 10, 14, 12, 0)
    _entry("7", "lspd", 15, datetime(2026, 10, 12, 0, 0))     # Monday 00:00, counted
    _entry("7", "lspd", 20, datetime(2026, 10, 18, 23, 59))   # Sunday, counted
    _entry("7", "lspd", 40, datetime(2026, 10, 11, 23, 59))   # previous Sunday
    _entry("7", "lspd", 80, datetime(2026, 10, 19, 0, 0))     # next Monday

    rows = department_service.roster(department, now=wednesday)
    assert rows[0]["weekly_timeclock_minutes"] == 35


class TestFeatureFlags:
    def test_classification_disabled(self, app, client, officer, auth_headers, department, monkeypatch):
        monkeypatch.setitem(app.config, "ENABLE_ORGANIZATIONS", False)
        res = client.get(f"{BASE}/classification/organization", headers=auth_headers(officer))
        assert res.status_code == 404
        assert res.get_json()["error"] == "organization features are disabled"

    def test_classification_listing(self, client, officer, auth_headers, department):
        res = client.get(f"{BASE}/classification/department", headers=auth_headers(officer))
        assert res.status_code == 200
        assert res.get_json()[0]["roster_count"] == 0

    def test_departments_disabled(self, app, client, officer, auth_headers, monkeypatch):
        monkeypatch.setitem(app.config, "ENABLE_DEPARTMENTS", False)
        monkeypatch.setitem(app.config, "ENABLE_ORGANIZATIONS", False)
        assert client.get(BASE, headers=auth_headers(officer)).status_code == 404

    def test_organizations_reachable_without_departments(self, app, client, admin, auth_headers, monkeypatch):
        org = client.post(
            BASE, json=_payload(name="Vanilla Unicorn", db_name="vu", classification="organization"),
            headers=auth_headers(admin),
        )
        assert org.status_code == 201
        monkeypatch.setitem(app.config, "ENABLE_DEPARTMENTS", False)

        res = client.get(f"{BASE}/classification/organization", headers=auth_headers(admin))
        assert res.status_code == 200
        assert [d["db_name"] for d in res.get_json()] == ["vu"]

        res = client.get(f"{BASE}/classification/department", headers=auth_headers(admin))
        assert res.status_code == 404
        assert res.get_json()["error"] == "department features are disabled"

    def test_timeclock_unavailable(self, app, client, officer, auth_headers, department, monkeypatch):
        monkeypatch.setitem(app.config, "SQLALCHEMY_BINDS", {})
        res = client.get(f"{BASE}/{department.id}/roster", headers=auth_headers(officer))
        assert res.status_code == 503
