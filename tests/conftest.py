"""
Shared pytest fixtures for the community hub test suite.

Provides:
    - app: Flask application (session-scoped)
    - session: Per-test schema recreate + default seed (autouse)
    - quiet_discord: every outbound Discord call answers 200 {} (autouse)
    - client: Flask test client
    - make_user: factory for ``users`` rows with a Discord role list
    - auth_headers: bearer-token headers for a user
"""

from unittest.mock import patch

import pytest

from hub import create_app, seed_defaults
from hub.core.roles import encode_roles
from hub.integrations.discord_gateway import GatewayResult, discord_gateway
from hub.models import db as _db
from hub.models.user import User
from hub.services.jwt_service import generate_access_token


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(autouse=True)
def session(app):
    """Per-test: fresh schema on every bind (timeclock and staff included) plus defaults."""
    with app.app_context():
        _db.drop_all()
        _db.create_all()
        seed_defaults()
        yield
        _db.session.rollback()
        _db.session.remove()


@pytest.fixture(autouse=True)
def quiet_discord():
    """No test talks to Discord; individual tests re-patch what they assert on."""
    ok = GatewayResult(True, 200, {}, None, 0)
    with patch.object(discord_gateway, "request", return_value=ok) as mocked:
        yield mocked


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Users ────────────────────────────────────────────────────────────────


_counter = {"n": 0}


@pytest.fixture()
def make_user():
    def _make(username=None, roles=(), is_admin=False, is_hub_banned=False,
              discord_id=None, ban_reason=None):
        _counter["n"] += 1
        n = _counter["n"]
        user = User(
            discord_id=discord_id or f"10000{n}",
            username=username or f"user{n}",
            roles=encode_roles([{"id": r, "name": r} for r in roles]),
            is_admin=is_admin,
            is_hub_banned=is_hub_banned,
            hub_ban_reason=ban_reason,
        )
        _db.session.add(user)
        _db.session.commit()
        return user
    return _make


@pytest.fixture()
def auth_headers():
    def _headers(user):
        token = generate_access_token(user.id, user.discord_id)
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
    return _headers


@pytest.fixture()
def admin(make_user):
    return make_user(username="admin", is_admin=True)
