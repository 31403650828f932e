"""HTTP tests for the auth blueprint (Flask test client, in-memory SQLite)."""

import jwt
import pytest

from api import create_app
from models.memory_store import MemoryStore
from services.errors import StoreUnavailableError
from utils.security import hash_password

from conftest import PASSWORD


def _login(client, email="a@x.com", password=PASSWORD):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestLoginRefreshLogout:
    def test_full_session_lifecycle(self, client, registered_user):
        res = _login(client)
        assert res.status_code == 200
        body = res.get_json()
        assert body["expires_in"] == 3600
        assert body["token_type"] == "bearer"
        assert body["user"]["id"] == registered_user.id
        assert "password_hash" not in body["user"]
        refresh_token = body["refresh_token"]

        res = client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
        assert res.status_code == 200
        refreshed = res.get_json()
        assert refreshed["expires_in"] == 3600
        assert "refresh_token" not in refreshed
        claims = jwt.decode(refreshed["access_token"], "test-access-secret-0123456789abcdef", algorithms=["HS256"])
        assert claims["userId"] == registered_user.id

        # same refresh token still valid
        res = client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
        assert res.status_code == 200

        res = client.post("/api/v1/auth/logout", json={"refresh_token": refresh_token})
        assert res.status_code == 200
        assert res.get_json() == {"invalidated": True}

        res = client.post("/api/v1/auth/logout", json={"refresh_token": refresh_token})
        assert res.get_json() == {"already_invalidated": True}

        res = client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
        assert res.status_code == 401
        assert res.get_json()["message"] == "Invalid session"

    def test_login_records_client_context(self, app, client, registered_user):
        res = client.post(
            "/api/v1/auth/login",
            json={"email": "a@x.com", "password": PASSWORD},
            headers={"User-Agent": "pytest-agent"},
        )
        service = app.extensions["auth_service"]
        session = service.sessions.find_by_refresh_token(res.get_json()["refresh_token"])
        assert session.user_agent == "pytest-agent"
        assert session.ip_address == "127.0.0.1"

    def test_wrong_password_and_unknown_user_look_the_same(self, client, registered_user):
        wrong = _login(client, password="wrong-password")
        unknown = _login(client, email="nobody@x.com")

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json() == unknown.get_json()
        assert wrong.get_json()["message"] == "Invalid credentials"

    def test_login_requires_fields(self, client):
        res = client.post("/api/v1/auth/login", json={"email": "a@x.com"})
        assert res.status_code == 422

    def test_refresh_requires_token(self, client):
        res = client.post("/api/v1/auth/refresh", json={})
        assert res.status_code == 422

    def test_garbage_refresh_token(self, client):
        res = client.post("/api/v1/auth/refresh", json={"refresh_token": "garbage"})
        assert res.status_code == 401
        assert res.get_json()["message"] == "Invalid session"

    def test_logout_unknown_token(self, client):
        res = client.post("/api/v1/auth/logout", json={"refresh_token": "garbage"})
        assert res.status_code == 401


class TestRegister:
    def test_register_opens_session(self, client):
        res = client.post(
            "/api/v1/auth/register",
            json={"email": "New@X.com", "password": "long-enough", "name": "New", "role": "school"},
        )
        assert res.status_code == 201
        body = res.get_json()
        assert body["user"]["email"] == "new@x.com"
        assert body["user"]["role"] == "school"

        res = client.post("/api/v1/auth/refresh", json={"refresh_token": body["refresh_token"]})
        assert res.status_code == 200

    def test_duplicate_email(self, client, registered_user):
        res = client.post(
            "/api/v1/auth/register",
            json={"email": "a@x.com", "password": "long-enough", "role": "donor"},
        )
        assert res.status_code == 409

    def test_duplicate_email_race_is_409(self, app, client, registered_user, monkeypatch):
        # another request inserted the email between the pre-check and the insert
        service = app.extensions["auth_service"]
        monkeypatch.setattr(service.users, "get_user_by_email", lambda email: None)

        res = client.post(
            "/api/v1/auth/register",
            json={"email": "a@x.com", "password": "long-enough", "role": "donor"},
        )
        assert res.status_code == 409
        assert res.get_json()["message"] == "Email already registered"

    def test_admin_cannot_self_register(self, client):
        res = client.post(
            "/api/v1/auth/register",
            json={"email": "root@x.com", "password": "long-enough", "role": "admin"},
        )
        assert res.status_code == 422


class TestLogoutAll:
    def test_logout_everywhere(self, client, registered_user):
        first = _login(client).get_json()
        second = _login(client).get_json()

        res = client.post("/api/v1/auth/logout-all", headers=_bearer(first["access_token"]))
        assert res.status_code == 200
        assert res.get_json() == {"invalidated_count": 2}

        for tokens in (first, second):
            res = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
            assert res.status_code == 401

        fresh = _login(client).get_json()
        res = client.post("/api/v1/auth/refresh", json={"refresh_token": fresh["refresh_token"]})
        assert res.status_code == 200

    def test_requires_access_token(self, client, registered_user):
        tokens = _login(client).get_json()
        assert client.post("/api/v1/auth/logout-all").status_code == 401
        # a refresh token is not an access token
        res = client.post("/api/v1/auth/logout-all", headers=_bearer(tokens["refresh_token"]))
        assert res.status_code == 401

    def test_admin_forced_logout(self, app, client, registered_user):
        service = app.extensions["auth_service"]
        service.users.create_user("root@x.com", hash_password(PASSWORD), role="admin")
        victim = _login(client).get_json()
        admin = _login(client, email="root@x.com").get_json()

        res = client.post(
            f"/api/v1/auth/users/{registered_user.id}/logout-all",
            headers=_bearer(admin["access_token"]),
        )
        assert res.status_code == 200
        assert res.get_json() == {"invalidated_count": 1}
        res = client.post("/api/v1/auth/refresh", json={"refresh_token": victim["refresh_token"]})
        assert res.status_code == 401

    def test_forced_logout_requires_admin(self, client, registered_user):
        tokens = _login(client).get_json()
        res = client.post(
            f"/api/v1/auth/users/{registered_user.id}/logout-all",
            headers=_bearer(tokens["access_token"]),
        )
        assert res.status_code == 403


class TestMe:
    def test_me(self, client, registered_user):
        tokens = _login(client).get_json()
        res = client.get("/api/v1/auth/me", headers=_bearer(tokens["access_token"]))
        assert res.status_code == 200
        assert res.get_json()["data"]["email"] == "a@x.com"


class TestStoreOutage:
    @pytest.fixture
    def memory_app(self):
        store = MemoryStore()
        store.create_user("a@x.com", hash_password(PASSWORD), role="donor")
        app = create_app("testing", users=store, sessions=store)
        return app, store

    def test_outage_is_503_not_401(self, memory_app, monkeypatch):
        app, store = memory_app
        client = app.test_client()
        tokens = _login(client).get_json()

        def broken(*args, **kwargs):
            raise StoreUnavailableError("down")

        monkeypatch.setattr(store, "find_by_refresh_token", broken)

        res = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert res.status_code == 503
        assert res.headers["Retry-After"] == "5"

    def test_failed_session_insert_returns_no_tokens(self, memory_app, monkeypatch):
        app, store = memory_app
        client = app.test_client()

        from services.errors import PersistenceError

        def broken(*args, **kwargs):
            raise PersistenceError("create session: constraint violated")

        monkeypatch.setattr(store, "create", broken)

        res = _login(client)
        assert res.status_code == 500
        assert "access_token" not in res.get_json()


class TestHealth:
    def test_health(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json()["store"] == "ok"


class TestRoutes:
    def test_auth_routes_are_mounted_under_api_v1_auth(self, app):
        rules = {rule.rule for rule in app.url_map.iter_rules()}
        assert "/api/v1/auth/login" in rules
        assert "/api/v1/auth/users/<user_id>/logout-all" in rules
        assert "/api/v1/login" not in rules
