"""
tests/test_api_auth.py -- Integration tests for the auth HTTP endpoints.

These tests exercise the full stack: FastAPI routing -> request validation
-> gate dependency -> AuthService -> UserStore/MemoryKV -> response model
serialization -> error envelope. Each test registers its own usernames
because the api fixture is module-scoped.

Fixture config: LOGIN_FAIL_MAX=3, LOGIN_LOCK_SECONDS=60, ME_CACHE_SECONDS=30.
"""

from __future__ import annotations

from auth.keys import AuthKeys

PASSWORD = "Passw0rd!"


def _register(api, username: str, full_name: str = "Test User"):
    return api.client.post(
        "/api/v1/auth/register",
        json={"username": username, "password": PASSWORD, "fullName": full_name},
    )


def _login(api, username: str, password: str = PASSWORD):
    return api.client.post("/api/v1/auth/login", json={"username": username, "password": password})


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestScenario:
    """register -> login -> me -> lockout, end to end."""

    def test_full_flow(self, api) -> None:
        resp = _register(api, "alice", "Alice A")
        assert resp.status_code == 201, resp.text
        created = resp.json()
        assert set(created) == {"id", "username", "fullName", "createdAt"}
        assert created["username"] == "alice"
        assert created["fullName"] == "Alice A"

        resp = _login(api, "alice")
        assert resp.status_code == 200, resp.text
        assert resp.headers["cache-control"] == "no-store"
        token = resp.json()["accessToken"]
        assert resp.json()["tokenType"] == "bearer"

        resp = api.client.get("/api/v1/auth/me", headers=_bearer(token))
        assert resp.status_code == 200, resp.text
        assert resp.json() == created

        for _ in range(3):
            resp = _login(api, "alice", "wrong-password")
            assert resp.status_code == 401
            assert resp.json()["error"]["code"] == "invalid_credentials"

        resp = _login(api, "alice")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "account_locked"
        assert resp.headers["retry-after"] == "60"


class TestRegister:
    def test_duplicate_is_400(self, api) -> None:
        assert _register(api, "dupe_user").status_code == 201
        resp = _register(api, "dupe_user")
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "duplicate_identity"

    def test_response_never_contains_password(self, api) -> None:
        resp = _register(api, "secretive")
        assert PASSWORD not in resp.text
        assert "password" not in resp.text.lower()

    def test_invalid_username_is_422(self, api) -> None:
        resp = api.client.post(
            "/api/v1/auth/register",
            json={"username": "no spaces!", "password": PASSWORD, "fullName": "Bad Name"},
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"

    def test_validation_error_does_not_echo_password(self, api) -> None:
        resp = api.client.post(
            "/api/v1/auth/register",
            json={"username": "ok_name", "password": "sekrit7", "fullName": "X"},
        )
        assert resp.status_code == 422
        assert "sekrit7" not in resp.text

    def test_multibyte_password_at_byte_limit_registers(self, api) -> None:
        password = "\u00e9" * 36  # 36 characters, 72 UTF-8 bytes
        resp = api.client.post(
            "/api/v1/auth/register",
            json={"username": "accented", "password": password, "fullName": "Accent Ed"},
        )
        assert resp.status_code == 201, resp.text
        assert _login(api, "accented", password).status_code == 200

    def test_multibyte_password_over_byte_limit_is_422(self, api) -> None:
        resp = api.client.post(
            "/api/v1/auth/register",
            json={"username": "too_accented", "password": "\u00e9" * 40, "fullName": "Accent Ed"},
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"
        assert "72 bytes" in resp.text


class TestLogin:
    def test_unknown_user_and_wrong_password_identical(self, api) -> None:
        _register(api, "enum_target")
        ghost = _login(api, "ghost_user", "x")
        wrong = _login(api, "enum_target", "wrongpass")
        assert ghost.status_code == wrong.status_code == 401
        assert ghost.json() == wrong.json()

    def test_success_resets_failure_counter(self, api) -> None:
        _register(api, "resetter")
        for _ in range(2):
            _login(api, "resetter", "wrong")
        assert _login(api, "resetter").status_code == 200
        _login(api, "resetter", "wrong")
        assert api.kv.get(AuthKeys.fail("resetter")).value == "1"

    def test_lock_lifts_after_lock_window(self, api) -> None:
        _register(api, "patient")
        for _ in range(3):
            _login(api, "patient", "wrong")
        assert _login(api, "patient").status_code == 401
        api.clock.advance(61)
        assert _login(api, "patient").status_code == 200

    def test_multibyte_password_over_byte_limit_is_422(self, api) -> None:
        _register(api, "long_pw_login")
        resp = _login(api, "long_pw_login", "\u00e9" * 40)
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"
        assert api.kv.get(AuthKeys.fail("long_pw_login")).found is False


class TestMe:
    def test_missing_header(self, api) -> None:
        resp = api.client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "missing_token"

    def test_wrong_scheme(self, api) -> None:
        resp = api.client.get("/api/v1/auth/me", headers={"Authorization": "bearer abc"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "missing_token"

    def test_invalid_token(self, api) -> None:
        resp = api.client.get("/api/v1/auth/me", headers=_bearer("WRONG_TOKEN"))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "invalid_token"

    def test_expired_token(self, api) -> None:
        token = api.issuer.issue({"sub": "whoever", "username": "whoever"}, ttl=-5)
        resp = api.client.get("/api/v1/auth/me", headers=_bearer(token))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "invalid_token"

    def test_token_for_vanished_user(self, api) -> None:
        token = api.issuer.issue({"sub": "00000000-0000-0000-0000-000000000000", "username": "gone"})
        resp = api.client.get("/api/v1/auth/me", headers=_bearer(token))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "identity_not_found"

    def test_token_subject_matches_registered_id(self, api) -> None:
        created = _register(api, "subject_check").json()
        token = _login(api, "subject_check").json()["accessToken"]
        assert api.issuer.verify(token).subject == created["id"]

    def test_second_read_served_from_cache(self, api) -> None:
        created = _register(api, "cached_user").json()
        token = _login(api, "cached_user").json()["accessToken"]
        first = api.client.get("/api/v1/auth/me", headers=_bearer(token))
        assert api.kv.get(AuthKeys.me(created["id"])).found
        second = api.client.get("/api/v1/auth/me", headers=_bearer(token))
        assert first.content == second.content
