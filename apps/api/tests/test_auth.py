"""
Authentication: registration, login by username or email, lockout,
blocked accounts and the retired voice-authentication endpoints.
"""
import pytest

from models import UserStats

PASSWORD = "correct-horse-battery"


def _register(client, username="bob", email="bob@example.com", password=PASSWORD):
    return client.post("/v1/auth/register", json={"username": username, "email": email, "password": password})


class TestRegister:
    def test_register_returns_token_and_user(self, client, db_session):
        response = _register(client)
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["access_token"]
        assert body["token_type"] == "bearer"
        assert body["user"]["username"] == "bob"
        assert body["user"]["role"] == "user"

        # Stats row is created on registration
        stats = db_session.query(UserStats).count()
        assert stats == 1

    def test_duplicate_username_rejected(self, client):
        assert _register(client).status_code == 201
        response = _register(client, email="other@example.com")
        assert response.status_code == 400
        assert response.json()["detail"] == "Username already taken"

    def test_duplicate_email_rejected_case_insensitive(self, client):
        assert _register(client).status_code == 201
        response = _register(client, username="bobby", email="BOB@example.com")
        assert response.status_code == 400
        assert response.json()["detail"] == "Email already registered"

    def test_short_password_rejected(self, client):
        response = _register(client, password="short")
        assert response.status_code == 400

    def test_invalid_username_rejected(self, client):
        response = _register(client, username="bad name!")
        assert response.status_code == 400


class TestLogin:
    def test_login_with_username(self, client, user):
        response = client.post("/v1/auth/login", json={"identifier": "alice", "password": PASSWORD})
        assert response.status_code == 200, response.text
        assert response.json()["user"]["id"] == str(user.id)

    def test_login_with_email(self, client, user):
        response = client.post("/v1/auth/login", json={"identifier": "ALICE@example.com", "password": PASSWORD})
        assert response.status_code == 200

    def test_login_sets_last_login(self, client, user, db_session):
        client.post("/v1/auth/login", json={"identifier": "alice", "password": PASSWORD})
        db_session.expire_all()
        db_session.refresh(user)
        assert user.last_login_at is not None

    def test_wrong_password(self, client, user):
        response = client.post("/v1/auth/login", json={"identifier": "alice", "password": "wrong-password"})
        assert response.status_code == 401
        assert response.json()["detail"].startswith("Invalid username or password")

    def test_lockout_after_five_failures(self, client, user):
        for _ in range(5):
            response = client.post("/v1/auth/login", json={"identifier": "alice", "password": "wrong-password"})
            assert response.status_code == 401

        response = client.post("/v1/auth/login", json={"identifier": "alice", "password": PASSWORD})
        assert response.status_code == 429
        assert "Retry-After" in response.headers

    def test_lockout_counts_username_and_email_together(self, client, user):
        for identifier in ["alice", "alice@example.com"] * 2 + ["alice"]:
            response = client.post("/v1/auth/login", json={"identifier": identifier, "password": "wrong-password"})
            assert response.status_code == 401

        for identifier in ("alice", "alice@example.com", "ALICE@example.com"):
            response = client.post("/v1/auth/login", json={"identifier": identifier, "password": PASSWORD})
            assert response.status_code == 429

    def test_blocked_user_cannot_login(self, client, make_user):
        make_user("mallory", is_blocked=True)
        response = client.post("/v1/auth/login", json={"identifier": "mallory", "password": PASSWORD})
        assert response.status_code == 403


class TestTokens:
    def test_me(self, client, user, headers):
        response = client.get("/v1/auth/me", headers=headers)
        assert response.status_code == 200
        assert response.json()["username"] == "alice"

    def test_me_requires_auth(self, client):
        assert client.get("/v1/auth/me").status_code == 401

    def test_invalid_token(self, client):
        response = client.get("/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_blocked_user_token_rejected(self, client, make_user, auth_for):
        blocked = make_user("eve", is_blocked=True)
        assert client.get("/v1/auth/me", headers=auth_for(blocked)).status_code == 403

    def test_refresh(self, client, headers):
        response = client.post("/v1/auth/refresh", headers=headers)
        assert response.status_code == 200
        assert response.json()["access_token"]


class TestVoiceAuthRetired:
    @pytest.mark.parametrize("method,path", [
        ("post", "/api/auth/voice/enroll"),
        ("post", "/api/auth/voice/verify"),
        ("get", "/api/auth/voice/status"),
        ("delete", "/api/auth/voice"),
        ("post", "/v1/auth/voice/login"),
    ])
    def test_voice_auth_returns_gone(self, client, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 410
        assert "discontinued" in response.json()["detail"]
