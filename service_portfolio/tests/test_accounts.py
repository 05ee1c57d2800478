"""
Unit tests for account registration, login and administration.
"""

import pytest
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_portfolio.app.auth import PasswordHasher
from service_portfolio.app.main import PortfolioService
from shared.config import get_config
from shared.errors import ValidationError

SECRET = "test-secret"


class TestPasswordHasher:
    """Test cases for PasswordHasher."""

    @pytest.fixture
    def hasher(self):
        return PasswordHasher(rounds=4)

    def test_hash_and_verify(self, hasher):
        password_hash = hasher.hash("correct horse")

        assert password_hash != "correct horse"
        assert hasher.verify("correct horse", password_hash)
        assert not hasher.verify("wrong horse", password_hash)

    def test_overlong_password_rejected(self, hasher):
        with pytest.raises(ValidationError):
            hasher.hash("x" * 73)

    def test_malformed_stored_hash(self, hasher):
        assert hasher.verify("anything", "not-a-bcrypt-hash") is False


class TestAccounts:
    """Test cases for the account routes."""

    @pytest.fixture
    def service(self, tmp_path):
        """Create PortfolioService backed by a temporary SQLite file."""
        config = get_config(
            "portfolio",
            4000,
            sqlite_path=str(tmp_path / "portfolio.sqlite3"),
            database_url=None,
            jwt_secret=SECRET,
            password_hash_rounds=4,
        )
        return PortfolioService(config)

    @pytest.fixture
    def client(self, service):
        with TestClient(service.app) as client:
            yield client

    @pytest.fixture
    def admin_headers(self, service):
        token = service.auth.issue_token(1000, "root", "admin")
        return {"Authorization": f"Bearer {token}"}

    def register(self, client, username="sam", password="pw-sam"):
        return client.post("/api/auth/register", json={"username": username, "password": password})

    def login(self, client, username="sam", password="pw-sam"):
        return client.post("/api/auth/login", json={"username": username, "password": password})

    def approve(self, client, admin_headers, user_id):
        return client.patch(f"/api/admin/users/{user_id}/approve", headers=admin_headers)

    def test_register_creates_pending_user(self, client):
        response = self.register(client)

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Registration successful. Please wait for admin approval."
        assert data["user"]["username"] == "sam"
        assert data["user"]["role"] == "user"
        assert data["user"]["is_approved"] is False
        assert "token" not in data

    def test_register_requires_username_and_password(self, client):
        response = client.post("/api/auth/register", json={"username": "sam"})

        assert response.status_code == 400
        assert response.json()["message"] == "Username and password required"

    def test_register_duplicate_username(self, client):
        self.register(client)

        response = self.register(client, password="other")

        assert response.status_code == 400
        assert response.json()["message"] == "Username already exists"

    def test_login_pending_account_is_forbidden(self, client):
        self.register(client)

        response = self.login(client)

        assert response.status_code == 403
        assert response.json()["message"] == "Account pending approval. Please contact an admin."

    def test_login_bad_credentials(self, client, admin_headers):
        user_id = self.register(client).json()["user"]["id"]
        self.approve(client, admin_headers, user_id)

        wrong_password = self.login(client, password="nope")
        unknown_user = self.login(client, username="nobody")

        assert wrong_password.status_code == 401
        assert wrong_password.json()["message"] == "Invalid credentials"
        assert unknown_user.status_code == 401

    def test_approved_login_token_reaches_user_routes(self, client, admin_headers):
        """Test register, approve, login, then use the token."""
        user_id = self.register(client).json()["user"]["id"]
        assert self.approve(client, admin_headers, user_id).json() == {"message": "User approved"}

        response = self.login(client)

        assert response.status_code == 200
        data = response.json()
        assert data["user"] == {"id": user_id, "username": "sam", "role": "user"}

        headers = {"Authorization": f"Bearer {data['token']}"}
        created = client.post("/api/links", json={"title": "Docs", "url": "https://x"}, headers=headers)
        assert created.json()["user_id"] == user_id

    def test_me(self, client, admin_headers):
        user_id = self.register(client).json()["user"]["id"]
        self.approve(client, admin_headers, user_id)
        headers = {"Authorization": f"Bearer {self.login(client).json()['token']}"}

        response = client.get("/api/auth/me", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"user": {
            "id": user_id,
            "username": "sam",
            "profile_picture": None,
            "role": "user",
            "is_approved": True,
        }}

    def test_me_requires_auth(self, client):
        assert client.get("/api/auth/me").status_code == 401

    def test_me_for_deleted_account(self, client, service):
        token = service.auth.issue_token(404, "ghost")

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 404

    def test_update_profile_and_password(self, client, admin_headers):
        user_id = self.register(client).json()["user"]["id"]
        self.approve(client, admin_headers, user_id)
        headers = {"Authorization": f"Bearer {self.login(client).json()['token']}"}

        response = client.put("/api/auth/me", json={"username": "samira", "password": "new-pw"}, headers=headers)

        assert response.status_code == 200
        assert response.json() == {
            "user": {"id": user_id, "username": "samira", "profile_picture": None},
            "message": "Profile updated successfully",
        }
        assert self.login(client).status_code == 401
        assert self.login(client, username="samira", password="new-pw").status_code == 200

    def test_update_profile_keeps_password_when_omitted(self, client, admin_headers):
        user_id = self.register(client).json()["user"]["id"]
        self.approve(client, admin_headers, user_id)
        headers = {"Authorization": f"Bearer {self.login(client).json()['token']}"}

        client.put("/api/auth/me", json={"username": "samira"}, headers=headers)

        assert self.login(client, username="samira").status_code == 200

    def test_update_profile_to_taken_username(self, client, admin_headers):
        self.register(client, username="alex", password="pw-alex")
        user_id = self.register(client).json()["user"]["id"]
        self.approve(client, admin_headers, user_id)
        headers = {"Authorization": f"Bearer {self.login(client).json()['token']}"}

        response = client.put("/api/auth/me", json={"username": "alex"}, headers=headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Username already exists"

    def test_admin_routes_require_admin(self, client, service):
        headers = {"Authorization": f"Bearer {service.auth.issue_token(7, 'sam')}"}

        assert client.get("/api/admin/users", headers=headers).status_code == 403
        assert client.patch("/api/admin/users/7/approve", headers=headers).status_code == 403

    def test_admin_lists_users(self, client, admin_headers):
        self.register(client, username="alex", password="pw-alex")
        self.register(client)

        users = client.get("/api/admin/users", headers=admin_headers).json()

        assert [user["username"] for user in users] == ["sam", "alex"]
        assert all(user["is_approved"] is False for user in users)
        assert "password_hash" not in users[0]

    def test_approve_unknown_user(self, client, admin_headers):
        assert self.approve(client, admin_headers, 999).status_code == 404

    def test_admin_deletes_user(self, client, admin_headers):
        user_id = self.register(client).json()["user"]["id"]

        response = client.delete(f"/api/admin/users/{user_id}", headers=admin_headers)

        assert response.json() == {"message": "User deleted"}
        assert client.get("/api/admin/users", headers=admin_headers).json() == []
        assert client.delete(f"/api/admin/users/{user_id}", headers=admin_headers).status_code == 404

    def test_admin_cannot_delete_self(self, client, admin_headers):
        response = client.delete("/api/admin/users/1000", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot delete yourself"
