"""
Tests for the shop sign-in and session gate
"""

import pytest
from datetime import timedelta

from app.core.config import settings
from app.modules.auth.utils import create_access_token, verify_token
from app.modules.auth.service import authenticate


class TestAuthenticate:

    def test_configured_account(self):
        assert authenticate(settings.AUTH_USER_ID, settings.AUTH_PASSWORD) is True

    @pytest.mark.parametrize("user_id,password", [
        ("Admin", "wrong"),
        ("admin", "Rangwala"),
        ("Someone", "Rangwala"),
    ])
    def test_wrong_credentials(self, user_id, password):
        assert authenticate(user_id, password) is False


class TestLogin:

    def test_wrong_password(self, client):
        response = client.post("/api/login", json={"userId": "Admin", "password": "wrong"})

        assert response.status_code == 401
        assert response.json() == {"message": "Invalid credentials"}
        assert "access_token" not in response.json()

    def test_successful_login(self, client):
        response = client.post("/api/login", json={"userId": "Admin", "password": "Rangwala"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["token_type"] == "bearer"
        assert verify_token(body["access_token"])["sub"] == "Admin"

    def test_missing_fields(self, client):
        response = client.post("/api/login", json={"userId": "Admin"})
        assert response.status_code == 422


class TestSessionGate:

    def test_session_of_token(self, client, auth_headers):
        response = client.get("/api/session", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["user_id"] == "Admin"

    @pytest.mark.parametrize("path", ["/parts/", "/bills/", "/api/session"])
    def test_protected_routes_need_a_token(self, client, path):
        response = client.get(path)
        assert response.status_code == 401
        assert response.json() == {"message": "Not authenticated"}

    def test_garbage_token(self, client):
        response = client.get("/bills/", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401
        assert response.json() == {"message": "Could not validate credentials"}

    def test_expired_token(self, client):
        token = create_access_token({"sub": "Admin"}, expires_delta=timedelta(minutes=-5))
        response = client.get("/parts/", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json() == {"message": "Session expired"}

    def test_public_routes(self, client):
        assert client.get("/health").status_code == 200
        assert client.get("/").status_code == 200
