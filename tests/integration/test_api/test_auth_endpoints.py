import pytest


@pytest.mark.integration
class TestAuthEndpoints:
    """Integration tests for /auth and /users/me."""

    def test_register(self, client):
        response = client.post(
            "/api/v1/auth/register",
            json={
                "email": "new@example.com",
                "password": "password123",
                "first_name": "New",
                "last_name": "Person",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["data"]["email"] == "new@example.com"
        assert "hashed_password" not in data["data"]

    def test_register_duplicate(self, client, owner):
        response = client.post(
            "/api/v1/auth/register",
            json={
                "email": "alex@example.com",
                "password": "password123",
                "first_name": "Alex",
                "last_name": "Again",
            },
        )

        assert response.status_code == 409
        data = response.json()
        assert data["success"] is False
        assert data["error"]["category"] == "Resource Conflict"

    def test_register_validation_error(self, client):
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "not-an-email", "password": "short"},
        )

        assert response.status_code == 422
        assert response.json()["error"]["category"] == "Validation"

    def test_login_wrong_password(self, client, owner):
        response = client.post(
            "/api/v1/auth/login",
            data={"username": "alex@example.com", "password": "wrong-password"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["category"] == "Authentication"

    def test_profile_requires_token(self, client):
        response = client.get("/api/v1/users/me")

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_profile_and_update(self, client, owner, login):
        headers = login("alex@example.com")

        response = client.get("/api/v1/users/me", headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["first_name"] == "Alex"

        response = client.put("/api/v1/users/me", json={"last_name": "Renamed"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["last_name"] == "Renamed"

    def test_logout_revokes_token(self, client, owner, login):
        headers = login("alex@example.com")

        response = client.post("/api/v1/auth/logout", headers=headers)
        assert response.status_code == 200

        response = client.get("/api/v1/users/me", headers=headers)
        assert response.status_code == 401

    def test_refresh(self, client, owner):
        login_response = client.post(
            "/api/v1/auth/login",
            data={"username": "alex@example.com", "password": "testpass123"},
        )
        refresh_token = login_response.json()["data"]["refresh_token"]

        response = client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})

        assert response.status_code == 200
        new_access = response.json()["data"]["access_token"]
        me = client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {new_access}"})
        assert me.status_code == 200

    def test_change_password_logs_out(self, client, owner, login):
        headers = login("alex@example.com")

        response = client.post(
            "/api/v1/users/me/change-password",
            json={"old_password": "testpass123", "new_password": "another-pass-1"},
            headers=headers,
        )

        assert response.status_code == 200
        assert client.get("/api/v1/users/me", headers=headers).status_code == 401
        assert login("alex@example.com", password="another-pass-1")

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "healthy"
