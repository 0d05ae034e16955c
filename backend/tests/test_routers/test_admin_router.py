"""Integration tests for /api/admin endpoints."""


class TestAdminUsers:
    def test_requires_admin(self, client, auth_headers):
        response = client.get("/api/admin/users", headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["error_code"] == "PermissionDenied"

    def test_list_users(self, client, test_user, admin_auth_headers):
        response = client.get("/api/admin/users", headers=admin_auth_headers)

        assert response.status_code == 200
        emails = [u["email"] for u in response.json()]
        # admin_user is created after test_user
        assert emails == ["admin@example.com", "test@example.com"]

    def test_create_user(self, client, admin_auth_headers):
        response = client.post(
            "/api/admin/users",
            json={
                "email": "staff@example.com",
                "name": "Staff",
                "password": "Welcome123!",
                "role": "ADMIN",
            },
            headers=admin_auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["role"] == "ADMIN"
        assert data["email_verified_at"] is not None

    def test_delete_user(self, client, test_user, admin_auth_headers):
        user_id = test_user.id

        response = client.delete(
            f"/api/admin/users/{user_id}", headers=admin_auth_headers
        )

        assert response.status_code == 200
        assert client.get(
            "/api/admin/users", headers=admin_auth_headers
        ).json()[0]["email"] == "admin@example.com"

    def test_delete_missing_user(self, client, admin_auth_headers):
        response = client.delete("/api/admin/users/99999", headers=admin_auth_headers)
        assert response.status_code == 404
