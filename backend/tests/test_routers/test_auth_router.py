"""Integration tests for auth API endpoints."""

PASSWORD = "TestPassword123!"


def _login(client, email="test@example.com", password=PASSWORD, headers=None):
    return client.post(
        "/api/auth/login",
        data={"username": email, "password": password},
        headers=headers,
    )


class TestAuthRouter:
    """Test cases for /api/auth endpoints."""

    def test_register_new_user(self, client):
        response = client.post(
            "/api/auth/register",
            json={
                "email": "newuser@example.com",
                "name": "New User",
                "password": "SecurePassword123!",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "newuser@example.com"
        assert data["role"] == "USER"
        assert data["email_verified_at"] is None
        assert "hashed_password" not in data

    def test_register_duplicate_email(self, client, test_user):
        response = client.post(
            "/api/auth/register",
            json={"email": test_user.email, "name": "Dup", "password": PASSWORD},
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "AlreadyExists"

    def test_register_weak_password(self, client):
        response = client.post(
            "/api/auth/register",
            json={"email": "weak@example.com", "name": "Weak", "password": "weak"},
        )
        assert response.status_code == 422

    def test_login_success(self, client, test_user):
        response = _login(client)

        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"

    def test_login_wrong_password(self, client, test_user):
        response = _login(client, password="WrongPassword1!")

        assert response.status_code == 401
        assert response.json()["detail"] == "Incorrect email or password"

    def test_login_unverified(self, client, make_user):
        make_user("pending@example.com", verified=False)
        response = _login(client, email="pending@example.com")

        assert response.status_code == 401
        assert response.json()["error_code"] == "EmailNotVerified"

    def test_login_rate_limited_after_five_failures(self, client, test_user):
        for _ in range(5):
            assert _login(client, password="WrongPassword1!").status_code == 401

        response = _login(client)

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0
        body = response.json()
        assert body["error_code"] == "RateLimited"
        assert body["detail"].startswith("Too many login attempts.")

    def test_rate_limit_is_per_email(self, client, test_user, other_user):
        for _ in range(5):
            _login(client, password="WrongPassword1!")

        assert _login(client, email="other@example.com").status_code == 200

    def test_rate_limit_endpoint(self, client):
        first = client.post("/api/auth/rate-limit", json={"email": "x@example.com"})
        assert first.status_code == 200
        assert first.json()["allowed"] is True
        assert first.json()["remaining_attempts"] == 4

        second = client.post("/api/auth/rate-limit", json={"email": "x@example.com"})
        assert second.json()["remaining_attempts"] == 3

    def test_rate_limit_endpoint_cannot_lift_lockout(self, client, test_user):
        for _ in range(5):
            _login(client, password="WrongPassword1!")
        assert _login(client, password="WrongPassword1!").status_code == 429

        response = client.post(
            "/api/auth/rate-limit", json={"email": "test@example.com", "success": True}
        )

        assert response.status_code == 200
        assert response.json()["allowed"] is False
        assert _login(client).status_code == 429

    def test_successful_login_clears_window(self, client, test_user):
        for _ in range(4):
            _login(client, password="WrongPassword1!")
        assert _login(client).status_code == 200

        for _ in range(5):
            assert _login(client, password="WrongPassword1!").status_code == 401

    def test_verify_email_bad_token(self, client):
        response = client.get("/api/auth/verify-email", params={"token": "nope"})

        assert response.status_code == 422
        assert response.json()["error_code"] == "InvalidToken"

    def test_register_verify_login(self, client, db_session):
        import repositories.db_models as db_models

        client.post(
            "/api/auth/register",
            json={"email": "flow@example.com", "name": "Flow", "password": PASSWORD},
        )
        token = (
            db_session.query(db_models.User.email_verification_token)
            .filter(db_models.User.email == "flow@example.com")
            .scalar()
        )

        assert client.get(
            "/api/auth/verify-email", params={"token": token}
        ).status_code == 200
        assert _login(client, email="flow@example.com").status_code == 200

    def test_forgot_password_same_message(self, client, test_user):
        known = client.post(
            "/api/auth/forgot-password", json={"email": "test@example.com"}
        )
        unknown = client.post(
            "/api/auth/forgot-password", json={"email": "ghost@example.com"}
        )

        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()

    def test_resend_verification_unknown(self, client):
        response = client.post(
            "/api/auth/resend-verification", json={"email": "ghost@example.com"}
        )
        assert response.status_code == 404

    def test_me(self, client, auth_headers):
        response = client.get("/api/auth/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["email"] == "test@example.com"

    def test_me_requires_token(self, client):
        assert client.get("/api/auth/me").status_code == 401
