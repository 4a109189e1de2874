"""
Tests for registration, login and the current-user endpoint.
"""
from clinic_booking.auth.bootstrap import bootstrap_admin_if_needed
from clinic_booking.auth.models import User, UserRole
from clinic_booking.config import settings


def register(client, email="new@example.com", password="Password123", name="New Person"):
    return client.post(
        "/api/v1/auth/register",
        json={"name": name, "email": email, "password": password}
    )


def test_register_returns_token_and_user(client):
    response = register(client, email="New@Example.com")
    assert response.status_code == 201
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["user"]["email"] == "new@example.com"
    assert data["user"]["role"] == "user"
    assert "password_hash" not in data["user"]


def test_register_duplicate_email(client):
    register(client)
    response = register(client)
    assert response.status_code == 400
    assert response.json()["kind"] == "EmailAlreadyExists"


def test_register_weak_password(client):
    response = register(client, password="password")
    assert response.status_code == 422
    assert response.json()["kind"] == "ValidationError"


def test_login_and_me(client):
    register(client)
    response = client.post("/api/v1/auth/login", json={"email": "new@example.com", "password": "Password123"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["name"] == "New Person"
    assert me.json()["last_login"] is not None


def test_login_wrong_password(client):
    register(client)
    response = client.post("/api/v1/auth/login", json={"email": "new@example.com", "password": "Wrong123"})
    assert response.status_code == 401
    assert response.json()["kind"] == "InvalidCredentials"


def test_login_inactive_account(client, db, user):
    user.is_active = False
    db.commit()
    response = client.post("/api/v1/auth/login", json={"email": user.email, "password": "Password123"})
    assert response.status_code == 401
    assert response.json()["kind"] == "AccountInactive"


def test_me_requires_token(client):
    assert client.get("/api/v1/auth/me").status_code == 401


def test_me_rejects_bad_token(client):
    response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json()["kind"] == "InvalidToken"


def test_bootstrap_admin_created_once(db, monkeypatch):
    monkeypatch.setattr(settings, "bootstrap_admin_email", "Root@Example.com")
    monkeypatch.setattr(settings, "bootstrap_admin_password", "Admin1234")

    bootstrap_admin_if_needed(db)
    bootstrap_admin_if_needed(db)

    admins = db.query(User).filter(User.role == UserRole.ADMIN).all()
    assert [admin.email for admin in admins] == ["root@example.com"]


def test_bootstrap_skipped_without_credentials(db, monkeypatch):
    monkeypatch.setattr(settings, "bootstrap_admin_email", None)
    bootstrap_admin_if_needed(db)
    assert db.query(User).count() == 0
