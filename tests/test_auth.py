"""
Тесты аутентификации администратора.
"""

from datetime import timedelta

import pytest

from boutique_admin.core.auth import AuthService, get_current_session
from boutique_admin.db.models.user import User

API = "/api/v1"
PASSWORD = "admin12345"


@pytest.fixture
def admin(database):
    with database.session() as session:
        user = User(
            name="Store Admin",
            email="admin@example.com",
            hashed_password=AuthService.get_password_hash(PASSWORD),
        )
        session.add(user)
        session.commit()
        return user.id


@pytest.fixture
def anonymous(app, client):
    app.dependency_overrides.pop(get_current_session, None)
    return client


def test_password_hashing():
    hashed = AuthService.get_password_hash(PASSWORD)
    assert hashed != PASSWORD
    assert AuthService.verify_password(PASSWORD, hashed)
    assert not AuthService.verify_password("wrong-password", hashed)


def test_token_roundtrip_and_expiry():
    token = AuthService.create_access_token({"sub": "7"})
    assert AuthService.verify_token(token)["sub"] == "7"

    expired = AuthService.create_access_token({"sub": "7"}, expires_delta=timedelta(minutes=-1))
    assert AuthService.verify_token(expired) is None
    assert AuthService.verify_token("garbage") is None


def test_login_and_session(anonymous, admin, database):
    response = anonymous.post(
        f"{API}/auth/login", json={"email": "Admin@Example.com", "password": PASSWORD}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"] == {"user_id": admin, "name": "Store Admin", "email": "admin@example.com"}

    headers = {"Authorization": f"Bearer {body['access_token']}"}
    session = anonymous.get(f"{API}/auth/session", headers=headers)
    assert session.json()["user_id"] == admin
    assert anonymous.get(f"{API}/admin/categories", headers=headers).status_code == 200

    with database.session() as db:
        assert db.get(User, admin).last_login is not None


def test_login_wrong_password(anonymous, admin):
    response = anonymous.post(
        f"{API}/auth/login", json={"email": "admin@example.com", "password": "wrong-password"}
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"


def test_inactive_user_token_rejected(anonymous, admin, database):
    token = AuthService.create_access_token({"sub": str(admin)})
    with database.session() as db:
        db.get(User, admin).is_active = False
        db.commit()

    response = anonymous.get(f"{API}/auth/session", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_bad_token_rejected(anonymous):
    response = anonymous.get(
        f"{API}/admin/dashboard/stats", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401


def test_login_attempts_are_rate_limited(anonymous, admin):
    wrong = {"email": "admin@example.com", "password": "wrong-password"}
    for _ in range(5):
        assert anonymous.post(f"{API}/auth/login", json=wrong).status_code == 401

    response = anonymous.post(
        f"{API}/auth/login", json={"email": "admin@example.com", "password": PASSWORD}
    )

    assert response.status_code == 429
    assert response.json() == {
        "success": False,
        "error": "Too many login attempts, try again later",
        "code": "rate_limited",
    }


def test_disabled_account_cannot_login(anonymous, admin, database):
    with database.session() as db:
        db.get(User, admin).is_active = False
        db.commit()

    response = anonymous.post(
        f"{API}/auth/login", json={"email": "admin@example.com", "password": PASSWORD}
    )

    assert response.status_code == 401
    with database.session() as db:
        assert db.get(User, admin).last_login is None
