"""Profile endpoints and role checks against the stored user."""
from conftest import API, DEFAULT_PASSWORD, bearer

from papad_store.models.user import User, UserRole
from papad_store.services.token_service import generate_access_token, generate_refresh_token


def _login(client, email: str, password: str = DEFAULT_PASSWORD) -> str:
    response = client.post(f"{API}/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["accessToken"]


def test_me_requires_token(client):
    response = client.get(f"{API}/users/me")
    assert response.status_code == 401
    assert response.json() == {"error": "Access token required"}


def test_me_returns_current_user(client, verified_user):
    body = verified_user(email="me@x.com", name="Meera")
    response = client.get(f"{API}/users/me", headers=bearer(body["accessToken"]))
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["email"] == "me@x.com"
    assert user["name"] == "Meera"
    assert user["isVerified"] is True
    assert "passwordHash" not in user


def test_me_accepts_access_token_cookie(client, verified_user):
    body = verified_user(email="cookieauth@x.com")
    client.cookies.set("accessToken", body["accessToken"])
    assert client.get(f"{API}/users/me").status_code == 200


def test_me_rejects_refresh_token_as_bearer(client, verified_user):
    body = verified_user(email="wrongtype@x.com")
    refresh_token = generate_refresh_token(body["user"]["id"])
    response = client.get(f"{API}/users/me", headers=bearer(refresh_token))
    assert response.status_code == 401


def test_me_rejects_unverified_user(client, make_user):
    user = make_user(email="unv@x.com", role=UserRole.CUSTOMER, is_verified=False)
    token = generate_access_token(user.id, user.email, user.role.value)
    response = client.get(f"{API}/users/me", headers=bearer(token))
    assert response.status_code == 403


def test_me_for_deleted_user(client, make_user, db_session):
    user = make_user(email="ghost@x.com", role=UserRole.CUSTOMER)
    token = generate_access_token(user.id, user.email, user.role.value)
    db_session.delete(user)
    db_session.commit()

    response = client.get(f"{API}/users/me", headers=bearer(token))
    assert response.status_code == 401
    assert response.json() == {"error": "User not found"}


def test_update_profile(client, verified_user):
    token = verified_user(email="edit@x.com")["accessToken"]
    response = client.put(
        f"{API}/users/me",
        headers=bearer(token),
        json={"name": "  Edited Name ", "profilePicture": "https://cdn.example.com/me.PNG"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Profile updated successfully"
    assert body["user"]["name"] == "Edited Name"
    assert body["user"]["profilePicture"] == "https://cdn.example.com/me.PNG"

    response = client.put(f"{API}/users/me", headers=bearer(token), json={"profilePicture": ""})
    assert response.status_code == 200
    assert response.json()["user"]["profilePicture"] is None
    assert response.json()["user"]["name"] == "Edited Name"


def test_update_profile_requires_a_field(client, verified_user):
    token = verified_user(email="empty@x.com")["accessToken"]
    response = client.put(f"{API}/users/me", headers=bearer(token), json={})
    assert response.status_code == 400
    assert response.json() == {"error": "At least one field must be provided for update"}


def test_update_profile_validation(client, verified_user):
    token = verified_user(email="invalid@x.com")["accessToken"]

    bad_picture = client.put(f"{API}/users/me", headers=bearer(token), json={"profilePicture": "ftp://x/y.bmp"})
    assert bad_picture.status_code == 400
    assert bad_picture.json()["details"] == ["profilePicture: Profile picture must be a valid image URL"]

    long_name = client.put(f"{API}/users/me", headers=bearer(token), json={"name": "x" * 51})
    assert long_name.status_code == 400

    null_name = client.put(f"{API}/users/me", headers=bearer(token), json={"name": None})
    assert null_name.status_code == 400


def test_admin_can_read_any_user(client, make_user, verified_user):
    customer = verified_user(email="cust@x.com")["user"]
    make_user(email="admin@x.com", role=UserRole.ADMIN)
    admin_token = _login(client, "admin@x.com")

    response = client.get(f"{API}/users/{customer['id']}", headers=bearer(admin_token))
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "cust@x.com"

    missing = client.get(f"{API}/users/999999", headers=bearer(admin_token))
    assert missing.status_code == 404


def test_customer_cannot_read_other_users(client, verified_user):
    body = verified_user(email="nosy@x.com")
    response = client.get(f"{API}/users/{body['user']['id']}", headers=bearer(body["accessToken"]))
    assert response.status_code == 403
    assert response.json() == {"error": "Insufficient permissions"}


def test_role_comes_from_database_not_token(client, make_user, db_session):
    user = make_user(email="demoted@x.com", role=UserRole.ADMIN)
    admin_claim = generate_access_token(user.id, user.email, UserRole.ADMIN.value)

    db_session.query(User).filter(User.id == user.id).update({User.role: UserRole.CUSTOMER})
    db_session.commit()
    response = client.get(f"{API}/users/{user.id}", headers=bearer(admin_claim))
    assert response.status_code == 403

    customer_claim = generate_access_token(user.id, user.email, UserRole.CUSTOMER.value)
    db_session.query(User).filter(User.id == user.id).update({User.role: UserRole.ADMIN})
    db_session.commit()
    response = client.get(f"{API}/users/{user.id}", headers=bearer(customer_claim))
    assert response.status_code == 200


def test_users_table_columns():
    assert set(User.__table__.columns.keys()) == {
        "id",
        "name",
        "email",
        "password_hash",
        "role",
        "is_verified",
        "profile_picture",
        "created_at",
        "updated_at",
    }
