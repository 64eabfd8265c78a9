from libris.extensions import db
from libris.models.user import Role

from conftest import PASSWORD


def test_register_and_login(client):
    resp = client.post("/users/register", json={"name": "Alice", "email": "Alice@Example.com", "password": "secret"})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["email"] == "alice@example.com"
    assert body["role"] == Role.USER
    assert "password_hash" not in body

    resp = client.post("/users/login", json={"email": "alice@example.com", "password": "secret"})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["name"] == "Alice"

    resp = client.get("/users/profile")
    assert resp.status_code == 200
    assert resp.get_json()["email"] == "alice@example.com"


def test_register_ignores_role_in_body(client):
    resp = client.post(
        "/users/register",
        json={"name": "Mallory", "email": "m@example.com", "password": "x", "role": Role.ADMIN},
    )
    assert resp.status_code == 201
    assert resp.get_json()["role"] == Role.USER


def test_register_requires_fields(client):
    resp = client.post("/users/register", json={"email": "a@example.com"})
    assert resp.status_code == 400
    assert "required" in resp.get_json()["error"]


def test_register_duplicate_email(client, make_user):
    make_user(email="taken@example.com")
    resp = client.post("/users/register", json={"name": "X", "email": "TAKEN@example.com", "password": "x"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Email already in use"


def test_login_wrong_password(client, make_user):
    user = make_user()
    resp = client.post("/users/login", json={"email": user.email, "password": "nope"})
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Invalid credentials"}


def test_profile_requires_session(client):
    resp = client.get("/users/profile")
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Not authenticated"}


def test_session_cookie_is_http_only(client, make_user):
    user = make_user()
    resp = client.post("/users/login", json={"email": user.email, "password": PASSWORD})
    cookie = resp.headers.get("Set-Cookie")
    assert "libris_session=" in cookie
    assert "HttpOnly" in cookie


def test_logout_destroys_session(login, make_user):
    c = login(make_user())
    assert c.post("/users/logout").status_code == 200
    assert c.get("/users/profile").status_code == 401


def test_list_users_admin_only(login, make_user, admin):
    user = make_user()
    assert login(user).get("/users").status_code == 403

    resp = login(admin).get("/users")
    assert resp.status_code == 200
    rows = resp.get_json()
    assert {r["email"] for r in rows} == {user.email, admin.email}
    assert rows[0]["counts"] == {"borrowings": 0, "reservations": 0, "suggestions": 0}


def test_session_holds_only_the_user_id(login, make_user):
    user = make_user()
    c = login(user)
    with c.session_transaction() as sess:
        assert sess["user_id"] == user.id
        assert "role" not in sess

    # role comes from the user row, so a promotion applies without a new login
    assert c.get("/users").status_code == 403
    user.role = Role.ADMIN
    db.session.commit()
    assert c.get("/users").status_code == 200


def test_non_object_json_body_is_rejected(client):
    for path in ("/users/register", "/users/login"):
        resp = client.post(path, json=["alice@example.com", "secret"])
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Request body must be a JSON object"}
