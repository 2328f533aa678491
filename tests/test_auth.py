from worklog.auth.security import create_access_token
from worklog.models.models import User
from worklog.services.users import create_user


def test_login_with_username_or_email(client, db):
    create_user(db, "Noa", "password123", "Team Leader", email="Noa@Example.com")

    resp = client.post("/auth/login", json={"identifier": "noa", "password": "password123"})
    assert resp.status_code == 200
    assert resp.json()["role"] == "Team Leader"

    resp = client.post("/auth/login", json={"identifier": "noa@example.com", "password": "password123"})
    token = resp.json()["access_token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["username"] == "noa"


def test_login_with_wrong_password(client, leader):
    resp = client.post("/auth/login", json={"identifier": "t1", "password": "nope"})

    assert resp.status_code == 401
    assert resp.json()["kind"] == "Unauthenticated"


def test_missing_or_invalid_token(client):
    assert client.get("/logs").status_code == 401
    resp = client.get("/logs", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"] == "Bearer"


def test_expired_token(client, leader):
    token = create_access_token(str(leader.id), ttl_seconds=-10)
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_inactive_user_is_unauthenticated(client, db, leader, headers):
    h = headers(leader)
    db.query(User).filter(User.id == leader.id).update({"is_active": False})
    db.commit()

    assert client.get("/auth/me", headers=h).status_code == 401


def test_manager_creates_users(client, headers, manager, leader):
    payload = {"username": "t3", "password": "password123", "role": "Team Leader", "full_name": "Tami"}

    resp = client.post("/auth/users", json=payload, headers=headers(manager))
    assert resp.status_code == 201
    assert resp.json()["role"] == "Team Leader"

    resp = client.post("/auth/users", json=payload, headers=headers(manager))
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "username"

    assert client.post("/auth/users", json={**payload, "username": "t4"}, headers=headers(leader)).status_code == 403


def test_root_welcome(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert "Welcome" in resp.json()["message"]


def test_user_email_is_validated_and_normalized(client, headers, manager):
    payload = {"username": "t5", "password": "password123", "role": "Team Leader"}

    resp = client.post("/auth/users", json={**payload, "email": "t5@"}, headers=headers(manager))
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "email"

    resp = client.post("/auth/users", json={**payload, "email": " T5@BuildCo.com "}, headers=headers(manager))
    assert resp.status_code == 201
    assert resp.json()["email"] == "t5@buildco.com"


def test_request_id_is_echoed_or_generated(client):
    resp = client.get("/", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"

    resp = client.get("/")
    assert resp.headers["X-Request-ID"]
