import time
import uuid


def _create(client, headers, manager, **overrides):
    payload = {"full_name": "Dana Cohen", "position": "Carpenter", "phone": "050-1234567"}
    payload.update(overrides)
    resp = client.post("/employees", json=payload, headers=headers(manager))
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_manager_creates_employee_with_defaults(client, headers, manager):
    employee = _create(client, headers, manager)

    assert employee["is_active"] is True
    assert employee["hire_date"] is not None
    assert employee["full_name"] == "Dana Cohen"


def test_email_is_normalized(client, headers, manager):
    employee = _create(client, headers, manager, email="  Dana.Cohen@BuildCo.COM ")
    assert employee["email"] == "dana.cohen@buildco.com"


def test_blank_email_is_stored_as_none(client, headers, manager):
    employee = _create(client, headers, manager, email="   ")
    assert employee["email"] is None


def test_invalid_email_is_rejected(client, headers, manager):
    resp = client.post(
        "/employees",
        json={"full_name": "Dana", "position": "Carpenter", "email": "dana@"},
        headers=headers(manager),
    )
    assert resp.status_code == 400
    assert [e["field"] for e in resp.json()["errors"]] == ["email"]


def test_long_malformed_email_is_rejected_quickly(client, headers, manager):
    started = time.monotonic()
    resp = client.post(
        "/employees",
        json={"full_name": "Dana", "position": "Carpenter", "email": "a" * 40 + "!"},
        headers=headers(manager),
    )
    assert resp.status_code == 400
    assert [e["field"] for e in resp.json()["errors"]] == ["email"]
    assert time.monotonic() - started < 5


def test_update_rejects_invalid_email(client, headers, manager):
    employee = _create(client, headers, manager)

    resp = client.put(f"/employees/{employee['id']}", json={"email": "not-an-email"}, headers=headers(manager))

    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "email"


def test_required_fields_on_create(client, headers, manager):
    resp = client.post("/employees", json={"full_name": "   "}, headers=headers(manager))

    assert resp.status_code == 400
    assert {e["field"] for e in resp.json()["errors"]} == {"full_name", "position"}


def test_team_leader_reads_but_cannot_manage(client, headers, manager, leader):
    employee = _create(client, headers, manager)

    assert client.get("/employees", headers=headers(leader)).status_code == 200
    assert client.get(f"/employees/{employee['id']}", headers=headers(leader)).status_code == 200
    assert client.post("/employees", json={"full_name": "X", "position": "Y"}, headers=headers(leader)).status_code == 403
    assert client.put(f"/employees/{employee['id']}", json={"position": "Y"}, headers=headers(leader)).status_code == 403
    assert client.patch(f"/employees/{employee['id']}/toggle-status", headers=headers(leader)).status_code == 403
    assert client.delete(f"/employees/{employee['id']}", headers=headers(leader)).status_code == 403


def test_partial_update(client, headers, manager):
    employee = _create(client, headers, manager)

    resp = client.put(f"/employees/{employee['id']}", json={"position": "Foreman"}, headers=headers(manager))

    assert resp.status_code == 200
    assert resp.json()["position"] == "Foreman"
    assert resp.json()["full_name"] == "Dana Cohen"
    assert resp.json()["phone"] == "050-1234567"


def test_update_rejects_blank_name(client, headers, manager):
    employee = _create(client, headers, manager)

    resp = client.put(f"/employees/{employee['id']}", json={"full_name": " "}, headers=headers(manager))

    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "full_name"


def test_toggle_twice_restores_original(client, headers, manager):
    employee = _create(client, headers, manager)
    url = f"/employees/{employee['id']}/toggle-status"

    first = client.patch(url, headers=headers(manager)).json()
    assert first == {"id": employee["id"], "is_active": False, "message": "Employee deactivated successfully"}
    assert client.get("/employees/active", headers=headers(manager)).json() == []

    second = client.patch(url, headers=headers(manager)).json()
    assert second["is_active"] is True
    assert second["message"] == "Employee activated successfully"
    assert [e["id"] for e in client.get("/employees/active", headers=headers(manager)).json()] == [employee["id"]]


def test_delete_employee(client, headers, manager):
    employee = _create(client, headers, manager)

    assert client.delete(f"/employees/{employee['id']}", headers=headers(manager)).status_code == 200
    assert client.get(f"/employees/{employee['id']}", headers=headers(manager)).status_code == 404


def test_unknown_employee_is_not_found(client, headers, manager):
    missing = uuid.uuid4()
    h = headers(manager)

    assert client.get(f"/employees/{missing}", headers=h).status_code == 404
    assert client.put(f"/employees/{missing}", json={"position": "X"}, headers=h).status_code == 404
    assert client.delete(f"/employees/{missing}", headers=h).status_code == 404
    resp = client.patch(f"/employees/{missing}/toggle-status", headers=h)
    assert resp.status_code == 404
    assert resp.json()["kind"] == "NotFound"
