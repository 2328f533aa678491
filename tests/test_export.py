import io
from datetime import date, time

from worklog.documents.log_pdf import build_log_pdf
from worklog.models.models import DailyLog


def test_export_pdf_for_owner_and_manager(client, headers, leader, manager, other_leader, log_payload):
    log = client.post("/logs", json=log_payload(), headers=headers(leader)).json()

    resp = client.get(f"/logs/{log['id']}/export-pdf", headers=headers(leader))
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert f"daily-log-{log['id']}.pdf" in resp.headers["content-disposition"]
    assert resp.content.startswith(b"%PDF")

    assert client.get(f"/logs/{log['id']}/export-pdf", headers=headers(manager)).status_code == 200
    assert client.get(f"/logs/{log['id']}/export-pdf", headers=headers(other_leader)).status_code == 403


def test_pdf_renders_without_employees_and_with_markup_characters(leader):
    log = DailyLog(
        date=date(2025, 1, 6),
        project="Bridge <north> & pier",
        employees=[],
        start_time=time(7, 0),
        end_time=time(15, 30),
        work_description="Line one\nLine <two>",
        status="draft",
        team_leader_id=leader.id,
    )

    pdf = build_log_pdf(log)

    assert pdf.startswith(b"%PDF")


def test_attach_certificate(client, headers, leader, log_payload, storage):
    log = client.post("/logs", json=log_payload(), headers=headers(leader)).json()

    resp = client.post(
        f"/logs/{log['id']}/certificate",
        files={"file": ("Delivery Note #12.pdf", io.BytesIO(b"%PDF-1.4 first"), "application/pdf")},
        headers=headers(leader),
    )
    assert resp.status_code == 200, resp.text
    first = resp.json()["delivery_certificate"]
    assert first["type"] == "delivery_note"
    assert first["original_name"] == "Delivery Note #12.pdf"
    assert first["path"].startswith("logs/")
    assert first["path"].endswith("_delivery-note-12.pdf")
    assert storage.exists(first["path"])

    resp = client.post(
        f"/logs/{log['id']}/certificate",
        files={"file": ("receipt.png", io.BytesIO(b"png"), "image/png")},
        data={"type": "receipt"},
        headers=headers(leader),
    )
    second = resp.json()["delivery_certificate"]
    assert second["type"] == "receipt"
    assert storage.exists(second["path"])
    assert not storage.exists(first["path"])


def test_attach_rejects_unknown_type(client, headers, leader, log_payload):
    log = client.post("/logs", json=log_payload(), headers=headers(leader)).json()

    resp = client.post(
        f"/logs/{log['id']}/certificate",
        files={"file": ("x.pdf", io.BytesIO(b"x"), "application/pdf")},
        data={"type": "photo"},
        headers=headers(leader),
    )
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "type"


def test_attach_to_approved_log_is_locked(client, headers, leader, manager, other_leader, log_payload):
    log = client.post("/logs", json=log_payload(), headers=headers(leader)).json()
    client.patch(f"/logs/{log['id']}/submit", headers=headers(leader))
    client.patch(f"/logs/{log['id']}/approve", headers=headers(manager))
    upload = {"file": ("x.pdf", io.BytesIO(b"x"), "application/pdf")}

    resp = client.post(f"/logs/{log['id']}/certificate", files=upload, headers=headers(leader))
    assert resp.status_code == 409
    assert resp.json()["kind"] == "LogLocked"

    upload = {"file": ("x.pdf", io.BytesIO(b"x"), "application/pdf")}
    resp = client.post(f"/logs/{log['id']}/certificate", files=upload, headers=headers(other_leader))
    assert resp.status_code == 403
