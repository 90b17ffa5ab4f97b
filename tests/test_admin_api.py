from models import db
from models.patient import Patient

from conftest import PASSWORD, PATIENT_CPF, bearer


def _admin_session(client, sent_codes, username="root"):
    resp = client.post("/api/admin/auth/login", json={"username": username, "password": PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body["requires2FA"] is True

    resp = client.post("/api/auth/verify-2fa", json={"tempToken": body["tempToken"], "token": sent_codes[-1]["code"]})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


def test_admin_login_goes_through_2fa(client, make_admin, sent_codes):
    make_admin("root", role="super_admin")
    session = _admin_session(client, sent_codes)

    assert session["user"]["role"] == "super_admin"
    me = client.get("/api/admin/auth/me", headers=bearer(session["token"]))
    assert me.status_code == 200
    assert me.get_json()["user"]["username"] == "root"


def test_admin_unknown_username(client):
    resp = client.post("/api/admin/auth/login", json={"username": "ghost", "password": PASSWORD})
    assert resp.status_code == 401
    assert resp.get_json()["code"] == "USER_NOT_FOUND"


def test_patient_token_cannot_reach_admin_routes(client, patient, sent_codes):
    from conftest import login_patient

    session = login_patient(client, sent_codes)
    assert client.get("/api/admin/auth/me", headers=bearer(session["token"])).status_code == 403
    resp = client.post(f"/api/admin/patients/{patient.id}/unlock", headers=bearer(session["token"]))
    assert resp.status_code == 403


def test_admin_unlocks_patient(client, patient, make_admin, sent_codes):
    for _ in range(5):
        client.post("/api/auth/login", json={"cpf": PATIENT_CPF, "senha": "errada123"})

    make_admin("ops", role="admin")
    session = _admin_session(client, sent_codes, username="ops")

    resp = client.post(f"/api/admin/patients/{patient.id}/unlock", headers=bearer(session["token"]))
    assert resp.status_code == 200

    db.session.expire_all()
    row = db.session.get(Patient, patient.id)
    assert row.locked_until is None
    assert row.login_attempts == 0
    assert client.post("/api/auth/login", json={"cpf": PATIENT_CPF, "senha": PASSWORD}).status_code == 200


def test_unlock_unknown_patient(client, make_admin, sent_codes):
    make_admin("ops", role="admin")
    session = _admin_session(client, sent_codes, username="ops")
    resp = client.post("/api/admin/patients/999/unlock", headers=bearer(session["token"]))
    assert resp.status_code == 404


def test_moderator_cannot_unlock(client, patient, make_admin, sent_codes):
    make_admin("mod", role="moderator")
    session = _admin_session(client, sent_codes, username="mod")
    resp = client.post(f"/api/admin/patients/{patient.id}/unlock", headers=bearer(session["token"]))
    assert resp.status_code == 403


def test_audit_logs_super_admin_only(client, patient, make_admin, sent_codes):
    client.post("/api/auth/login", json={"cpf": PATIENT_CPF, "senha": "errada123"})

    make_admin("ops", role="admin")
    ops = _admin_session(client, sent_codes, username="ops")
    assert client.get("/api/admin/audit-logs", headers=bearer(ops["token"])).status_code == 403

    make_admin("root", role="super_admin")
    root = _admin_session(client, sent_codes, username="root")
    resp = client.get(
        "/api/admin/audit-logs?action=LOGIN_FAIL&account_type=patient",
        headers=bearer(root["token"]),
    )
    rows = resp.get_json()["data"]
    assert resp.status_code == 200
    assert len(rows) == 1
    assert rows[0]["account_id"] == patient.id


def test_admin_deactivates_and_reactivates_patient(client, patient, make_admin, sent_codes):
    from conftest import login_patient

    patient_session = login_patient(client, sent_codes)
    make_admin("ops", role="admin")
    session = _admin_session(client, sent_codes, username="ops")

    resp = client.put(
        f"/api/admin/users/{patient.id}/status", json={"ativo": False}, headers=bearer(session["token"])
    )
    assert resp.status_code == 200
    assert resp.get_json()["revoked_refresh_tokens"] == 1

    assert client.post("/api/auth/login", json={"cpf": PATIENT_CPF, "senha": PASSWORD}).status_code == 401
    assert client.get("/api/auth/profile", headers=bearer(patient_session["token"])).status_code == 401
    resp = client.post("/api/auth/refresh", json={"refreshToken": patient_session["refreshToken"]})
    assert resp.status_code == 401

    resp = client.put(
        f"/api/admin/patients/{patient.id}/status", json={"ativo": True}, headers=bearer(session["token"])
    )
    assert resp.status_code == 200
    assert client.post("/api/auth/login", json={"cpf": PATIENT_CPF, "senha": PASSWORD}).status_code == 200


def test_status_change_validation(client, patient, make_admin, sent_codes):
    make_admin("ops", role="admin")
    session = _admin_session(client, sent_codes, username="ops")

    resp = client.put(f"/api/admin/users/{patient.id}/status", json={"ativo": "no"}, headers=bearer(session["token"]))
    assert resp.status_code == 400
    assert resp.get_json()["code"] == "VALIDATION_ERROR"

    resp = client.put("/api/admin/users/999/status", json={"ativo": False}, headers=bearer(session["token"]))
    assert resp.status_code == 404


def test_moderator_cannot_change_status(client, patient, make_admin, sent_codes):
    make_admin("mod", role="moderator")
    session = _admin_session(client, sent_codes, username="mod")
    resp = client.put(f"/api/admin/users/{patient.id}/status", json={"ativo": False}, headers=bearer(session["token"]))
    assert resp.status_code == 403
