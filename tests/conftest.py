"""Shared fixtures: an app on in-memory SQLite, accounts and a movable clock."""

from datetime import datetime, timedelta

import pytest

from app import create_app
from config import TestingConfig
from models import db
from models.admin import Admin
from models.patient import Patient
from security.password import hash_password

PATIENT_CPF = "52998224725"
OTHER_CPF = "11144477735"
PASSWORD = "senha1234"
NEW_PASSWORD = "novaSenha99"


class FrozenClock:
    def __init__(self, start=None):
        self.current = start or datetime(2026, 1, 10, 12, 0, 0)

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def sent_codes(monkeypatch):
    """Captures one-time codes instead of mailing/logging them."""
    sent = []

    def fake_deliver(to_email, name, code, purpose):
        sent.append({"email": to_email, "code": code, "purpose": purpose})
        return True

    monkeypatch.setattr("services.auth_service.deliver_code", fake_deliver)
    return sent


@pytest.fixture
def patient(app):
    row = Patient(
        cpf=PATIENT_CPF,
        name="Maria Silva",
        email="maria@example.com",
        phone="(11) 99999-1111",
        password_hash=hash_password(PASSWORD),
    )
    db.session.add(row)
    db.session.commit()
    return row


@pytest.fixture
def make_admin(app):
    def _make(username="root", role="super_admin", password=PASSWORD):
        row = Admin(
            username=username,
            email=f"{username}@example.com",
            name=username.title(),
            role=role,
            password_hash=hash_password(password),
        )
        db.session.add(row)
        db.session.commit()
        return row
    return _make


def login_patient(client, sent_codes, cpf=PATIENT_CPF, password=PASSWORD):
    """Runs login + verify-2fa over HTTP and returns the verify-2fa JSON body."""
    resp = client.post("/api/auth/login", json={"cpf": cpf, "senha": password})
    assert resp.status_code == 200, resp.get_json()
    temp_token = resp.get_json()["tempToken"]
    code = sent_codes[-1]["code"]
    resp = client.post("/api/auth/verify-2fa", json={"tempToken": temp_token, "token": code})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}
