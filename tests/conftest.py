import pytest
from fastapi.testclient import TestClient

from vms_api.config import Settings
from vms_api.mailer import Mailer
from vms_api.main import create_app

PASSWORD = "secret123"


class RecordingMailer(Mailer):
    """Keeps verification tokens instead of sending mail."""

    def __init__(self, settings):
        super().__init__(settings)
        self.sent = []

    async def send_verification_email(self, to_address, first_name, token):
        self.sent.append({"to": to_address, "first_name": first_name, "token": token})

    def token_for(self, email):
        for message in reversed(self.sent):
            if message["to"] == email:
                return message["token"]
        raise AssertionError(f"no verification email sent to {email}")


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        jwt_secret="test-secret",
        create_tables=True,
        log_level="WARNING",
    )


@pytest.fixture
def mailer(settings):
    return RecordingMailer(settings)


@pytest.fixture
def app(settings, mailer):
    return create_app(settings, mailer=mailer)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session(app, client):
    session = app.state.db.session()
    try:
        yield session
    finally:
        session.close()


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def register_admin(client, mailer, email, company_name, first_name="Ada", last_name="Admin"):
    """Registers a company, verifies the admin's email and returns a login token."""
    resp = client.post(
        "/api/registerCompany",
        json={
            "email": email,
            "firstName": first_name,
            "lastName": last_name,
            "password": PASSWORD,
            "companyName": company_name,
        },
    )
    assert resp.status_code == 201, resp.text
    verify = client.get("/api/verify-email", params={"token": mailer.token_for(email)})
    assert verify.status_code == 200
    return login(client, email)


def create_host(client, admin_token, email, first_name, last_name=""):
    resp = client.post(
        "/api/register",
        json={"email": email, "firstName": first_name, "lastName": last_name, "password": PASSWORD},
        headers=auth(admin_token),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def login(client, email, password=PASSWORD):
    resp = client.post("/api/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


def checkin_body(email="alice@x.com", host_name="Bob", name="Alice", **extra):
    body = {
        "name": name,
        "email": email,
        "phone": "5550100",
        "company": "Globex",
        "hostName": host_name,
        "reason": "Meeting",
        "itemsCarried": "Laptop",
        "idCardNumber": "ID-42",
    }
    body.update(extra)
    return body


@pytest.fixture
def acme(client, mailer):
    """Company "Acme" with an admin and a host named Bob."""
    admin_token = register_admin(client, mailer, "admin@acme.com", "Acme")
    bob = create_host(client, admin_token, "bob@acme.com", "Bob")
    return {
        "admin_token": admin_token,
        "bob": bob,
        "bob_token": login(client, "bob@acme.com"),
    }
