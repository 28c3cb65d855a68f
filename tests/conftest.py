import io

import pytest

from config import TestConfig
from dinedesk_auth.services import UserService
from dinedesk_auth.states import AccountStatus, Role
from dinedesk_ext import create_app
from dinedesk_ext import email as email_ext
from dinedesk_ext.db import db
from dinedesk_models.signup_request import SignupRequest

DEFAULT_PASSWORD = "Secret123"


@pytest.fixture
def app(tmp_path):
    class _Config(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'test.db'}"
        FILE_HOST_LOCAL_DIR = str(tmp_path / "uploads")

    app = create_app(_Config)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def outbox(monkeypatch):
    """Capture outgoing mail instead of rendering and sending it."""
    sent = []

    def _capture(**kwargs):
        sent.append(kwargs)

    monkeypatch.setattr(email_ext, "send_email", _capture)
    return sent


def create_user(
    email="owner@example.com",
    phone="5550001",
    role=Role.OWNER,
    status=AccountStatus.APPROVED,
    first_login=False,
    business_name="Test Bistro",
    password=DEFAULT_PASSWORD,
):
    user = UserService.create_user(
        business_name=business_name,
        email=email,
        phone_number=phone,
        password=password,
        role=role,
        status=status,
        first_login=first_login,
    )
    db.session.commit()
    return user


def create_super_admin(email="admin@example.com", phone="5559999"):
    return create_user(email=email, phone=phone, role=Role.SUPER_ADMIN, business_name="Platform Admin")


def create_pending_signup(email="new@example.com", phone="5551234", business_name="Pending Diner"):
    user = create_user(
        email=email,
        phone=phone,
        status=AccountStatus.PENDING,
        first_login=True,
        business_name=business_name,
    )
    signup_request = SignupRequest(
        user_id=user.id,
        business_name=user.business_name,
        email=user.email,
        phone_number=user.phone_number,
        status="pending",
    )
    db.session.add(signup_request)
    db.session.commit()
    return user, signup_request


def login(client, identifier, password=DEFAULT_PASSWORD):
    return client.post("/api/auth/login", json={"emailOrPhone": identifier, "password": password})


def signup_form(**overrides):
    data = {
        "businessName": "Fresh Plates",
        "email": "fresh@example.com",
        "phoneNumber": "5557777",
        "password": DEFAULT_PASSWORD,
        "confirmPassword": DEFAULT_PASSWORD,
        "licenseFile": (io.BytesIO(b"%PDF-1.4 license"), "license.pdf"),
    }
    data.update(overrides)
    return data
