import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("SQL_ECHO", "false")
os.environ.setdefault("AUTO_CREATE_DB", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("EMAIL_BACKEND", "console")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("APP_BASE_URL", "http://localhost:3000")

import sys
import time
from pathlib import Path

project_root = Path(__file__).resolve().parents[1]
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import app.models  # noqa: F401
from app.core.rate_limit import limiter

import pyotp
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from app.core.config import Settings
from app.core.security import PasswordHasher
from app.core.totp import TotpEngine
from app.services.email_service import EmailDeliveryError, EmailService
from app.services.sessions import SessionProvider
from app.services.tokens import password_reset_tokens, verification_tokens
from app.services.users import UserStore

limiter.enabled = False

DEFAULT_PASSWORD = "StrongPass1!"


class RecordingMailer(EmailService):
    """EmailService que guarda los mensajes en memoria (o falla a pedido)"""

    def __init__(self, settings: Settings, fail: bool = False):
        super().__init__(settings)
        self.fail = fail
        self.sent = []

    def send_mail(self, *, to, subject, html_body, text_body=None):
        if self.fail:
            raise EmailDeliveryError("transport down")
        self.sent.append({"to": to, "subject": subject, "html": html_body, "text": text_body})

    def last_link(self) -> str:
        text = self.sent[-1]["text"]
        for word in text.split():
            if "token=" in word:
                return word
        raise AssertionError("no link in last email")

    def last_token(self) -> str:
        return self.last_link().split("token=", 1)[1]


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


@pytest.fixture()
def engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture()
def db_session(engine):
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture()
def settings():
    return Settings()


@pytest.fixture()
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture()
def totp():
    return TotpEngine()


@pytest.fixture()
def users(db_session):
    return UserStore(db_session)


@pytest.fixture()
def verification_store(db_session):
    return verification_tokens(db_session)


@pytest.fixture()
def reset_store(db_session):
    return password_reset_tokens(db_session)


@pytest.fixture()
def mailer(settings):
    return RecordingMailer(settings)


@pytest.fixture()
def anonymous(db_session, settings):
    """SessionProvider sin token (request sin sesión)"""
    return SessionProvider(db_session, settings)


@pytest.fixture()
def make_user(users, hasher):
    def _make_user(
        email="jane@example.com",
        password=DEFAULT_PASSWORD,
        *,
        verified=True,
        first_name="Jane",
        last_name="Doe",
        **fields,
    ):
        user = users.insert_user(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=hasher.hash(password),
            email_verified=verified,
        )
        if fields:
            user = users.update_user(user.id, **fields)
        return user

    return _make_user


@pytest.fixture()
def signed_in(db_session, settings):
    """SessionProvider con una sesión real creada para el usuario dado"""

    def _signed_in(user) -> SessionProvider:
        provider = SessionProvider(db_session, settings)
        provider.create_session(user.id)
        return provider

    return _signed_in


@pytest.fixture()
def outbox(settings):
    from app.main import app
    from app.core.auth import get_mailer

    recorder = RecordingMailer(settings)
    app.dependency_overrides[get_mailer] = lambda: recorder
    yield recorder
    app.dependency_overrides.pop(get_mailer, None)


@pytest.fixture()
def client(engine, db_session, outbox):
    from app.main import app
    from app.core.database import get_session

    def get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_session_override
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def wrong_code(secret: str) -> str:
    """Código de 6 dígitos que no es válido en la ventana actual (±1 paso)"""
    totp = pyotp.TOTP(secret)
    now = time.time()
    valid = {totp.at(now + offset * totp.interval) for offset in (-1, 0, 1)}
    return next(code for code in ("000000", "111111", "222222", "333333") if code not in valid)
