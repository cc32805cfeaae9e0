from urllib.parse import parse_qs, unquote, urlsplit

import pyotp
from conftest import wrong_code

from app.core.results import ErrorKind
from app.services import two_factor as messages
from app.services.two_factor import TwoFactorService


def _service(users, totp, sessions, settings):
    return TwoFactorService(users=users, totp=totp, sessions=sessions, settings=settings)


def _secret_from(uri: str) -> str:
    return parse_qs(urlsplit(uri).query)["secret"][0]


def test_enrollment_requires_session(users, totp, anonymous, settings):
    service = _service(users, totp, anonymous, settings)

    assert service.begin_enrollment().kind == ErrorKind.UNAUTHORIZED
    assert service.confirm_enrollment("123456").kind == ErrorKind.UNAUTHORIZED
    assert service.disable_enrollment().kind == ErrorKind.UNAUTHORIZED


def test_begin_enrollment_issues_and_reuses_secret(make_user, users, totp, signed_in, settings):
    user = make_user()
    service = _service(users, totp, signed_in(user), settings)

    first = service.begin_enrollment()
    second = service.begin_enrollment()

    uri = first.data["provisioning_uri"]
    assert uri.startswith("otpauth://totp/")
    assert settings.totp_issuer in unquote(uri)
    assert "jane@example.com" in unquote(uri)
    assert first.data["two_factor_enabled"] is False
    assert _secret_from(uri) == _secret_from(second.data["provisioning_uri"])
    assert users.find_by_id(user.id).two_factor_secret == _secret_from(uri)


def test_confirm_before_begin(make_user, users, totp, signed_in, settings):
    user = make_user()
    service = _service(users, totp, signed_in(user), settings)

    result = service.confirm_enrollment("123456")

    assert result.kind == ErrorKind.INVALID_INPUT
    assert result.message == messages.NOT_STARTED


def test_confirm_with_wrong_code_keeps_disabled(make_user, users, totp, signed_in, settings):
    user = make_user()
    service = _service(users, totp, signed_in(user), settings)
    secret = _secret_from(service.begin_enrollment().data["provisioning_uri"])

    result = service.confirm_enrollment(wrong_code(secret))

    assert result.kind == ErrorKind.INCORRECT_ONE_TIME_CODE
    assert users.find_by_id(user.id).two_factor_enabled is False


def test_confirm_then_disable_keeps_secret(make_user, users, totp, signed_in, settings):
    user = make_user()
    service = _service(users, totp, signed_in(user), settings)
    secret = _secret_from(service.begin_enrollment().data["provisioning_uri"])

    enabled = service.confirm_enrollment(pyotp.TOTP(secret).now())
    assert enabled.error is False
    assert enabled.data == {"two_factor_enabled": True}
    assert users.find_by_id(user.id).two_factor_enabled is True

    disabled = service.disable_enrollment()
    assert disabled.data == {"two_factor_enabled": False}
    stored = users.find_by_id(user.id)
    assert stored.two_factor_enabled is False
    assert stored.two_factor_secret == secret

    # re-habilitar solo necesita un código nuevo
    assert service.confirm_enrollment(pyotp.TOTP(secret).now()).error is False


def test_confirm_twice_is_idempotent(make_user, users, totp, signed_in, settings):
    user = make_user()
    service = _service(users, totp, signed_in(user), settings)
    secret = _secret_from(service.begin_enrollment().data["provisioning_uri"])

    service.confirm_enrollment(pyotp.TOTP(secret).now())
    again = service.confirm_enrollment(pyotp.TOTP(secret).now())

    assert again.error is False
    assert users.find_by_id(user.id).two_factor_enabled is True


def test_session_for_deleted_user(make_user, users, totp, signed_in, settings, db_session):
    user = make_user()
    sessions = signed_in(user)
    db_session.delete(users.find_by_id(user.id))
    db_session.commit()

    result = _service(users, totp, sessions, settings).begin_enrollment()

    assert result.kind == ErrorKind.NOT_FOUND
