from urllib.parse import parse_qs, urlsplit

import pyotp
from conftest import DEFAULT_PASSWORD, auth_header

from app.core.config import settings
from app.services.users import UserStore

API = "/api/v1"


def _register(client, email="newuser@example.com", password=DEFAULT_PASSWORD):
    return client.post(
        f"{API}/auth/register",
        json={
            "first_name": "New",
            "last_name": "User",
            "email": email,
            "password": password,
            "password_confirm": password,
        },
    )


def _register_verified(client, outbox, email="newuser@example.com"):
    assert _register(client, email).status_code == 201
    verify = client.post(f"{API}/auth/verify-email", json={"token": outbox.last_token()})
    assert verify.status_code == 200


def _login(client, email="newuser@example.com", password=DEFAULT_PASSWORD, token=None):
    payload = {"email": email, "password": password}
    if token is not None:
        payload["token"] = token
    return client.post(f"{API}/auth/login", json=payload)


def test_health_and_request_id(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Request-ID"] == "req-123"


def test_register_requires_email_verification_to_login(client, outbox):
    register = _register(client)
    assert register.status_code == 201
    body = register.json()
    assert body["error"] is False
    assert body["data"]["requires_email_verification"] is True
    assert body["request_id"]

    preflight = client.post(
        f"{API}/auth/login/preflight", json={"email": "newuser@example.com", "password": DEFAULT_PASSWORD}
    )
    assert preflight.status_code == 403
    assert preflight.json()["kind"] == "email_not_verified"
    assert _login(client).status_code == 401

    verify = client.post(f"{API}/auth/verify-email", json={"token": outbox.last_token()})
    assert verify.status_code == 200
    assert verify.json()["data"]["email"] == "newuser@example.com"

    login = _login(client)
    assert login.status_code == 200
    assert login.json()["data"]["token_type"] == "bearer"


def test_register_validation_errors_are_per_field(client):
    response = _register(client, email="bad", password="short")

    assert response.status_code == 422
    body = response.json()
    assert body["kind"] == "invalid_input"
    assert set(body["field_errors"]) >= {"email", "password"}


def test_malformed_body_uses_same_error_shape(client):
    response = client.post(f"{API}/auth/verify-email", json={})

    assert response.status_code == 422
    assert response.json()["field_errors"]["token"]


def test_me_and_logout(client, outbox):
    _register_verified(client, outbox)
    access_token = _login(client).json()["data"]["access_token"]

    me = client.get(f"{API}/auth/me", headers=auth_header(access_token))
    assert me.status_code == 200
    assert me.json()["email"] == "newuser@example.com"
    assert "password_hash" not in me.json()

    logout = client.post(f"{API}/auth/logout", headers=auth_header(access_token))
    assert logout.status_code == 200

    after = client.get(f"{API}/auth/me", headers=auth_header(access_token))
    assert after.status_code == 401
    assert after.headers["X-Sign-Out"] == settings.sign_out_path


def test_me_without_token_does_not_ask_for_sign_out(client):
    response = client.get(f"{API}/auth/me")

    assert response.status_code == 401
    assert "X-Sign-Out" not in response.headers


def test_signed_in_user_cannot_request_verification(client, outbox):
    _register_verified(client, outbox)
    access_token = _login(client).json()["data"]["access_token"]

    response = client.post(
        f"{API}/auth/verify-email/send",
        json={"email": "newuser@example.com"},
        headers=auth_header(access_token),
    )

    assert response.status_code == 409
    assert response.json()["kind"] == "already_authenticated"


def test_verification_send_is_neutral_for_unknown_email(client, outbox):
    response = client.post(f"{API}/auth/verify-email/send", json={"email": "ghost@example.com"})

    assert response.status_code == 200
    assert response.json()["error"] is False
    assert outbox.sent == []


def test_password_reset_over_http(client, outbox):
    _register_verified(client, outbox)
    old_token = _login(client).json()["data"]["access_token"]

    requested = client.post(f"{API}/auth/password-reset", json={"email": "newuser@example.com"})
    unknown = client.post(f"{API}/auth/password-reset", json={"email": "ghost@example.com"})
    assert requested.status_code == unknown.status_code == 200
    assert requested.json()["message"] == unknown.json()["message"]

    reset_token = outbox.last_token()
    valid = client.get(f"{API}/auth/password-reset/validate", params={"token": reset_token})
    assert valid.json() == {"valid": True}

    completed = client.post(
        f"{API}/auth/password-reset/complete",
        json={"token": reset_token, "password": "NewPassw0rd!", "password_confirm": "NewPassw0rd!"},
    )
    assert completed.status_code == 200

    reused = client.post(
        f"{API}/auth/password-reset/complete",
        json={"token": reset_token, "password": "NewPassw0rd!", "password_confirm": "NewPassw0rd!"},
    )
    assert reused.status_code == 400
    assert reused.json()["kind"] == "invalid_or_expired"

    assert client.get(f"{API}/auth/me", headers=auth_header(old_token)).status_code == 401
    assert _login(client).status_code == 401
    assert _login(client, password="NewPassw0rd!").status_code == 200


def test_change_password_over_http(client, outbox):
    _register_verified(client, outbox)
    access_token = _login(client).json()["data"]["access_token"]

    wrong = client.post(
        f"{API}/auth/change-password",
        json={"current_password": "Wrong-pass1!", "password": "Brand-new1!", "password_confirm": "Brand-new1!"},
        headers=auth_header(access_token),
    )
    assert wrong.status_code == 401
    assert "current_password" in wrong.json()["field_errors"]

    changed = client.post(
        f"{API}/auth/change-password",
        json={"current_password": DEFAULT_PASSWORD, "password": "Brand-new1!", "password_confirm": "Brand-new1!"},
        headers=auth_header(access_token),
    )
    assert changed.status_code == 200
    assert client.get(f"{API}/auth/me", headers=auth_header(access_token)).status_code == 200


def test_two_factor_enrollment_and_login(client, outbox):
    _register_verified(client, outbox)
    access_token = _login(client).json()["data"]["access_token"]
    headers = auth_header(access_token)

    enrollment = client.get(f"{API}/two-factor/enrollment", headers=headers)
    assert enrollment.status_code == 200
    uri = enrollment.json()["data"]["provisioning_uri"]
    secret = parse_qs(urlsplit(uri).query)["secret"][0]

    confirm = client.post(f"{API}/two-factor/confirm", json={"code": pyotp.TOTP(secret).now()}, headers=headers)
    assert confirm.status_code == 200
    assert confirm.json()["data"]["two_factor_enabled"] is True

    preflight = client.post(
        f"{API}/auth/login/preflight", json={"email": "newuser@example.com", "password": DEFAULT_PASSWORD}
    )
    assert preflight.json()["data"] == {"two_factor_enabled": True}

    without_code = _login(client)
    assert without_code.status_code == 401
    assert without_code.json()["kind"] == "incorrect_one_time_code"

    with_code = _login(client, token=pyotp.TOTP(secret).now())
    assert with_code.status_code == 200

    disabled = client.post(f"{API}/two-factor/disable", headers=headers)
    assert disabled.status_code == 200
    assert _login(client).status_code == 200


def test_two_factor_requires_session(client):
    response = client.get(f"{API}/two-factor/enrollment")

    assert response.status_code == 401


def test_deactivated_users_token_does_not_count_as_signed_in(client, outbox, db_session):
    _register_verified(client, outbox)
    access_token = _login(client).json()["data"]["access_token"]
    users = UserStore(db_session)
    users.update_user(users.find_by_email("newuser@example.com").id, is_active=False)

    response = client.post(
        f"{API}/auth/password-reset",
        json={"email": "newuser@example.com"},
        headers=auth_header(access_token),
    )

    assert response.status_code == 200
    assert response.json()["error"] is False
    assert client.get(f"{API}/auth/me", headers=auth_header(access_token)).status_code == 401
