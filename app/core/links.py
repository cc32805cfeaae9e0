"""
Construcción de links que se envían por email (verificación y reseteo)
"""
from typing import Optional
from urllib.parse import urlencode, urlsplit


VERIFY_EMAIL_PATH = "/verify-email"
UPDATE_PASSWORD_PATH = "/update-password"


class LinkBuilderError(ValueError):
    """La URL base no permite construir un link válido"""


def _validated_base_url(base_url: Optional[str], *, production: bool) -> str:
    if not base_url or not base_url.strip():
        raise LinkBuilderError("APP_BASE_URL is not configured")

    base_url = base_url.strip()
    parts = urlsplit(base_url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise LinkBuilderError(f"APP_BASE_URL is malformed: {base_url!r}")
    if production and parts.scheme != "https":
        raise LinkBuilderError("APP_BASE_URL must use https in production")
    if parts.query or parts.fragment:
        raise LinkBuilderError("APP_BASE_URL must not carry a query string or fragment")

    return base_url.rstrip("/")


def _build_link(base_url: Optional[str], path: str, token: str, *, production: bool) -> str:
    base = _validated_base_url(base_url, production=production)
    return f"{base}{path}?{urlencode({'token': token})}"


def build_verification_link(base_url: Optional[str], token: str, *, production: bool = False) -> str:
    return _build_link(base_url, VERIFY_EMAIL_PATH, token, production=production)


def build_password_reset_link(base_url: Optional[str], token: str, *, production: bool = False) -> str:
    return _build_link(base_url, UPDATE_PASSWORD_PATH, token, production=production)
