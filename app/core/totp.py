"""
TOTP (RFC 6238) helpers for two-factor authentication.

Thin wrapper around pyotp so the flows only deal with three operations:
secret generation, provisioning URI construction and code verification.
Codes from the previous and next 30s window are accepted to tolerate clock
drift on the authenticator device.
"""
from typing import Optional

import pyotp

TOTP_DIGITS = 6
TOTP_DRIFT_TOLERANCE = 1  # time steps accepted on each side of "now"


class TotpEngine:
    def __init__(self, drift_tolerance: int = TOTP_DRIFT_TOLERANCE):
        self._drift_tolerance = drift_tolerance

    def generate_secret(self) -> str:
        """Random base32 secret for authenticator apps."""
        return pyotp.random_base32()

    def provisioning_uri(self, account_label: str, issuer: str, secret: str) -> str:
        """otpauth:// URI to be rendered as a QR code by the client."""
        return pyotp.TOTP(secret).provisioning_uri(name=account_label, issuer_name=issuer)

    def verify_code(self, code: Optional[str], secret: Optional[str]) -> bool:
        if not code or not secret:
            return False
        code = str(code).replace(" ", "").strip()
        if len(code) != TOTP_DIGITS or not code.isdigit():
            return False
        try:
            return pyotp.TOTP(secret).verify(code, valid_window=self._drift_tolerance)
        except (TypeError, ValueError):
            # secreto base32 corrupto
            return False
