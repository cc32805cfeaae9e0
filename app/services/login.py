"""
Login en dos fases para soportar el segundo factor (step-up):

1. preflight_check: valida email/contraseña y dice si hace falta el código TOTP.
2. complete_login: vuelve a validar todo (no confía en el preflight) y crea la sesión.

Los motivos de rechazo se distinguen en los logs pero al llamador solo le
llegan errores genéricos, para no permitir enumeración de cuentas.
"""
import logging
from datetime import datetime
from typing import Callable, Optional, Tuple

from app.core.results import ErrorKind, FlowResult
from app.core.security import PasswordHasher
from app.core.totp import TotpEngine
from app.models.user import User
from app.services.sessions import SessionProvider
from app.services.users import UserStore, mask_email

logger = logging.getLogger(__name__)

INCORRECT_CREDENTIALS = "Incorrect email or password."
EMAIL_NOT_VERIFIED = (
    "Please verify your email address before logging in. "
    "Check your inbox for a verification link."
)
INCORRECT_OTP = "Invalid OTP code. Please check your authenticator app and try again."
LOGGED_OUT = "You have been signed out."
NOT_LOGGED_IN = "You are not logged in."


class LoginService:
    def __init__(
        self,
        *,
        users: UserStore,
        hasher: PasswordHasher,
        totp: TotpEngine,
        sessions: SessionProvider,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.users = users
        self.hasher = hasher
        self.totp = totp
        self.sessions = sessions
        self.clock = clock

    def _check_password(self, email: str, password: str) -> Tuple[Optional[User], Optional[str]]:
        """Devuelve (usuario, None) o (None, motivo interno del rechazo)"""
        user = self.users.find_by_email(email)
        if user is None:
            # Igualar el costo de bcrypt para que el tiempo no delate la cuenta
            self.hasher.verify(password, _DUMMY_HASH.get(self.hasher))
            return None, "user_not_found"
        if not self.hasher.verify(password, user.password_hash):
            return None, "bad_password"
        if not user.is_active:
            return None, "inactive"
        return user, None

    def preflight_check(self, email: str, password: str) -> FlowResult:
        user, reason = self._check_password(email, password)
        if user is None:
            logger.info("Login preflight rejected for %s: %s", mask_email(email), reason)
            return FlowResult.fail(ErrorKind.INCORRECT_CREDENTIALS, INCORRECT_CREDENTIALS)

        if not user.email_verified:
            return FlowResult.fail(
                ErrorKind.EMAIL_NOT_VERIFIED,
                EMAIL_NOT_VERIFIED,
                email=user.email,
                email_verified=False,
            )

        return FlowResult.ok(two_factor_enabled=user.two_factor_enabled)

    def complete_login(self, email: str, password: str, token: Optional[str] = None) -> FlowResult:
        user, reason = self._check_password(email, password)
        if user is None:
            return self._reject(email, reason, ErrorKind.INCORRECT_CREDENTIALS, INCORRECT_CREDENTIALS)

        if not user.email_verified:
            return self._reject(email, "email_not_verified", ErrorKind.INCORRECT_CREDENTIALS, INCORRECT_CREDENTIALS)

        if user.two_factor_enabled:
            if not token:
                return self._reject(email, "otp_missing", ErrorKind.INCORRECT_ONE_TIME_CODE, INCORRECT_OTP)
            if not self.totp.verify_code(token, user.two_factor_secret):
                return self._reject(email, "otp_invalid", ErrorKind.INCORRECT_ONE_TIME_CODE, INCORRECT_OTP)

        self.users.update_user(user.id, last_login=self.clock())
        session_token = self.sessions.create_session(user.id)
        logger.info("User %s logged in", user.id)

        return FlowResult.ok(**session_token.model_dump())

    def _reject(self, email: str, reason: str, kind: ErrorKind, message: str) -> FlowResult:
        logger.info("Login rejected for %s: %s", mask_email(email), reason)
        return FlowResult.fail(kind, message)

    def logout(self) -> FlowResult:
        if not self.sessions.destroy_session():
            return FlowResult.fail(ErrorKind.UNAUTHORIZED, NOT_LOGGED_IN)
        return FlowResult.ok(LOGGED_OUT)


class _DummyHash:
    """Hash bcrypt calculado una vez por costo, usado cuando el email no existe"""

    def __init__(self):
        self._by_rounds = {}

    def get(self, hasher: PasswordHasher) -> str:
        if hasher.rounds not in self._by_rounds:
            self._by_rounds[hasher.rounds] = hasher.hash("splitshifts-dummy-password")
        return self._by_rounds[hasher.rounds]


_DUMMY_HASH = _DummyHash()
