import logging
from datetime import datetime, timedelta
from typing import Callable

from pydantic import ValidationError

from app.core.config import Settings
from app.core.links import LinkBuilderError, build_password_reset_link
from app.core.results import ErrorKind, FlowResult
from app.core.security import PasswordHasher
from app.core.tokens import generate_token, is_valid_token_format
from app.schemas.auth import PasswordMatch
from app.services.email_service import EmailDeliveryError, EmailService
from app.services.session_guard import has_live_session
from app.services.sessions import SessionProvider
from app.services.tokens import TokenStore
from app.services.users import UserStore, mask_email

logger = logging.getLogger(__name__)

ALREADY_LOGGED_IN = "You are already logged in."
RESET_SENT = "If an account exists for this email, a password reset link has been sent."
LINK_FAILED = "Failed to generate password reset link. Please contact support."
SEND_FAILED = "We couldn't send the password reset email. Please try again later."
INVALID_OR_EXPIRED = "Invalid or expired password reset link."
PASSWORD_UPDATED = "Your password has been updated. You can now log in."


class PasswordResetService:
    """Emisión, validación y canje de tokens de reseteo de contraseña (un solo uso, 1h)"""

    def __init__(
        self,
        *,
        users: UserStore,
        tokens: TokenStore,
        mailer: EmailService,
        sessions: SessionProvider,
        hasher: PasswordHasher,
        settings: Settings,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.users = users
        self.tokens = tokens
        self.mailer = mailer
        self.sessions = sessions
        self.hasher = hasher
        self.settings = settings
        self.clock = clock

    def request_reset(self, email: str) -> FlowResult:
        if has_live_session(users=self.users, sessions=self.sessions):
            return FlowResult.fail(ErrorKind.ALREADY_AUTHENTICATED, ALREADY_LOGGED_IN)

        user = self.users.find_by_email(email)
        if user is None:
            return FlowResult.neutral(RESET_SENT)

        now = self.clock()
        self.tokens.delete_expired(before=now)

        token = generate_token()
        expires_at = now + timedelta(minutes=self.settings.password_reset_token_ttl_minutes)
        self.tokens.upsert_by_user(user.id, token, expires_at)

        try:
            link = build_password_reset_link(
                self.settings.app_base_url, token, production=self.settings.is_production
            )
        except LinkBuilderError:
            logger.exception("Failed to build password reset link")
            return FlowResult.fail(ErrorKind.TRANSPORT_FAILURE, LINK_FAILED)

        try:
            self.mailer.send_password_reset_email(to_email=user.email, reset_link=link)
        except EmailDeliveryError:
            if self.settings.is_production:
                logger.exception("Password reset email to %s could not be sent", mask_email(user.email))
                return FlowResult.fail(ErrorKind.TRANSPORT_FAILURE, SEND_FAILED)
            logger.warning(
                "Password reset email to %s failed to send (ignored outside production)",
                mask_email(user.email),
            )

        return FlowResult.neutral(RESET_SENT)

    def validate_token(self, token: str) -> bool:
        """Pre-chequeo de solo lectura para decidir qué pantalla mostrar"""
        if not is_valid_token_format(token):
            return False
        return self.tokens.find_valid(token, now=self.clock()) is not None

    def complete_reset(self, token: str, new_password: str, new_password_confirm: str) -> FlowResult:
        try:
            PasswordMatch(password=new_password, password_confirm=new_password_confirm)
        except ValidationError as exc:
            return FlowResult.invalid_input(exc)

        if has_live_session(users=self.users, sessions=self.sessions):
            return FlowResult.fail(ErrorKind.ALREADY_AUTHENTICATED, ALREADY_LOGGED_IN)

        if not is_valid_token_format(token):
            return FlowResult.fail(ErrorKind.INVALID_OR_EXPIRED, INVALID_OR_EXPIRED)

        now = self.clock()
        found = self.tokens.find_valid(token, now=now)
        if found is None:
            return FlowResult.fail(ErrorKind.INVALID_OR_EXPIRED, INVALID_OR_EXPIRED)
        _, owner = found
        user_id = owner.id

        # El borrado condicional es la relectura final: si el token fue canjeado
        # o reemplazado por un link nuevo, no se borra nada
        if self.tokens.claim(token, now=now) == 0:
            return FlowResult.fail(ErrorKind.INVALID_OR_EXPIRED, INVALID_OR_EXPIRED)

        self.users.update_user(user_id, password_hash=self.hasher.hash(new_password))
        self.sessions.revoke_user_sessions(user_id)
        logger.info("Password reset completed for user %s", user_id)

        return FlowResult.ok(PASSWORD_UPDATED)
