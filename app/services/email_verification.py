import logging
from datetime import datetime, timedelta
from typing import Callable

from app.core.config import Settings
from app.core.links import LinkBuilderError, build_verification_link
from app.core.results import ErrorKind, FlowResult
from app.core.tokens import generate_token, is_valid_token_format
from app.services.email_service import EmailDeliveryError, EmailService
from app.services.session_guard import has_live_session
from app.services.sessions import SessionProvider
from app.services.tokens import TokenStore
from app.services.users import UserStore, mask_email

logger = logging.getLogger(__name__)

ALREADY_LOGGED_IN = "You are already logged in."
VERIFICATION_SENT = "If an account exists for this email, a verification link has been sent."
ALREADY_VERIFIED = "Email is already verified."
LINK_FAILED = "Failed to generate verification link. Please contact support."
SEND_FAILED = "We couldn't send the verification email. Please try again later."
INVALID_TOKEN = "Invalid verification token."
INVALID_OR_EXPIRED = "Invalid or expired verification token."
TOKEN_ALREADY_USED = "Email address is already verified."
VERIFIED = "Email verified successfully! You can now log in."


class EmailVerificationService:
    """Emisión y canje de tokens de verificación de email (un solo uso, 24h)"""

    def __init__(
        self,
        *,
        users: UserStore,
        tokens: TokenStore,
        mailer: EmailService,
        sessions: SessionProvider,
        settings: Settings,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.users = users
        self.tokens = tokens
        self.mailer = mailer
        self.sessions = sessions
        self.settings = settings
        self.clock = clock

    def send_verification(self, email: str) -> FlowResult:
        if has_live_session(users=self.users, sessions=self.sessions):
            return FlowResult.fail(ErrorKind.ALREADY_AUTHENTICATED, ALREADY_LOGGED_IN)

        user = self.users.find_by_email(email)
        if user is None:
            # Misma respuesta que el envío exitoso: no revelar si la cuenta existe
            return FlowResult.neutral(VERIFICATION_SENT)

        if user.email_verified:
            return FlowResult.fail(ErrorKind.ALREADY_VERIFIED, ALREADY_VERIFIED)

        now = self.clock()
        self.tokens.delete_expired(before=now)

        token = generate_token()
        expires_at = now + timedelta(hours=self.settings.verification_token_ttl_hours)
        self.tokens.upsert_by_user(user.id, token, expires_at)

        try:
            link = build_verification_link(
                self.settings.app_base_url, token, production=self.settings.is_production
            )
        except LinkBuilderError:
            logger.exception("Failed to build verification link")
            return FlowResult.fail(ErrorKind.TRANSPORT_FAILURE, LINK_FAILED)

        try:
            self.mailer.send_email_verification(
                to_email=user.email,
                first_name=user.first_name,
                verification_link=link,
            )
        except EmailDeliveryError:
            if self.settings.is_production:
                logger.exception("Verification email to %s could not be sent", mask_email(user.email))
                return FlowResult.fail(ErrorKind.TRANSPORT_FAILURE, SEND_FAILED)
            logger.warning(
                "Verification email to %s failed to send (ignored outside production)",
                mask_email(user.email),
            )

        return FlowResult.neutral(VERIFICATION_SENT)

    def verify(self, token: str) -> FlowResult:
        if not is_valid_token_format(token):
            return FlowResult.fail(ErrorKind.INVALID_INPUT, INVALID_TOKEN)
        if has_live_session(users=self.users, sessions=self.sessions):
            return FlowResult.fail(ErrorKind.ALREADY_AUTHENTICATED, ALREADY_LOGGED_IN)

        now = self.clock()
        found = self.tokens.find_valid(token, now=now)
        if found is None:
            return FlowResult.fail(ErrorKind.INVALID_OR_EXPIRED, INVALID_OR_EXPIRED)
        _, owner = found

        if self.tokens.claim(token, now=now) == 0:
            return FlowResult.fail(ErrorKind.INVALID_OR_EXPIRED, INVALID_OR_EXPIRED)
        if owner.email_verified:
            return FlowResult.fail(ErrorKind.ALREADY_VERIFIED, TOKEN_ALREADY_USED)

        self.users.update_user(owner.id, email_verified=True, email_verified_at=now)
        logger.info("Email verified for user %s", owner.id)

        return FlowResult.ok(VERIFIED, email=owner.email)
