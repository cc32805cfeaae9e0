"""
Two-factor (TOTP) enrollment: Disabled -> SecretIssued -> Enabled -> Disabled.

The secret lives on the user record. Beginning enrollment reuses a stored
secret so reloading the setup screen keeps showing the same QR code; disabling
keeps the secret, so re-enabling only needs a fresh code.
"""
import logging

from app.core.config import Settings
from app.core.results import ErrorKind, FlowResult
from app.core.totp import TotpEngine
from app.services.sessions import SessionProvider
from app.services.users import UserStore

logger = logging.getLogger(__name__)

UNAUTHORIZED = "Unauthorized"
USER_NOT_FOUND = "User not found"
NOT_STARTED = "Two-factor setup has not been started."
INVALID_CODE = "Invalid OTP code. Please check your authenticator app and try again."
ENABLED = "Two-factor authentication enabled."
DISABLED = "Two-factor authentication disabled."


class TwoFactorService:
    def __init__(
        self,
        *,
        users: UserStore,
        totp: TotpEngine,
        sessions: SessionProvider,
        settings: Settings,
    ):
        self.users = users
        self.totp = totp
        self.sessions = sessions
        self.settings = settings

    def _current_user(self):
        current = self.sessions.current_session()
        if current is None:
            return None, FlowResult.fail(ErrorKind.UNAUTHORIZED, UNAUTHORIZED)
        user = self.users.find_by_id(current.user_id)
        if user is None:
            return None, FlowResult.fail(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        return user, None

    def begin_enrollment(self) -> FlowResult:
        user, failure = self._current_user()
        if failure:
            return failure

        secret = user.two_factor_secret
        if not secret:
            secret = self.totp.generate_secret()
            self.users.update_user(user.id, two_factor_secret=secret)

        uri = self.totp.provisioning_uri(user.email, self.settings.totp_issuer, secret)
        return FlowResult.ok(provisioning_uri=uri, two_factor_enabled=user.two_factor_enabled)

    def confirm_enrollment(self, code: str) -> FlowResult:
        user, failure = self._current_user()
        if failure:
            return failure

        if not user.two_factor_secret:
            return FlowResult.fail(ErrorKind.INVALID_INPUT, NOT_STARTED)

        if not self.totp.verify_code(code, user.two_factor_secret):
            return FlowResult.fail(ErrorKind.INCORRECT_ONE_TIME_CODE, INVALID_CODE)

        if not user.two_factor_enabled:
            self.users.update_user(user.id, two_factor_enabled=True)
            logger.info("Two-factor enabled for user %s", user.id)

        return FlowResult.ok(ENABLED, two_factor_enabled=True)

    def disable_enrollment(self) -> FlowResult:
        user, failure = self._current_user()
        if failure:
            return failure

        if user.two_factor_enabled:
            self.users.update_user(user.id, two_factor_enabled=False)
            logger.info("Two-factor disabled for user %s", user.id)

        return FlowResult.ok(DISABLED, two_factor_enabled=False)
