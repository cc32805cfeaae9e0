import logging

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from app.core.results import ErrorKind, FlowResult
from app.core.security import PasswordHasher
from app.schemas.auth import SignUpRequest
from app.services.email_verification import EmailVerificationService
from app.services.session_guard import has_live_session
from app.services.sessions import SessionProvider
from app.services.users import UserStore

logger = logging.getLogger(__name__)

ALREADY_LOGGED_IN = "You are already logged in."
EMAIL_TAKEN = "An account is already registered with this email address"
ACCOUNT_CREATED = (
    "Account created successfully! Please check your email to verify your account before logging in."
)


class RegistrationService:
    def __init__(
        self,
        *,
        users: UserStore,
        hasher: PasswordHasher,
        verification: EmailVerificationService,
        sessions: SessionProvider,
    ):
        self.users = users
        self.hasher = hasher
        self.verification = verification
        self.sessions = sessions

    def register(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        password_confirm: str,
    ) -> FlowResult:
        """
        Registrar un nuevo usuario (sin verificar) y enviarle el link de verificación

        Un error al enviar el email no invalida el registro: el usuario puede
        pedir otro link más tarde.
        """
        if has_live_session(users=self.users, sessions=self.sessions):
            return FlowResult.fail(ErrorKind.ALREADY_AUTHENTICATED, ALREADY_LOGGED_IN)

        try:
            data = SignUpRequest(
                first_name=first_name,
                last_name=last_name,
                email=email,
                password=password,
                password_confirm=password_confirm,
            )
        except ValidationError as exc:
            return FlowResult.invalid_input(exc)

        if self.users.find_by_email(data.email) is not None:
            return FlowResult.fail(ErrorKind.INVALID_INPUT, EMAIL_TAKEN, field_errors={"email": EMAIL_TAKEN})

        try:
            user = self.users.insert_user(
                first_name=data.first_name,
                last_name=data.last_name,
                email=data.email,
                password_hash=self.hasher.hash(data.password),
            )
        except IntegrityError:
            # carrera con otro registro del mismo email
            self.users.session.rollback()
            return FlowResult.fail(ErrorKind.INVALID_INPUT, EMAIL_TAKEN, field_errors={"email": EMAIL_TAKEN})

        sent = self.verification.send_verification(user.email)
        if sent.error:
            logger.error("Failed to send verification email for new user %s: %s", user.id, sent.message)

        return FlowResult.ok(ACCOUNT_CREATED, requires_email_verification=True)
