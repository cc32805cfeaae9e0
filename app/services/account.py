import logging

from pydantic import ValidationError

from app.core.results import ErrorKind, FlowResult
from app.core.security import PasswordHasher
from app.schemas.auth import PasswordMatch
from app.services.sessions import SessionProvider
from app.services.users import UserStore

logger = logging.getLogger(__name__)

NOT_LOGGED_IN = "You must be logged in to change your password."
USER_NOT_FOUND = "User not found."
WRONG_CURRENT_PASSWORD = "Current password is incorrect."
PASSWORD_CHANGED = "Password changed successfully."


class AccountService:
    """Operaciones sobre la cuenta del usuario con sesión activa"""

    def __init__(self, *, users: UserStore, hasher: PasswordHasher, sessions: SessionProvider):
        self.users = users
        self.hasher = hasher
        self.sessions = sessions

    def change_password(self, current_password: str, password: str, password_confirm: str) -> FlowResult:
        current = self.sessions.current_session()
        if current is None:
            return FlowResult.fail(ErrorKind.UNAUTHORIZED, NOT_LOGGED_IN)

        try:
            PasswordMatch(password=password, password_confirm=password_confirm)
        except ValidationError as exc:
            return FlowResult.invalid_input(exc)

        user = self.users.find_by_id(current.user_id)
        if user is None:
            return FlowResult.fail(ErrorKind.NOT_FOUND, USER_NOT_FOUND)

        if not self.hasher.verify(current_password, user.password_hash):
            return FlowResult.fail(
                ErrorKind.INCORRECT_CREDENTIALS,
                WRONG_CURRENT_PASSWORD,
                field_errors={"current_password": WRONG_CURRENT_PASSWORD},
            )

        self.users.update_user(user.id, password_hash=self.hasher.hash(password))
        self.sessions.revoke_user_sessions(user.id, keep_jti=current.jti)
        logger.info("Password changed for user %s", user.id)

        return FlowResult.ok(PASSWORD_CHANGED)
