import logging
from dataclasses import dataclass
from typing import Optional

from app.models.user import User
from app.services.sessions import SessionProvider
from app.services.users import UserStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardDecision:
    user: Optional[User]
    sign_out: bool = False

    @property
    def allowed(self) -> bool:
        return self.user is not None


class SessionGuard:
    """Decide, por request, si la sesión sigue respaldada por un usuario existente y activo"""

    def __init__(self, *, users: UserStore, sessions: SessionProvider):
        self.users = users
        self.sessions = sessions

    def check(self) -> GuardDecision:
        had_artifact = bool(self.sessions.bearer_token)
        current = self.sessions.current_session()
        if current is None:
            return GuardDecision(user=None, sign_out=had_artifact)

        user = self.users.find_by_id(current.user_id)
        if user is None or not user.is_active:
            logger.warning("Session %s refers to a missing or inactive user %s", current.jti, current.user_id)
            self.sessions.destroy_session()
            return GuardDecision(user=None, sign_out=True)

        return GuardDecision(user=user)


def has_live_session(*, users: UserStore, sessions: SessionProvider) -> bool:
    """Para los flujos públicos: una sesión de un usuario borrado o inactivo no cuenta"""
    return SessionGuard(users=users, sessions=sessions).check().allowed
