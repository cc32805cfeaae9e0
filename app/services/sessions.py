import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlmodel import Session, select

from app.core.config import Settings
from app.core.security import create_access_token, verify_token
from app.models.auth_session import AuthSession
from app.schemas.auth import Token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionData:
    user_id: int
    jti: str


class SessionProvider:
    """
    Sesiones firmadas (JWT HS256) respaldadas por la tabla auth_sessions.

    El JWT lleva sub (id de usuario) y jti; una sesión solo es válida si la
    firma verifica y la fila con ese jti no fue revocada ni venció.
    """

    def __init__(
        self,
        session: Session,
        settings: Settings,
        bearer_token: Optional[str] = None,
        *,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ):
        self.session = session
        self.settings = settings
        self.bearer_token = bearer_token
        self.user_agent = user_agent
        self.ip_address = ip_address

    def _record_for(self, jti: str) -> Optional[AuthSession]:
        return self.session.exec(select(AuthSession).where(AuthSession.jti == jti)).first()

    def current_session(self) -> Optional[SessionData]:
        if not self.bearer_token:
            return None

        payload = verify_token(self.bearer_token, self.settings.secret_key)
        if payload is None:
            return None

        jti = payload.get("jti")
        sub = payload.get("sub")
        if not jti or sub is None:
            return None
        try:
            user_id = int(sub)
        except (TypeError, ValueError):
            return None

        record = self._record_for(jti)
        if record is None or record.user_id != user_id:
            return None
        if record.revoked_at is not None or record.expires_at <= datetime.utcnow():
            return None

        return SessionData(user_id=user_id, jti=jti)

    def create_session(self, user_id: int) -> Token:
        expires_delta = timedelta(minutes=self.settings.access_token_expire_minutes)
        jti = uuid.uuid4().hex
        record = AuthSession(
            user_id=user_id,
            jti=jti,
            expires_at=datetime.utcnow() + expires_delta,
            user_agent=self.user_agent,
            ip_address=self.ip_address,
        )
        self.session.add(record)
        self.session.commit()

        access_token = create_access_token(
            data={"sub": str(user_id), "jti": jti},
            expires_delta=expires_delta,
            secret_key=self.settings.secret_key,
        )
        self.bearer_token = access_token
        return Token(
            access_token=access_token,
            token_type="bearer",
            expires_in=int(expires_delta.total_seconds()),
        )

    def destroy_session(self) -> bool:
        current = self.current_session()
        if current is None:
            return False
        record = self._record_for(current.jti)
        record.revoked_at = datetime.utcnow()
        self.session.add(record)
        self.session.commit()
        self.bearer_token = None
        return True

    def revoke_user_sessions(self, user_id: int, *, keep_jti: Optional[str] = None) -> int:
        records = self.session.exec(
            select(AuthSession).where(AuthSession.user_id == user_id, AuthSession.revoked_at == None)  # noqa: E711
        ).all()
        now = datetime.utcnow()
        revoked = 0
        for record in records:
            if keep_jti and record.jti == keep_jti:
                continue
            record.revoked_at = now
            self.session.add(record)
            revoked += 1
        self.session.commit()
        if revoked:
            logger.info("Revoked %s session(s) for user %s", revoked, user_id)
        return revoked
