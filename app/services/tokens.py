from datetime import datetime
from typing import Optional, Tuple, Type

from sqlalchemy import delete
from sqlmodel import Session, select

from app.core.tokens import hash_token
from app.models.base import OneTimeTokenBase
from app.models.email_verification_token import EmailVerificationToken
from app.models.password_reset_token import PasswordResetToken
from app.models.user import User


class TokenStore:
    """Single-use tokens of one purpose (verification or reset), keyed by user.

    Callers pass the raw token; only its sha256 is stored and queried.
    """

    def __init__(self, session: Session, model: Type[OneTimeTokenBase]):
        self.session = session
        self.model = model

    def upsert_by_user(self, user_id: int, token: str, expires_at: datetime) -> OneTimeTokenBase:
        token_hash = hash_token(token)
        record = self.session.exec(select(self.model).where(self.model.user_id == user_id)).first()
        if record is None:
            record = self.model(user_id=user_id, token_hash=token_hash, expires_at=expires_at)
        else:
            record.token_hash = token_hash
            record.expires_at = expires_at
            record.created_at = datetime.utcnow()
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def find_by_token(self, token: str) -> Optional[Tuple[OneTimeTokenBase, User]]:
        statement = (
            select(self.model, User)
            .join(User, User.id == self.model.user_id)
            .where(self.model.token_hash == hash_token(token))
        )
        row = self.session.exec(statement).first()
        if row is None:
            return None
        record, owner = row
        return record, owner

    def find_valid(self, token: str, now: datetime) -> Optional[Tuple[OneTimeTokenBase, User]]:
        """Token existente y no vencido; vencido e inexistente son indistinguibles"""
        found = self.find_by_token(token)
        if found is None:
            return None
        record, owner = found
        if not (now < record.expires_at):
            return None
        return record, owner

    def claim(self, token: str, now: datetime) -> int:
        """Borrar exactamente este token si sigue vigente; 0 si ya fue canjeado o reemplazado"""
        result = self.session.execute(
            delete(self.model).where(
                self.model.token_hash == hash_token(token),
                self.model.expires_at > now,
            )
        )
        self.session.commit()
        return result.rowcount or 0

    def delete_by_user(self, user_id: int) -> int:
        result = self.session.execute(delete(self.model).where(self.model.user_id == user_id))
        self.session.commit()
        return result.rowcount or 0

    def delete_expired(self, before: datetime) -> int:
        result = self.session.execute(delete(self.model).where(self.model.expires_at < before))
        self.session.commit()
        return result.rowcount or 0


def verification_tokens(session: Session) -> TokenStore:
    return TokenStore(session, EmailVerificationToken)


def password_reset_tokens(session: Session) -> TokenStore:
    return TokenStore(session, PasswordResetToken)
