"""
Acceso a los registros de credenciales de usuario
"""
from datetime import datetime
from typing import Any, Optional

from sqlmodel import Session, select

from app.models.user import User


UPDATABLE_FIELDS = {
    "first_name",
    "last_name",
    "password_hash",
    "is_active",
    "email_verified",
    "email_verified_at",
    "two_factor_enabled",
    "two_factor_secret",
    "last_login",
}


def normalize_email(email: str) -> str:
    return email.strip().lower()


def mask_email(email: str) -> str:
    """j***@e******.com, para logs"""
    local, _, domain = email.partition("@")
    if not local or not domain:
        return "***"
    domain_name, dot, domain_ext = domain.partition(".")
    masked_local = local[0] + "*" * max(0, len(local) - 1)
    masked_domain = domain_name[:1] + "*" * max(0, len(domain_name) - 1)
    return f"{masked_local}@{masked_domain}{dot}{domain_ext}"


class UserStore:
    """Servicio de lectura/escritura de usuarios sobre una sesión de base de datos"""

    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, user_id: int) -> Optional[User]:
        """Obtener usuario por ID"""
        return self.session.get(User, user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        """Obtener usuario por email (case-insensitive)"""
        statement = select(User).where(User.email == normalize_email(email))
        return self.session.exec(statement).first()

    def insert_user(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        password_hash: str,
        email_verified: bool = False,
    ) -> User:
        """
        Crear un nuevo usuario

        Args:
            first_name: Nombre
            last_name: Apellido
            email: Email único (se normaliza a lowercase)
            password_hash: Hash bcrypt ya calculado
            email_verified: Estado inicial de verificación

        Returns:
            Usuario creado
        """
        db_user = User(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=normalize_email(email),
            password_hash=password_hash,
            email_verified=email_verified,
            email_verified_at=datetime.utcnow() if email_verified else None,
        )
        self.session.add(db_user)
        self.session.commit()
        self.session.refresh(db_user)
        return db_user

    def update_user(self, user_id: int, **fields: Any) -> Optional[User]:
        """Actualización parcial en un único commit; None si el usuario no existe"""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Campos no actualizables: {', '.join(sorted(unknown))}")

        db_user = self.session.get(User, user_id)
        if db_user is None:
            return None

        for name, value in fields.items():
            setattr(db_user, name, value)
        db_user.updated_at = datetime.utcnow()

        if db_user.two_factor_enabled and not db_user.two_factor_secret:
            self.session.rollback()
            raise ValueError("two_factor_enabled requiere two_factor_secret")

        self.session.add(db_user)
        self.session.commit()
        self.session.refresh(db_user)
        return db_user
