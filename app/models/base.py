"""
Modelos base compartidos por las tablas de tokens de un solo uso
"""
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field


class OneTimeTokenBase(SQLModel):
    """Campos comunes de verificación de email y reseteo de contraseña.

    A lo sumo un token vivo por usuario y propósito (user_id único).
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True, unique=True)
    token_hash: str = Field(index=True, unique=True, max_length=64)
    expires_at: datetime = Field(index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
