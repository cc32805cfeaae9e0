from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime


class User(SQLModel, table=True):
    """Registro de credenciales del usuario"""
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str = Field(max_length=255)
    last_name: str = Field(max_length=255)
    email: str = Field(unique=True, index=True, max_length=255)
    password_hash: str = Field(max_length=255)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    is_active: bool = Field(default=True)
    two_factor_secret: Optional[str] = Field(default=None, max_length=64)
    two_factor_enabled: bool = Field(default=False)
    last_login: Optional[datetime] = Field(default=None)
    email_verified: bool = Field(default=False)
    email_verified_at: Optional[datetime] = Field(default=None)
