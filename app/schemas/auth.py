"""
Esquemas Pydantic para autenticación

Incluye las reglas de validación de nombres y contraseñas que usan los flujos
de registro, reseteo y cambio de contraseña.
"""
import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, ValidationInfo, field_validator


PASSWORD_MIN_LENGTH = 8
PASSWORD_SPECIAL_CHARS = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")
NAME_PATTERN = re.compile(r"^[A-Za-zÀ-ÖØ-öø-ÿ' -]+$")


def check_password_strength(value: str) -> str:
    has_min_length = len(value) >= PASSWORD_MIN_LENGTH
    has_special_char = PASSWORD_SPECIAL_CHARS.search(value) is not None

    if not has_min_length and not has_special_char:
        raise ValueError(
            "Password must be at least 8 characters and contain at least one special character"
        )
    if not has_min_length:
        raise ValueError("Password must be at least 8 characters")
    if not has_special_char:
        raise ValueError("Password must contain at least one special character")
    return value


def check_name(value: str) -> str:
    value = value.strip()
    if len(value) < 2:
        raise ValueError("Name must be at least 2 characters long")
    if len(value) > 50:
        raise ValueError("Name cannot be longer than 50 characters")
    if not NAME_PATTERN.match(value):
        raise ValueError("Only letters, spaces, hyphens, and apostrophes are allowed")
    return value


class PasswordMatch(BaseModel):
    """Contraseña nueva + confirmación"""
    password: str
    password_confirm: str

    @field_validator("password")
    @classmethod
    def _strong_password(cls, value: str) -> str:
        return check_password_strength(value)

    @field_validator("password_confirm")
    @classmethod
    def _passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if "password" in info.data and value != info.data["password"]:
            raise ValueError("Passwords do not match")
        return value


class SignUpRequest(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr
    password: str
    password_confirm: str

    @field_validator("first_name", "last_name")
    @classmethod
    def _valid_name(cls, value: str) -> str:
        return check_name(value)

    @field_validator("password")
    @classmethod
    def _strong_password(cls, value: str) -> str:
        return check_password_strength(value)

    @field_validator("password_confirm")
    @classmethod
    def _passwords_match(cls, value: str, info: ValidationInfo) -> str:
        if "password" in info.data and value != info.data["password"]:
            raise ValueError("Passwords do not match")
        return value


class RegisterRequest(BaseModel):
    """Cuerpo del registro; las reglas de nombre y contraseña las aplica el flujo"""
    first_name: str = Field(max_length=255)
    last_name: str = Field(max_length=255)
    email: str = Field(max_length=255)
    password: str = Field(max_length=256)
    password_confirm: str = Field(max_length=256)


class LoginRequest(BaseModel):
    """Esquema para login con JSON (token = código TOTP opcional)"""
    email: EmailStr
    password: str = Field(min_length=1)
    token: Optional[str] = Field(default=None, max_length=16)


class PreflightRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class EmailRequest(BaseModel):
    email: EmailStr


class TokenRequest(BaseModel):
    token: str = Field(max_length=128)


class CompleteResetRequest(BaseModel):
    token: str = Field(max_length=128)
    password: str
    password_confirm: str


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    password: str
    password_confirm: str


class OneTimeCodeRequest(BaseModel):
    code: str = Field(max_length=16)


class Token(BaseModel):
    """Esquema para token de acceso"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # segundos


class UserRead(BaseModel):
    """Esquema para leer el usuario actual (respuesta)"""
    id: int
    first_name: str
    last_name: str
    email: str
    email_verified: bool
    two_factor_enabled: bool
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None
