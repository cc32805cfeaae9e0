"""
Modelos SQLModel para la API de autenticación de SplitShifts
"""

from .base import OneTimeTokenBase
from .user import User
from .email_verification_token import EmailVerificationToken
from .password_reset_token import PasswordResetToken
from .auth_session import AuthSession

__all__ = [
    "OneTimeTokenBase",
    "User",
    "EmailVerificationToken",
    "PasswordResetToken",
    "AuthSession",
]
