# Schemas
from .auth import (
    SignUpRequest,
    RegisterRequest,
    LoginRequest,
    PreflightRequest,
    EmailRequest,
    TokenRequest,
    CompleteResetRequest,
    ChangePasswordRequest,
    OneTimeCodeRequest,
    PasswordMatch,
    Token,
    UserRead,
)

__all__ = [
    "SignUpRequest",
    "RegisterRequest",
    "LoginRequest",
    "PreflightRequest",
    "EmailRequest",
    "TokenRequest",
    "CompleteResetRequest",
    "ChangePasswordRequest",
    "OneTimeCodeRequest",
    "PasswordMatch",
    "Token",
    "UserRead",
]
