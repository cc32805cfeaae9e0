"""
Resultado tipado que devuelven todos los flujos de autenticación
"""
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    INVALID_OR_EXPIRED = "invalid_or_expired"
    INCORRECT_CREDENTIALS = "incorrect_credentials"
    EMAIL_NOT_VERIFIED = "email_not_verified"
    INCORRECT_ONE_TIME_CODE = "incorrect_one_time_code"
    ALREADY_AUTHENTICATED = "already_authenticated"
    ALREADY_VERIFIED = "already_verified"
    TRANSPORT_FAILURE = "transport_failure"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"


class FlowResult(BaseModel):
    """Éxito o un único tipo de error, con mensaje apto para mostrar al usuario"""
    error: bool = False
    kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    field_errors: Dict[str, str] = Field(default_factory=dict)
    data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def ok(cls, message: Optional[str] = None, **data: Any) -> "FlowResult":
        return cls(error=False, message=message, data=data)

    @classmethod
    def neutral(cls, message: Optional[str] = None) -> "FlowResult":
        return cls(error=False, message=message)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        message: Optional[str] = None,
        *,
        field_errors: Optional[Dict[str, str]] = None,
        **data: Any,
    ) -> "FlowResult":
        return cls(error=True, kind=kind, message=message, field_errors=field_errors or {}, data=data)

    @classmethod
    def invalid_input(cls, exc: ValidationError) -> "FlowResult":
        errors = field_errors_from(exc)
        return cls.fail(ErrorKind.INVALID_INPUT, next(iter(errors.values()), "Invalid input"), field_errors=errors)


def field_errors_from(exc: ValidationError) -> Dict[str, str]:
    """Primer mensaje por campo, sin el prefijo 'Value error, ' de pydantic"""
    errors: Dict[str, str] = {}
    for issue in exc.errors():
        loc = issue.get("loc") or ("__root__",)
        field = str(loc[0])
        message = issue.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, message)
    return errors
