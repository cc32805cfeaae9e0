"""
Router de autenticación: registro, login en dos fases, verificación de email,
reseteo y cambio de contraseña
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from app.core.auth import (
    get_account_service,
    get_current_active_user,
    get_email_verification_service,
    get_login_service,
    get_password_reset_service,
    get_registration_service,
)
from app.core.errors import flow_response
from app.core.rate_limit import AUTH_RATE_LIMIT, PASSWORD_RATE_LIMIT, limiter
from app.models.user import User
from app.schemas.auth import (
    ChangePasswordRequest,
    CompleteResetRequest,
    EmailRequest,
    LoginRequest,
    PreflightRequest,
    RegisterRequest,
    TokenRequest,
    UserRead,
)
from app.services.account import AccountService
from app.services.email_verification import EmailVerificationService
from app.services.login import LoginService
from app.services.password_reset import PasswordResetService
from app.services.registration import RegistrationService

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_RATE_LIMIT)
def register_user(
    request: Request,
    body: RegisterRequest,
    service: RegistrationService = Depends(get_registration_service),
):
    """
    Registrar un nuevo usuario

    La cuenta queda sin verificar y se envía el link de verificación por email.
    """
    result = service.register(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
        password_confirm=body.password_confirm,
    )
    return flow_response(request, result, success_status=status.HTTP_201_CREATED)


@router.post("/login/preflight")
@limiter.limit(AUTH_RATE_LIMIT)
def login_preflight(
    request: Request,
    body: PreflightRequest,
    service: LoginService = Depends(get_login_service),
):
    """
    Primer paso del login: valida credenciales e indica si se requiere código TOTP
    """
    return flow_response(request, service.preflight_check(body.email, body.password))


@router.post("/login")
@limiter.limit(AUTH_RATE_LIMIT)
def login(
    request: Request,
    body: LoginRequest,
    service: LoginService = Depends(get_login_service),
):
    """
    Iniciar sesión con JSON

    - **email**: Email del usuario
    - **password**: Contraseña
    - **token**: Código TOTP (solo si la cuenta tiene 2FA)

    Retorna un token JWT para autenticación en `data`
    """
    return flow_response(request, service.complete_login(body.email, body.password, body.token))


@router.post("/logout")
def logout(
    request: Request,
    current_user: Annotated[User, Depends(get_current_active_user)],
    service: LoginService = Depends(get_login_service),
):
    return flow_response(request, service.logout())


@router.get("/me", response_model=UserRead)
def read_current_user(current_user: Annotated[User, Depends(get_current_active_user)]):
    """
    Obtener información del usuario autenticado

    Requiere token JWT válido en el header:
    Authorization: Bearer <token>
    """
    return UserRead.model_validate(current_user, from_attributes=True)


@router.post("/verify-email/send")
@limiter.limit(PASSWORD_RATE_LIMIT)
def send_verification_email(
    request: Request,
    body: EmailRequest,
    service: EmailVerificationService = Depends(get_email_verification_service),
):
    return flow_response(request, service.send_verification(body.email))


@router.post("/verify-email")
def verify_email(
    request: Request,
    body: TokenRequest,
    service: EmailVerificationService = Depends(get_email_verification_service),
):
    return flow_response(request, service.verify(body.token))


@router.post("/password-reset")
@limiter.limit(PASSWORD_RATE_LIMIT)
def request_password_reset(
    request: Request,
    body: EmailRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
):
    return flow_response(request, service.request_reset(body.email))


@router.get("/password-reset/validate")
def validate_password_reset_token(
    token: str = "",
    service: PasswordResetService = Depends(get_password_reset_service),
):
    """Indica si el link de reseteo sigue vigente (no consume el token)"""
    return {"valid": service.validate_token(token)}


@router.post("/password-reset/complete")
@limiter.limit(PASSWORD_RATE_LIMIT)
def complete_password_reset(
    request: Request,
    body: CompleteResetRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
):
    result = service.complete_reset(body.token, body.password, body.password_confirm)
    return flow_response(request, result)


@router.post("/change-password")
@limiter.limit(PASSWORD_RATE_LIMIT)
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    service: AccountService = Depends(get_account_service),
):
    result = service.change_password(body.current_password, body.password, body.password_confirm)
    return flow_response(request, result)
