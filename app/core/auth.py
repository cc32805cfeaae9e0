"""
Dependencias de FastAPI que construyen los adaptadores y flujos por request
"""
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from app.core.config import Settings, get_settings
from app.core.database import get_session
from app.core.rate_limit import get_client_ip
from app.core.security import PasswordHasher
from app.core.totp import TotpEngine
from app.models.user import User
from app.services.account import AccountService
from app.services.email_service import EmailService
from app.services.email_verification import EmailVerificationService
from app.services.login import LoginService
from app.services.password_reset import PasswordResetService
from app.services.registration import RegistrationService
from app.services.session_guard import SessionGuard
from app.services.sessions import SessionProvider
from app.services.tokens import TokenStore, password_reset_tokens, verification_tokens
from app.services.two_factor import TwoFactorService
from app.services.users import UserStore

# Token opcional: los flujos públicos necesitan saber si ya hay una sesión activa
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

SESSION_EXPIRED = "Your session is no longer valid. Please sign in again."


def get_user_store(session: Session = Depends(get_session)) -> UserStore:
    return UserStore(session)


def get_verification_tokens(session: Session = Depends(get_session)) -> TokenStore:
    return verification_tokens(session)


def get_password_reset_tokens(session: Session = Depends(get_session)) -> TokenStore:
    return password_reset_tokens(session)


def get_password_hasher(settings: Settings = Depends(get_settings)) -> PasswordHasher:
    return PasswordHasher(rounds=settings.bcrypt_rounds)


def get_totp_engine() -> TotpEngine:
    return TotpEngine()


def get_mailer(settings: Settings = Depends(get_settings)) -> EmailService:
    return EmailService(settings)


def get_session_provider(
    request: Request,
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> SessionProvider:
    return SessionProvider(
        session,
        settings,
        token,
        user_agent=request.headers.get("User-Agent"),
        ip_address=get_client_ip(request),
    )


def get_email_verification_service(
    users: UserStore = Depends(get_user_store),
    tokens: TokenStore = Depends(get_verification_tokens),
    mailer: EmailService = Depends(get_mailer),
    sessions: SessionProvider = Depends(get_session_provider),
    settings: Settings = Depends(get_settings),
) -> EmailVerificationService:
    return EmailVerificationService(
        users=users, tokens=tokens, mailer=mailer, sessions=sessions, settings=settings
    )


def get_password_reset_service(
    users: UserStore = Depends(get_user_store),
    tokens: TokenStore = Depends(get_password_reset_tokens),
    mailer: EmailService = Depends(get_mailer),
    sessions: SessionProvider = Depends(get_session_provider),
    hasher: PasswordHasher = Depends(get_password_hasher),
    settings: Settings = Depends(get_settings),
) -> PasswordResetService:
    return PasswordResetService(
        users=users, tokens=tokens, mailer=mailer, sessions=sessions, hasher=hasher, settings=settings
    )


def get_login_service(
    users: UserStore = Depends(get_user_store),
    hasher: PasswordHasher = Depends(get_password_hasher),
    totp: TotpEngine = Depends(get_totp_engine),
    sessions: SessionProvider = Depends(get_session_provider),
) -> LoginService:
    return LoginService(users=users, hasher=hasher, totp=totp, sessions=sessions)


def get_registration_service(
    users: UserStore = Depends(get_user_store),
    hasher: PasswordHasher = Depends(get_password_hasher),
    verification: EmailVerificationService = Depends(get_email_verification_service),
    sessions: SessionProvider = Depends(get_session_provider),
) -> RegistrationService:
    return RegistrationService(users=users, hasher=hasher, verification=verification, sessions=sessions)


def get_account_service(
    users: UserStore = Depends(get_user_store),
    hasher: PasswordHasher = Depends(get_password_hasher),
    sessions: SessionProvider = Depends(get_session_provider),
) -> AccountService:
    return AccountService(users=users, hasher=hasher, sessions=sessions)


def get_two_factor_service(
    users: UserStore = Depends(get_user_store),
    totp: TotpEngine = Depends(get_totp_engine),
    sessions: SessionProvider = Depends(get_session_provider),
    settings: Settings = Depends(get_settings),
) -> TwoFactorService:
    return TwoFactorService(users=users, totp=totp, sessions=sessions, settings=settings)


def get_current_active_user(
    users: UserStore = Depends(get_user_store),
    sessions: SessionProvider = Depends(get_session_provider),
    settings: Settings = Depends(get_settings),
) -> User:
    """Obtener usuario actual; si la sesión ya no está respaldada, pedir sign-out"""
    decision = SessionGuard(users=users, sessions=sessions).check()
    if decision.allowed:
        return decision.user

    headers = {"WWW-Authenticate": "Bearer"}
    if decision.sign_out:
        headers["X-Sign-Out"] = settings.sign_out_path
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=SESSION_EXPIRED if decision.sign_out else "Not authenticated",
        headers=headers,
    )
