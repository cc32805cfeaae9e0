from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.core.auth import get_current_active_user, get_two_factor_service
from app.core.errors import flow_response
from app.models.user import User
from app.schemas.auth import OneTimeCodeRequest
from app.services.two_factor import TwoFactorService

router = APIRouter(prefix="/two-factor", tags=["two-factor"])


@router.get("/enrollment")
def begin_enrollment(
    request: Request,
    current_user: Annotated[User, Depends(get_current_active_user)],
    service: TwoFactorService = Depends(get_two_factor_service),
):
    """URI otpauth:// para que el cliente dibuje el QR"""
    return flow_response(request, service.begin_enrollment())


@router.post("/confirm")
def confirm_enrollment(
    request: Request,
    body: OneTimeCodeRequest,
    current_user: Annotated[User, Depends(get_current_active_user)],
    service: TwoFactorService = Depends(get_two_factor_service),
):
    return flow_response(request, service.confirm_enrollment(body.code))


@router.post("/disable")
def disable_enrollment(
    request: Request,
    current_user: Annotated[User, Depends(get_current_active_user)],
    service: TwoFactorService = Depends(get_two_factor_service),
):
    return flow_response(request, service.disable_enrollment())
