from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Response

from upskill.auth.auth_schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from upskill.auth.auth_service import AuthService
from upskill.core.config import Config
from upskill.core.database import UnitOfWork, get_uow
from upskill.core.dependencies import get_notifier, get_settings
from upskill.core.responses import created, ok
from upskill.core.security import CurrentUser, get_current_user

REFRESH_COOKIE = "refreshToken"

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def get_auth_service(
    uow: UnitOfWork = Depends(get_uow),
    notifier=Depends(get_notifier),
    config: Config = Depends(get_settings),
) -> AuthService:
    return AuthService(uow, notifier, config)


def _set_refresh_cookie(response: Response, token: str, config: Config) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=token,
        httponly=True,
        secure=config.cookie_secure,
        samesite="lax",
        max_age=config.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        path="/",
    )


def _clear_refresh_cookie(response: Response, config: Config) -> None:
    response.delete_cookie(
        key=REFRESH_COOKIE,
        httponly=True,
        secure=config.cookie_secure,
        samesite="lax",
        path="/",
    )

# ==================== REGISTRATION / LOGIN ====================

@router.post("/register", status_code=201)
async def register(data: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    user = await service.register(data)
    return created(user)

@router.post("/login")
async def login(
    data: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    config: Config = Depends(get_settings),
):
    """
    Access token in the body; refresh token only as an HttpOnly cookie
    when remember_me is set
    """
    result = await service.login(data.mail, data.password, data.remember_me)
    if result.refresh_token:
        _set_refresh_cookie(response, result.refresh_token, config)
    return ok({"user": result.user, "access_token": result.access_token})

# ==================== TOKENS ====================

@router.post("/refresh")
async def refresh(
    response: Response,
    data: Optional[RefreshRequest] = None,
    refresh_cookie: Optional[str] = Cookie(None, alias=REFRESH_COOKIE),
    service: AuthService = Depends(get_auth_service),
    config: Config = Depends(get_settings),
):
    token = refresh_cookie or (data.refresh_token if data else None)
    pair = await service.refresh_token(token)
    _set_refresh_cookie(response, pair.refresh_token, config)
    return ok({"access_token": pair.access_token})

@router.post("/logout")
async def logout(
    response: Response,
    refresh_cookie: Optional[str] = Cookie(None, alias=REFRESH_COOKIE),
    service: AuthService = Depends(get_auth_service),
    config: Config = Depends(get_settings),
):
    await service.logout(refresh_cookie)
    _clear_refresh_cookie(response, config)
    return ok({"message": "Logged out"})

# ==================== PASSWORD RESET ====================

@router.post("/forgot-password")
async def forgot_password(data: ForgotPasswordRequest, service: AuthService = Depends(get_auth_service)):
    message = await service.forgot_password(data.mail)
    return ok({"message": message})

@router.post("/reset-password")
async def reset_password(data: ResetPasswordRequest, service: AuthService = Depends(get_auth_service)):
    message = await service.reset_password(data.token, data.new_password)
    return ok({"message": message})

# ==================== PROFILE ====================

@router.get("/profile")
async def get_profile(
    user: CurrentUser = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return ok(await service.get_profile(user.user_id))
