"""
Authentication Routes

Registration, login (with lockout and TOTP), token refresh, password
management, email verification and two-factor setup.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from docarchive.auth import create_token_pair, get_current_user
from docarchive.config import settings
from docarchive.database import get_db
from docarchive.dependencies import get_mailer
from docarchive.middleware.logging import get_client_ip
from docarchive.middleware.rate_limit import auth_limit, password_reset_limit
from docarchive.models.activity_log import ActivityAction, ResourceType
from docarchive.models.user import User
from docarchive.schemas import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TwoFactorCodeRequest,
    TwoFactorDisableRequest,
    UserOut,
    dump,
)
from docarchive.services.auth_service import AuthService, ClientInfo
from docarchive.services.email_service import EmailService
from docarchive.services.two_factor_service import TwoFactorService
from docarchive.utils.activity_log import schedule_activity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _client(request: Request) -> ClientInfo:
    return ClientInfo(ip_address=get_client_ip(request), user_agent=request.headers.get("user-agent"))


def _token_response(user: User, **extra) -> dict:
    return {
        "status": "success",
        **create_token_pair(user.id),
        **extra,
        "data": {"user": dump(UserOut.model_validate(user))},
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
@auth_limit
async def register(
    request: Request,
    response: Response,
    data: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    mailer: EmailService = Depends(get_mailer),
):
    user, verification_token = await AuthService(db).register(data)

    if verification_token:
        background_tasks.add_task(mailer.send_verification_email, user.email, user.first_name, verification_token)
    else:
        background_tasks.add_task(mailer.send_welcome_email, user.email, user.first_name)

    schedule_activity(
        background_tasks,
        request,
        ActivityAction.REGISTER.value,
        user=user,
        resource_type=ResourceType.USER.value,
        resource_id=user.id,
    )
    return _token_response(user)


@router.post("/login")
@auth_limit
async def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    result = await AuthService(db).login(data.email, data.password, data.two_factor_code, _client(request))

    if result.requires_two_factor:
        return {
            "status": "success",
            "requiresTwoFactor": True,
            "message": "Please provide your two-factor authentication code",
        }

    schedule_activity(
        background_tasks,
        request,
        ActivityAction.LOGIN.value,
        user=result.user,
        resource_type=ResourceType.USER.value,
        resource_id=result.user.id,
    )
    return _token_response(result.user)


@router.post("/logout")
async def logout(
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
):
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.LOGOUT.value,
        user=current_user,
        resource_type=ResourceType.USER.value,
        resource_id=current_user.id,
    )
    return {"status": "success", "message": "Logged out successfully"}


@router.get("/me")
async def me(current_user: User = Depends(get_current_user)):
    return {"status": "success", "data": {"user": dump(UserOut.model_validate(current_user))}}


@router.post("/refresh-token")
async def refresh_token(data: RefreshTokenRequest, db: AsyncSession = Depends(get_db)):
    user = await AuthService(db).refresh(data.refresh_token)
    return {"status": "success", **create_token_pair(user.id)}


@router.post("/forgot-password")
@password_reset_limit
async def forgot_password(
    request: Request,
    response: Response,
    data: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    mailer: EmailService = Depends(get_mailer),
):
    issued = await AuthService(db).forgot_password(data.email)
    if issued is not None:
        user, raw_token = issued
        background_tasks.add_task(
            mailer.send_password_reset_email,
            user.email,
            user.first_name,
            raw_token,
            settings.password_reset_expire_minutes,
        )

    return {
        "status": "success",
        "message": "If an account exists for that email, a password reset link has been sent",
    }


@router.patch("/reset-password/{token}")
@password_reset_limit
async def reset_password(
    request: Request,
    response: Response,
    token: str,
    data: ResetPasswordRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    mailer: EmailService = Depends(get_mailer),
):
    user = await AuthService(db).reset_password(token, data.password)

    background_tasks.add_task(mailer.send_password_changed_email, user.email, user.first_name)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.PASSWORD_RESET.value,
        user=user,
        resource_type=ResourceType.USER.value,
        resource_id=user.id,
    )
    return _token_response(user)


@router.get("/verify-email/{token}")
async def verify_email(
    token: str,
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    mailer: EmailService = Depends(get_mailer),
):
    user = await AuthService(db).verify_email(token)

    background_tasks.add_task(mailer.send_welcome_email, user.email, user.first_name)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.EMAIL_VERIFY.value,
        user=user,
        resource_type=ResourceType.USER.value,
        resource_id=user.id,
    )
    return {"status": "success", "message": "Email verified successfully"}


@router.patch("/change-password")
async def change_password(
    request: Request,
    data: ChangePasswordRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mailer: EmailService = Depends(get_mailer),
):
    user = await AuthService(db).change_password(current_user, data.current_password, data.new_password)

    background_tasks.add_task(mailer.send_password_changed_email, user.email, user.first_name)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.PASSWORD_CHANGE.value,
        user=user,
        resource_type=ResourceType.USER.value,
        resource_id=user.id,
    )
    return _token_response(user)


# ============== Two-factor authentication ==============


@router.post("/2fa/setup")
async def setup_two_factor(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    data = await TwoFactorService(db).setup(current_user)
    return {"status": "success", "data": data}


@router.post("/2fa/enable")
async def enable_two_factor(
    request: Request,
    data: TwoFactorCodeRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await TwoFactorService(db).enable(current_user, data.code)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.TWO_FACTOR_ENABLE.value,
        user=current_user,
        resource_type=ResourceType.USER.value,
        resource_id=current_user.id,
    )
    return {"status": "success", "message": "Two-factor authentication enabled"}


@router.post("/2fa/disable")
async def disable_two_factor(
    request: Request,
    data: TwoFactorDisableRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await TwoFactorService(db).disable(current_user, data.password)
    schedule_activity(
        background_tasks,
        request,
        ActivityAction.TWO_FACTOR_DISABLE.value,
        user=current_user,
        resource_type=ResourceType.USER.value,
        resource_id=current_user.id,
    )
    return {"status": "success", "message": "Two-factor authentication disabled"}
