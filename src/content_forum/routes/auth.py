"""
# Authentication Routes

Endpoints for local accounts: registration, login, token refresh, logout, password changes
and password resets.

## Token Flow

1. `POST /auth/register` or `POST /auth/login` returns an access/refresh token pair.
2. The access token goes in `Authorization: Bearer <token>` on protected endpoints.
3. `POST /auth/refresh` exchanges the refresh token for a new pair; the old refresh token
   stops working.
4. `POST /auth/logout` revokes a refresh token.

## Password Reset

`POST /auth/forgot-password` stores a reset token valid for `PASSWORD_RESET_EXPIRE_MINUTES`;
`POST /auth/reset-password` trades it for a new password and signs out every session.

Attributes:
    router (APIRouter): FastAPI router with `/auth` prefix
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordRequestForm

from content_forum.errors import ForumError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.common import MessageResponse
from content_forum.models.user_models import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
)
from content_forum.routes.dependencies import get_client_ip, get_current_user, get_services
from content_forum.services.container import ServiceContainer

logger = get_logger(prefix="[Auth Routes]")

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=TokenResponse)
async def register(
    request: RegisterRequest,
    http_request: Request,
    services: ServiceContainer = Depends(get_services),
):
    """
    Create a local account and return a token pair.

    Raises:
        HTTPException(409): If the email or username is already registered.
    """
    try:
        return await services.auth.register(
            request, user_agent=http_request.headers.get("user-agent"), ip_address=get_client_ip(http_request)
        )
    except ForumError:
        raise
    except Exception as e:
        logger.error("Registration failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to register")


@router.post("/login", response_model=TokenResponse)
async def login(
    http_request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    services: ServiceContainer = Depends(get_services),
):
    """
    Authenticate with email and password.

    Accepts the standard OAuth2 password form so the interactive docs can log in; the
    `username` form field carries the email address.

    Raises:
        HTTPException(401): On bad credentials or an inactive/banned account.
    """
    try:
        credentials = LoginRequest(email=form_data.username, password=form_data.password)
        return await services.auth.login(
            credentials, user_agent=http_request.headers.get("user-agent"), ip_address=get_client_ip(http_request)
        )
    except ForumError:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Login failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to log in")


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    request: RefreshTokenRequest,
    http_request: Request,
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.auth.refresh(
            request.refresh_token,
            user_agent=http_request.headers.get("user-agent"),
            ip_address=get_client_ip(http_request),
        )
    except ForumError:
        raise
    except Exception as e:
        logger.error("Token refresh failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to refresh token")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: RefreshTokenRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        await services.auth.logout(request.refresh_token, current_user["user_id"])
        return {"message": "Logged out successfully"}
    except ForumError:
        raise
    except Exception as e:
        logger.error("Logout failed for %s: %s", current_user.get("user_id"), e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to log out")


@router.get("/me", response_model=UserResponse)
async def me(current_user: Dict[str, Any] = Depends(get_current_user)):
    return current_user


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """
    Change the caller's password. All existing refresh tokens are revoked.

    Raises:
        HTTPException(401): If the current password is wrong.
    """
    try:
        await services.auth.change_password(current_user["user_id"], request)
        return {"message": "Password changed successfully"}
    except ForumError:
        raise
    except Exception as e:
        logger.error("Password change failed for %s: %s", current_user.get("user_id"), e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to change password")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(request: ForgotPasswordRequest, services: ServiceContainer = Depends(get_services)):
    """
    Start a password reset. The response is the same whether or not the email is registered.
    """
    try:
        await services.auth.forgot_password(request)
        return {"message": "If the email exists, a password reset link has been sent"}
    except ForumError:
        raise
    except Exception as e:
        logger.error("Password reset request failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to request password reset")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(request: ResetPasswordRequest, services: ServiceContainer = Depends(get_services)):
    """
    Set a new password with a reset token. All existing refresh tokens are revoked.

    Raises:
        HTTPException(400): If the token is unknown or expired.
    """
    try:
        await services.auth.reset_password(request)
        return {"message": "Password reset successfully"}
    except ForumError:
        raise
    except Exception as e:
        logger.error("Password reset failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to reset password")
