# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication API endpoints.

This module provides endpoints for user authentication:
- POST /register - Create an account
- POST /login - Email/password login (rate limited per IP)
- POST /refresh - Rotate the token pair
- POST /logout - Revoke the current session
- GET /me - Get current user profile
- PUT /change-password - Change password and revoke all sessions
- POST /verify-token - Check an access token against its session
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from edupath.api.dependencies import AuthenticatedUser, get_auth_service
from edupath.api.errors import APIError
from edupath.api.middleware.rate_limit import get_ip_only, limiter, login_limit
from edupath.domains.auth.service import AuthService, AuthServiceError
from edupath.models.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserProfile,
    VerifyTokenRequest,
)
from edupath.models.common import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()

AUTH_ERROR_STATUS = {
    "INVALID_CREDENTIALS": status.HTTP_401_UNAUTHORIZED,
    "ACCOUNT_DEACTIVATED": status.HTTP_403_FORBIDDEN,
    "EMAIL_EXISTS": status.HTTP_409_CONFLICT,
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "INVALID_REFRESH_TOKEN": status.HTTP_401_UNAUTHORIZED,
    "INVALID_CURRENT_PASSWORD": status.HTTP_400_BAD_REQUEST,
    "WEAK_PASSWORD": status.HTTP_400_BAD_REQUEST,
    "INVALID_TOKEN": status.HTTP_401_UNAUTHORIZED,
    "USER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
}


def _to_http(error: AuthServiceError) -> APIError:
    """Map an auth service error to an HTTP error by its code."""
    return APIError(
        status_code=AUTH_ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST),
        message=error.message,
        errors=error.errors,
    )


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "")
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return parts[1]


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
)
async def register(
    data: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    """Create a user and its student or teacher profile."""
    try:
        user = await service.register(data)
    except AuthServiceError as e:
        raise _to_http(e)
    return RegisterResponse(user=user)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in with email and password",
)
@limiter.limit(login_limit, key_func=get_ip_only)
async def login(
    request: Request,
    data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Authenticate and open a session."""
    user_agent = request.headers.get("User-Agent")
    ip_address = request.client.host if request.client else None

    try:
        return await service.login(
            data.email,
            data.password,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
    except AuthServiceError as e:
        logger.info("Login failed for %s: %s", data.email, e.code)
        raise _to_http(e)


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh the token pair",
)
async def refresh(
    data: RefreshTokenRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """Rotate access and refresh tokens of a session."""
    try:
        return await service.refresh_token(data.refresh_token)
    except AuthServiceError as e:
        raise _to_http(e)


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Log out",
)
async def logout(
    request: Request,
    current_user: AuthenticatedUser,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Delete the session behind the presented access token."""
    await service.logout(_bearer_token(request))
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/me",
    response_model=UserProfile,
    summary="Get current user",
)
async def me(
    current_user: AuthenticatedUser,
    service: AuthService = Depends(get_auth_service),
) -> UserProfile:
    """Return the profile of the authenticated user."""
    try:
        return await service.get_profile(current_user.id)
    except AuthServiceError as e:
        raise _to_http(e)


@router.put(
    "/change-password",
    response_model=MessageResponse,
    summary="Change password",
)
async def change_password(
    data: ChangePasswordRequest,
    current_user: AuthenticatedUser,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Change the password. Every session of the user is revoked."""
    try:
        await service.change_password(
            current_user.id,
            data.current_password,
            data.new_password,
        )
    except AuthServiceError as e:
        raise _to_http(e)
    return MessageResponse(message="Password changed successfully. Please log in again.")


@router.post(
    "/verify-token",
    response_model=UserProfile,
    summary="Verify an access token",
)
async def verify_token(
    data: VerifyTokenRequest,
    service: AuthService = Depends(get_auth_service),
) -> UserProfile:
    """Check that a token is valid and its session is live."""
    try:
        return await service.verify_token(data.token)
    except AuthServiceError as e:
        raise _to_http(e)
