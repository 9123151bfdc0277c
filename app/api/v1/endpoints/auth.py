"""
Auth endpoints — login (OAuth2 password flow), token refresh, logout,
profile and password management.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Cookie, Depends, Request, Response
from fastapi.security import OAuth2PasswordRequestForm
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.v1.deps import get_current_active_user, get_db, require_permissions
from app.core.config import settings
from app.core.exceptions import (BadRequestError, ForbiddenError, NotFoundError,
                                 UnauthorizedError)
from app.core.passwords import (generate_temporary_password, hash_password,
                                is_password_expired, verify_password)
from app.core.permissions import get_user_permissions
from app.core.security import (create_access_token, create_refresh_token,
                               decode_refresh_token)
from app.core.sessions import deactivate_sessions, start_session, validate_session
from app.models.user import User, UserRole
from app.schemas.token import LoginResponse, RefreshRequest, Token
from app.schemas.user import (ChangePasswordRequest, MessageResponse,
                              ResetPasswordResponse, UserRead, UserSummary)

# Rate limiter — keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _token_claims(user: User) -> dict:
    return {"email": user.email, "fullName": user.full_name, "roles": user.role_names}


def _set_auth_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    response.set_cookie(
        key="access_token",
        value=f"Bearer {access_token}",
        httponly=True,
        secure=settings.COOKIE_SECURE,  # Set to True in HTTPS production
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    response.set_cookie(
        key="refresh_token",
        value=refresh_token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
    )


async def _load_user(db: AsyncSession, **criteria) -> User | None:
    query = select(User).options(selectinload(User.user_roles).selectinload(UserRole.role))
    for column, value in criteria.items():
        query = query.where(getattr(User, column) == value)
    result = await db.execute(query)
    return result.scalar_one_or_none()


@router.post("/login", response_model=LoginResponse)
@limiter.limit("5/minute")
async def login_for_access_token(
    request: Request,
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """Authenticate with email/password. Opens a fresh session and sets HttpOnly cookies."""
    user = await _load_user(db, email=form_data.username.lower().strip())

    if user is None or not verify_password(form_data.password, user.password_hash):
        raise UnauthorizedError("Incorrect email or password")
    if not user.is_active:
        raise ForbiddenError("User account is inactive")
    if is_password_expired(user.password_changed_at):
        raise UnauthorizedError("Password expired. Please change your password.")
    if user.must_change_password:
        raise UnauthorizedError("You must change your password before continuing.")

    await start_session(
        db,
        user.id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    user.last_login_at = datetime.now(timezone.utc)
    user.login_count = (user.login_count or 0) + 1
    await db.commit()

    claims = _token_claims(user)
    access_token = create_access_token(user.id, claims)
    refresh_token = create_refresh_token(user.id, claims)
    _set_auth_cookies(response, access_token, refresh_token)

    logger.info("User %s logged in", user.id)
    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        user=UserSummary(
            id=user.id, email=user.email, full_name=user.full_name, roles=user.role_names
        ),
    )


@router.post("/refresh", response_model=Token)
@limiter.limit("10/minute")
async def refresh_access_token_endpoint(
    response: Response,
    request: Request,
    body: RefreshRequest | None = None,
    refresh_token_cookie: str | None = Cookie(None, alias="refresh_token"),
    db: AsyncSession = Depends(get_db),
) -> Token:
    # Priority: Body > Cookie
    token_str = None
    if body and body.refresh_token:
        token_str = body.refresh_token
    elif refresh_token_cookie:
        token_str = refresh_token_cookie

    if not token_str:
        raise UnauthorizedError("Refresh token missing")

    payload = decode_refresh_token(token_str)
    if payload is None:
        raise UnauthorizedError("Invalid or expired refresh token")

    user = await _load_user(db, id=payload.get("sub"))
    if user is None or not user.is_active:
        raise UnauthorizedError("User not found or inactive")
    # Logout and password changes end the session, and with it refresh
    await validate_session(db, user.id)

    claims = _token_claims(user)
    new_access = create_access_token(user.id, claims)
    new_refresh = create_refresh_token(user.id, claims)
    _set_auth_cookies(response, new_access, new_refresh)

    return Token(access_token=new_access, refresh_token=new_refresh)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Clear auth cookies and end the session."""
    await deactivate_sessions(db, current_user.id)
    await db.commit()
    response.delete_cookie("access_token")
    response.delete_cookie("refresh_token")
    logger.info("User %s logged out", current_user.id)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserRead)
async def read_current_user(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> UserRead:
    """Return profile, roles and effective permissions of the caller."""
    permissions = await get_user_permissions(db, current_user.id) or set()
    return UserRead(
        id=current_user.id,
        email=current_user.email,
        full_name=current_user.full_name,
        avatar=current_user.avatar,
        status=current_user.status,
        must_change_password=current_user.must_change_password,
        password_changed_at=current_user.password_changed_at,
        last_login_at=current_user.last_login_at,
        login_count=current_user.login_count,
        roles=current_user.role_names,
        permissions=sorted(permissions),
        created_at=current_user.created_at,
    )


@router.patch("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Change the caller's password; every session ends and a new login is required."""
    if body.new_password != body.confirm_password:
        raise BadRequestError("New password and confirm password do not match")
    if not verify_password(body.current_password, current_user.password_hash):
        raise BadRequestError("Current password is incorrect")

    current_user.password_hash = hash_password(body.new_password)
    current_user.password_changed_at = datetime.now(timezone.utc)
    current_user.must_change_password = False
    await deactivate_sessions(db, current_user.id)
    await db.commit()

    logger.info("User %s changed password", current_user.id)
    return MessageResponse(message="Password changed successfully. Please login again.")


@router.post("/users/{user_id}/reset-password", response_model=ResetPasswordResponse)
async def reset_password(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_permissions("users:update")),
) -> ResetPasswordResponse:
    """Issue a temporary password; the user must change it at next login."""
    user = await _load_user(db, id=user_id)
    if user is None:
        raise NotFoundError("User not found")

    temporary = generate_temporary_password()
    user.password_hash = hash_password(temporary)
    user.password_changed_at = datetime.now(timezone.utc)
    user.must_change_password = True
    await deactivate_sessions(db, user.id)
    await db.commit()

    logger.info("Password reset for user %s by %s", user.id, _admin.id)
    return ResetPasswordResponse(
        message="Password reset successfully. User must change password on next login.",
        temporary_password=temporary,
    )
