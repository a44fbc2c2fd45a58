"""
Authentication Routes

Endpoints:
- POST /auth/register - Create an account and start a session
- POST /auth/login - Exchange email + password for a session
- POST /auth/logout - Clear session
- GET /auth/me - Get current user profile

The JWT is returned in the response body and set as an HttpOnly cookie; the
client chooses how to use it. WebSocket clients pass it as ``?token=``.
"""

from fastapi import APIRouter, Response, status

from peerstudy.api.deps import ACCESS_TOKEN_COOKIE, CurrentUser, Uow, create_access_token
from peerstudy.config import get_settings
from peerstudy.db.models import User
from peerstudy.schemas.auth import TokenResponse
from peerstudy.schemas.user import LoginRequest, RegisterRequest, UserProfile, UserRead
from peerstudy.services import accounts

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()


def _start_session(user: User, response: Response) -> TokenResponse:
    access_token = create_access_token(user.id)
    expires_in = settings.jwt_expire_minutes * 60

    # For cross-domain deployments use samesite="none" + secure=True
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=access_token,
        httponly=True,
        secure=settings.cookie_cross_domain or settings.environment != "development",
        samesite="none" if settings.cookie_cross_domain else "lax",
        max_age=expires_in,
    )

    return TokenResponse(
        access_token=access_token,
        expires_in=expires_in,
        user=UserRead.model_validate(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(data: RegisterRequest, response: Response, uow: Uow) -> TokenResponse:
    """Create an account. A second registration with the same email is a Conflict."""
    user = await accounts.register(uow, data)
    return _start_session(user, response)


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, response: Response, uow: Uow) -> TokenResponse:
    user = await accounts.authenticate(uow, data.email, data.password)
    return _start_session(user, response)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> None:
    """
    Clear the authentication session.

    This only clears the cookie. A JWT stored elsewhere stays valid until
    expiry.
    """
    response.delete_cookie(
        key=ACCESS_TOKEN_COOKIE,
        httponly=True,
        secure=settings.cookie_cross_domain or settings.environment != "development",
        samesite="none" if settings.cookie_cross_domain else "lax",
    )


@router.get("/me", response_model=UserProfile)
async def get_me(current_user: CurrentUser, uow: Uow) -> UserProfile:
    return await accounts.get_profile(uow, current_user.id)
