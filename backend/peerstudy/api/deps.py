"""
FastAPI Dependencies for Authentication and Authorization.

Key patterns:
1. get_current_user: Extracts and validates JWT, returns User object
2. get_uow: Wraps the request's session in a unit of work for the services
3. No global "current user" state - always pass user explicitly

Security model:
- JWT stored in HttpOnly cookie or Authorization header
- WebSocket clients pass the same JWT as a ``token`` query parameter
- Membership checks happen in the services, not middleware
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import Cookie, Depends, Header, WebSocket
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from peerstudy.config import get_settings
from peerstudy.db.models import User
from peerstudy.db.session import get_db, get_session_factory
from peerstudy.exceptions import AuthenticationRequired
from peerstudy.realtime.broadcaster import Broadcaster, get_broadcaster
from peerstudy.repositories import SqlUnitOfWork, UnitOfWork
from peerstudy.services.storage import FileStorage, get_storage

settings = get_settings()

ACCESS_TOKEN_COOKIE = "access_token"


# =============================================================================
# JWT UTILITIES
# =============================================================================


def create_access_token(user_id: int) -> str:
    """
    Create a JWT access token for a user.

    Token payload contains:
    - sub: user_id as string (standard JWT subject claim)
    - exp: expiration timestamp
    """
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)
    payload = {
        "sub": str(user_id),
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> int | None:
    """
    Decode and validate a JWT access token.

    Returns user_id if valid, None if invalid/expired.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        user_id_str = payload.get("sub")
        if user_id_str is None:
            return None
        return int(user_id_str)
    except (JWTError, ValueError):
        return None


# =============================================================================
# PERSISTENCE DEPENDENCIES
# =============================================================================


DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_uow(db: DbSession) -> UnitOfWork:
    """Unit of work bound to the request's session (committed by get_db)."""
    return SqlUnitOfWork(db)


Uow = Annotated[UnitOfWork, Depends(get_uow)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
Broadcast = Annotated[Broadcaster, Depends(get_broadcaster)]
Storage = Annotated[FileStorage, Depends(get_storage)]


# =============================================================================
# AUTHENTICATION DEPENDENCIES
# =============================================================================


async def get_token_from_request(
    authorization: Annotated[str | None, Header()] = None,
    access_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """
    Extract JWT token from request.

    Supports two methods (in order of preference):
    1. HttpOnly cookie named 'access_token'
    2. Authorization header: 'Bearer <token>'
    """
    if access_token:
        return access_token

    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]

    raise AuthenticationRequired("Not authenticated")


async def get_current_user(
    token: Annotated[str, Depends(get_token_from_request)],
    uow: Uow,
) -> User:
    """
    Validate JWT and return the current authenticated user.

    Raises AuthenticationRequired (401) if:
    - Token is missing, invalid, or expired
    - User no longer exists in database
    """
    user_id = decode_access_token(token)
    if user_id is None:
        raise AuthenticationRequired()

    user = await uow.users.get(user_id)
    if user is None:
        raise AuthenticationRequired()

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def authenticate_websocket(
    websocket: WebSocket,
    session_factory: async_sessionmaker[AsyncSession],
) -> User | None:
    """
    Resolve the user behind a WebSocket handshake, or None.

    The token comes from the ``token`` query parameter, falling back to the
    access_token cookie.
    """
    token = websocket.query_params.get("token") or websocket.cookies.get(ACCESS_TOKEN_COOKIE)
    if not token:
        return None
    user_id = decode_access_token(token)
    if user_id is None:
        return None
    async with SqlUnitOfWork(session_factory=session_factory) as uow:
        return await uow.users.get(user_id)
