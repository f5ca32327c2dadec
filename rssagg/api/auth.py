from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime, timezone
import logging

from rssagg.api.deps import TOKEN_COOKIE, get_current_username, get_session_issuer
from rssagg.core.config import settings
from rssagg.core.database import get_db
from rssagg.core.exceptions import (
    BadPasswordError,
    ConflictError,
    DuplicateUsernameError,
    InternalServerError,
    PasswordHashError,
    UnauthorizedError,
    UserNotFoundError,
)
from rssagg.schemas import Credentials, LoginResponse, UserResponse
from rssagg.services.credential_store import CredentialStore
from rssagg.services.session_issuer import SessionIssuer

router = APIRouter(tags=["Auth"])
logger = logging.getLogger(__name__)


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register User",
    responses={409: {"description": "Username already exists"}},
)
async def register(
    credentials: Credentials,
    db: AsyncSession = Depends(get_db),
):
    """
    Create a user account.
    """
    try:
        user = await CredentialStore.register(db, credentials.username, credentials.password)
    except DuplicateUsernameError:
        raise ConflictError("Username already exists")
    except PasswordHashError as e:
        logger.error(f"Error hashing password for {credentials.username}: {e}")
        raise InternalServerError()

    return user


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log In",
    description="Check credentials and set an HTTP-only `token` session cookie valid for 24 hours.",
    responses={401: {"description": "Invalid username or password"}},
)
async def login(
    credentials: Credentials,
    response: Response,
    db: AsyncSession = Depends(get_db),
    issuer: SessionIssuer = Depends(get_session_issuer),
):
    """
    Log in and receive a session cookie.
    """
    try:
        await CredentialStore.verify_credentials(db, credentials.username, credentials.password)
    except (UserNotFoundError, BadPasswordError):
        logger.info(f"Failed login for {credentials.username}")
        raise UnauthorizedError("Invalid username or password")

    now = datetime.now(timezone.utc)
    token = issuer.issue_token(credentials.username, now=now)

    response.set_cookie(
        key=TOKEN_COOKIE,
        value=token,
        expires=issuer.expires_at(now),
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.COOKIE_SECURE,
    )

    logger.info(f"User {credentials.username} logged in")
    return LoginResponse(username=credentials.username)


@router.post(
    "/logout",
    summary="Log Out",
    description="Clear the session cookie.",
)
async def logout(response: Response):
    response.delete_cookie(
        key=TOKEN_COOKIE,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.COOKIE_SECURE,
    )
    return {"message": "Logged out"}


@router.get(
    "/protected",
    response_class=PlainTextResponse,
    summary="Session Check",
)
async def protected(username: str = Depends(get_current_username)):
    """
    Returns 200 when the session cookie is valid.
    """
    return "Welcome, authenticated user!"
