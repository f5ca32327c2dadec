import logging

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from rssagg.core.database import get_db
from rssagg.core.exceptions import (
    BadRequestError,
    BadSignatureError,
    MalformedTokenError,
    TokenExpiredError,
    UnauthorizedError,
    UserNotFoundError,
)
from rssagg.services.credential_store import CredentialStore
from rssagg.services.feed_poller import FeedPoller
from rssagg.services.session_issuer import SessionIssuer

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "token"


def get_session_issuer(request: Request) -> SessionIssuer:
    return request.app.state.session_issuer


def get_feed_poller(request: Request) -> FeedPoller:
    return request.app.state.feed_poller


async def get_current_username(
    request: Request,
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> str:
    """
    Resolve the session cookie to a username.

    Missing cookie, bad signature and expiry are 401; a cookie that is not a
    session token at all is 400.
    """
    token = request.cookies.get(TOKEN_COOKIE)
    if token is None:
        raise UnauthorizedError("Missing session token")

    try:
        return issuer.validate_token(token)
    except MalformedTokenError:
        raise BadRequestError("Malformed session token")
    except BadSignatureError:
        logger.warning("Rejected session token with invalid signature")
        raise UnauthorizedError("Invalid session token")
    except TokenExpiredError:
        raise UnauthorizedError("Session expired")


async def get_current_user_id(
    username: str = Depends(get_current_username),
    db: AsyncSession = Depends(get_db),
) -> int:
    try:
        return await CredentialStore.get_user_id(db, username)
    except UserNotFoundError:
        # Valid token for a user that no longer exists
        raise UnauthorizedError("Unknown user")
