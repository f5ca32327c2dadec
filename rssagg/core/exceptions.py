"""
Custom exceptions for the RSS aggregator.

Services raise the domain errors below; the API layer translates them into
the HTTP errors at the bottom of this module.
"""

from fastapi import HTTPException, status


class AggregatorError(Exception):
    """Base class for domain errors raised by the service layer."""


# Credential store

class DuplicateUsernameError(AggregatorError):
    """Raised when registering a username that already exists."""
    def __init__(self, username: str):
        super().__init__(f"Username already exists: {username}")
        self.username = username


class UserNotFoundError(AggregatorError):
    """Raised when no user matches the given username."""


class BadPasswordError(AggregatorError):
    """Raised when a password does not match the stored hash."""


class PasswordHashError(AggregatorError):
    """Raised when the password cannot be hashed."""


# Session tokens

class InvalidTokenError(AggregatorError):
    """Base class for session token validation failures."""


class MalformedTokenError(InvalidTokenError):
    """Raised when a token is not a well-formed session token."""


class BadSignatureError(InvalidTokenError):
    """Raised when a token signature does not verify."""


class TokenExpiredError(InvalidTokenError):
    """Raised when a token is past its expiry."""


# Feeds and posts

class DuplicateFeedURLError(AggregatorError):
    """Raised when a feed URL is already registered."""
    def __init__(self, url: str):
        super().__init__(f"Feed URL already registered: {url}")
        self.url = url


class FeedNotFoundError(AggregatorError):
    """Raised when a feed does not exist or is not owned by the user."""
    def __init__(self, feed_id: int):
        super().__init__(f"Feed not found: {feed_id}")
        self.feed_id = feed_id


class DuplicatePostURLError(AggregatorError):
    """Raised when a post URL has already been ingested."""
    def __init__(self, url: str):
        super().__init__(f"Post already exists: {url}")
        self.url = url


# HTTP errors

class BadRequestError(HTTPException):
    """Raised when the request body or parameters are invalid."""
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedError(HTTPException):
    """Raised when the session is missing or invalid."""
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class NotFoundError(HTTPException):
    """Raised when a resource is not found."""
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    """Raised when a resource already exists."""
    def __init__(self, detail: str = "Conflict"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InternalServerError(HTTPException):
    """Raised when the backend fails; details stay in the server log."""
    def __init__(self, detail: str = "Internal server error"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
