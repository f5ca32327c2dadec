from .auth import Credentials, UserResponse, LoginResponse
from .feed import FeedBase, FeedCreate, FeedResponse
from .post import PostResponse

__all__ = [
    "Credentials",
    "UserResponse",
    "LoginResponse",
    "FeedBase",
    "FeedCreate",
    "FeedResponse",
    "PostResponse",
]
