from .user import User
from .feed import Feed
from .post import Post

__all__ = ["User", "Feed", "Post"]
