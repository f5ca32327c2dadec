import asyncio
import logging

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rssagg.core.config import settings
from rssagg.core.exceptions import (
    BadPasswordError,
    DuplicateUsernameError,
    PasswordHashError,
    UserNotFoundError,
)
from rssagg.models import User

logger = logging.getLogger(__name__)


def hash_password(password: str, rounds: int = settings.BCRYPT_ROUNDS) -> str:
    """Hash a plaintext password with a fresh bcrypt salt"""
    try:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")
    except ValueError as e:
        # bcrypt rejects passwords longer than 72 bytes
        raise PasswordHashError(str(e)) from e


def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


class CredentialStore:
    """Username to password-hash mappings backed by the users table"""

    @staticmethod
    async def register(
        db: AsyncSession,
        username: str,
        password: str,
        rounds: int = settings.BCRYPT_ROUNDS,
    ) -> User:
        """
        Create a user with a hashed password.

        Uniqueness is decided by the database constraint on users.username,
        not by a lookup beforehand, so two concurrent registrations of the
        same name cannot both succeed.

        Raises:
            DuplicateUsernameError: If the username is taken
            PasswordHashError: If the password cannot be hashed
        """
        password_hash = await asyncio.to_thread(hash_password, password, rounds)

        user = User(username=username, password=password_hash)
        db.add(user)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.info(f"Registration rejected, username exists: {username}")
            raise DuplicateUsernameError(username) from e

        await db.refresh(user)
        logger.info(f"Registered user {username} (ID: {user.id})")
        return user

    @staticmethod
    async def verify_credentials(db: AsyncSession, username: str, password: str) -> int:
        """
        Check a username/password pair and return the user's ID.

        Raises:
            UserNotFoundError: If no such user exists
            BadPasswordError: If the password does not match
        """
        result = await db.execute(
            select(User.id, User.password).where(User.username == username)
        )
        row = result.one_or_none()
        if row is None:
            raise UserNotFoundError(username)

        user_id, password_hash = row
        matches = await asyncio.to_thread(check_password, password, password_hash)
        if not matches:
            raise BadPasswordError(username)

        return user_id

    @staticmethod
    async def get_user_id(db: AsyncSession, username: str) -> int:
        result = await db.execute(select(User.id).where(User.username == username))
        user_id = result.scalar_one_or_none()
        if user_id is None:
            raise UserNotFoundError(username)
        return user_id
