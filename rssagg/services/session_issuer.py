import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from rssagg.core.exceptions import BadSignatureError, MalformedTokenError, TokenExpiredError

logger = logging.getLogger(__name__)


class SessionIssuer:
    """
    Issues and validates signed session tokens.

    Tokens are HS256 JWTs carrying a ``username`` claim and an absolute
    ``exp``. They are signed, not encrypted: the holder can read the claims
    but cannot alter them without the secret.
    """

    def __init__(self, secret: str, ttl: timedelta = timedelta(hours=24), algorithm: str = "HS256"):
        if not secret:
            raise ValueError("Session signing secret must not be empty")
        self._secret = secret
        self.ttl = ttl
        self.algorithm = algorithm

    def issue_token(self, username: str, now: Optional[datetime] = None) -> str:
        """Sign a token for ``username`` that expires ``ttl`` after ``now``"""
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "username": username,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def expires_at(self, now: Optional[datetime] = None) -> datetime:
        return (now or datetime.now(timezone.utc)) + self.ttl

    def validate_token(self, token: str) -> str:
        """
        Verify a token and return the username it was issued for.

        Structure is checked before the signature so that garbage input and
        forged input fail differently.

        Raises:
            MalformedTokenError: Not a JWT, or required claims missing
            BadSignatureError: Signature does not match the secret
            TokenExpiredError: Past its expiry
        """
        try:
            unverified = jwt.get_unverified_claims(token)
        except JWTError as e:
            raise MalformedTokenError(str(e)) from e

        if not isinstance(unverified.get("username"), str) or "exp" not in unverified:
            raise MalformedTokenError("Token is missing required claims")

        exp = unverified["exp"]
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            raise MalformedTokenError("Token expiry is not a timestamp")

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require_exp": True},
            )
        except ExpiredSignatureError as e:
            raise TokenExpiredError(str(e)) from e
        except JWTClaimsError as e:
            raise MalformedTokenError(str(e)) from e
        except JWTError as e:
            raise BadSignatureError(str(e)) from e

        return claims["username"]
