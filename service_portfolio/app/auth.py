"""
Account passwords and bearer-token authentication for the portfolio service.

Tokens are HS256 JWTs carrying ``id``, ``username`` and ``role`` claims.
Passwords are stored as bcrypt hashes.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import bcrypt
import jwt
from fastapi import Depends, Header

from shared.errors import AuthenticationError, AuthorizationError, ValidationError
from shared.logging import get_logger, set_user_context

ADMIN_ROLE = "admin"
DEFAULT_TOKEN_TTL_SECONDS = 24 * 60 * 60
DEFAULT_BCRYPT_ROUNDS = 10
BCRYPT_MAX_PASSWORD_BYTES = 72


@dataclass
class CurrentUser:
    """Authenticated caller."""
    id: int
    username: Optional[str] = None
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


class PasswordHasher:
    """bcrypt hashing for account passwords."""

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS):
        self.rounds = rounds
        self.logger = get_logger("portfolio.auth")

    def hash(self, password: str) -> str:
        secret = password.encode("utf-8")
        if len(secret) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=self.rounds)).decode("ascii")

    def verify(self, password: str, password_hash: str) -> bool:
        secret = password.encode("utf-8")
        if len(secret) > BCRYPT_MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(secret, password_hash.encode("ascii"))
        except ValueError as e:
            self.logger.error("Stored password hash is malformed", error=str(e))
            return False


class TokenAuthority:
    """Issues and verifies portfolio access tokens."""

    def __init__(self, secret: str, algorithm: str = "HS256"):
        self.secret = secret
        self.algorithm = algorithm
        self.logger = get_logger("portfolio.auth")

    def issue_token(
        self,
        user_id: int,
        username: Optional[str] = None,
        role: str = "user",
        expires_in: Optional[int] = DEFAULT_TOKEN_TTL_SECONDS,
    ) -> str:
        """Sign a token for *user_id*; ``expires_in=None`` issues one without expiry."""
        claims: Dict[str, Any] = {"id": user_id, "username": username, "role": role}
        if expires_in is not None:
            now = int(time.time())
            claims["iat"] = now
            claims["exp"] = now + expires_in
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: str) -> CurrentUser:
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
            user_id = int(claims["id"])
        except (jwt.PyJWTError, KeyError, TypeError, ValueError) as e:
            self.logger.warning("Token rejected", error=str(e))
            raise AuthenticationError("Invalid token")
        return CurrentUser(id=user_id, username=claims.get("username"), role=claims.get("role") or "user")

    def authenticate(self, authorization: Optional[str]) -> CurrentUser:
        """Resolve an ``Authorization`` header value to the caller."""
        if not authorization:
            raise AuthenticationError("Unauthorized")

        parts = authorization.split(" ")
        token = parts[1] if len(parts) > 1 else ""
        user = self.verify_token(token)
        set_user_context(str(user.id))
        return user


def build_auth_dependencies(authority: TokenAuthority) -> Tuple[Callable[..., Any], Callable[..., Any]]:
    """FastAPI dependencies ``(require_auth, require_admin)`` bound to *authority*."""

    async def require_auth(authorization: Optional[str] = Header(default=None)) -> CurrentUser:
        return authority.authenticate(authorization)

    async def require_admin(user: CurrentUser = Depends(require_auth)) -> CurrentUser:
        if not user.is_admin:
            raise AuthorizationError("Forbidden: Admins only")
        return user

    return require_auth, require_admin
