# sunnah_audio/core/security.py
"""
Security module for authentication.
Handles password hashing and bearer token minting/validation.
"""
import datetime as dt
import enum
import logging
from dataclasses import dataclass
from functools import lru_cache

import jwt  # PyJWT
from passlib.context import CryptContext
from passlib.exc import InternalBackendError, MissingBackendError
from starlette.concurrency import run_in_threadpool

from sunnah_audio.core.errors import UpstreamFailure

logger = logging.getLogger(__name__)

# Argon2id only. deprecated="auto" keeps older argon2 parameter sets verifying,
# and needs_update() reports when a stored hash should be upgraded.
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__type="ID",
)

JWT_ALG = "HS256"


def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2id.

    The result is the PHC string ($argon2id$v=19$m=...,t=...,p=...$salt$digest),
    so verification never needs the parameters from anywhere else. A new
    random salt is generated on every call.
    """
    try:
        return pwd_context.hash(plain)
    except (MissingBackendError, InternalBackendError, ValueError, TypeError) as e:
        raise UpstreamFailure("Failed to hash password") from e


def verify_password(plain: str, hashed: str | None) -> bool:
    """
    Verify a plain text password against a stored hash.

    Returns False for a wrong password and for anything that cannot be parsed
    as a supported hash; the caller is never told which one happened.
    """
    if not hashed:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except (MissingBackendError, InternalBackendError, ValueError, TypeError):
        return False


def password_needs_rehash(hashed: str) -> bool:
    try:
        return pwd_context.needs_update(hashed)
    except (MissingBackendError, InternalBackendError, ValueError, TypeError):
        return False


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """Hash checked on login when the email is unknown, so both paths cost the same."""
    return pwd_context.hash("sunnah-audio-timing-equaliser")


# Argon2 costs tens of milliseconds of CPU; keep it off the event loop.
async def hash_password_async(plain: str) -> str:
    return await run_in_threadpool(hash_password, plain)


async def verify_password_async(plain: str, hashed: str | None) -> bool:
    return await run_in_threadpool(verify_password, plain, hashed)


class TokenFailure(str, enum.Enum):
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"
    WRONG_ALGORITHM = "wrong_algorithm"


class InvalidToken(Exception):
    """Raised by TokenService.verify; `kind` is for logs only."""

    def __init__(self, kind: TokenFailure):
        self.kind = kind
        super().__init__(kind.value)


@dataclass(frozen=True)
class TokenClaims:
    sub: str
    email: str
    role: str
    exp: int


class TokenService:
    """
    Issues and validates HS256 bearer tokens carrying
    {sub, email, role, exp}. `sub` is the user id as a string and `exp` an
    absolute unix timestamp. There is no leeway on expiry.
    """

    def __init__(self, secret: str, lifetime_minutes: int):
        self._secret = secret
        self.lifetime = dt.timedelta(minutes=lifetime_minutes)

    def mint(self, user_id: int | str, email: str, role: str, now: dt.datetime | None = None) -> tuple[str, dt.datetime]:
        """Return (token, expires_at)."""
        now = now or dt.datetime.now(dt.timezone.utc)
        expires_at = now + self.lifetime
        payload = {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=JWT_ALG), expires_at

    def verify(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALG],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidToken(TokenFailure.EXPIRED)
        except jwt.InvalidSignatureError:
            raise InvalidToken(TokenFailure.BAD_SIGNATURE)
        except jwt.InvalidAlgorithmError:
            raise InvalidToken(TokenFailure.WRONG_ALGORITHM)
        except jwt.InvalidTokenError:
            raise InvalidToken(TokenFailure.MALFORMED)

        sub = payload.get("sub")
        if not isinstance(sub, str) or not sub:
            raise InvalidToken(TokenFailure.MALFORMED)
        return TokenClaims(
            sub=sub,
            email=str(payload.get("email", "")),
            role=str(payload.get("role", "user")),
            exp=int(payload["exp"]),
        )


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, resolved once per request."""
    user_id: int
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
