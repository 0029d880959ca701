# sunnah_audio/api/v1/deps.py
import logging

from fastapi import Depends, Header, Request

from sunnah_audio.core.container import Services
from sunnah_audio.core.errors import Forbidden, Unauthorized
from sunnah_audio.core.security import Identity, InvalidToken
from sunnah_audio.models.user import User, UserStatus

logger = logging.getLogger("uvicorn.error")

UNAUTHORIZED_MESSAGE = "Invalid or missing authentication token"


def get_services(request: Request) -> Services:
    return request.app.state.services


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[len("Bearer "):].strip() or None


async def _resolve(request: Request, authorization: str | None, services: Services) -> tuple[Identity, User]:
    cached = getattr(request.state, "identity", None)
    if cached is not None:
        return cached

    token = _bearer_token(authorization)
    if token is None:
        raise Unauthorized(UNAUTHORIZED_MESSAGE)

    try:
        claims = services.tokens.verify(token)
    except InvalidToken as e:
        logger.info("Rejected bearer token: %s", e.kind.value)
        raise Unauthorized(UNAUTHORIZED_MESSAGE)

    try:
        user_id = int(claims.sub)
    except ValueError:
        logger.info("Rejected bearer token: non-numeric sub")
        raise Unauthorized(UNAUTHORIZED_MESSAGE)

    # Disabled accounts lose access immediately, even with an unexpired token.
    user = await User.get_or_none(id=user_id, status=UserStatus.ACTIVE)
    if user is None:
        logger.info("Rejected bearer token: user %s missing or disabled", user_id)
        raise Unauthorized(UNAUTHORIZED_MESSAGE)

    resolved = (Identity(user_id=user.id, email=user.email, role=user.role.value), user)
    request.state.identity = resolved
    return resolved


async def get_identity(
    request: Request,
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> Identity:
    """
    FastAPI dependency resolving the caller from `Authorization: Bearer <token>`.

    Every failure (missing header, bad token, unknown or disabled user) is the
    same 401. The result is cached on `request.state` for the rest of the request.
    """
    identity, _ = await _resolve(request, authorization, services)
    return identity


async def get_optional_identity(
    request: Request,
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> Identity | None:
    """Like get_identity, but anonymous callers get None instead of a 401."""
    try:
        identity, _ = await _resolve(request, authorization, services)
    except Unauthorized:
        return None
    return identity


async def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> User:
    _, user = await _resolve(request, authorization, services)
    return user


async def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_admin:
        raise Forbidden("Admin access required")
    return identity
