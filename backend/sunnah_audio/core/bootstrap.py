# sunnah_audio/core/bootstrap.py
"""
Bootstrap module for application initialization.
Creates a default admin user on first startup.
"""
import logging

from sunnah_audio.config import Settings
from sunnah_audio.core.security import hash_password_async
from sunnah_audio.models.user import Role, User

logger = logging.getLogger("uvicorn.error")


async def ensure_default_admin(settings: Settings) -> User | None:
    """
    If no admin exists, create one from ADMIN_NAME / ADMIN_EMAIL / ADMIN_PASSWORD.

    Nothing is created when ADMIN_PASSWORD is unset, to avoid shipping a
    default weak password. If the email already belongs to a regular account
    that account is left alone.
    """
    if await User.filter(role=Role.ADMIN).exists():
        return None

    if not settings.admin_password:
        logger.warning("[bootstrap] No admin present, but ADMIN_PASSWORD not set -> skip creating default admin.")
        return None

    email = settings.admin_email.strip().lower()
    if await User.filter(email=email).exists():
        logger.warning("[bootstrap] %s already registered as a non-admin -> skip creating default admin.", email)
        return None

    u = await User.create(
        name=settings.admin_name,
        email=email,
        password_hash=await hash_password_async(settings.admin_password),
        role=Role.ADMIN,
    )
    logger.warning("[bootstrap] Created default admin -> email=%s id=%s", u.email, u.id)
    return u
