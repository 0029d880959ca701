# sunnah_audio/services/accounts.py
"""
Account flows: registration, credential checks, password changes and resets,
deactivation, and the scholar-access grants that back AccessPolicy.
"""
import logging

from tortoise.exceptions import IntegrityError

from sunnah_audio.core.errors import (
    AppError,
    Conflict,
    NotFound,
    OtpInvalid,
    Unauthorized,
)
from sunnah_audio.core.mailer import Mailer
from sunnah_audio.core.otp_store import OtpOutcome, OtpStore, generate_otp
from sunnah_audio.core.security import (
    Identity,
    dummy_password_hash,
    hash_password_async,
    password_needs_rehash,
    verify_password_async,
)
from sunnah_audio.models.access import ScholarAccess
from sunnah_audio.models.scholar import Scholar
from sunnah_audio.models.user import Role, User, UserStatus
from sunnah_audio.services import access_policy

logger = logging.getLogger(__name__)

BAD_CREDENTIALS = "Email or password is incorrect"
BAD_CURRENT_PASSWORD = "The current password you provided is incorrect"
RESET_REQUESTED = "If the email exists, an OTP has been sent to your email address"


async def register(
    name: str,
    email: str,
    password: str,
    address: str | None = None,
    phone: str | None = None,
) -> User:
    if await User.filter(email=email).exists():
        raise Conflict("Email already registered")
    password_hash = await hash_password_async(password)
    try:
        user = await User.create(
            name=name,
            email=email,
            password_hash=password_hash,
            role=Role.USER,
            address=address,
            phone=phone,
        )
    except IntegrityError as e:
        raise Conflict("Email already registered") from e
    logger.info("Registered user %s (%s)", user.id, user.email)
    return user


async def authenticate(email: str, password: str) -> User:
    """
    Return the active user owning `email` if `password` matches.

    A hash verification runs even when the account is unknown or disabled,
    so the failure paths take the same time as a wrong password.
    """
    user = await User.get_or_none(email=email)
    if user is None or not user.is_active:
        await verify_password_async(password, dummy_password_hash())
        raise Unauthorized(BAD_CREDENTIALS)

    if not await verify_password_async(password, user.password_hash):
        raise Unauthorized(BAD_CREDENTIALS)

    if password_needs_rehash(user.password_hash):
        user.password_hash = await hash_password_async(password)
        await user.save(update_fields=["password_hash", "updated_at"])
    return user


async def update_profile(user: User, changes: dict) -> User:
    if changes:
        for field, value in changes.items():
            setattr(user, field, value)
        await user.save(update_fields=[*changes.keys(), "updated_at"])
    return user


async def change_password(user: User, current_password: str, new_password: str) -> None:
    if not await verify_password_async(current_password, user.password_hash):
        raise Unauthorized(BAD_CURRENT_PASSWORD)
    user.password_hash = await hash_password_async(new_password)
    await user.save(update_fields=["password_hash", "updated_at"])
    logger.info("User %s changed password", user.id)


async def request_password_reset(email: str, otp_store: OtpStore, mailer: Mailer) -> None:
    """
    Issue a reset code for `email`.

    The same work happens whether or not the account exists: a code is
    stored and an email is attempted against the supplied address.
    """
    code = generate_otp()
    await otp_store.put(email, code)
    await mailer.send_otp(email, code)
    logger.info("Password reset requested for %s", email)


async def reset_password(
    email: str,
    otp: str,
    new_password: str,
    otp_store: OtpStore,
    mailer: Mailer,
) -> None:
    """
    Consume the reset code for `email` and set `new_password`.

    Mismatch, expiry and unknown account all raise the same OtpInvalid. The
    code is deleted before the password is written, so it cannot be replayed.
    A failed confirmation email is logged and does not undo the change.
    """
    user = await User.get_or_none(email=email, status=UserStatus.ACTIVE)
    outcome = await otp_store.take(email, otp)
    if user is None or outcome is not OtpOutcome.ACCEPTED:
        logger.info("Rejected password reset for %s: %s", email,
                    "no account" if user is None else outcome.value)
        raise OtpInvalid()

    user.password_hash = await hash_password_async(new_password)
    await user.save(update_fields=["password_hash", "updated_at"])
    logger.info("Password reset completed for user %s", user.id)

    try:
        await mailer.send_reset_confirmation(email)
    except AppError as e:
        logger.warning("Reset confirmation to %s not sent: %s", email, e.message)


async def deactivate(user: User) -> None:
    user.status = UserStatus.DISABLED
    await user.save(update_fields=["status", "updated_at"])
    logger.info("User %s deactivated their account", user.id)


async def permissions(user: User) -> dict:
    if user.role == Role.ADMIN:
        scholars = await Scholar.filter(status="active").order_by("id")
        rows = [{"scholar_id": s.id, "scholar_name": s.name} for s in scholars]
    else:
        rows = await access_policy.accessible_scholars(user.id)
    can_manage = user.role in (Role.ADMIN, Role.MANAGER)
    return {
        "user_id": user.id,
        "role": user.role.value,
        "accessible_scholars": [
            {**row, "can_upload": True, "can_download": True, "can_manage": can_manage}
            for row in rows
        ],
    }


async def grant_access(identity: Identity, user_id: int, scholar_id: int) -> ScholarAccess:
    """Upsert the ACL row (user_id, scholar_id); re-granting only refreshes granted_by."""
    await access_policy.authorize(identity, access_policy.Operation.GRANT_ACCESS, scholar_id)

    if not await User.filter(id=user_id, status=UserStatus.ACTIVE).exists():
        raise NotFound("User not found")
    if not await Scholar.filter(id=scholar_id).exists():
        raise NotFound("Scholar not found")

    row = await ScholarAccess.get_or_none(user_id=user_id, scholar_id=scholar_id)
    if row is None:
        try:
            row = await ScholarAccess.create(
                user_id=user_id, scholar_id=scholar_id, granted_by_id=identity.user_id
            )
            logger.info("User %s granted user %s access to scholar %s",
                        identity.user_id, user_id, scholar_id)
            return row
        except IntegrityError:
            # concurrent grant of the same pair won the insert
            row = await ScholarAccess.get(user_id=user_id, scholar_id=scholar_id)

    row.granted_by_id = identity.user_id
    await row.save(update_fields=["granted_by_id", "updated_at"])
    return row


async def revoke_access(identity: Identity, user_id: int, scholar_id: int) -> None:
    await access_policy.authorize(identity, access_policy.Operation.REVOKE_ACCESS, scholar_id)
    deleted = await ScholarAccess.filter(user_id=user_id, scholar_id=scholar_id).delete()
    if not deleted:
        raise NotFound("Access grant not found")
    logger.info("User %s revoked user %s access to scholar %s", identity.user_id, user_id, scholar_id)


async def list_access() -> list[ScholarAccess]:
    return await ScholarAccess.all().order_by("id")
