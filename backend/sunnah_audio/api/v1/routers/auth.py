# sunnah_audio/api/v1/routers/auth.py
import logging

from fastapi import APIRouter, Depends, status
from tortoise.exceptions import BaseORMException

from sunnah_audio.api.v1.deps import (
    get_current_user,
    get_identity,
    get_services,
    require_admin,
)
from sunnah_audio.core.container import Services
from sunnah_audio.core.errors import AppError
from sunnah_audio.core.responses import success
from sunnah_audio.core.security import Identity
from sunnah_audio.models.user import User
from sunnah_audio.schemas.auth import (
    AccessChangeIn,
    AccessRowOut,
    ChangePasswordIn,
    ForgotPasswordIn,
    LoginIn,
    PermissionsOut,
    ProfileUpdateIn,
    RegisterIn,
    ResetPasswordIn,
    UserOut,
)
from sunnah_audio.schemas.subscription import StatusOut
from sunnah_audio.services import accounts, subscriptions

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/auth", tags=["auth"])


def _user(user: User) -> dict:
    return UserOut.from_model(user).model_dump(mode="json")


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterIn):
    """
    Register a new user account.

    The email is lower-cased and must be unique (409 otherwise). The account
    always gets the `user` role, whatever the payload says.
    """
    user = await accounts.register(
        name=body.name,
        email=body.email,
        password=body.password,
        address=body.address,
        phone=body.phone,
    )
    return success(_user(user), "User registered successfully")


@router.post("/login")
async def login(body: LoginIn, services: Services = Depends(get_services)):
    """
    Exchange email + password for a bearer token.

    Returns:
        data: {user, token, expires_at, subscription_status}. The subscription
        summary is best-effort and is null if it cannot be computed.
    """
    user = await accounts.authenticate(body.email, body.password)
    token, expires_at = services.tokens.mint(user.id, user.email, user.role.value)

    try:
        subscription_status = StatusOut.from_status(
            await subscriptions.get_status(user.id)
        ).model_dump(mode="json")
    except (AppError, BaseORMException):
        logger.warning("Could not load subscription status for user %s at login", user.id)
        subscription_status = None

    return success(
        {
            "user": _user(user),
            "token": token,
            "expires_at": expires_at.isoformat(),
            "subscription_status": subscription_status,
        },
        "Login successful",
    )


@router.get("/profile")
async def get_profile(user: User = Depends(get_current_user)):
    return success(_user(user), "Profile retrieved successfully")


@router.put("/profile")
async def update_profile(body: ProfileUpdateIn, user: User = Depends(get_current_user)):
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    user = await accounts.update_profile(user, changes)
    return success(_user(user), "Profile updated successfully")


@router.post("/change-password")
async def change_password(body: ChangePasswordIn, user: User = Depends(get_current_user)):
    await accounts.change_password(user, body.current_password, body.new_password)
    return success(None, "Password changed successfully")


@router.post("/forgot-password")
async def forgot_password(body: ForgotPasswordIn, services: Services = Depends(get_services)):
    """
    Send a six-digit reset code to the given address.

    The response is identical whether or not an account exists. Only a
    failing mail relay (502) or cache (500) changes it.
    """
    await accounts.request_password_reset(body.email, services.otp_store, services.mailer)
    return success(None, accounts.RESET_REQUESTED)


@router.post("/reset-password")
async def reset_password(body: ResetPasswordIn, services: Services = Depends(get_services)):
    await accounts.reset_password(
        body.email, body.otp, body.new_password, services.otp_store, services.mailer
    )
    return success(None, "Password reset successfully. You can now log in with your new password.")


@router.delete("/deactivate")
async def deactivate(user: User = Depends(get_current_user)):
    await accounts.deactivate(user)
    return success(None, "Account deactivated successfully")


@router.get("/permissions")
async def permissions(user: User = Depends(get_current_user)):
    data = PermissionsOut(**await accounts.permissions(user)).model_dump(mode="json")
    return success(data, "Permissions retrieved successfully")


@router.post("/access/grant")
async def grant_access(body: AccessChangeIn, identity: Identity = Depends(get_identity)):
    row = await accounts.grant_access(identity, body.user_id, body.scholar_id)
    return success(AccessRowOut.from_model(row).model_dump(mode="json"), "Access granted successfully")


@router.post("/access/revoke")
async def revoke_access(body: AccessChangeIn, identity: Identity = Depends(get_identity)):
    await accounts.revoke_access(identity, body.user_id, body.scholar_id)
    return success(None, "Access revoked successfully")


@router.get("/access/all")
async def list_access(_: Identity = Depends(require_admin)):
    rows = await accounts.list_access()
    return success([AccessRowOut.from_model(r).model_dump(mode="json") for r in rows], "Access list retrieved")
