# sunnah_audio/services/access_policy.py
"""
Who may write under a scholar, and who may download a scholar's files.

Write decisions, in order:
  1. admins are always allowed;
  2. granting/revoking access needs the admin or manager role;
  3. content writes need a ScholarAccess row for (caller, scholar);
  4. moving content to another scholar needs rule 3 for both scholars.
A denial raises Forbidden and is final.
"""
from enum import Enum

from sunnah_audio.core.errors import Forbidden
from sunnah_audio.core.security import Identity
from sunnah_audio.models.access import ScholarAccess
from sunnah_audio.models.user import Role, UserStatus

DOWNLOAD_POLICY_ACL_OR_SUBSCRIPTION = "acl_or_subscription"
DOWNLOAD_POLICY_ACL_ONLY = "acl_only"


class Operation(str, Enum):
    CREATE_BOOK = "create-book"
    UPDATE_BOOK = "update-book"
    UPLOAD_FILE = "upload-file"
    MOVE_FILE = "move-file"
    GRANT_ACCESS = "grant-access"
    REVOKE_ACCESS = "revoke-access"


ACL_MANAGEMENT = (Operation.GRANT_ACCESS, Operation.REVOKE_ACCESS)

_DENIALS = {
    Operation.CREATE_BOOK: "You don't have permission to create books for this scholar",
    Operation.UPDATE_BOOK: "You don't have permission to update this book",
    Operation.UPLOAD_FILE: "You don't have permission to upload to this scholar's content",
    Operation.MOVE_FILE: "You don't have permission to modify this file",
    Operation.GRANT_ACCESS: "Insufficient permissions to grant access",
    Operation.REVOKE_ACCESS: "Insufficient permissions to revoke access",
}

MOVE_DENIAL = "You don't have permission to move content to the specified scholar"


async def has_scholar_access(user_id: int, scholar_id: int) -> bool:
    # Disabled accounts never count, even if their ACL rows are still there.
    return await ScholarAccess.filter(
        user_id=user_id,
        scholar_id=scholar_id,
        user__status=UserStatus.ACTIVE,
    ).exists()


async def authorize(
    identity: Identity,
    operation: Operation,
    scholar_id: int | None = None,
    new_scholar_id: int | None = None,
) -> None:
    if identity.is_admin:
        return

    if operation in ACL_MANAGEMENT:
        if identity.role != Role.MANAGER:
            raise Forbidden(_DENIALS[operation])
        return

    if scholar_id is None or not await has_scholar_access(identity.user_id, scholar_id):
        raise Forbidden(_DENIALS[operation])

    if new_scholar_id is not None and new_scholar_id != scholar_id:
        if not await has_scholar_access(identity.user_id, new_scholar_id):
            raise Forbidden(MOVE_DENIAL)


async def can_download(
    identity: Identity,
    scholar_id: int,
    has_active_subscription: bool,
    policy: str = DOWNLOAD_POLICY_ACL_OR_SUBSCRIPTION,
) -> bool:
    if identity.is_admin:
        return True
    if await has_scholar_access(identity.user_id, scholar_id):
        return True
    if policy == DOWNLOAD_POLICY_ACL_ONLY:
        return False
    return has_active_subscription


async def accessible_scholars(user_id: int) -> list[dict]:
    rows = await ScholarAccess.filter(user_id=user_id, scholar__status="active").select_related("scholar")
    return [{"scholar_id": r.scholar_id, "scholar_name": r.scholar.name} for r in rows]
