# sunnah_audio/services/downloads.py
"""
Download gateway: decide, meter, hand back what to stream.

The audit row and the counter increment are independent best-effort writes.
If either fails the failure is logged and the download still goes ahead.
"""
import logging
from dataclasses import dataclass
from pathlib import Path

from tortoise.exceptions import BaseORMException
from tortoise.expressions import F

from sunnah_audio.core.errors import Forbidden, NotFound
from sunnah_audio.core.security import Identity
from sunnah_audio.models.file import AudioFile, DownloadLog, DEFAULT_CONTENT_TYPE
from sunnah_audio.services import access_policy
from sunnah_audio.services.subscriptions import get_active_subscription

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DownloadTicket:
    file_id: int
    path: Path
    filename: str
    size: int
    content_type: str


def resolve_upload_path(uploads_dir: str | Path, location: str) -> Path:
    """Absolute path of a stored file; refuses anything outside the uploads directory."""
    root = Path(uploads_dir).resolve()
    path = (root / location).resolve()
    if root != path and root not in path.parents:
        raise NotFound("File not found")
    return path


async def log_download(
    user_id: int,
    file_id: int,
    subscription_id: int | None,
    client_ip: str | None,
    user_agent: str | None,
) -> None:
    try:
        await DownloadLog.create(
            user_id=user_id,
            subscription_id=subscription_id,
            file_id=file_id,
            download_ip=client_ip,
            user_agent=user_agent[:512] if user_agent else None,
        )
    except BaseORMException:
        logger.exception("Failed to log download of file %s by user %s", file_id, user_id)

    try:
        await AudioFile.filter(id=file_id).update(downloads=F("downloads") + 1)
    except BaseORMException:
        logger.exception("Failed to increment download counter for file %s", file_id)


async def authorize_download(
    identity: Identity,
    file_id: int,
    client_ip: str | None,
    user_agent: str | None,
    uploads_dir: str | Path,
    policy: str = access_policy.DOWNLOAD_POLICY_ACL_OR_SUBSCRIPTION,
) -> DownloadTicket:
    """
    Check that `identity` may download `file_id`, record the download and
    return the ticket the caller streams from.

    Raises NotFound for an unknown, inactive or missing-on-disk file and
    Forbidden when neither an ACL row nor (policy permitting) an active
    subscription covers the file's scholar. Nothing is recorded on failure.
    """
    f = await AudioFile.get_or_none(id=file_id, status="active")
    if f is None:
        raise NotFound("File not found")

    subscription = await get_active_subscription(identity.user_id)
    allowed = await access_policy.can_download(
        identity, f.scholar_id, has_active_subscription=subscription is not None, policy=policy
    )
    if not allowed:
        raise Forbidden("You don't have permission to download this file")

    path = resolve_upload_path(uploads_dir, f.location)
    if not path.is_file():
        logger.error("File %s missing on disk at %s", f.id, path)
        raise NotFound("File not found on disk")

    await log_download(
        identity.user_id,
        f.id,
        subscription.id if subscription else None,
        client_ip,
        user_agent,
    )
    logger.info("File %s downloaded by user %s", f.id, identity.user_id)

    return DownloadTicket(
        file_id=f.id,
        path=path,
        filename=f.name,
        size=f.size or path.stat().st_size,
        content_type=f.content_type or DEFAULT_CONTENT_TYPE,
    )


async def track_download(
    identity: Identity,
    file_id: int,
    client_ip: str | None,
    user_agent: str | None,
    policy: str = access_policy.DOWNLOAD_POLICY_ACL_OR_SUBSCRIPTION,
) -> None:
    """Metering without byte delivery, for clients that fetch the bytes elsewhere."""
    f = await AudioFile.get_or_none(id=file_id, status="active")
    if f is None:
        raise NotFound("File not found")

    subscription = await get_active_subscription(identity.user_id)
    if not await access_policy.can_download(
        identity, f.scholar_id, has_active_subscription=subscription is not None, policy=policy
    ):
        raise Forbidden("You don't have permission to download this file")

    await log_download(
        identity.user_id,
        f.id,
        subscription.id if subscription else None,
        client_ip,
        user_agent,
    )
