# sunnah_audio/api/v1/routers/files.py
from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse

from sunnah_audio.api.v1.deps import get_identity, get_services
from sunnah_audio.core.container import Services
from sunnah_audio.core.responses import success
from sunnah_audio.core.security import Identity
from sunnah_audio.schemas.content import FileOut, FileUpdateIn
from sunnah_audio.services import content, downloads

router = APIRouter(prefix="/files", tags=["files"])


def _client_meta(request: Request) -> tuple[str | None, str | None]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


@router.get("/{file_id}/download")
async def download_file(
    file_id: int,
    request: Request,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    """
    Stream an audio file as an attachment.

    403 when the caller has neither scholar access nor (policy permitting) an
    active subscription; 404 when the file is unknown, inactive or missing on
    disk. Each successful call writes one download log row and bumps the
    file's download counter.
    """
    ip, user_agent = _client_meta(request)
    ticket = await downloads.authorize_download(
        identity,
        file_id,
        client_ip=ip,
        user_agent=user_agent,
        uploads_dir=services.settings.uploads_dir,
        policy=services.settings.download_policy,
    )
    return FileResponse(
        ticket.path,
        media_type=ticket.content_type,
        filename=ticket.filename,
        content_disposition_type="attachment",
    )


@router.post("/{file_id}/track-download")
async def track_download(
    file_id: int,
    request: Request,
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    ip, user_agent = _client_meta(request)
    await downloads.track_download(
        identity,
        file_id,
        client_ip=ip,
        user_agent=user_agent,
        policy=services.settings.download_policy,
    )
    return success(None, "Download tracked successfully")


@router.put("/{file_id}")
async def update_file(file_id: int, body: FileUpdateIn, identity: Identity = Depends(get_identity)):
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    f = await content.update_file(identity, file_id, changes)
    return success(FileOut.from_model(f).model_dump(mode="json"), "File updated successfully")
