# sunnah_audio/services/uploads.py
"""
Storing uploaded audio under the uploads directory.
"""
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError
from starlette.concurrency import run_in_threadpool

from sunnah_audio.core.errors import InternalFailure, ValidationFailed

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".mp3",)
CHUNK_SIZE = 1024 * 1024
UNKNOWN_DURATION = "00:00"


@dataclass(frozen=True)
class StoredUpload:
    location: str  # file name inside the uploads directory
    path: Path
    size: int
    uid: str
    content_type: str
    duration: str


def stored_name(original: str, uid: str) -> str:
    """`lecture one.mp3` -> `lecture_one_<uid>.mp3`"""
    p = Path(original)
    stem = "_".join(p.stem.split()) or "audio"
    return f"{stem}_{uid}{p.suffix.lower()}"


def format_duration(seconds: float) -> str:
    total = int(round(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def probe_duration(path: Path) -> str:
    """MP3 duration via pydub (needs ffmpeg); UNKNOWN_DURATION when it cannot be read."""
    try:
        segment = AudioSegment.from_file(str(path), format="mp3")
    except (CouldntDecodeError, OSError, IndexError, KeyError, ValueError) as e:
        logger.warning("Could not read duration of %s: %s", path.name, e)
        return UNKNOWN_DURATION
    return format_duration(segment.duration_seconds)


async def store_audio(upload: UploadFile, uploads_dir: str | Path, max_bytes: int) -> StoredUpload:
    """
    Write `upload` into `uploads_dir` under a collision-free name.

    Raises ValidationFailed for a missing/non-mp3 file or one larger than
    `max_bytes` (the partial file is removed) and InternalFailure when the
    disk write fails.
    """
    if upload is None or not upload.filename:
        raise ValidationFailed("No file uploaded")
    if Path(upload.filename).suffix.lower() not in ALLOWED_EXTENSIONS:
        raise ValidationFailed("Only MP3 files are allowed")

    root = Path(uploads_dir)
    uid = uuid.uuid4().hex[:5]
    name = stored_name(Path(upload.filename).name, uid)
    path = root / name

    size = 0
    try:
        root.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    break
                out.write(chunk)
    except OSError as e:
        path.unlink(missing_ok=True)
        raise InternalFailure("Failed to save uploaded file") from e

    if size > max_bytes:
        path.unlink(missing_ok=True)
        raise ValidationFailed(f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB")
    if size == 0:
        path.unlink(missing_ok=True)
        raise ValidationFailed("Uploaded file is empty")

    duration = await run_in_threadpool(probe_duration, path)
    logger.info("Stored upload %s (%d bytes, %s)", name, size, duration)
    return StoredUpload(
        location=name,
        path=path,
        size=size,
        uid=uid,
        content_type=upload.content_type or "audio/mpeg",
        duration=duration,
    )
