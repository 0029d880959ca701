# sunnah_audio/services/content.py
"""
Scholar-scoped writes: books, uploads and file edits.
Every write is authorized by AccessPolicy before anything is touched.
"""
import logging
from pathlib import Path

from fastapi import UploadFile
from tortoise.exceptions import IntegrityError

from sunnah_audio.core.errors import Conflict, NotFound
from sunnah_audio.core.security import Identity
from sunnah_audio.models.file import AudioFile
from sunnah_audio.models.scholar import Book, Scholar
from sunnah_audio.services import access_policy
from sunnah_audio.services.access_policy import Operation
from sunnah_audio.services.uploads import store_audio

logger = logging.getLogger(__name__)

DUPLICATE_BOOK = "A book with this name already exists for this scholar"


async def _require_scholar(scholar_id: int) -> Scholar:
    scholar = await Scholar.get_or_none(id=scholar_id)
    if scholar is None:
        raise NotFound("Scholar not found")
    return scholar


async def _book_name_taken(scholar_id: int, name: str, exclude_id: int | None = None) -> bool:
    qs = Book.filter(scholar_id=scholar_id, name=name)
    if exclude_id is not None:
        qs = qs.exclude(id=exclude_id)
    return await qs.exists()


async def create_book(identity: Identity, scholar_id: int, name: str, description: str | None = None) -> Book:
    await access_policy.authorize(identity, Operation.CREATE_BOOK, scholar_id)
    await _require_scholar(scholar_id)

    if await _book_name_taken(scholar_id, name):
        raise Conflict(DUPLICATE_BOOK)
    try:
        book = await Book.create(
            scholar_id=scholar_id,
            name=name,
            description=description,
            created_by_id=identity.user_id,
        )
    except IntegrityError as e:
        raise Conflict(DUPLICATE_BOOK) from e
    logger.info("User %s created book %s under scholar %s", identity.user_id, book.id, scholar_id)
    return book


async def update_book(identity: Identity, book_id: int, changes: dict) -> Book:
    """
    Apply `changes` to a book. A different `scholar_id` is a move and needs
    write access to both the current and the new scholar; the book's files
    follow it.
    """
    book = await Book.get_or_none(id=book_id)
    if book is None:
        raise NotFound("Book not found")

    new_scholar_id = changes.get("scholar_id")
    await access_policy.authorize(identity, Operation.UPDATE_BOOK, book.scholar_id, new_scholar_id)
    if new_scholar_id is not None and new_scholar_id != book.scholar_id:
        await _require_scholar(new_scholar_id)

    target_scholar = new_scholar_id if new_scholar_id is not None else book.scholar_id
    target_name = changes.get("name", book.name)
    if (target_scholar, target_name) != (book.scholar_id, book.name):
        if await _book_name_taken(target_scholar, target_name, exclude_id=book.id):
            raise Conflict(DUPLICATE_BOOK)

    moved = target_scholar != book.scholar_id
    for field, value in changes.items():
        setattr(book, field, value)
    try:
        await book.save()
    except IntegrityError as e:
        raise Conflict(DUPLICATE_BOOK) from e
    if moved:
        await AudioFile.filter(book_id=book.id).update(scholar_id=target_scholar)
    logger.info("User %s updated book %s", identity.user_id, book.id)
    return book


async def upload_file(
    identity: Identity,
    book_id: int,
    upload: UploadFile,
    uploads_dir: str | Path,
    max_bytes: int,
    display_name: str | None = None,
) -> AudioFile:
    book = await Book.get_or_none(id=book_id)
    if book is None:
        raise NotFound("Book not found")
    await access_policy.authorize(identity, Operation.UPLOAD_FILE, book.scholar_id)

    stored = await store_audio(upload, uploads_dir, max_bytes)
    try:
        f = await AudioFile.create(
            name=display_name or Path(upload.filename).name,
            location=stored.location,
            size=stored.size,
            content_type=stored.content_type,
            duration=stored.duration,
            uid=stored.uid,
            book_id=book.id,
            scholar_id=book.scholar_id,
            created_by_id=identity.user_id,
        )
    except Exception:
        stored.path.unlink(missing_ok=True)
        raise
    logger.info("User %s uploaded file %s to book %s", identity.user_id, f.id, book.id)
    return f


async def update_file(identity: Identity, file_id: int, changes: dict) -> AudioFile:
    """Rename a file and/or move it to another book. A cross-scholar move needs access to both scholars."""
    f = await AudioFile.get_or_none(id=file_id)
    if f is None:
        raise NotFound("File not found")

    new_book = None
    new_scholar_id = None
    if changes.get("book_id") is not None and changes["book_id"] != f.book_id:
        new_book = await Book.get_or_none(id=changes["book_id"])
        if new_book is None:
            raise NotFound("Book not found")
        new_scholar_id = new_book.scholar_id

    await access_policy.authorize(identity, Operation.MOVE_FILE, f.scholar_id, new_scholar_id)

    if changes.get("name"):
        f.name = changes["name"]
    if new_book is not None:
        f.book_id = new_book.id
        f.scholar_id = new_book.scholar_id
    await f.save()
    logger.info("User %s updated file %s", identity.user_id, f.id)
    return f
