# sunnah_audio/api/v1/routers/books.py
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from sunnah_audio.api.v1.deps import get_identity, get_services
from sunnah_audio.core.container import Services
from sunnah_audio.core.responses import success
from sunnah_audio.core.security import Identity
from sunnah_audio.schemas.content import BookCreateIn, BookOut, BookUpdateIn, FileOut
from sunnah_audio.services import content

router = APIRouter(prefix="/books", tags=["books"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_book(body: BookCreateIn, identity: Identity = Depends(get_identity)):
    book = await content.create_book(identity, body.scholar_id, body.name, body.description)
    return success(BookOut.from_model(book).model_dump(mode="json"), "Book created successfully")


@router.put("/{book_id}")
async def update_book(book_id: int, body: BookUpdateIn, identity: Identity = Depends(get_identity)):
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    book = await content.update_book(identity, book_id, changes)
    return success(BookOut.from_model(book).model_dump(mode="json"), "Book updated successfully")


@router.post("/{book_id}/upload", status_code=status.HTTP_201_CREATED)
async def upload_to_book(
    book_id: int,
    file: UploadFile = File(...),
    name: Optional[str] = Form(default=None),
    identity: Identity = Depends(get_identity),
    services: Services = Depends(get_services),
):
    """
    Upload one MP3 into a book (multipart field `file`, optional `name`).
    The caller needs write access to the book's scholar.
    """
    settings = services.settings
    f = await content.upload_file(
        identity,
        book_id,
        file,
        uploads_dir=settings.uploads_dir,
        max_bytes=settings.max_upload_bytes,
        display_name=name,
    )
    return success(FileOut.from_model(f).model_dump(mode="json"), "File uploaded successfully")
