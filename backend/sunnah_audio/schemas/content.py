# sunnah_audio/schemas/content.py
"""
Pydantic schemas for the book and file write endpoints.
"""
import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

__all__ = ["BookCreateIn", "BookUpdateIn", "FileUpdateIn", "BookOut", "FileOut"]


class BookCreateIn(BaseModel):
    scholar_id: int
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None


class BookUpdateIn(BaseModel):
    """Only provided fields are changed. A new scholar_id moves the book."""
    scholar_id: Optional[int] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[str] = Field(default=None, pattern="^(active|inactive)$")


class FileUpdateIn(BaseModel):
    """Rename a file or move it to another book (and with it, possibly another scholar)."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    book_id: Optional[int] = None


class BookOut(BaseModel):
    id: int
    scholar_id: int
    name: str
    description: Optional[str] = None
    status: str
    created_at: dt.datetime
    updated_at: dt.datetime

    @classmethod
    def from_model(cls, book) -> "BookOut":
        return cls(
            id=book.id,
            scholar_id=book.scholar_id,
            name=book.name,
            description=book.description,
            status=book.status,
            created_at=book.created_at,
            updated_at=book.updated_at,
        )


class FileOut(BaseModel):
    id: int
    name: str
    size: int
    duration: str
    content_type: str
    book_id: int
    scholar_id: int
    downloads: int
    status: str
    created_at: dt.datetime

    @classmethod
    def from_model(cls, f) -> "FileOut":
        return cls(
            id=f.id,
            name=f.name,
            size=f.size,
            duration=f.duration,
            content_type=f.content_type,
            book_id=f.book_id,
            scholar_id=f.scholar_id,
            downloads=f.downloads,
            status=f.status,
            created_at=f.created_at,
        )
