"""Conversion of uploaded files into inline chat attachments.

Images are sent as base64 data URLs; PDFs are sent as documents the provider
parses natively, or optionally as one image per page for scanned files.
"""

import asyncio
import base64
import logging
import mimetypes
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from src.models import FileData, FilePart, ImagePart, ImageURL
from src.models.schemas import AttachmentKind
from src.parsing.pdf_parser import (
    MAX_FILE_SIZE,
    PDFParseError,
    count_pages,
    extract_page_images,
)

logger = logging.getLogger(__name__)

IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})
DOCUMENT_TYPES = frozenset({"application/pdf"})


class AttachmentError(Exception):
    """Raised when an uploaded file cannot be turned into an attachment."""

    pass


class UnsupportedFileError(AttachmentError):
    """Raised for file types the model cannot read."""

    pass


class Attachment(BaseModel):
    """An encoded file ready to be attached to one user message.

    Attributes:
        name: Display name (original filename, or filename + page).
        kind: Image or document.
        media_type: MIME type of the payload.
        data: Base64-encoded file content.
        size: Size of the original bytes.
        pages: Page count for documents.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    kind: AttachmentKind
    media_type: str
    data: str = Field(..., repr=False)
    size: int = Field(ge=0)
    pages: int | None = None

    @property
    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.data}"

    @property
    def size_label(self) -> str:
        return format_file_size(self.size)

    def to_content_part(self) -> ImagePart | FilePart:
        """Represent the attachment as a message content part."""
        if self.kind is AttachmentKind.IMAGE:
            return ImagePart(image_url=ImageURL(url=self.data_url))
        return FilePart(file=FileData(filename=self.name, file_data=self.data_url))


def format_file_size(size: int) -> str:
    """Format a byte count for display (e.g. ``2.4 MB``)."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def classify_file(name: str, media_type: str | None = None) -> tuple[AttachmentKind, str]:
    """Decide whether a file is sent as an image or a document.

    Args:
        name: Filename, used to guess the type when media_type is missing.
        media_type: MIME type reported by the browser, if any.

    Returns:
        Tuple of attachment kind and normalized MIME type.

    Raises:
        UnsupportedFileError: If the type is neither a supported image nor a PDF.
    """
    resolved = (media_type or "").split(";")[0].strip().lower()
    if not resolved or resolved == "application/octet-stream":
        resolved = (mimetypes.guess_type(name)[0] or "").lower()
    if resolved == "image/jpg":
        resolved = "image/jpeg"

    if resolved in IMAGE_TYPES:
        return AttachmentKind.IMAGE, resolved
    if resolved in DOCUMENT_TYPES:
        return AttachmentKind.DOCUMENT, resolved
    raise UnsupportedFileError(
        f"Unsupported file type for {name}: use JPEG, PNG, GIF, WebP images or PDF documents"
    )


def _encode(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")


def _convert(
    name: str,
    content: bytes,
    media_type: str | None,
    rasterize_pages: bool,
) -> list[Attachment]:
    """Blocking conversion of one file; runs in a worker thread."""
    if not content:
        raise AttachmentError(f"{name} is empty")
    if len(content) > MAX_FILE_SIZE:
        raise AttachmentError(
            f"{name} ({format_file_size(len(content))}) exceeds maximum allowed (10MB)"
        )

    kind, resolved = classify_file(name, media_type)
    if kind is AttachmentKind.IMAGE:
        return [
            Attachment(name=name, kind=kind, media_type=resolved, data=_encode(content), size=len(content))
        ]

    try:
        pages = count_pages(content)
    except PDFParseError as e:
        raise AttachmentError(f"{name}: {e}") from e

    if rasterize_pages:
        try:
            page_images = extract_page_images(content)
        except PDFParseError as e:
            logger.info(f"Sending {name} as a document, page conversion not possible: {e}")
        else:
            return [
                Attachment(
                    name=f"{name} (page {image.page})",
                    kind=AttachmentKind.IMAGE,
                    media_type=image.media_type,
                    data=_encode(image.data),
                    size=len(image.data),
                )
                for image in page_images
            ]

    return [
        Attachment(
            name=name,
            kind=AttachmentKind.DOCUMENT,
            media_type=resolved,
            data=_encode(content),
            size=len(content),
            pages=pages,
        )
    ]


async def encode_attachment(
    name: str,
    content: bytes,
    media_type: str | None = None,
    rasterize_pages: bool = False,
) -> list[Attachment]:
    """Encode one uploaded file without blocking the event loop.

    Args:
        name: Original filename.
        content: Raw file bytes.
        media_type: MIME type reported by the uploader.
        rasterize_pages: Send scanned PDFs as one image per page.

    Returns:
        One attachment, or one per page for converted PDFs.

    Raises:
        AttachmentError: If the file is empty, too large, unsupported or unreadable.
    """
    return await asyncio.to_thread(_convert, name, content, media_type, rasterize_pages)


async def encode_attachments(
    files: Iterable[tuple[str, bytes, str | None]],
    rasterize_pages: bool = False,
) -> list[Attachment]:
    """Encode several files concurrently, keeping upload order.

    Resolves only after every conversion has finished. The first failure is
    raised once all conversions have settled.

    Args:
        files: (name, content, media_type) tuples.
        rasterize_pages: Send scanned PDFs as one image per page.

    Returns:
        Flat list of attachments in upload order.
    """
    results = await asyncio.gather(
        *(
            encode_attachment(name, content, media_type, rasterize_pages)
            for name, content, media_type in files
        ),
        return_exceptions=True,
    )

    attachments: list[Attachment] = []
    for result in results:
        if isinstance(result, BaseException):
            raise result
        attachments.extend(result)
    return attachments
