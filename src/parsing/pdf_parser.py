"""PDF reading module using pypdf.

Validates uploaded PDFs and pulls per-page raster images out of scanned
documents so they can be sent to the model as images.
"""

import io
import logging
import mimetypes

from pydantic import BaseModel, ConfigDict, Field
from pypdf import PdfReader
from pypdf.errors import PdfReadError

logger = logging.getLogger(__name__)

# Constants
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
PDF_MAGIC_BYTES = b"%PDF"
PAGE_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})


class PDFPageImage(BaseModel):
    """Raster image covering one PDF page.

    Attributes:
        page: 1-based page number.
        name: Image name inside the PDF.
        media_type: MIME type of the image data.
        data: Raw image bytes.
    """

    model_config = ConfigDict(frozen=True)

    page: int = Field(ge=1)
    name: str
    media_type: str
    data: bytes


class PDFParseError(Exception):
    """Raised when PDF parsing fails."""

    pass


def _validate_pdf_bytes(file_content: bytes) -> None:
    """Validate PDF file content before parsing.

    Args:
        file_content: Raw bytes of the PDF file.

    Raises:
        PDFParseError: If validation fails.
    """
    if not file_content:
        raise PDFParseError("Empty file provided")

    if len(file_content) > MAX_FILE_SIZE:
        size_mb = len(file_content) / (1024 * 1024)
        raise PDFParseError(f"File size ({size_mb:.1f}MB) exceeds maximum allowed (10MB)")

    if not file_content.lstrip()[:10].startswith(PDF_MAGIC_BYTES):
        raise PDFParseError("Invalid PDF: file does not start with PDF header")


def open_pdf(file_content: bytes) -> PdfReader:
    """Validate and open a PDF.

    Args:
        file_content: Raw bytes of the PDF file.

    Returns:
        PdfReader over the document.

    Raises:
        PDFParseError: If the file is invalid, too large, empty, corrupt,
            or has no pages.
    """
    _validate_pdf_bytes(file_content)

    try:
        reader = PdfReader(io.BytesIO(file_content))
        pages = len(reader.pages)
    except PdfReadError as e:
        raise PDFParseError(f"Corrupt or invalid PDF: {e}") from e
    except Exception as e:
        raise PDFParseError(f"Failed to read PDF: {e}") from e

    if pages == 0:
        raise PDFParseError("PDF contains no pages")

    return reader


def count_pages(file_content: bytes) -> int:
    """Return the number of pages in a PDF."""
    return len(open_pdf(file_content).pages)


def extract_page_images(file_content: bytes) -> list[PDFPageImage]:
    """Extract one raster image per page from a scanned PDF.

    The largest supported image on each page is taken as that page's image.

    Args:
        file_content: Raw bytes of the PDF file.

    Returns:
        One PDFPageImage per page, in page order.

    Raises:
        PDFParseError: If the PDF cannot be read or a page has no usable image.
    """
    reader = open_pdf(file_content)

    page_images: list[PDFPageImage] = []
    for number, page in enumerate(reader.pages, start=1):
        try:
            images = list(page.images)
        except Exception as e:
            raise PDFParseError(f"Failed to extract images from page {number}: {e}") from e

        candidates = []
        for image in images:
            media_type, _ = mimetypes.guess_type(image.name)
            if media_type in PAGE_IMAGE_TYPES:
                candidates.append((len(image.data), image.name, media_type, image.data))

        if not candidates:
            raise PDFParseError(f"Page {number} has no embedded image to convert")

        _, name, media_type, data = max(candidates, key=lambda c: c[0])
        page_images.append(
            PDFPageImage(page=number, name=name, media_type=media_type, data=data)
        )

    logger.info(f"Extracted {len(page_images)} page images from PDF")
    return page_images
