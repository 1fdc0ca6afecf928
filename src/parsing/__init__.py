"""File handling utilities for chat attachments.

Turns uploaded images and PDFs into inline attachments the model can read.

Responsibilities:
    - File-type classification (image, document, unsupported)
    - Size limits and human-readable size labels
    - PDF validation with pypdf
    - Optional per-page image extraction from scanned PDFs
    - Concurrent base64 encoding across files
"""

from src.parsing.attachments import (
    Attachment,
    AttachmentError,
    UnsupportedFileError,
    classify_file,
    encode_attachment,
    encode_attachments,
    format_file_size,
)
from src.parsing.pdf_parser import PDFParseError, extract_page_images, open_pdf

__all__ = [
    "Attachment",
    "AttachmentError",
    "PDFParseError",
    "UnsupportedFileError",
    "classify_file",
    "encode_attachment",
    "encode_attachments",
    "extract_page_images",
    "format_file_size",
    "open_pdf",
]
