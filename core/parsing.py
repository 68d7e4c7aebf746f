"""
Statement file reading.
Turns uploaded PDF, CSV or TXT bytes into the flat text the pipeline consumes.
"""
import io
from pathlib import Path
from typing import Optional

import pdfplumber

from core.exceptions import FileProcessingError
from core.logger import setup_logger

logger = setup_logger(__name__)

PDF_CONTENT_TYPES = {"application/pdf"}
TEXT_CONTENT_TYPES = {"text/csv", "text/plain", "application/vnd.ms-excel"}
TEXT_EXTENSIONS = {".csv", ".txt", ".ofx"}


def detect_kind(file_name: str, content_type: Optional[str] = None) -> str:
    """
    Decide how to read an uploaded file.

    Args:
        file_name: Original file name
        content_type: MIME type reported by the client, if any

    Returns:
        "pdf" or "text"

    Raises:
        FileProcessingError: If the file type is not supported
    """
    suffix = Path(file_name or "").suffix.lower()
    if content_type in PDF_CONTENT_TYPES or suffix == ".pdf":
        return "pdf"
    if content_type in TEXT_CONTENT_TYPES or suffix in TEXT_EXTENSIONS:
        return "text"
    raise FileProcessingError(
        f"Unsupported file type: '{content_type or 'unknown'}'. Please upload a PDF, CSV, or TXT file.",
        details={"file_name": file_name, "content_type": content_type}
    )


def extract_pdf_text(content: bytes) -> str:
    """
    Extract the text layer of a PDF, one blank line between pages.

    Args:
        content: Raw PDF bytes

    Returns:
        Concatenated page text

    Raises:
        FileProcessingError: If the PDF is protected, corrupt or image-only
    """
    try:
        pages = []
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            for page in pdf.pages:
                pages.append(page.extract_text() or "")
    except Exception as e:
        if "password" in repr(e).lower():
            raise FileProcessingError(
                "The PDF file is password-protected. Please provide an unprotected file.",
                details={"error": repr(e)}
            ) from e
        logger.error(f"Error processing PDF: {e}")
        raise FileProcessingError(
            "Failed to process the PDF file. It may be corrupted or in an unsupported format.",
            details={"error": str(e)}
        ) from e

    full_text = "".join(f"{page_text}\n\n" for page_text in pages)
    if not full_text.strip():
        raise FileProcessingError(
            "Could not extract any text from the PDF. It might be an image-based PDF without selectable text.",
            details={"page_count": len(pages)}
        )

    logger.info(f"Extracted {len(full_text)} characters from {len(pages)} PDF page(s)")
    return full_text


def decode_text(content: bytes) -> str:
    """Decode a text statement as UTF-8, falling back to cp1252."""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.warning("File is not valid UTF-8, decoding as cp1252")
        return content.decode("cp1252", errors="replace")


def read_statement_text(
    content: bytes,
    file_name: str,
    content_type: Optional[str] = None
) -> str:
    """
    Read an uploaded statement into plain text.

    Args:
        content: Uploaded file bytes
        file_name: Original file name
        content_type: MIME type reported by the client, if any

    Returns:
        Statement text

    Raises:
        FileProcessingError: If the file is empty, unsupported or unreadable
    """
    if not content:
        raise FileProcessingError(
            "Failed to read file content.",
            details={"file_name": file_name}
        )

    kind = detect_kind(file_name, content_type)
    if kind == "pdf":
        return extract_pdf_text(content)
    return decode_text(content)
