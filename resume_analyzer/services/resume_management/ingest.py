"""Text extraction for uploaded resume documents.

Steps:
1. Read the upload once and enforce the size cap (``prepare_resume_bytes``).
2. Work out the document type from the content type, then the filename
   extension, then the file's magic bytes.
3. Extract plain text from PDF / DOCX / TXT.
4. Normalise characters, bullets and blank lines so the LLM gets clean input.
"""

from __future__ import annotations

import codecs
import io
import logging
import mimetypes
import os
import re
import unicodedata
import zipfile
from typing import Any, Iterable, List, Optional, Tuple

import docx
from pypdf import PdfReader
from pypdf.errors import PyPdfError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TXT_MIME = "text/plain"

# content type -> canonical extension
SUPPORTED_CONTENT_TYPES = {
    PDF_MIME: ".pdf",
    DOCX_MIME: ".docx",
    TXT_MIME: ".txt",
}
ALLOWED_EXTENSIONS = set(SUPPORTED_CONTENT_TYPES.values())

# Max size limit for uploads (MB)
DEFAULT_MAX_SIZE_MB = int(os.getenv("RESUME_MAX_SIZE_MB", 10))
# Scanned or image-only PDFs yield next to no text
MIN_PDF_TEXT_CHARS = 50


class ResumeParsingError(Exception):
    """Raised when an upload cannot be read or turned into text."""


class UnsupportedFileType(ResumeParsingError):
    """The document type is not one we can extract text from."""


class ExtractionFailed(ResumeParsingError):
    """The document type is supported but no usable text came out of it."""


def prepare_resume_bytes(
    file_storage: FileStorage,
    *,
    max_size_mb: Optional[int] = None,
) -> Tuple[bytes, str, str]:
    """
    Read the incoming upload stream exactly once, enforce a size cap, and
    return immutable bytes plus normalized filename and content type.

    Returns: (data, normalized_filename, content_type)
    """
    if not file_storage or not file_storage.filename:
        raise ResumeParsingError("No file supplied.")

    size_limit_mb = DEFAULT_MAX_SIZE_MB if max_size_mb is None else max_size_mb
    size_limit_bytes = size_limit_mb * 1024 * 1024

    normalized_name = secure_filename(file_storage.filename) or "resume"
    content_type = (
        file_storage.mimetype
        or mimetypes.guess_type(normalized_name)[0]
        or "application/octet-stream"
    )

    try:
        stream = file_storage.stream
        if hasattr(stream, "seek"):
            stream.seek(0)
        raw_bytes = stream.read() or b""
    except (OSError, ValueError) as exc:
        raise ResumeParsingError(f"Failed to read upload stream: {exc}") from exc

    if not raw_bytes:
        raise ResumeParsingError("Empty file.")
    if len(raw_bytes) > size_limit_bytes:
        raise ResumeParsingError(f"File exceeds size limit of {size_limit_mb}MB.")

    return raw_bytes, normalized_name, content_type


def extract_text(raw_bytes: bytes, content_type: Optional[str], filename: Optional[str] = None) -> str:
    """Return normalised plain text for a resume document.

    Raises ``UnsupportedFileType`` when the type cannot be handled and
    ``ExtractionFailed`` when parsing yields no usable text.
    """
    if not raw_bytes:
        raise ExtractionFailed("Empty file.")

    extension = resolve_extension(raw_bytes, content_type, filename)
    logger.debug(
        "Extracting text: content_type=%s filename=%s resolved=%s size=%d",
        content_type,
        filename,
        extension,
        len(raw_bytes),
    )
    if extension == ".pdf":
        return _extract_pdf(raw_bytes)
    if extension == ".docx":
        return _extract_docx(raw_bytes)
    if extension == ".txt":
        return _extract_txt(raw_bytes)
    raise UnsupportedFileType(
        f"Unsupported file type: {content_type or extension or 'unknown'}. "
        "Please upload a PDF, DOCX or TXT file."
    )


def resolve_extension(raw_bytes: bytes, content_type: Optional[str], filename: Optional[str]) -> Optional[str]:
    """Pick the document type: declared content type, then extension, then content."""
    mime = (content_type or "").split(";", 1)[0].strip().lower()
    if mime in SUPPORTED_CONTENT_TYPES:
        return SUPPORTED_CONTENT_TYPES[mime]

    declared = _detect_extension(filename) if filename else ""
    if declared in ALLOWED_EXTENSIONS:
        return declared

    detected = _detect_file_type_from_content(raw_bytes)
    if detected and mime and mime != "application/octet-stream":
        logger.warning(
            "Declared content type %s not supported; content looks like %s", mime, detected
        )
    return detected


def _detect_extension(filename: str) -> str:
    _, ext = os.path.splitext(filename.lower())
    return ext


def _detect_file_type_from_content(payload: bytes) -> Optional[str]:
    """Detect the file type from magic bytes."""
    if payload.startswith(b"%PDF-"):
        return ".pdf"
    if payload.startswith(b"PK\x03\x04"):
        try:
            with zipfile.ZipFile(io.BytesIO(payload)) as zip_file:
                if "word/document.xml" in zip_file.namelist():
                    return ".docx"
        except zipfile.BadZipFile:
            logger.debug("ZIP signature but unreadable archive")
        return ".zip"
    if payload.startswith(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"):  # OLE2
        return ".doc"

    # Plain text: decodes cleanly and has no NUL bytes
    if b"\x00" not in payload[:4096]:
        try:
            codecs.getincrementaldecoder("utf-8")().decode(payload[:4096], final=False)
        except UnicodeDecodeError:
            return None
        return ".txt"
    return None


def _extract_pdf(payload: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(payload))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, KeyError) as exc:
        logger.warning("PDF parsing failed: %s", exc)
        raise ExtractionFailed(
            "Failed to extract text from PDF. Try uploading DOCX instead."
        ) from exc

    logger.debug("PDF pages=%d", len(pages))
    text = _normalise_text("\n\n".join(pages))
    if len(text) <= MIN_PDF_TEXT_CHARS:
        raise ExtractionFailed(
            "Failed to extract text from PDF. Try uploading DOCX instead."
        )
    return text


def _extract_docx(payload: bytes) -> str:
    try:
        with zipfile.ZipFile(io.BytesIO(payload)) as zip_file:
            names = zip_file.namelist()
    except zipfile.BadZipFile as exc:
        logger.error("DOCX ZIP corrupted: %s", exc)
        raise ExtractionFailed(
            "The uploaded file appears to be corrupted. Please re-save the document and upload it again."
        ) from exc
    if "word/document.xml" not in names:
        raise ExtractionFailed("File is not a valid DOCX document.")

    document = docx.Document(io.BytesIO(payload))
    blocks: List[str] = [p.text.strip() for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        blocks.extend(_flatten_table(table))

    text = _normalise_text("\n".join(blocks))
    if not text:
        raise ExtractionFailed("No text extracted from DOCX.")
    return text


def _flatten_table(table: Any) -> Iterable[str]:
    """Flatten table rows into text so skills listed in tables are kept."""
    for row in table.rows:
        cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
        if cells:
            yield " | ".join(cells)


def _extract_txt(payload: bytes) -> str:
    text = _normalise_text(_decode_text(payload))
    if not text:
        raise ExtractionFailed("No text extracted from TXT.")
    return text


def _decode_text(payload: bytes) -> str:
    for encoding in ("utf-8-sig", "utf-8"):
        try:
            return payload.decode(encoding)
        except UnicodeDecodeError:
            continue
    logger.warning("Fell back to latin-1 decoding")
    return payload.decode("latin-1", errors="replace")


def _normalise_text(text: str) -> str:
    text = unicodedata.normalize("NFKC", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    text = _normalise_bullets(text)
    text = _collapse_blank_lines(text)
    return text.strip()


def _normalise_bullets(text: str) -> str:
    """Rewrite the common bullet glyphs as a ``- `` prefix."""
    bullet_chars = {"•", "◦", "▪", "‣", "●"}
    lines = []
    for line in text.split("\n"):
        stripped = line.lstrip()
        if stripped and stripped[0] in bullet_chars:
            line = "- " + stripped[1:].lstrip()
        lines.append(line)
    return "\n".join(lines)


def _collapse_blank_lines(text: str) -> str:
    return re.sub(r"\n{3,}", "\n\n", text)
