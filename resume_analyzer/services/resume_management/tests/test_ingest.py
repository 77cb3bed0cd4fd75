from __future__ import annotations

import io

import docx
import pytest
from pypdf import PdfWriter
from werkzeug.datastructures import FileStorage

from resume_analyzer.services.resume_management.ingest import (
    DOCX_MIME,
    PDF_MIME,
    ExtractionFailed,
    ResumeParsingError,
    UnsupportedFileType,
    extract_text,
    prepare_resume_bytes,
    resolve_extension,
)


def _sample_docx_bytes() -> bytes:
    document = docx.Document()
    document.add_paragraph("Jane Doe")
    document.add_paragraph("• Built payment APIs in Python")
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Skills"
    table.rows[0].cells[1].text = "Python, SQL"
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _blank_pdf_bytes() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def test_docx_text_includes_paragraphs_tables_and_bullets() -> None:
    text = extract_text(_sample_docx_bytes(), DOCX_MIME, "cv.docx")

    assert "Jane Doe" in text
    assert "- Built payment APIs in Python" in text
    assert "Skills | Python, SQL" in text


def test_plain_text_is_normalised() -> None:
    raw = "Jane Doe\r\n\r\n\r\n\r\n•   Led   a team of 5\n".encode("utf-8")
    assert extract_text(raw, "text/plain") == "Jane Doe\n\n- Led a team of 5"


def test_pdf_with_no_text_fails_extraction() -> None:
    with pytest.raises(ExtractionFailed, match="Try uploading DOCX instead"):
        extract_text(_blank_pdf_bytes(), PDF_MIME, "cv.pdf")


def test_corrupt_pdf_fails_extraction() -> None:
    with pytest.raises(ExtractionFailed):
        extract_text(b"%PDF-1.4 this is not really a pdf", PDF_MIME)


def test_corrupt_docx_fails_extraction() -> None:
    with pytest.raises(ExtractionFailed):
        extract_text(b"PK\x03\x04 truncated", DOCX_MIME)


def test_unknown_type_is_unsupported() -> None:
    with pytest.raises(UnsupportedFileType):
        extract_text(b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR", "image/png", "photo.png")


def test_legacy_doc_is_unsupported() -> None:
    ole = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64
    with pytest.raises(UnsupportedFileType):
        extract_text(ole, "application/msword", "cv.doc")


def test_extension_and_magic_bytes_back_up_content_type() -> None:
    assert resolve_extension(b"anything", "application/octet-stream", "cv.pdf") == ".pdf"
    assert resolve_extension(_sample_docx_bytes(), "application/octet-stream", None) == ".docx"
    assert resolve_extension(b"%PDF-1.7", None, None) == ".pdf"
    assert resolve_extension(b"hello", f"{PDF_MIME}; charset=binary", None) == ".pdf"


def test_parsing_errors_share_a_base_class() -> None:
    assert issubclass(UnsupportedFileType, ResumeParsingError)
    assert issubclass(ExtractionFailed, ResumeParsingError)


def test_prepare_resume_bytes_reads_once_and_normalises_name() -> None:
    upload = FileStorage(
        stream=io.BytesIO(b"resume body"),
        filename="../My CV (final).txt",
        content_type="text/plain",
    )
    data, name, content_type = prepare_resume_bytes(upload)

    assert data == b"resume body"
    assert name == "My_CV_final.txt"
    assert content_type == "text/plain"


def test_prepare_resume_bytes_enforces_limits() -> None:
    with pytest.raises(ResumeParsingError, match="Empty file"):
        prepare_resume_bytes(FileStorage(stream=io.BytesIO(b""), filename="cv.txt"))
    with pytest.raises(ResumeParsingError, match="size limit"):
        prepare_resume_bytes(
            FileStorage(stream=io.BytesIO(b"x" * (1024 * 1024 + 1)), filename="cv.txt"),
            max_size_mb=1,
        )
    with pytest.raises(ResumeParsingError, match="No file"):
        prepare_resume_bytes(FileStorage(stream=io.BytesIO(b"x"), filename=""))
