import base64
import io
from unittest.mock import patch

import pytest
from docx import Document
from openpyxl import Workbook

from scholar.core.exceptions import FileProcessingError
from scholar.schemas.study import FileData
from scholar.services.file_processor import (
    decode_file,
    strip_data_url,
    to_content_block,
)


def _b64(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")


def test_strip_data_url():
    assert strip_data_url("data:image/png;base64,QUJD") == "QUJD"
    assert strip_data_url("QUJD") == "QUJD"


def test_text_file_becomes_text_document():
    block = to_content_block(FileData(name="notes.md", type="", data=_b64(b"# Heading")))
    assert block["type"] == "document"
    assert block["source"] == {"type": "text", "media_type": "text/plain", "data": "# Heading"}
    assert block["title"] == "notes.md"


def test_image_passed_through():
    data = "data:image/jpeg;base64," + _b64(b"\xff\xd8\xff")
    block = to_content_block(FileData(name="photo.jpg", type="image/jpeg", data=data))
    assert block["type"] == "image"
    assert block["source"]["media_type"] == "image/jpeg"
    assert block["source"]["data"] == _b64(b"\xff\xd8\xff")


def test_pdf_sent_as_base64_document():
    block = to_content_block(FileData(name="lecture.pdf", type="application/pdf", data=_b64(b"%PDF-1.4")))
    assert block["type"] == "document"
    assert block["source"]["type"] == "base64"
    assert block["source"]["media_type"] == "application/pdf"


def test_docx_text_extracted():
    doc = Document()
    doc.add_paragraph("Mitochondria produce ATP")
    buffer = io.BytesIO()
    doc.save(buffer)

    block = to_content_block(FileData(name="bio.docx", type="", data=_b64(buffer.getvalue())))
    assert "Mitochondria produce ATP" in block["source"]["data"]


def test_xlsx_text_extracted():
    wb = Workbook()
    wb.active.append(["Element", "Symbol"])
    wb.active.append(["Gold", "Au"])
    buffer = io.BytesIO()
    wb.save(buffer)

    block = to_content_block(FileData(name="table.xlsx", type="", data=_b64(buffer.getvalue())))
    assert "Gold | Au" in block["source"]["data"]


def test_corrupt_docx_raises():
    with pytest.raises(FileProcessingError):
        to_content_block(FileData(name="broken.docx", type="", data=_b64(b"not a zip")))


def test_unsupported_type():
    with pytest.raises(FileProcessingError) as exc_info:
        to_content_block(FileData(name="clip.mp4", type="video/mp4", data=_b64(b"\x00\x01")))
    assert "video/mp4" in exc_info.value.message


def test_invalid_base64():
    with pytest.raises(FileProcessingError):
        decode_file(FileData(name="x.txt", type="text/plain", data="not base64!!"))


def test_size_limit():
    with patch("scholar.services.file_processor.MAX_FILE_SIZE", 4):
        with pytest.raises(FileProcessingError) as exc_info:
            decode_file(FileData(name="big.txt", type="text/plain", data=_b64(b"12345")))
    assert "exceeds" in exc_info.value.message
