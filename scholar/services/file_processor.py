"""
File processor service: turns uploaded study material into provider content blocks.

Images and PDFs are sent to the model as-is. Text formats are decoded, and
Office documents (Word, PowerPoint, Excel) are converted to plain text since the
model cannot read them natively.
"""

import base64
import binascii
import io
from pathlib import Path

from docx import Document as WordDocument
from openpyxl import load_workbook
from pptx import Presentation

from scholar.core.exceptions import FileProcessingError
from scholar.core.logging_config import get_logger
from scholar.schemas.study import FileData

MAX_FILE_SIZE = 20 * 1024 * 1024  # 20 MB

IMAGE_MEDIA_TYPES = {"image/png", "image/jpeg", "image/gif", "image/webp"}
PDF_MEDIA_TYPE = "application/pdf"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PPTX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

TEXT_EXTENSIONS = {".txt", ".md", ".csv"}

logger = get_logger(__name__)


def strip_data_url(data: str) -> str:
    """Drop a ``data:<mime>;base64,`` prefix if present."""
    if data.startswith("data:") and "," in data:
        return data.split(",", 1)[1]
    return data


def decode_file(file: FileData) -> bytes:
    """Decode the base64 payload and enforce the size limit."""
    try:
        content = base64.b64decode(strip_data_url(file.data), validate=True)
    except (binascii.Error, ValueError):
        raise FileProcessingError(f"File {file.name} is not valid base64 data")

    if len(content) > MAX_FILE_SIZE:
        size_mb = len(content) / (1024 * 1024)
        logger.warning(f"File too large: {file.name} ({size_mb:.2f} MB)")
        raise FileProcessingError(
            f"File size exceeds maximum allowed size of {MAX_FILE_SIZE // (1024 * 1024)} MB"
        )
    return content


def extract_text_from_docx(file_content: bytes) -> str:
    """Extract text from Word document (.docx)."""
    try:
        doc = WordDocument(io.BytesIO(file_content))
        text_parts = [p.text for p in doc.paragraphs if p.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if row_text:
                    text_parts.append(" | ".join(row_text))
        return "\n\n".join(text_parts)
    except Exception as e:
        raise FileProcessingError(f"Failed to extract text from Word document: {str(e)}")


def extract_text_from_pptx(file_content: bytes) -> str:
    """Extract text from PowerPoint presentation (.pptx)."""
    try:
        prs = Presentation(io.BytesIO(file_content))
        text_parts = []
        for slide_num, slide in enumerate(prs.slides, 1):
            slide_text = [f"--- Slide {slide_num} ---"]
            for shape in slide.shapes:
                if hasattr(shape, "text") and shape.text.strip():
                    slide_text.append(shape.text)
            if len(slide_text) > 1:
                text_parts.append("\n".join(slide_text))
        return "\n\n".join(text_parts)
    except Exception as e:
        raise FileProcessingError(f"Failed to extract text from PowerPoint: {str(e)}")


def extract_text_from_xlsx(file_content: bytes) -> str:
    """Extract text from Excel spreadsheet (.xlsx)."""
    try:
        wb = load_workbook(io.BytesIO(file_content), data_only=True)
        text_parts = []
        for sheet_name in wb.sheetnames:
            sheet_text = [f"--- Sheet: {sheet_name} ---"]
            for row in wb[sheet_name].iter_rows(values_only=True):
                row_values = [str(cell) if cell is not None else "" for cell in row]
                if any(v.strip() for v in row_values):
                    sheet_text.append(" | ".join(row_values))
            if len(sheet_text) > 1:
                text_parts.append("\n".join(sheet_text))
        return "\n\n".join(text_parts)
    except Exception as e:
        raise FileProcessingError(f"Failed to extract text from Excel: {str(e)}")


def extract_text_from_text_file(file_content: bytes) -> str:
    """Decode plain text, trying common encodings."""
    for encoding in ["utf-8", "utf-16", "cp1252", "latin-1"]:
        try:
            return file_content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise FileProcessingError("Unable to decode text file with any supported encoding")


def _text_block(text: str, title: str) -> dict:
    return {
        "type": "document",
        "source": {"type": "text", "media_type": "text/plain", "data": text},
        "title": title,
    }


def to_content_block(file: FileData) -> dict:
    """
    Convert an uploaded file into a provider content block.

    Raises:
        FileProcessingError: If the file type is unsupported or unreadable
    """
    media_type = file.type.lower().split(";")[0].strip()
    ext = Path(file.name).suffix.lower()
    logger.debug(f"Converting file: {file.name} | type={media_type or ext}")

    if media_type in IMAGE_MEDIA_TYPES:
        decode_file(file)
        return {
            "type": "image",
            "source": {"type": "base64", "media_type": media_type, "data": strip_data_url(file.data)},
        }

    if media_type == PDF_MEDIA_TYPE or ext == ".pdf":
        decode_file(file)
        return {
            "type": "document",
            "source": {"type": "base64", "media_type": PDF_MEDIA_TYPE, "data": strip_data_url(file.data)},
            "title": file.name,
        }

    content = decode_file(file)

    if media_type == DOCX_MEDIA_TYPE or ext == ".docx":
        return _text_block(extract_text_from_docx(content), file.name)
    if media_type == PPTX_MEDIA_TYPE or ext == ".pptx":
        return _text_block(extract_text_from_pptx(content), file.name)
    if media_type == XLSX_MEDIA_TYPE or ext == ".xlsx":
        return _text_block(extract_text_from_xlsx(content), file.name)
    if media_type.startswith("text/") or ext in TEXT_EXTENSIONS:
        return _text_block(extract_text_from_text_file(content), file.name)

    logger.warning(f"Unsupported file type: {media_type or ext} for file {file.name}")
    raise FileProcessingError(f"Unsupported file type: {file.type or ext or 'unknown'}")


def to_content_blocks(files: list[FileData]) -> list[dict]:
    return [to_content_block(f) for f in files]
