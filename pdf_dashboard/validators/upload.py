import re

from loguru import logger

from pdf_dashboard.exceptions import ValidationError

PDF_SIGNATURE = b"%PDF"
MIN_PDF_BYTES = 50
GENERIC_BINARY_TYPE = "application/octet-stream"
DENIED_EXTENSIONS = (".txt", ".doc", ".docx", ".jpg", ".png", ".gif")
DEFAULT_FILENAME = "uploaded_file"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]")


def sanitize_filename(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name)


def normalize_filename(name: str | None) -> str:
    original = name or DEFAULT_FILENAME
    if not original.lower().endswith(".pdf"):
        original += ".pdf"
    return sanitize_filename(original)


def build_storage_key(name: str | None, timestamp_ms: int) -> str:
    return f"{timestamp_ms}_{normalize_filename(name)}"


def validate_pdf_type(filename: str | None, content_type: str | None) -> None:
    """Fail-open type check: only names on the denylist are refused."""
    lowered = (filename or "").lower()
    declared = (content_type or "").lower()
    if lowered.endswith(".pdf"):
        return
    if "pdf" in declared or declared == GENERIC_BINARY_TYPE:
        return
    if lowered.endswith(DENIED_EXTENSIONS):
        raise ValidationError("Only PDF files are allowed")


def validate_pdf_size(size: int, max_bytes: int) -> None:
    if size > max_bytes:
        raise ValidationError(f"File size must be less than {max_bytes // (1024 * 1024)}MB")
    if size == 0:
        raise ValidationError("File appears to be empty")


def inspect_pdf_structure(filename: str | None, data: bytes) -> list[str]:
    warnings: list[str] = []
    if data[:4] != PDF_SIGNATURE:
        warnings.append("missing PDF header")
    if len(data) < MIN_PDF_BYTES:
        warnings.append(f"very small ({len(data)} bytes)")
    for warning in warnings:
        logger.warning("PDF structure warning filename={} warning={}", filename, warning)
    return warnings
