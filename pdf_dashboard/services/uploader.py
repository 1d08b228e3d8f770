import time
from datetime import datetime, timezone
from typing import Callable

from loguru import logger

from pdf_dashboard.config import Settings
from pdf_dashboard.exceptions import (
    AccessError,
    BackendError,
    StorageAccessError,
    StorageError,
    ValidationError,
    is_policy_error,
)
from pdf_dashboard.models.file import UploadedFile
from pdf_dashboard.services.storage import StorageBackend
from pdf_dashboard.validators.upload import (
    DEFAULT_FILENAME,
    build_storage_key,
    inspect_pdf_structure,
    validate_pdf_size,
    validate_pdf_type,
)


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


async def save_pdf(
    backend: StorageBackend,
    data: bytes | None,
    filename: str | None,
    content_type: str | None,
    app_settings: Settings,
    clock: Callable[[], int] = epoch_millis,
) -> UploadedFile:
    """Validate and persist one PDF.

    Every rejection happens before the backend is touched. The structural
    check only logs; the viewer decides whether the document is readable.
    """
    if data is None:
        raise ValidationError("No file provided")
    validate_pdf_type(filename, content_type)
    validate_pdf_size(len(data), app_settings.max_upload_bytes)
    inspect_pdf_structure(filename, data)

    storage_key = build_storage_key(filename, clock())
    logger.info(
        "Uploading file storage_key={} original={} size_bytes={}",
        storage_key,
        filename,
        len(data),
    )
    try:
        result = await backend.upload(
            storage_key,
            data,
            cache_control=app_settings.cache_control,
            overwrite=False,
            content_type=content_type,
        )
    except StorageAccessError as exc:
        logger.error("Upload denied storage_key={} error={}", storage_key, str(exc))
        if exc.policy or is_policy_error(str(exc)):
            raise AccessError("Permission denied. Please check storage bucket policies.") from exc
        raise AccessError(f"Storage access denied: {exc}") from exc
    except StorageError as exc:
        logger.error("Upload failed storage_key={} error={}", storage_key, str(exc))
        raise BackendError(f"Upload failed: {exc}") from exc

    return UploadedFile(
        id=result.id or storage_key,
        name=storage_key,
        url=backend.get_public_url(storage_key),
        uploaded_at=datetime.now(timezone.utc),
        size=len(data),
        original_name=filename or f"{DEFAULT_FILENAME}.pdf",
        path=result.path,
        original_mime_type=content_type or "unknown",
    )
