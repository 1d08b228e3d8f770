from fastapi import APIRouter, Depends, File, UploadFile
from loguru import logger

from pdf_dashboard.config import Settings
from pdf_dashboard.dependencies import get_settings, get_storage
from pdf_dashboard.exceptions import ValidationError
from pdf_dashboard.models.file import UploadResponse
from pdf_dashboard.services.storage import StorageBackend
from pdf_dashboard.services.uploader import save_pdf

router = APIRouter(prefix="/upload", tags=["upload"])


@router.post("", response_model=UploadResponse)
async def upload_pdf(
    file: UploadFile | None = File(None),
    storage: StorageBackend = Depends(get_storage),
    app_settings: Settings = Depends(get_settings),
) -> UploadResponse:
    if file is None:
        raise ValidationError("No file provided")
    logger.info("Upload request filename={} content_type={}", file.filename, file.content_type)

    # one byte past the limit is enough to reject before any storage call
    data = await file.read(app_settings.max_upload_bytes + 1)
    try:
        saved = await save_pdf(storage, data, file.filename, file.content_type, app_settings)
    except ValidationError as exc:
        logger.warning(
            "Upload rejected filename={} content_type={} error={}",
            file.filename,
            file.content_type,
            exc.message,
        )
        raise
    logger.info(
        "Upload stored file_id={} storage_key={} content_type={} size_bytes={}",
        saved.id,
        saved.name,
        saved.original_mime_type,
        saved.size,
    )
    return UploadResponse(file=saved)
