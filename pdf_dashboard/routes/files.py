from fastapi import APIRouter, Depends

from pdf_dashboard.config import Settings
from pdf_dashboard.dependencies import get_settings, get_storage, get_viewer_widget
from pdf_dashboard.models.file import FileDiagnosis, FileListing, FileResponse
from pdf_dashboard.models.viewer import ViewerEvent, ViewerSession
from pdf_dashboard.services.resolver import diagnose_pdf, list_pdfs, resolve_pdf
from pdf_dashboard.services.storage import StorageBackend
from pdf_dashboard.services.viewer import ViewerHost, ViewerWidget, fallback_session, transition

router = APIRouter(tags=["files"])


@router.get("/files", response_model=FileListing)
async def list_files(
    storage: StorageBackend = Depends(get_storage),
    app_settings: Settings = Depends(get_settings),
) -> FileListing:
    return await list_pdfs(storage, limit=app_settings.list_page_size)


@router.get("/files/{identifier}", response_model=FileResponse)
async def get_file(
    identifier: str,
    storage: StorageBackend = Depends(get_storage),
    app_settings: Settings = Depends(get_settings),
) -> FileResponse:
    stored = await resolve_pdf(storage, identifier, limit=app_settings.resolve_scan_limit)
    return FileResponse(file=stored)


@router.get("/files/{identifier}/viewer", response_model=ViewerSession)
async def open_viewer(
    identifier: str,
    storage: StorageBackend = Depends(get_storage),
    app_settings: Settings = Depends(get_settings),
    widget: ViewerWidget | None = Depends(get_viewer_widget),
) -> ViewerSession:
    stored = await resolve_pdf(storage, identifier, limit=app_settings.resolve_scan_limit)
    host = ViewerHost(
        container=f"viewer-{stored.id}",
        widget=widget,
        incompatibility_tokens=app_settings.viewer_incompatibility_tokens,
    )
    try:
        return await host.open(stored.url, stored.name)
    finally:
        await host.close()


@router.post("/files/{identifier}/viewer/frame-error", response_model=ViewerSession)
async def report_frame_error(
    identifier: str,
    storage: StorageBackend = Depends(get_storage),
    app_settings: Settings = Depends(get_settings),
) -> ViewerSession:
    stored = await resolve_pdf(storage, identifier, limit=app_settings.resolve_scan_limit)
    return transition(fallback_session(stored.url, stored.name), ViewerEvent.FRAME_FAILED)


@router.get("/debug/files/{identifier}", response_model=FileDiagnosis)
async def debug_file(
    identifier: str,
    storage: StorageBackend = Depends(get_storage),
    app_settings: Settings = Depends(get_settings),
) -> FileDiagnosis:
    return await diagnose_pdf(storage, identifier, limit=app_settings.list_page_size)
