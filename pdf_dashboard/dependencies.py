from fastapi import Request

from pdf_dashboard.config import Settings
from pdf_dashboard.services.storage import StorageBackend
from pdf_dashboard.services.viewer import ViewerWidget


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> StorageBackend:
    return request.app.state.storage


def get_viewer_widget(request: Request) -> ViewerWidget | None:
    return getattr(request.app.state, "viewer_widget", None)
