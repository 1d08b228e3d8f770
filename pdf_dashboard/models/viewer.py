from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ViewerMode(str, Enum):
    EXTERNAL_WIDGET = "external-widget"
    EMBEDDED_FRAME = "embedded-frame"


class ViewerState(str, Enum):
    LOADING = "loading"
    VIEWER_ACTIVE = "viewer-active"
    FALLBACK_FRAME_ACTIVE = "fallback-frame-active"
    FRAME_UNAVAILABLE = "frame-unavailable"


class ViewerEvent(str, Enum):
    WIDGET_LOADED = "widget-loaded"
    WIDGET_FAILED = "widget-failed"
    FRAME_FAILED = "frame-failed"
    TOGGLE = "toggle"


class ViewerAction(str, Enum):
    DOWNLOAD = "download"
    OPEN_IN_NEW_TAB = "open-in-new-tab"


class ViewerSession(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    document_url: str = Field(alias="documentUrl")
    file_name: str = Field(alias="fileName")
    state: ViewerState = ViewerState.LOADING
    mode: ViewerMode | None = None
    widget_available: bool = Field(default=False, alias="widgetAvailable")
    fallback_reason: str | None = Field(default=None, alias="fallbackReason")
    incompatible: bool = False
    actions: tuple[ViewerAction, ...] = ()
