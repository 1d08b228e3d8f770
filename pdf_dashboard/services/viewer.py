from typing import Any, Protocol, Sequence

from loguru import logger

from pdf_dashboard.models.viewer import ViewerAction, ViewerEvent, ViewerMode, ViewerSession, ViewerState

DEFAULT_INCOMPATIBILITY_TOKENS = ("incompatible", "not supported", "unsupported")


class ViewerWidget(Protocol):
    async def load(self, container: str, document: str, **options: Any) -> Any: ...

    async def unload(self, target: Any) -> None: ...


class InvalidViewerTransition(ValueError):
    pass


def transition(
    session: ViewerSession,
    event: ViewerEvent,
    reason: str | None = None,
    incompatible: bool = False,
) -> ViewerSession:
    """Return the snapshot that follows ``session`` after ``event``."""
    state = session.state
    if state == ViewerState.LOADING and event == ViewerEvent.WIDGET_LOADED:
        return session.model_copy(
            update={"state": ViewerState.VIEWER_ACTIVE, "mode": ViewerMode.EXTERNAL_WIDGET, "widget_available": True}
        )
    if state in (ViewerState.LOADING, ViewerState.FALLBACK_FRAME_ACTIVE) and event == ViewerEvent.WIDGET_FAILED:
        return session.model_copy(
            update={
                "state": ViewerState.FALLBACK_FRAME_ACTIVE,
                "mode": ViewerMode.EMBEDDED_FRAME,
                "fallback_reason": reason,
                "incompatible": incompatible,
            }
        )
    if state == ViewerState.FALLBACK_FRAME_ACTIVE and event == ViewerEvent.FRAME_FAILED:
        return session.model_copy(
            update={
                "state": ViewerState.FRAME_UNAVAILABLE,
                "mode": None,
                "actions": (ViewerAction.DOWNLOAD, ViewerAction.OPEN_IN_NEW_TAB),
            }
        )
    if event == ViewerEvent.TOGGLE:
        if state == ViewerState.VIEWER_ACTIVE:
            return session.model_copy(
                update={"state": ViewerState.FALLBACK_FRAME_ACTIVE, "mode": ViewerMode.EMBEDDED_FRAME}
            )
        if state == ViewerState.FALLBACK_FRAME_ACTIVE and session.widget_available:
            return session.model_copy(
                update={
                    "state": ViewerState.VIEWER_ACTIVE,
                    "mode": ViewerMode.EXTERNAL_WIDGET,
                    "fallback_reason": None,
                    "incompatible": False,
                }
            )
    raise InvalidViewerTransition(f"cannot apply {event.value} in state {state.value}")


def fallback_session(document_url: str, file_name: str, reason: str | None = None) -> ViewerSession:
    return transition(
        ViewerSession(document_url=document_url, file_name=file_name), ViewerEvent.WIDGET_FAILED, reason=reason
    )


class ViewerHost:
    """Binds one rendering widget to one container.

    The external widget is tried first; any failure to detect or load it
    drops to the embedded frame. A frame failure is terminal.
    """

    def __init__(
        self,
        container: str,
        widget: ViewerWidget | None = None,
        incompatibility_tokens: Sequence[str] = DEFAULT_INCOMPATIBILITY_TOKENS,
    ):
        self.container = container
        self.widget = widget
        self.incompatibility_tokens = tuple(token.lower() for token in incompatibility_tokens)
        self.session: ViewerSession | None = None
        self._attached = False

    def is_incompatible(self, message: str) -> bool:
        lowered = message.lower()
        return any(token in lowered for token in self.incompatibility_tokens)

    def _widget_ready(self) -> bool:
        return self.widget is not None and getattr(self.widget, "available", True)

    async def _load_widget(self, session: ViewerSession) -> ViewerSession:
        if not self._widget_ready():
            logger.info("Viewer widget unavailable container={} document={}", self.container, session.document_url)
            return transition(session, ViewerEvent.WIDGET_FAILED, reason="viewer widget unavailable")
        try:
            await self.widget.load(container=self.container, document=session.document_url)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            incompatible = self.is_incompatible(message)
            logger.warning(
                "Viewer widget failed container={} incompatible={} error={}",
                self.container,
                incompatible,
                message,
            )
            return transition(session, ViewerEvent.WIDGET_FAILED, reason=message, incompatible=incompatible)
        self._attached = True
        logger.info("Viewer widget active container={} document={}", self.container, session.document_url)
        return transition(session, ViewerEvent.WIDGET_LOADED)

    async def open(self, document_url: str, file_name: str) -> ViewerSession:
        await self.close()
        self.session = await self._load_widget(ViewerSession(document_url=document_url, file_name=file_name))
        return self.session

    async def toggle(self) -> ViewerSession:
        session = self._require_session()
        if session.state == ViewerState.VIEWER_ACTIVE:
            await self.close()
            self.session = transition(session, ViewerEvent.TOGGLE)
        elif session.state == ViewerState.FALLBACK_FRAME_ACTIVE and session.widget_available:
            reloaded = await self._load_widget(session.model_copy(update={"state": ViewerState.LOADING}))
            if reloaded.state == ViewerState.VIEWER_ACTIVE:
                self.session = reloaded
            else:
                self.session = reloaded.model_copy(update={"widget_available": False})
        else:
            self.session = transition(session, ViewerEvent.TOGGLE)
        return self.session

    async def frame_failed(self) -> ViewerSession:
        session = self._require_session()
        self.session = transition(session, ViewerEvent.FRAME_FAILED)
        logger.warning("Embedded frame failed container={} document={}", self.container, session.document_url)
        return self.session

    async def close(self) -> None:
        if self._attached and self.widget is not None:
            await self.widget.unload(self.container)
            logger.debug("Viewer widget unloaded container={}", self.container)
        self._attached = False

    def _require_session(self) -> ViewerSession:
        if self.session is None:
            raise InvalidViewerTransition("viewer has no open document")
        return self.session
