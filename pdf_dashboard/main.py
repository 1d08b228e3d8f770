import sys
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from loguru import logger

from pdf_dashboard.config import Settings, settings
from pdf_dashboard.exceptions import AccessError, PdfDashboardError
from pdf_dashboard.routes.files import router as files_router
from pdf_dashboard.routes.health import router as health_router
from pdf_dashboard.routes.upload import router as upload_router
from pdf_dashboard.services.storage import PUBLIC_MOUNT, build_storage_backend


def _configure_logging(app_settings: Settings) -> None:
    logger.configure(patcher=lambda record: record["extra"].setdefault("request_id", "-"))
    logger.remove()
    logger.add(
        sys.stderr,
        level=app_settings.log_level.upper(),
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | req={extra[request_id]} | {name}:{function}:{line} | {message}",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_settings = settings
    _configure_logging(app_settings)
    app.state.settings = app_settings
    app.state.storage = build_storage_backend(app_settings)
    app.state.viewer_widget = None
    logger.bind(request_id="-").info(
        "Starting app app_name={} storage_backend={} bucket={} log_level={}",
        app_settings.app_name,
        app_settings.storage_backend,
        app_settings.bucket,
        app_settings.log_level,
    )
    yield
    logger.bind(request_id="-").info("Shutting down app app_name={}", app_settings.app_name)


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(upload_router)
app.include_router(files_router)


@app.exception_handler(PdfDashboardError)
async def handle_dashboard_error(request: Request, exc: PdfDashboardError) -> JSONResponse:
    content: dict[str, object] = {"error": exc.message}
    if isinstance(exc, AccessError):
        content["needsSetup"] = exc.needs_setup
    if exc.status_code >= 500:
        logger.error("Request error path={} status={} error={}", request.url.path, exc.status_code, exc.message)
    else:
        logger.warning("Request error path={} status={} error={}", request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def handle_malformed_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid')}"
        for error in exc.errors()
    )
    message = f"Malformed request: {problems}"
    logger.warning("Request error path={} status={} error={}", request.url.path, 400, message)
    return JSONResponse(status_code=400, content={"error": message})


@app.middleware("http")
async def add_request_context(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id", str(uuid4()))
    bound_logger = logger.bind(request_id=request_id)
    start = time.perf_counter()
    bound_logger.info("Request start method={} path={}", request.method, request.url.path)
    try:
        with logger.contextualize(request_id=request_id):
            response = await call_next(request)
    except Exception:
        bound_logger.exception("Request failed method={} path={}", request.method, request.url.path)
        raise
    duration_ms = (time.perf_counter() - start) * 1000
    bound_logger.info(
        "Request finish method={} path={} status={} duration_ms={:.2f}",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    response.headers["X-Request-ID"] = request_id
    return response


if settings.storage_backend == "local":
    app.mount(PUBLIC_MOUNT, StaticFiles(directory=str(settings.upload_path)), name="storage")
