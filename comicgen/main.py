from contextlib import asynccontextmanager
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from comicgen.api.routes.router import api_router
from comicgen.core.exceptions import ConfigurationError, EntityNotFoundError
from comicgen.core.gemini_factory import GeminiNotConfiguredError, get_shared_gemini_client
from comicgen.core.logging import configure_logging
from comicgen.core.metrics import get_metrics_payload
from comicgen.core.request_context import reset_request_id, set_request_id
from comicgen.core.settings import settings
from comicgen.db.base import Base
from comicgen.db.session import get_engine, init_engine
from comicgen.services.storage import SupabaseMediaStore


logger = logging.getLogger("comicgen")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level, settings.log_file)

    init_engine(settings.database_url)
    if settings.db_auto_create and settings.database_url.startswith("sqlite"):
        Base.metadata.create_all(bind=get_engine())

    try:
        app.state.gemini = get_shared_gemini_client()
    except GeminiNotConfiguredError as exc:
        logger.warning("gemini_not_configured reason=%s", exc)
        app.state.gemini = None

    if settings.storage_configured:
        app.state.media_store = SupabaseMediaStore.from_credentials(
            settings.supabase_url,
            settings.supabase_anon_key,
            settings.comic_storage_bucket,
        )
    else:
        logger.warning("storage_not_configured generated comics will not be saved")
        app.state.media_store = None

    yield


app = FastAPI(title="comicgen", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    token = set_request_id(request_id)
    start = time.perf_counter()
    try:
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.exception(
                "request_failed",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": duration_ms,
                },
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        request_logger = logger.debug if request.url.path in {"/health", "/metrics"} else logger.info
        request_logger(
            "request_complete",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        response.headers["x-request-id"] = request_id
        return response
    finally:
        reset_request_id(token)


def _error_response(request: Request, status_code: int, error: str, detail: object = None) -> JSONResponse:
    content: dict[str, object] = {
        "success": False,
        "error": error,
        "request_id": getattr(request.state, "request_id", None),
    }
    if detail is not None:
        content["detail"] = detail
    return JSONResponse(status_code=status_code, content=content)


def _format_validation_errors(exc: RequestValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        prefix = f"{'.'.join(loc)}: " if loc else ""
        messages.append(f"{prefix}{err.get('msg', 'invalid value')}")
    return messages


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = _format_validation_errors(exc)
    logger.info("request_invalid errors=%s", messages)
    return _error_response(request, 400, "; ".join(messages) or "Invalid request", messages)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return _error_response(request, 400, str(exc))


@app.exception_handler(KeyError)
async def key_error_handler(request: Request, exc: KeyError):
    return _error_response(request, 400, f"Missing or unknown field: {exc.args[0] if exc.args else exc}")


@app.exception_handler(EntityNotFoundError)
async def not_found_handler(request: Request, exc: EntityNotFoundError):
    return _error_response(request, 404, exc.detail)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("configuration_error error=%s", exc)
    return _error_response(request, 500, f"Server configuration error: {exc.detail}")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/metrics")
def metrics_endpoint():
    return PlainTextResponse(get_metrics_payload(), media_type="text/plain; version=0.0.4; charset=utf-8")


app.include_router(api_router)
