import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# Uvicorn nereden çalışırsa çalışsın .env proje kökünden yüklensin
_PROJ_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJ_ROOT / ".env")

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ownly_push.api.push import router as push_router
from ownly_push.core.config import VapidCredentials, settings
from ownly_push.core.database import init_db, ping_db
from ownly_push.core.errors import ConfigurationError, PushServiceError
from ownly_push.logging import setup_logging
from ownly_push.models import PushSubscription  # noqa: F401

setup_logging(level=settings.log_level.upper())
log = logging.getLogger("ownly_push")


def _cors_origins_list() -> list[str]:
    if not settings.cors_origins or settings.cors_origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in settings.cors_origins.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    app.state.vapid = None
    app.state.vapid_error = None
    try:
        app.state.vapid = VapidCredentials.from_settings(settings)
        log.info("VAPID keys loaded: yes (subject=%s)", app.state.vapid.subject)
    except ConfigurationError as e:
        app.state.vapid_error = e
        log.warning("VAPID keys loaded: NO (%s)", e.message)
    yield


app = FastAPI(
    title="Ownly Push API",
    description="Web Push delivery (aes128gcm + VAPID) for Ownly notifications",
    lifespan=lifespan,
)


def _error_response(request: Request, status_code: int, message: str, code: str) -> JSONResponse:
    rid = getattr(request.state, "request_id", None)
    body = {"error": {"message": message, "code": code}}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=status_code, content=body)


@app.exception_handler(PushServiceError)
def push_service_exception_handler(request: Request, exc: PushServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("Invocation failed (%s): %s", exc.code, exc.message)
    else:
        log.warning("Rejected request (%s): %s", exc.code, exc.message)
    return _error_response(request, exc.status_code, exc.message, exc.code)


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errs = exc.errors()
    log.warning("Request validation error: path=%s detail=%s", request.url.path, errs)
    msg = (errs[0].get("msg") if errs else None) or "Invalid request."
    return _error_response(request, 400, msg, "INVALID_REQUEST")


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    code = "UNAUTHORIZED" if exc.status_code == 401 else "HTTP_ERROR"
    response = _error_response(request, exc.status_code, detail, code)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled exception: path=%s %s", request.url.path, exc, exc_info=True)
    return _error_response(request, 500, "An unexpected error occurred", "INTERNAL_ERROR")


@app.middleware("http")
async def request_id_and_latency(request: Request, call_next):
    request.state.request_id = str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    latency_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request.state.request_id
    log.info(
        "request_id=%s method=%s path=%s status=%s latency_ms=%.2f",
        request.state.request_id,
        request.method,
        request.url.path,
        response.status_code,
        latency_ms,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(push_router)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "vapid_configured": getattr(app.state, "vapid", None) is not None,
        "database": "ok" if ping_db() else "error",
    }
