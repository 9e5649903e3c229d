import structlog
import logging
import contextlib
import functools

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import HTTPException

from agrisync.auth import TokenManager
from agrisync.config import settings
from agrisync.database import SessionLocal, init_db, close_db
from agrisync.exceptions import AppError, app_error_handler, http_error_handler
from agrisync.middleware import LoggingMiddleware
from agrisync.routers.sync import router as sync_router
from agrisync.routers.admin import router as admin_router
from agrisync.services.api_client import OutsourceClient, login
from agrisync.services.scheduler import SchedulerGate, build_steps, start_scheduler, stop_scheduler

# ── Structured logging setup ──────────────────────────────────────────────────
structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)
logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)

log = structlog.get_logger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("app.starting", env=settings.ENVIRONMENT, version=settings.APP_VERSION)
    await init_db()

    http = httpx.AsyncClient(
        base_url=settings.OUTSOURCE_API_BASE_URL,
        timeout=settings.HTTP_TIMEOUT,
    )
    tokens = TokenManager(
        login=functools.partial(login, http, settings.API_USERNAME, settings.API_PASSWORD),
        refresh_buffer=settings.TOKEN_REFRESH_BUFFER_SECONDS,
        default_ttl=settings.TOKEN_DEFAULT_TTL_SECONDS,
        initial_token=settings.ACCESS_TOKEN or None,
    )
    outsource = OutsourceClient(
        http,
        tokens,
        max_retries=settings.RATE_LIMIT_MAX_RETRIES,
        default_retry_after=settings.RATE_LIMIT_DEFAULT_RETRY_AFTER,
    )
    gate = SchedulerGate(build_steps(SessionLocal, outsource))

    app.state.tokens = tokens
    app.state.outsource = outsource
    app.state.gate = gate

    start_scheduler(gate)
    log.info("app.ready")
    yield
    log.info("app.shutting_down")
    stop_scheduler()
    gate.cancel()
    await http.aclose()
    await close_db()
    log.info("app.stopped")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    lifespan=lifespan,
)

# ── Middleware (order matters, outermost first) ────────────────────────────────
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)

# ── Exception handlers ────────────────────────────────────────────────────────
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(sync_router)
app.include_router(admin_router)


def run() -> None:
    uvicorn.run("agrisync.main:app", host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
