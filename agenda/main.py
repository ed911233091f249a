# agenda/main.py
from __future__ import annotations

# Load .env early so settings and os.getenv agree
from dotenv import load_dotenv
load_dotenv()

import sqlalchemy as sa
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.config import settings
from agenda.core.errors import SchedulingError, error_aggregator, log_error
from agenda.core.logging import LoggingMiddleware, get_logger, setup_logging
from agenda.db.session import AsyncSessionLocal, get_session
from agenda.services.appointment_store import AppointmentStore
from agenda.services.change_feed import build_change_feed
from agenda.services.scheduling import SchedulingService
from agenda.services.synchronizer import ChangeSynchronizer

# Routers
from agenda.api.routes.appointments import router as appointments_router
from agenda.api.routes.calendar import router as calendar_router
from agenda.api.routes.locations import router as locations_router
from agenda.api.routes.profiles import router as profiles_router

setup_logging(
    debug=settings.is_development,
    max_log_length=settings.MAX_LOG_LENGTH,
    level=settings.LOG_LEVEL,
)
logger = get_logger(__name__)

app = FastAPI(title="Agenda", description="Team scheduling and location conflict control")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(LoggingMiddleware(
    log_requests=settings.LOG_REQUESTS,
    log_responses=settings.LOG_RESPONSES,
    slow_threshold=settings.SLOW_REQUEST_THRESHOLD,
))

# Shared services; the synchronizer only starts with the app
app.state.feed = build_change_feed(settings.REDIS_URL, settings.CHANGE_FEED_PREFIX)
app.state.scheduler = SchedulingService(feed=app.state.feed)
app.state.store = AppointmentStore(AsyncSessionLocal)
app.state.synchronizer = None


# -------- Error mapping --------
@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    log_error(exc, {"endpoint": request.url.path, "user_id": request.headers.get("x-user-id")})
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


# -------- Health / readiness (public) --------
@app.get("/healthz", include_in_schema=False)
async def healthz():
    return {"ok": True}


@app.get("/readyz", include_in_schema=False)
async def readyz(db: AsyncSession = Depends(get_session)):
    await db.execute(sa.text("SELECT 1"))
    sync = app.state.synchronizer
    return {
        "db": "ok",
        "sync": "running" if sync is not None and sync.running else "off",
        "snapshot_version": app.state.store.version,
    }


@app.get("/errors", include_in_schema=False)
async def errors():
    """Aggregated error patterns seen recently."""
    return error_aggregator.get_error_summary()


# -------- Include routers --------
app.include_router(appointments_router)
app.include_router(calendar_router)
app.include_router(locations_router)
app.include_router(profiles_router)


# -------- Application startup/shutdown events --------
@app.on_event("startup")
async def startup_event():
    if not settings.ENABLE_SYNC or settings.is_testing:
        logger.info("synchronizer_disabled", app_env=settings.APP_ENV)
        return
    sync = ChangeSynchronizer(app.state.feed, app.state.store)
    sync.start()
    app.state.synchronizer = sync


@app.on_event("shutdown")
async def shutdown_event():
    sync = app.state.synchronizer
    if sync is not None:
        await sync.stop()
        app.state.synchronizer = None
    aclose = getattr(app.state.feed, "aclose", None)
    if aclose is not None:
        await aclose()
    logger.info("application_shutdown")
