"""CalcSync API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map CalcSyncError to structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup and disposed on shutdown via lifespan
    - Real-time subscribers are closed before the database goes away

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - realtime router included before calculations so /calculations/events is
      never captured by /calculations/{record_id}
    - Admin seeding is opt-in (ADMIN_USERNAME + ADMIN_PASSWORD) and idempotent
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from calcsync import __version__
from calcsync.api.error_handlers import register_error_handlers
from calcsync.api.routes import auth, calculations, health, history, realtime
from calcsync.config import Settings, get_settings
from calcsync.infrastructure import database
from calcsync.infrastructure.broadcast import broadcast_hub
from calcsync.infrastructure.observability import setup_logging
from calcsync.services.identity_service import IdentityService

logger = logging.getLogger(__name__)


async def seed_admin(settings: Settings) -> None:
    """Create or promote the configured admin account."""
    if not (settings.admin_username and settings.admin_password):
        return
    async with database.db_manager.session() as db:
        await IdentityService(db, settings).ensure_admin(
            settings.admin_username, settings.admin_password,
        )
    logger.info(f"Admin account '{settings.admin_username}' ensured")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    broadcast_hub.queue_size = settings.broadcast_queue_size
    await seed_admin(settings)
    logger.info("CalcSync API started")
    yield
    logger.info("CalcSync API shutting down")
    broadcast_hub.close_all()
    await database.close_db()


app = FastAPI(
    title="CalcSync API", version=__version__, lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(realtime.router)
app.include_router(calculations.router)
app.include_router(history.router)
