import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.core.config import settings
from backend.app.core.logging_config import configure_logging
from backend.app.core.redis_client import close_redis, init_redis
from backend.app.db.session import engine
from backend.app.routers.error_handlers import register_error_handlers
import backend.app.routers.availability as availability
import backend.app.routers.health as health
import backend.app.routers.reservations as reservations


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting reservation API")
    await init_redis()
    try:
        yield
    finally:
        await close_redis()
        await engine.dispose()
        logger.info("Reservation API stopped")


app = FastAPI(
    title="Bistro Reservation API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)
register_error_handlers(app)

app.include_router(health.router, prefix=settings.API_PREFIX)
# Registered before the reservations router so /reservations/availability is not read as an id.
app.include_router(availability.router, prefix=settings.API_PREFIX)
app.include_router(reservations.router, prefix=settings.API_PREFIX)
