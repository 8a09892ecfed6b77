# backend/app/main.py
from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.routing import APIRoute

from .core.config import is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .database import SessionLocal
from .routes.v1 import (
    admin as admin_v1,
    bookings as bookings_v1,
    checkout as checkout_v1,
    health as health_v1,
    prometheus as prometheus_v1,
    slots as slots_v1,
    vouchers as vouchers_v1,
    webhooks as webhooks_v1,
)
from .schemas.main_responses import RootResponse
from .services.weekly_reset_service import WeeklyResetScheduler

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")

    scheduler: WeeklyResetScheduler | None = None
    if settings.scheduler_enabled and not (settings.is_testing or is_running_tests()):
        scheduler = WeeklyResetScheduler(SessionLocal)
        scheduler.start()
    app.state.weekly_reset_scheduler = scheduler

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")
    if scheduler is not None:
        with contextlib.suppress(Exception):
            await asyncio.to_thread(scheduler.stop)


def _unique_operation_id(route: APIRoute) -> str:
    methods = "_".join(sorted(m.lower() for m in route.methods or []))
    path = route.path_format.replace("/", "_").replace("{", "").replace("}", "").strip("_")
    name = (route.name or "operation").lower().replace(" ", "_")
    return f"{methods}__{path}__{name}".strip("_")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
    generate_unique_id_function=_unique_operation_id,
)
# Register unified error envelope handlers
from .errors import register_error_handlers  # noqa: E402

register_error_handlers(app)

api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(slots_v1.router, prefix="/slots")
api_v1.include_router(admin_v1.router, prefix="/admin")
api_v1.include_router(checkout_v1.router, prefix="/checkout")
api_v1.include_router(vouchers_v1.router, prefix="/vouchers")
api_v1.include_router(webhooks_v1.router, prefix="/webhooks")

app.include_router(api_v1)
app.include_router(health_v1.router)
app.include_router(prometheus_v1.router)


@app.get("/", response_model=RootResponse)
def read_root() -> RootResponse:
    return RootResponse(
        message=f"Welcome to the {BRAND_NAME} API",
        version=API_VERSION,
        docs="/docs",
        environment=settings.environment,
    )
