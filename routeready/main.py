import logging
import os
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.middleware.cors import CORSMiddleware

# Load .env before settings are read (tests configure the environment themselves)
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from routeready.core.config import settings, validate_config
from routeready.core.database import create_all_tables, dispose_engine
from routeready.core.logging import configure_logging
from routeready.core.middleware.request_id import RequestIdMiddleware
from routeready.core.middleware.metrics import MetricsMiddleware
from routeready.core.middleware.ratelimit import RateLimitMiddleware
from routeready.core.ratelimit import build_rate_limit_config_from_env
from routeready.core.validation import validate_env
from routeready.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from routeready.api import admin, billing, calculator, health, metrics, trips, usage

configure_logging(settings.ENV)
validate_env()
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("routeready")
    logger.info("Starting Route Ready backend...")
    app.state.startup_time = time.time()
    create_all_tables()
    try:
        yield
    finally:
        logging.getLogger("routeready").info("Stopping Route Ready backend...")
        dispose_engine()


app = FastAPI(title="Route Ready", lifespan=lifespan)

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(RateLimitMiddleware, config=build_rate_limit_config_from_env(os.environ))
app.add_middleware(MetricsMiddleware)

# Error handlers
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-request-id", "X-Session-Id"],
)

app.include_router(health.router, tags=["health"])
app.include_router(metrics.router, tags=["metrics"])
app.include_router(calculator.router, tags=["calculator"])
app.include_router(trips.router, tags=["trips"])
app.include_router(usage.router, tags=["usage"])
app.include_router(billing.router, prefix="/api", tags=["billing"])
app.include_router(admin.router, tags=["admin"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("routeready.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
