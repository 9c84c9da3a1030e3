import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load env from accessboard/.env
package_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(package_dir, ".env"))

from accessboard.api import entries, health  # noqa: E402
from accessboard.core.config import settings, validate_config  # noqa: E402
from accessboard.core.errors import (  # noqa: E402
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from accessboard.core.logging import configure_logging  # noqa: E402
from accessboard.core.middleware.ratelimit import RateLimitMiddleware  # noqa: E402
from accessboard.core.middleware.request_id import RequestIdMiddleware  # noqa: E402
from accessboard.core.middleware.tracing import TracingMiddleware  # noqa: E402
from accessboard.core.ratelimit import build_rate_limit_config_from_env  # noqa: E402
from accessboard.core.tracing import setup_tracing  # noqa: E402

configure_logging(settings.ENV)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))
setup_tracing(enabled=settings.OTEL_ENABLED)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("accessboard")
    logger.info("Starting accessboard...")
    try:
        yield
    finally:
        logging.getLogger("accessboard").info("Stopping accessboard...")


app = FastAPI(title="Accessboard - entry analytics", lifespan=lifespan)

# Middlewares (last added runs first)
app.add_middleware(RateLimitMiddleware, config=build_rate_limit_config_from_env(os.environ))
app.add_middleware(TracingMiddleware)
app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(entries.router)
app.include_router(health.root_router)
