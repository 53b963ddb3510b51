import logging
import sys

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from cartdesk.config.settings import settings
from cartdesk.database.engine import Base, engine
from cartdesk.database.models import AbandonedCheckout, CartRemark, MessageTemplate  # noqa: F401
from cartdesk.errors import NotFoundError, ShopifyAPIError, ShopifyConfigError, ValidationError
from cartdesk.middleware.request_logging import log_requests_middleware
from cartdesk.routes.cart_routes import router as cart_router
from cartdesk.routes.remark_routes import router as remark_router
from cartdesk.routes.template_routes import router as template_router
from cartdesk.utils.logger import get_logger


NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")


def _configure_logging() -> None:
    """Set up a structured, human-readable log format for the whole app.

    Format example::

        2026-03-10 10:33:19 | INFO     | cartdesk.services.sync_service:63 | Checkout sync complete — fetched=12 total_in_store=340
        2026-03-10 10:33:19 | INFO     | cartdesk.requests:30 | ← POST /api/abandoned-checkouts/sync status=200 duration_ms=812.4
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(log_level)
    # Avoid duplicate handlers if create_app() is called more than once (e.g. tests)
    if not root.handlers:
        root.addHandler(handler)
    else:
        for h in root.handlers:
            h.setFormatter(formatter)

    # Shopify HTTP traffic and SQL echo only show up in DEBUG mode
    if log_level > logging.DEBUG:
        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)


def _register_error_handlers(app: FastAPI) -> None:
    logger = get_logger(__name__)

    @app.exception_handler(ShopifyAPIError)
    async def shopify_api_error(request: Request, exc: ShopifyAPIError) -> JSONResponse:
        # Surface Shopify's own status and body; no retry
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.body})

    @app.exception_handler(ShopifyConfigError)
    async def shopify_config_error(request: Request, exc: ShopifyConfigError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_error(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(SQLAlchemyError)
    async def store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": str(exc)})


def create_app() -> FastAPI:
    _configure_logging()
    logger = get_logger(__name__)
    logger.info(
        "Starting Cart Desk — log_level=%s, db=%s, shop=%s",
        settings.log_level.upper(),
        settings.database_url,
        settings.shopify_shop or "(not set)",
    )

    app = FastAPI(title="Cart Desk", version="0.1.0")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables verified / created.")

    app.middleware("http")(log_requests_middleware)
    _register_error_handlers(app)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(cart_router)
    logger.info("Cart router mounted at /api.")

    app.include_router(remark_router)
    logger.info("Remark router mounted at /api.")

    app.include_router(template_router)
    logger.info("Template router mounted at /api/templates.")

    return app


app = create_app()
