import time

from fastapi import Request

from cartdesk.config.settings import settings
from cartdesk.utils.logger import get_logger

logger = get_logger("cartdesk.requests")


async def log_requests_middleware(request: Request, call_next):
    """Log method, path, status and duration for every request; bodies of writes at DEBUG."""
    started = time.perf_counter()

    if request.method in {"POST", "PUT", "PATCH", "DELETE"}:
        body = await request.body()
        if body:
            logger.debug(
                "→ %s %s body=%.*s",
                request.method,
                request.url.path,
                settings.request_log_body_limit,
                body.decode("utf-8", errors="replace"),
            )

    response = await call_next(request)

    elapsed_ms = (time.perf_counter() - started) * 1000
    log = logger.warning if response.status_code >= 400 else logger.info
    log(
        "← %s %s status=%d duration_ms=%.1f",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response
