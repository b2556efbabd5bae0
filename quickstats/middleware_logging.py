import logging
import time
from typing import Callable
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# liveness checks hit these every few seconds
QUIET_PATHS = frozenset({"/", "/health"})

logger = logging.getLogger("quickstats.request")


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One line per request; relay routes at INFO, health checks at DEBUG."""

    async def dispatch(self, request: Request, call_next: Callable):
        start = time.perf_counter()
        client = request.client.host if request.client else "-"
        method = request.method
        path = request.url.path

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "client=%s method=%s path=%s status=500 duration_ms=%.2f UNHANDLED",
                client, method, path, (time.perf_counter() - start) * 1000.0,
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000.0
        level = logging.DEBUG if path in QUIET_PATHS else logging.INFO
        logger.log(
            level,
            "client=%s method=%s path=%s status=%s duration_ms=%.2f",
            client, method, path, response.status_code, duration_ms,
        )
        response.headers["X-Response-Time-Ms"] = f"{duration_ms:.2f}"
        return response


def register_request_logging(app: FastAPI) -> None:
    app.add_middleware(RequestLogMiddleware)
