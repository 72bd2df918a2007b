from __future__ import annotations

import logging
import sys
import time
import uuid
from typing import Any, Dict

import structlog
from fastapi import Request


def _add_log_level(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    event_dict["level"] = method_name
    return event_dict


def configure_logging(env: str = "development") -> None:
    """Configure structlog for readable console logs to stdout.

    Development gets colored output; staging and production get plain text
    so that log collectors don't see ANSI escapes.
    """
    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _add_log_level,
        timestamper,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    level = logging.DEBUG if env == "development" else logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=env == "development"),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


async def request_id_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Bind request_id (and the queried address, if any) to every log line of a request.

    Emits one ``request.completed`` event with status and latency when the
    handler returns, and echoes the id back in the ``x-request-id`` header.
    """
    started = time.perf_counter()

    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    context: Dict[str, Any] = {"request_id": request_id, "path": request.url.path}
    address = request.query_params.get("address")
    if address:
        context["address"] = address.lower()
    structlog.contextvars.bind_contextvars(**context)

    response = None
    try:
        response = await call_next(request)
    finally:
        structlog.get_logger("request").info(
            "request.completed",
            method=request.method,
            status=response.status_code if response is not None else 500,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        structlog.contextvars.clear_contextvars()

    response.headers["x-request-id"] = request_id
    return response
