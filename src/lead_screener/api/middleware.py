"""Request/response middleware."""
import time
import uuid

from fastapi import Request

from ..core.logging import logger


REQUEST_ID_HEADER = "X-Request-ID"


async def add_process_time_header(request: Request, call_next):
    """
    Tag each request with an id and report how long it took.

    The caller's X-Request-ID is reused when present. Responses carry the id
    and an X-Process-Time header in seconds.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
    started = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception as exc:
        logger.error(
            f"[{request_id}] {request.method} {request.url.path} raised after "
            f"{time.perf_counter() - started:.3f}s: {exc}"
        )
        raise

    elapsed = time.perf_counter() - started
    response.headers["X-Process-Time"] = f"{elapsed:.6f}"
    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info(f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} in {elapsed:.3f}s")
    return response
