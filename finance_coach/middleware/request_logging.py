import json
import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("req")


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One JSON log line per request; echoes or assigns ``X-Request-ID``."""

    async def dispatch(self, request: Request, call_next):
        t0 = time.perf_counter()
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        payload = {
            "rid": rid,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": int((time.perf_counter() - t0) * 1000),
        }
        # query strings may carry amounts or dates, so only the path is logged
        log.info(json.dumps(payload, ensure_ascii=False))
        return response
