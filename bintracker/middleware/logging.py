"""
Bin Tracker — Request Logging Middleware
=========================================

What:  One access log line per HTTP request on `bintracker.access`.
How:   Times the downstream app, then logs method, path, status, duration,
       request ID and client. Bin requests also carry the bin id and, for
       uploads, the declared body size.
When:  Runs inside RequestIDMiddleware, so the request ID is already set.

Example line:
    POST /bin/A-12/photo 200 14.2ms [a1b2c3d4] bin=A-12 bytes=183422 from 10.0.0.7

Request bodies (notes, photo bytes) are never logged.
"""

import logging
import re
import time
from typing import Any, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from bintracker.middleware.request_id import request_id_var

logger = logging.getLogger("bintracker.access")

# Probed every few seconds by orchestrators; not worth a log line each
QUIET_PATHS = {"/", "/health"}

BIN_PATH = re.compile(r"^/(?:api/)?bin/(?P<bin_id>[^/]+)")


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


def _bin_id(path: str) -> Optional[str]:
    match = BIN_PATH.match(path)
    return match.group("bin_id") if match else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log keyed by request ID and bin id."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        fields: Dict[str, Any] = {
            "request_id": request_id_var.get(""),
            "method": request.method,
            "path": path,
            "status": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "client_ip": request.client.host if request.client else "unknown",
        }

        suffix = ""
        bin_id = _bin_id(path)
        if bin_id is not None:
            fields["bin_id"] = bin_id
            suffix += f" bin={bin_id}"
        if request.method == "POST" and request.headers.get("content-length"):
            fields["bytes"] = request.headers["content-length"]
            suffix += f" bytes={fields['bytes']}"

        logger.log(
            _level_for(response.status_code),
            "%s %s %d %.1fms [%s]%s from %s",
            fields["method"],
            path,
            fields["status"],
            duration_ms,
            fields["request_id"],
            suffix,
            fields["client_ip"],
            extra=fields,
        )
        return response
