"""Request logging middleware for the TaskLedger HTTP service."""

import json
import logging
import time
import uuid
from typing import Optional, Set

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from taskledger.core.utils import ifnone

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one event per request with method, path, status code and duration.

    Works with both structlog and stdlib loggers: structlog loggers receive the fields as key/value pairs, stdlib
    loggers receive them as a JSON message. Query strings, headers and bodies are never logged.

    Example:
        ```python
        service.app.add_middleware(
            RequestLoggingMiddleware,
            service_name="taskledger",
            add_request_id_header=True,
            logger=service.logger,
        )
        ```
    """

    default_ignored_paths = {"/favicon.ico", "/docs", "/openapi.json"}

    def __init__(
        self,
        app,
        service_name: str = "taskledger",
        log_metrics: bool = True,
        add_request_id_header: bool = True,
        logger=None,
        ignored_paths: Optional[Set[str]] = None,
    ):
        """Initialize the RequestLoggingMiddleware.

        Args:
            app: The ASGI application
            service_name: Value of the ``service`` field on every event
            log_metrics: Whether to include ``duration_ms`` in the event
            add_request_id_header: Whether to echo or generate an ``X-Request-ID`` response header
            logger: Logger to write to. Defaults to the ``taskledger.requests`` stdlib logger
            ignored_paths: Paths that are served but not logged
        """
        super().__init__(app)
        self.service_name = service_name
        self.log_metrics = log_metrics
        self.add_request_id_header = add_request_id_header
        self.logger = ifnone(logger, default=logging.getLogger("taskledger.requests"))
        self.ignored_paths = ifnone(ignored_paths, default=RequestLoggingMiddleware.default_ignored_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self._log(logging.ERROR, request, request_id, 500, start)
            raise

        if self.add_request_id_header:
            response.headers[REQUEST_ID_HEADER] = request_id
        level = logging.ERROR if response.status_code >= 500 else logging.INFO
        self._log(level, request, request_id, response.status_code, start)
        return response

    def _log(self, level: int, request: Request, request_id: str, status_code: int, start: float) -> None:
        path = request.url.path
        if path in self.ignored_paths:
            return
        fields = {
            "service": self.service_name,
            "method": request.method,
            "path": path,
            "status_code": status_code,
            "request_id": request_id,
        }
        if self.log_metrics:
            fields["duration_ms"] = round((time.perf_counter() - start) * 1000, 3)

        if isinstance(self.logger, (logging.Logger, logging.LoggerAdapter)):
            self.logger.log(level, json.dumps(fields))
        else:
            self.logger.log(level, "request", **fields)
