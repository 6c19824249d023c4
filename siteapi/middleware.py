import logging
import random
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import http_log_config, trace_id_var

logger = logging.getLogger("siteapi.http")


class TracingMiddleware(BaseHTTPMiddleware):
    """Request tracing and structured access logging"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Generate or reuse trace ID
        trace_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = trace_id_var.set(trace_id)

        client_ip = request.client.host if request.client else "unknown"
        start_time = time.time()

        try:
            response = await call_next(request)
            latency_ms = round((time.time() - start_time) * 1000, 2)

            self._log_request(
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                latency_ms=latency_ms,
                client_ip=client_ip,
                organization_id=getattr(request.state, "organization_id", None),
                api_key_id=getattr(request.state, "api_key_id", None),
            )

            response.headers["X-Request-ID"] = trace_id
            return response

        except Exception as e:
            latency_ms = round((time.time() - start_time) * 1000, 2)
            logger.error("Request failed: %s", e, extra={
                "method": request.method,
                "path": request.url.path,
                "status": 500,
                "latency_ms": latency_ms,
                "client_ip": client_ip,
            })
            raise
        finally:
            trace_id_var.reset(token)

    def _log_request(self, method: str, path: str, status: int, latency_ms: float,
                     client_ip: str, organization_id=None, api_key_id=None):
        """Log HTTP request; errors always, successes sampled"""
        if path in http_log_config["exclude_paths"]:
            return

        extra = {
            "method": method,
            "path": path,
            "status": status,
            "latency_ms": latency_ms,
            "client_ip": client_ip,
            "organization_id": organization_id,
            "api_key_id": api_key_id,
        }

        if status >= 400:
            log_level = logging.ERROR if status >= 500 else logging.WARNING
            logger.log(log_level, "HTTP Request", extra=extra)
            return

        if random.random() > http_log_config["sample_rate"]:
            return

        logger.info("HTTP Request", extra=extra)
