"""
Request-level security helpers
"""
from typing import Dict

from fastapi import Request

REDACT_HEADERS = ("authorization", "x-api-key")


def get_client_ip(request: Request, trust_proxy: bool = False) -> str:
    """Extract client IP from request, handling X-Forwarded-For if trusted"""
    if trust_proxy:
        xff = request.headers.get("x-forwarded-for")
        if xff:
            return xff.split(",")[0].strip()
    return request.client.host if request.client else "127.0.0.1"


def redact_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """Copy of headers with credentials masked, safe to log"""
    return {k: ("[REDACTED]" if k.lower() in REDACT_HEADERS else v) for k, v in headers.items()}
