"""
WordPress integration: connection test against the site's plugin endpoint.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..config import OUTBOUND_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

CONNECTED = "connected"
ERROR = "error"


@dataclass(frozen=True)
class ConnectionTest:
    status: str
    error: Optional[str] = None


def get_wordpress_config(integrations: Optional[dict]) -> Optional[dict]:
    """Return the wordpress block if it is enabled and complete"""
    wp = (integrations or {}).get("wordpress") or {}
    if not wp.get("enabled") or not wp.get("api_url") or not wp.get("api_key"):
        return None
    return wp


def _format_timeout(seconds: float) -> str:
    return f"{seconds:g}"


async def check_connection(
    api_url: str,
    api_key: str,
    timeout: float = OUTBOUND_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ConnectionTest:
    """GET <api_url>/test with the site's bearer key, bounded by a fixed timeout"""
    url = f"{api_url.rstrip('/')}/test"
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            r = await client.get(url, headers=headers)
    except httpx.TimeoutException:
        logger.warning("wordpress test timed out, url=%s", url)
        return ConnectionTest(ERROR, f"Connection timed out after {_format_timeout(timeout)} seconds")
    except httpx.HTTPError as e:
        logger.warning("wordpress test failed, url=%s error=%s", url, e)
        return ConnectionTest(ERROR, f"Connection failed: {e}" if str(e) else "Connection failed")

    if r.is_success:
        return ConnectionTest(CONNECTED)

    try:
        payload = r.json()
    except ValueError:
        payload = {}
    message = payload.get("message") if isinstance(payload, dict) else None
    return ConnectionTest(ERROR, message or f"HTTP {r.status_code}")


def mask_integrations(integrations: Optional[dict]) -> dict:
    """Copy of integrations with stored secrets removed, for API output"""
    masked = {}
    for name, cfg in (integrations or {}).items():
        if isinstance(cfg, dict):
            cfg = {k: ("********" if k == "api_key" and v else v) for k, v in cfg.items()}
        masked[name] = cfg
    return masked
