# siteapi/auth/keys.py
import secrets
from typing import Mapping, Optional, Tuple

from ..config import API_KEY_PREFIX
from ..utils.crypto import hash_token

BEARER_FORMAT_ERROR = "Invalid Authorization header format. Use: Bearer <api_key>"


def hash_api_key(key: str) -> str:
    """One-way hash stored in api_keys.key_hash"""
    return hash_token(key)


def generate_api_key() -> Tuple[str, str, str]:
    """Return (raw key, display prefix, hash). The raw key is never stored."""
    prefix = f"{API_KEY_PREFIX}-{secrets.token_hex(4)}"
    key = f"{prefix}-{secrets.token_hex(24)}"
    return key, prefix, hash_api_key(key)


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    # Starlette Headers are case-insensitive already; plain dicts in tests are not
    value = headers.get(name)
    if value is None:
        value = headers.get(name.lower())
    return value


def extract_api_key(headers: Mapping[str, str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Pull the credential out of the request headers.

    Supported (stable) transports:
      Authorization: Bearer <key>
      X-API-Key: <key>

    Returns (key, error). key is None with error None when no credential was sent.
    """
    auth = (_header(headers, "Authorization") or "").strip()
    if auth:
        parts = auth.split(None, 1)
        if len(parts) == 2 and parts[0].lower() == "bearer" and parts[1].strip():
            return parts[1].strip(), None
        return None, BEARER_FORMAT_ERROR

    x_key = (_header(headers, "X-API-Key") or "").strip()
    if x_key:
        return x_key, None

    return None, None
