# siteapi/auth/authenticator.py
"""
API key authentication and site access validation.

Both checks are plain reads against the store, done fresh on every call.
Nothing here caches a lookup, so flipping api_keys.is_active is visible to
the very next request. Storage errors are not caught here; they propagate to
the route boundary and become INTERNAL_ERROR.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import API_KEY_MIN_LENGTH
from ..errors import ErrorCode
from ..models.apikey import ApiKey
from ..models.site import Site
from ..utils.crypto import tokens_match
from ..utils.timeutil import as_utc, utcnow
from .keys import extract_api_key, hash_api_key
from .scopes import Permission, PermissionSet, SiteScope, Unrestricted, site_scope_from_allowed_sites

log = logging.getLogger("siteapi.auth")

MISSING_KEY = "Missing API key"
INVALID_KEY = "Invalid or missing API key"
INVALID_KEY_FORMAT = "Invalid API key format"
KEY_EXPIRED = "API key has expired"
SITE_NOT_ACCESSIBLE = "Site not found or access denied"
SITE_NOT_ALLOWED = "Access to this site is not allowed"


@dataclass(frozen=True)
class AuthResult:
    success: bool
    api_key_id: Optional[str] = None
    organization_id: Optional[str] = None
    permissions: PermissionSet = field(default_factory=PermissionSet)
    site_scope: SiteScope = field(default_factory=Unrestricted)
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None

    @classmethod
    def failed(cls, message: str, code: ErrorCode = ErrorCode.UNAUTHORIZED) -> "AuthResult":
        return cls(success=False, error=message, error_code=code)


@dataclass(frozen=True)
class AccessResult:
    valid: bool
    error: Optional[str] = None


async def authenticate_api_request(
    headers: Mapping[str, str],
    session: AsyncSession,
    now: Optional[datetime] = None,
) -> AuthResult:
    """Resolve the presented API key to its organization, permissions and site scope"""
    token, header_error = extract_api_key(headers)
    if header_error:
        return AuthResult.failed(header_error)
    if not token:
        return AuthResult.failed(MISSING_KEY)
    if len(token) < API_KEY_MIN_LENGTH:
        return AuthResult.failed(INVALID_KEY_FORMAT)

    token_hash = hash_api_key(token)
    key = (
        await session.execute(
            select(ApiKey)
            .where(ApiKey.key_hash == token_hash, ApiKey.is_active == True)  # noqa: E712
            .limit(1)
        )
    ).scalar_one_or_none()

    if key is None or not tokens_match(key.key_hash, token_hash):
        log.warning("AUTH: key not found or inactive")
        return AuthResult.failed(INVALID_KEY)

    now = now or utcnow()
    expires_at = as_utc(key.expires_at)
    if expires_at is not None and expires_at < now:
        log.warning("AUTH: key expired, key_id=%s", key.id)
        return AuthResult.failed(KEY_EXPIRED)

    permissions = PermissionSet.parse(key.permissions)
    log.info("AUTH: key matched, key_id=%s, org=%s, permissions=%s",
             key.id, key.organization_id, permissions.names())
    return AuthResult(
        success=True,
        api_key_id=key.id,
        organization_id=key.organization_id,
        permissions=permissions,
        site_scope=site_scope_from_allowed_sites(key.allowed_sites),
    )


async def validate_site_access(auth: AuthResult, site_id: str, session: AsyncSession) -> AccessResult:
    """Check the authenticated key may operate on site_id"""
    if not auth.success or not auth.organization_id:
        return AccessResult(valid=False, error=auth.error or INVALID_KEY)
    if not site_id:
        return AccessResult(valid=False, error=SITE_NOT_ACCESSIBLE)

    org_id = (
        await session.execute(select(Site.organization_id).where(Site.id == site_id))
    ).scalar_one_or_none()

    # Same answer for "absent" and "someone else's" so site ids can't be probed
    if org_id is None or org_id != auth.organization_id:
        log.warning("AUTH: site access denied, key_id=%s site=%s", auth.api_key_id, site_id)
        return AccessResult(valid=False, error=SITE_NOT_ACCESSIBLE)

    if not auth.site_scope.allows(site_id):
        log.warning("AUTH: site outside key allow-list, key_id=%s site=%s", auth.api_key_id, site_id)
        return AccessResult(valid=False, error=SITE_NOT_ALLOWED)

    return AccessResult(valid=True)


def has_permission(auth: AuthResult, permission: Permission) -> bool:
    """Fail closed: a failed auth or an empty permission set grants nothing"""
    if not auth.success:
        return False
    return auth.permissions.allows(permission)
