"""
FastAPI dependencies that every /api/v1 route composes:

    auth = Depends(require_api_key)            # 401 / 429
    auth = Depends(require_site_access)        # + 403 for the {site_id} path param
    Depends(require_permission(Permission.X))  # + 403 without the capability
"""
import logging

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_rate_limit_enabled, get_trust_proxy
from ..db import get_session
from ..errors import ApiError, ErrorCode
from ..security import get_client_ip
from ..services.ratelimit import check_limit, record_key_usage
from .authenticator import AuthResult, authenticate_api_request, has_permission, validate_site_access
from .scopes import Permission

log = logging.getLogger("siteapi.auth")


async def require_api_key(request: Request, session: AsyncSession = Depends(get_session)) -> AuthResult:
    auth = await authenticate_api_request(request.headers, session)
    if not auth.success:
        raise ApiError(auth.error_code or ErrorCode.UNAUTHORIZED, auth.error or "Invalid or missing API key")

    if get_rate_limit_enabled():
        decision = await check_limit(session, auth.api_key_id)
        if not decision.allowed:
            raise ApiError(
                ErrorCode.RATE_LIMIT_EXCEEDED,
                "Rate limit exceeded. Please wait before making more requests.",
                headers={"Retry-After": str(decision.retry_after)},
            )

    await record_key_usage(session, auth.api_key_id, get_client_ip(request, trust_proxy=get_trust_proxy()))

    # Stash for access logging downstream
    request.state.api_key_id = auth.api_key_id
    request.state.organization_id = auth.organization_id
    return auth


async def require_site_access(
    site_id: str,
    auth: AuthResult = Depends(require_api_key),
    session: AsyncSession = Depends(get_session),
) -> AuthResult:
    access = await validate_site_access(auth, site_id, session)
    if not access.valid:
        raise ApiError(ErrorCode.FORBIDDEN, access.error or "Access to this site is not allowed")
    return auth


def require_permission(*required: Permission):
    """All of the listed permissions must be granted (admin grants everything)"""

    async def dep(auth: AuthResult = Depends(require_api_key)) -> AuthResult:
        for permission in required:
            if not has_permission(auth, permission):
                log.warning("AUTH: permission denied, need=%s key_id=%s have=%s",
                            permission.value, auth.api_key_id, auth.permissions.names())
                raise ApiError(ErrorCode.FORBIDDEN, f"Missing required permission: {permission.value}")
        return auth

    return dep
