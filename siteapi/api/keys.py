"""
API Key Management Endpoints (organization scoped, admin permission)
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.authenticator import AuthResult
from ..auth.deps import require_permission
from ..auth.keys import generate_api_key
from ..auth.scopes import Permission, RestrictedTo
from ..config import DEFAULT_RATE_LIMIT
from ..db import get_session
from ..models.apikey import ApiKey
from ..models.site import Site
from ..schemas.apikey import ApiKeyCreate, ApiKeyCreated, ApiKeyOut
from .responses import (
    calculate_pagination,
    created_response,
    forbidden_response,
    not_found_response,
    parse_pagination_params,
    success_response,
    validation_error_response,
)

logger = logging.getLogger(__name__)

router = APIRouter()

require_admin = require_permission(Permission.ADMIN)


@router.get("/api-keys")
async def list_keys(
    request: Request,
    auth: AuthResult = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """List the organization's API keys (hashes are never returned)"""
    page, per_page = parse_pagination_params(request.query_params)
    where = ApiKey.organization_id == auth.organization_id

    total = (await session.execute(select(func.count()).select_from(ApiKey).where(where))).scalar_one()
    rows = (
        await session.execute(
            select(ApiKey).where(where)
            .order_by(ApiKey.created_at.desc(), ApiKey.id)
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
    ).scalars().all()

    keys = [ApiKeyOut(**k.to_dict()).model_dump() for k in rows]
    return success_response(keys, calculate_pagination(total, page, per_page))


@router.post("/api-keys")
async def create_key(
    body: ApiKeyCreate,
    auth: AuthResult = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Create a key for the caller's organization; the raw key is returned once"""
    requested = {p.strip().lower() for p in body.permissions}
    invalid = sorted(requested - {m.value for m in Permission})
    if invalid:
        return validation_error_response("Invalid permissions", {"permissions": invalid})
    permissions = sorted(requested) or [Permission.READ.value]

    allowed_sites = sorted(set(body.allowed_sites or [])) or None
    if allowed_sites:
        owned = set((
            await session.execute(
                select(Site.id).where(Site.organization_id == auth.organization_id, Site.id.in_(allowed_sites))
            )
        ).scalars().all())
        unknown = [s for s in allowed_sites if s not in owned]
        if unknown:
            return validation_error_response("Unknown sites in allowed_sites", {"allowed_sites": unknown})

    # A site-restricted key can't mint a key that reaches further than itself
    if isinstance(auth.site_scope, RestrictedTo):
        if not allowed_sites or not set(allowed_sites) <= auth.site_scope.ids:
            return forbidden_response("allowed_sites must be within this key's own site access")

    raw_key, prefix, key_hash = generate_api_key()
    key = ApiKey(
        organization_id=auth.organization_id,
        name=body.name.strip(),
        description=body.description,
        key_prefix=prefix,
        key_hash=key_hash,
        permissions=permissions,
        allowed_sites=allowed_sites,
        rate_limit=body.rate_limit or DEFAULT_RATE_LIMIT,
        expires_at=body.expires_at,
        is_active=True,
    )
    session.add(key)
    await session.commit()
    await session.refresh(key)

    logger.info("api key created, key_id=%s org=%s by=%s", key.id, auth.organization_id, auth.api_key_id)
    return created_response(ApiKeyCreated(key=raw_key, api_key=ApiKeyOut(**key.to_dict())).model_dump())


@router.delete("/api-keys/{key_id}")
async def revoke_key(
    key_id: str,
    auth: AuthResult = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Revoke (soft delete) a key of the caller's organization"""
    result = await session.execute(
        update(ApiKey)
        .where(ApiKey.id == key_id, ApiKey.organization_id == auth.organization_id)
        .values(is_active=False)
    )
    await session.commit()
    if result.rowcount == 0:
        return not_found_response("API key")

    logger.info("api key revoked, key_id=%s org=%s by=%s", key_id, auth.organization_id, auth.api_key_id)
    return success_response({"id": key_id, "revoked": True})
