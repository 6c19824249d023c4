"""
Site endpoints
"""
import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.authenticator import AuthResult
from ..auth.deps import require_api_key, require_site_access
from ..db import get_session
from ..models.site import Site
from ..schemas.site import SiteDetail, SiteOut, WordPressTestResult
from ..services import wordpress
from ..utils.timeutil import utcnow
from .responses import (
    calculate_pagination,
    not_found_response,
    parse_pagination_params,
    success_response,
    validation_error_response,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_wordpress_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Outbound transport for WordPress calls; None means the real network"""
    return None


@router.get("/sites")
async def list_sites(
    request: Request,
    auth: AuthResult = Depends(require_api_key),
    session: AsyncSession = Depends(get_session),
):
    """List the sites this key can reach, newest first"""
    page, per_page = parse_pagination_params(request.query_params)
    offset = (page - 1) * per_page

    conditions = [Site.organization_id == auth.organization_id]
    restricted = auth.site_scope.site_ids()
    if restricted is not None:
        conditions.append(Site.id.in_(restricted))

    total = (await session.execute(select(func.count()).select_from(Site).where(*conditions))).scalar_one()
    rows = (
        await session.execute(
            select(Site).where(*conditions)
            .order_by(Site.created_at.desc(), Site.id)
            .offset(offset)
            .limit(per_page)
        )
    ).scalars().all()

    sites = [SiteOut(**s.to_dict()).model_dump() for s in rows]
    return success_response(sites, calculate_pagination(total, page, per_page))


@router.get("/sites/{site_id}")
async def get_site(
    site_id: str,
    auth: AuthResult = Depends(require_site_access),
    session: AsyncSession = Depends(get_session),
):
    site = await session.get(Site, site_id)
    if site is None:
        return not_found_response("Site")

    detail = SiteDetail(
        **site.to_dict(),
        settings=site.settings or {},
        integrations=wordpress.mask_integrations(site.integrations),
    )
    return success_response(detail.model_dump())


@router.get("/sites/{site_id}/wordpress/test")
async def wordpress_connection_test(
    site_id: str,
    auth: AuthResult = Depends(require_site_access),
    session: AsyncSession = Depends(get_session),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_wordpress_transport),
):
    """Ping the WordPress plugin and record the outcome on the site"""
    site = await session.get(Site, site_id)
    if site is None:
        return not_found_response("Site")

    integrations = dict(site.integrations or {})
    wp_config = wordpress.get_wordpress_config(integrations)
    if wp_config is None:
        return validation_error_response("WordPress integration is not configured")

    result = await wordpress.check_connection(wp_config["api_url"], wp_config["api_key"], transport=transport)
    tested_at = utcnow().isoformat()

    integrations["wordpress"] = {
        **wp_config,
        "connection_status": result.status,
        "last_connection_test": tested_at,
    }
    await session.execute(update(Site).where(Site.id == site_id).values(integrations=integrations))
    await session.commit()

    logger.info("wordpress connection test, site=%s status=%s", site_id, result.status)
    return success_response(WordPressTestResult(
        status=result.status,
        domain=wp_config.get("domain"),
        tested_at=tested_at,
        error=result.error,
    ).model_dump())
