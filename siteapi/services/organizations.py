"""
Organization / site / key provisioning used by scripts and fixtures.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.keys import generate_api_key
from ..auth.scopes import Permission
from ..config import DEFAULT_RATE_LIMIT
from ..models.apikey import ApiKey
from ..models.organization import Organization
from ..models.site import Site

logger = logging.getLogger(__name__)


async def get_or_create_organization(session: AsyncSession, name: str, slug: str) -> Organization:
    org = (await session.execute(select(Organization).where(Organization.slug == slug))).scalar_one_or_none()
    if org is None:
        org = Organization(name=name, slug=slug)
        session.add(org)
        await session.commit()
        await session.refresh(org)
        logger.info("organization created, id=%s slug=%s", org.id, slug)
    return org


async def create_site(session: AsyncSession, organization_id: str, name: str, slug: Optional[str] = None,
                      integrations: Optional[dict] = None) -> Site:
    site = Site(
        organization_id=organization_id,
        name=name,
        slug=slug or name.lower().replace(" ", "-"),
        integrations=integrations or {},
        settings={},
    )
    session.add(site)
    await session.commit()
    await session.refresh(site)
    return site


async def issue_api_key(
    session: AsyncSession,
    organization_id: str,
    name: str,
    permissions: Iterable[Permission] = (Permission.READ,),
    allowed_sites: Optional[Iterable[str]] = None,
    rate_limit: int = DEFAULT_RATE_LIMIT,
    expires_at: Optional[datetime] = None,
) -> Tuple[str, ApiKey]:
    """Create a key and return (raw key, row). Only the hash is stored."""
    raw_key, prefix, key_hash = generate_api_key()
    key = ApiKey(
        organization_id=organization_id,
        name=name,
        key_prefix=prefix,
        key_hash=key_hash,
        permissions=sorted(p.value for p in permissions),
        allowed_sites=sorted(allowed_sites) if allowed_sites else None,
        rate_limit=rate_limit,
        expires_at=expires_at,
        is_active=True,
    )
    session.add(key)
    await session.commit()
    await session.refresh(key)
    return raw_key, key
