"""
Per-key hourly request budget and last-used bookkeeping.

The window lives on the api_keys row itself (requests_this_hour,
rate_limit_reset_at), so every worker sees the same counter, and every
change to it is a single conditional UPDATE.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import DEFAULT_RATE_LIMIT, RATE_LIMIT_RETRY_AFTER_SECONDS, RATE_LIMIT_WINDOW_SECONDS
from ..models.apikey import ApiKey
from ..utils.timeutil import as_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int = 0


async def check_limit(session: AsyncSession, api_key_id: str, now: Optional[datetime] = None) -> RateLimitDecision:
    """Count this request against the key's hourly budget.

    Both writes are conditional UPDATEs evaluated by the database. The first
    opens a fresh window when the old one has lapsed; otherwise the second
    takes one slot if any are left.
    """
    now = now or utcnow()

    opened = await session.execute(
        update(ApiKey)
        .where(
            ApiKey.id == api_key_id,
            or_(ApiKey.rate_limit_reset_at.is_(None), ApiKey.rate_limit_reset_at < now),
        )
        .values(requests_this_hour=1, rate_limit_reset_at=now + timedelta(seconds=RATE_LIMIT_WINDOW_SECONDS))
        .execution_options(synchronize_session=False)
    )
    counted = opened.rowcount == 1
    if not counted:
        taken = await session.execute(
            update(ApiKey)
            .where(
                ApiKey.id == api_key_id,
                ApiKey.rate_limit_reset_at >= now,
                ApiKey.requests_this_hour < func.coalesce(ApiKey.rate_limit, DEFAULT_RATE_LIMIT),
            )
            .values(requests_this_hour=ApiKey.requests_this_hour + 1)
            .execution_options(synchronize_session=False)
        )
        counted = taken.rowcount == 1
    await session.commit()

    row = (
        await session.execute(
            select(ApiKey.rate_limit, ApiKey.requests_this_hour, ApiKey.rate_limit_reset_at)
            .where(ApiKey.id == api_key_id)
        )
    ).one_or_none()
    if row is None:
        return RateLimitDecision(allowed=False, limit=0, remaining=0, retry_after=RATE_LIMIT_RETRY_AFTER_SECONDS)

    limit = row.rate_limit or DEFAULT_RATE_LIMIT
    if counted:
        return RateLimitDecision(allowed=True, limit=limit, remaining=max(0, limit - row.requests_this_hour))

    reset_at = as_utc(row.rate_limit_reset_at)
    retry_after = max(1, math.ceil((reset_at - now).total_seconds())) if reset_at else RATE_LIMIT_RETRY_AFTER_SECONDS
    logger.warning("rate limit exceeded, key_id=%s limit=%s retry_after=%s", api_key_id, limit, retry_after)
    return RateLimitDecision(allowed=False, limit=limit, remaining=0, retry_after=retry_after)


async def record_key_usage(
    session: AsyncSession,
    api_key_id: str,
    client_ip: Optional[str],
    now: Optional[datetime] = None,
) -> None:
    """Stamp last_used_at / last_used_ip; a single idempotent update"""
    await session.execute(
        update(ApiKey)
        .where(ApiKey.id == api_key_id)
        .values(last_used_at=now or utcnow(), last_used_ip=client_ip)
    )
    await session.commit()
