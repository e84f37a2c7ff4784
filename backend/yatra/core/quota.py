"""
Daily generation quota per identity.

The check and the increment are a single conditional upsert, so two
concurrent requests cannot both pass on the last remaining unit.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from yatra.core.errors import InternalError, QuotaExceededError
from yatra.db.models import ApiUsage

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


async def get_usage_count(session: AsyncSession, user_id: UUID, usage_date: Optional[date] = None) -> int:
    """Requests made by `user_id` on `usage_date` (today by default); no row means 0"""
    usage_date = usage_date or utc_today()
    result = await session.execute(
        select(ApiUsage.request_count).where(
            ApiUsage.user_id == user_id,
            ApiUsage.usage_date == usage_date,
        )
    )
    return result.scalar_one_or_none() or 0


async def _increment_with_upsert(session: AsyncSession, insert, user_id: UUID,
                                 usage_date: date, limit: int) -> Optional[int]:
    table = ApiUsage.__table__
    stmt = (
        insert(table)
        .values(user_id=user_id, usage_date=usage_date, request_count=1)
        .on_conflict_do_update(
            index_elements=["user_id", "usage_date"],
            set_={"request_count": table.c.request_count + 1},
            where=table.c.request_count < limit,
        )
        .returning(table.c.request_count)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _increment_read_then_write(session: AsyncSession, user_id: UUID,
                                     usage_date: date, limit: int) -> Optional[int]:
    current = await get_usage_count(session, user_id, usage_date)
    if current >= limit:
        return None
    if current == 0:
        session.add(ApiUsage(user_id=user_id, usage_date=usage_date, request_count=1))
    else:
        await session.execute(
            update(ApiUsage)
            .where(ApiUsage.user_id == user_id, ApiUsage.usage_date == usage_date)
            .values(request_count=current + 1)
        )
    return current + 1


async def consume_generation_quota(session: AsyncSession, user_id: UUID, limit: int,
                                   usage_date: Optional[date] = None) -> int:
    """Take one unit of today's quota and return the new count.

    Raises QuotaExceededError once `limit` requests were already made today.
    The unit is committed immediately, so a request that fails later in the
    pipeline still counts against the quota.
    """
    usage_date = usage_date or utc_today()
    dialect = session.bind.dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)

    try:
        if insert is not None:
            new_count = await _increment_with_upsert(session, insert, user_id, usage_date, limit)
        else:
            logger.warning(f"No atomic upsert for dialect {dialect}, using read-then-write")
            new_count = await _increment_read_then_write(session, user_id, usage_date, limit)

        await session.commit()
        if new_count is None:
            logger.warning(f"Daily generation limit reached for user {user_id}")
            raise QuotaExceededError(limit)
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Usage check error: {e}")
        raise InternalError("Failed to check usage limits", detail=str(e)) from e

    logger.info(f"Generation quota consumed for user {user_id}: {new_count}/{limit}")
    return new_count
