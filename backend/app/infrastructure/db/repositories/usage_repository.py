"""
Usage Repository

Monthly usage counters. The increment is a single upsert whose guard
and period rollover are evaluated by Postgres, so concurrent requests
can never push a counter past its limit.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import case, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.usage import UNLIMITED, UsageCounter, UsageFeature
from app.infrastructure.db.models.usage import UsageCounterModel
from app.infrastructure.db.repositories.base_repository import as_uuid


logger = logging.getLogger(__name__)


class UsageRepository:

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, user_id: str) -> Optional[UsageCounter]:
        stmt = select(UsageCounterModel).where(UsageCounterModel.user_id == as_uuid(user_id))
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def increment(
        self,
        user_id: str,
        feature: UsageFeature,
        period_index: int,
        limit: int,
    ) -> Optional[UsageCounter]:
        """
        Count one use of ``feature`` in ``period_index``.

        A stored row from an earlier period is reset as part of the same
        statement. Returns the updated counter, or None when the row is
        already at ``limit`` for the current period.
        """
        table = UsageCounterModel.__table__
        now = datetime.now(timezone.utc)

        insert_values = {
            "user_id": as_uuid(user_id),
            "period_index": period_index,
            "updated_at": now,
        }
        for metered in UsageFeature:
            insert_values[metered.value] = 1 if metered == feature else 0

        stmt = pg_insert(table).values(**insert_values)
        stale = table.c.period_index < stmt.excluded.period_index
        counted = table.c[feature.value]

        set_ = {
            "period_index": func.greatest(table.c.period_index, stmt.excluded.period_index),
            "updated_at": stmt.excluded.updated_at,
            feature.value: case((stale, 1), else_=counted + 1),
        }
        for other in UsageFeature:
            if other != feature:
                set_[other.value] = case((stale, 0), else_=table.c[other.value])

        guard = None if limit == UNLIMITED else or_(stale, counted < limit)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.user_id],
            set_=set_,
            where=guard,
        ).returning(*table.c)

        result = await self._session.execute(stmt)
        row = result.mappings().first()
        if row is None:
            logger.info(f"Usage limit reached for user {user_id} ({feature.value})")
            return None

        return UsageCounter(
            user_id=str(row["user_id"]),
            period_index=row["period_index"],
            receipt_uploads=row["receipt_uploads"],
            ai_content_generations=row["ai_content_generations"],
        )

    def _to_domain(self, model: UsageCounterModel) -> UsageCounter:
        return UsageCounter(
            user_id=str(model.user_id),
            period_index=model.period_index,
            receipt_uploads=model.receipt_uploads,
            ai_content_generations=model.ai_content_generations,
        )
