import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studio.config import get_settings
from studio.errors import LedgerError, QuotaExceededError
from studio.models import UserGenerationStats

settings = get_settings()
logger = logging.getLogger(__name__)


class GenerationQuota:
    """Free generation allowance per signed-in user."""

    def __init__(self, limit: int | None = None):
        self.limit = limit if limit is not None else settings.generation_limit

    async def _get(self, db: AsyncSession, user_id: str) -> UserGenerationStats | None:
        result = await db.execute(
            select(UserGenerationStats).where(UserGenerationStats.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def check(self, db: AsyncSession, user_id: str | None) -> None:
        """Raise QuotaExceededError when the user has no generations left."""
        if not user_id:
            return

        stats = await self._get(db, user_id)
        if stats is None or stats.has_purchased:
            return

        if stats.generation_count >= self.limit:
            raise QuotaExceededError(stats.generation_count, self.limit)

    async def increment(self, db: AsyncSession, user_id: str | None) -> int | None:
        """Count one more generation; returns the new count."""
        if not user_id:
            return None

        try:
            stats = await self._get(db, user_id)
            if stats is None:
                stats = UserGenerationStats(user_id=user_id, generation_count=0, has_purchased=False)
                db.add(stats)
            stats.generation_count += 1
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise LedgerError(f"Failed to update generation count: {e}") from e

        return stats.generation_count


# Singleton instance
quota = GenerationQuota()
