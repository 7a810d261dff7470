import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studio.errors import LedgerError
from studio.models import GenerationRecord
from studio.services.generation_client import GenerationResult
from studio.services.prompts import GenerationRequest

logger = logging.getLogger(__name__)


class GenerationLedger:
    """
    Append-only history of generations.

    Rows are only written for signed-in users. There is no idempotency key:
    recording the same generation twice writes two rows.
    """

    async def record(
        self,
        db: AsyncSession,
        user_id: str | None,
        request: GenerationRequest,
        result: GenerationResult,
        session_id: str,
    ) -> str | None:
        """Insert a record and return its ID, or None for anonymous users."""
        if not user_id:
            logger.debug("Anonymous generation, ledger write skipped")
            return None

        record = GenerationRecord(
            user_id=user_id,
            session_id=session_id,
            prompt=request.design_text,
            style=request.style,
            color_scheme=request.color_scheme,
            clothing_type=request.garment_type.value,
            image_position=request.position.value,
            included_text=request.included_text,
            image_url=result.final_url,
        )

        try:
            db.add(record)
            await db.flush()
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise LedgerError(f"Failed to save generation to history: {e}") from e

        return record.id

    async def history(
        self,
        db: AsyncSession,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
    ) -> list[GenerationRecord]:
        """Records of a user, newest first."""
        result = await db.execute(
            select(GenerationRecord)
            .where(GenerationRecord.user_id == user_id)
            .order_by(GenerationRecord.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())


# Singleton instance
ledger = GenerationLedger()
