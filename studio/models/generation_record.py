from datetime import datetime
from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column
from uuid_extensions import uuid7

from studio.database import Base


class GenerationRecord(Base):
    """One row per successful generation with an authenticated owner."""

    __tablename__ = "ai_generations"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid7())
    )

    # Owner; anonymous generations are never written
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    # Groups the rows written by one pipeline context
    session_id: Mapped[str] = mapped_column(String(36), nullable=False)

    # What was asked for
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    style: Mapped[str] = mapped_column(String(50), nullable=False)
    color_scheme: Mapped[str] = mapped_column(String(50), nullable=False)
    clothing_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    image_position: Mapped[str | None] = mapped_column(String(10), nullable=True)
    included_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Stored URL when re-hosting worked, the service URL otherwise
    image_url: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<GenerationRecord(id={self.id}, user_id={self.user_id})>"
