from datetime import datetime
from sqlalchemy import String, DateTime, Integer, Boolean
from sqlalchemy.orm import Mapped, mapped_column

from studio.database import Base


class UserGenerationStats(Base):
    __tablename__ = "user_generation_stats"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    generation_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Buyers are not limited
    has_purchased: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<UserGenerationStats(user_id={self.user_id}, count={self.generation_count})>"
