"""Rank observation and tracking configuration SQLAlchemy models."""

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rankwatch.database import Base

if TYPE_CHECKING:
    from rankwatch.models.keyword import Keyword


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RankObservation(Base):
    """Point-in-time ranking position for a keyword + tracked URL pair.

    Rows are append-only.  A URL that was not found in a run simply has no
    row for that run's ``checked_at``.
    """

    __tablename__ = "rank_observations"
    __table_args__ = (
        CheckConstraint("position > 0", name="ck_rank_observations_position_positive"),
        Index("ix_rank_observations_keyword_checked", "keyword_id", "checked_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    keyword_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("keywords.id", ondelete="CASCADE"), nullable=False, index=True
    )
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    checked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False, index=True
    )

    keyword: Mapped["Keyword"] = relationship("Keyword", back_populates="observations")

    def __repr__(self) -> str:
        return (
            f"<RankObservation id={self.id} kw_id={self.keyword_id} "
            f"url={self.url!r} pos={self.position}>"
        )


class TrackingConfigRecord(Base):
    """Singleton row holding the target domain and its competitors."""

    __tablename__ = "tracking_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    target_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    competitor_urls: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return (
            f"<TrackingConfigRecord id={self.id} target={self.target_url!r} "
            f"competitors={len(self.competitor_urls or [])}>"
        )
