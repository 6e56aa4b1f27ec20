"""Tracked keyword SQLAlchemy model."""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rankwatch.database import Base

if TYPE_CHECKING:
    from rankwatch.models.ranking import RankObservation


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Keyword(Base):
    """Search term whose rankings are checked on every batch run."""

    __tablename__ = "keywords"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    text: Mapped[str] = mapped_column(String(500), nullable=False, unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    # check_date of the last run that got results for this keyword, found or not.
    last_checked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    observations: Mapped[list["RankObservation"]] = relationship(
        "RankObservation",
        back_populates="keyword",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Keyword id={self.id} text={self.text!r}>"
