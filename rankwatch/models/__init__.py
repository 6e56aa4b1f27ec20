"""SQLAlchemy ORM models. Import every model so Base.metadata is populated."""

from rankwatch.models.keyword import Keyword
from rankwatch.models.ranking import (
    RankObservation,
    TrackingConfigRecord,
)

__all__ = [
    "Keyword",
    "RankObservation",
    "TrackingConfigRecord",
]
