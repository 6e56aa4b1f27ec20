"""Plain value types passed between the checker, the store, and reports."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class TrackingConfig:
    """Target domain plus competitors, captured once per batch run."""

    target_url: str = ""
    competitor_urls: tuple[str, ...] = ()

    @property
    def tracked_urls(self) -> list[str]:
        """Target first, then competitors in configured order."""
        if not self.target_url:
            return list(self.competitor_urls)
        return [self.target_url, *self.competitor_urls]


@dataclass(frozen=True)
class ObservationRecord:
    """A rank found during a batch run, not yet persisted."""

    keyword_id: int
    url: str
    position: int
    checked_at: datetime


@dataclass(frozen=True)
class InsertResult:
    inserted: int = 0
    rejected: int = 0


@dataclass(frozen=True)
class RankPoint:
    position: int
    checked_at: datetime


@dataclass
class BatchResult:
    """Run-level summary of one batch rank check."""

    check_date: datetime
    checked_count: int
    found_count: int
    skipped_keywords: list[str] = field(default_factory=list)
    inserted_count: int = 0
    rejected_count: int = 0

    @property
    def message(self) -> str:
        return f"Checked {self.checked_count} keywords, found {self.found_count} ranks."

    def to_dict(self) -> dict:
        return {
            "check_date": self.check_date.isoformat(),
            "checked_count": self.checked_count,
            "found_count": self.found_count,
            "skipped_keywords": list(self.skipped_keywords),
            "inserted_count": self.inserted_count,
            "rejected_count": self.rejected_count,
            "message": self.message,
        }
