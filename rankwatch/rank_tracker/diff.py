"""Change indicator between a URL's two most recent rank observations."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ChangeKind(str, Enum):
    NO_PRIOR_DATA = "no_prior_data"
    NEW = "new"
    GONE = "gone"
    NO_CHANGE = "no_change"
    IMPROVED = "improved"
    WORSENED = "worsened"


@dataclass(frozen=True)
class ChangeIndicator:
    """Movement of one (keyword, URL) pair since the previous check.

    ``amount`` is the number of places moved and is only non-zero for
    ``IMPROVED`` and ``WORSENED``.
    """

    kind: ChangeKind
    amount: int = 0

    @property
    def label(self) -> str:
        """Short display form: ``+2``, ``-4``, ``NC``, ``New``, ``Gone`` or ``""``."""
        if self.kind is ChangeKind.IMPROVED:
            return f"+{self.amount}"
        if self.kind is ChangeKind.WORSENED:
            return f"-{self.amount}"
        return {
            ChangeKind.NO_CHANGE: "NC",
            ChangeKind.NEW: "New",
            ChangeKind.GONE: "Gone",
        }.get(self.kind, "")

    @property
    def delta(self) -> int:
        """Signed movement, positive when the rank improved."""
        if self.kind is ChangeKind.WORSENED:
            return -self.amount
        return self.amount


def compute_change(current: Optional[int], previous: Optional[int]) -> ChangeIndicator:
    """Compare the newest and second-newest positions (lower is better).

    >>> compute_change(3, 5)
    ChangeIndicator(kind=<ChangeKind.IMPROVED: 'improved'>, amount=2)
    >>> compute_change(None, 3).label
    'Gone'
    """
    if current is None and previous is None:
        return ChangeIndicator(ChangeKind.NO_PRIOR_DATA)
    if previous is None:
        return ChangeIndicator(ChangeKind.NEW)
    if current is None:
        return ChangeIndicator(ChangeKind.GONE)

    diff = previous - current
    if diff > 0:
        return ChangeIndicator(ChangeKind.IMPROVED, diff)
    if diff < 0:
        return ChangeIndicator(ChangeKind.WORSENED, -diff)
    return ChangeIndicator(ChangeKind.NO_CHANGE)
