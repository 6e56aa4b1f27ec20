"""Rank tracker: SERP position matching, batch checks, and change reporting."""

from rankwatch.rank_tracker.checker import BatchRankChecker
from rankwatch.rank_tracker.diff import ChangeIndicator, ChangeKind, compute_change
from rankwatch.rank_tracker.matcher import match_position, normalize_url
from rankwatch.rank_tracker.report import build_rankings
from rankwatch.rank_tracker.store import RankStore

__all__ = [
    "BatchRankChecker",
    "ChangeIndicator",
    "ChangeKind",
    "RankStore",
    "build_rankings",
    "compute_change",
    "match_position",
    "normalize_url",
]
