"""Current-vs-previous ranking report built from persisted observations."""

import logging
from datetime import datetime
from typing import Any, Optional

from rankwatch.errors import KeywordNotFoundError
from rankwatch.rank_tracker.diff import compute_change
from rankwatch.rank_tracker.records import RankPoint
from rankwatch.rank_tracker.store import RankStore

logger = logging.getLogger(__name__)


def split_snapshot(
    points: list[RankPoint],
    latest_cohort: Optional[datetime],
) -> tuple[Optional[RankPoint], Optional[RankPoint]]:
    """Pick (current, previous) from a URL's newest-first points.

    ``latest_cohort`` is the keyword's last check date, including runs that
    found no tracked URL at all.  If the URL's newest point is older than it
    the URL was missing from the last run, so that point becomes "previous"
    and there is no current rank.
    """
    if not points:
        return None, None
    newest = points[0]
    if latest_cohort is not None and newest.checked_at < latest_cohort:
        return None, newest
    previous = points[1] if len(points) > 1 else None
    return newest, previous


def _url_row(
    url: str,
    is_target: bool,
    points: list[RankPoint],
    latest_cohort: Optional[datetime],
) -> dict[str, Any]:
    current, previous = split_snapshot(points, latest_cohort)
    change = compute_change(
        current.position if current else None,
        previous.position if previous else None,
    )
    return {
        "url": url,
        "is_target": is_target,
        "current_rank": current.position if current else None,
        "previous_rank": previous.position if previous else None,
        "last_check_date": current.checked_at if current else None,
        "change": change,
        "change_label": change.label,
        "history": [p.position for p in points],
    }


def build_rankings(
    store: RankStore,
    keyword_id: Optional[int] = None,
    limit: int = 2,
) -> list[dict[str, Any]]:
    """Return per-keyword ranking rows for every tracked URL.

    Rows list the target first, then competitors alphabetically.

    Raises:
        KeywordNotFoundError: if ``keyword_id`` is given and unknown.
    """
    if keyword_id is not None:
        keyword = store.get_keyword(keyword_id)
        if keyword is None:
            raise KeywordNotFoundError(f"Keyword not found: {keyword_id}")
        keywords = [keyword]
    else:
        keywords = store.list_keywords()

    if not keywords:
        return []

    config = store.get_tracking_config()
    all_urls = config.tracked_urls
    limit = max(limit, 2)

    report = []
    for kw in keywords:
        history = store.recent_observations(kw.id, all_urls, limit_per_url=limit)
        latest_cohort = store.latest_check_date(kw.id)
        rows = [
            _url_row(url, url == config.target_url, history.get(url, []), latest_cohort)
            for url in all_urls
        ]
        rows.sort(key=lambda row: (not row["is_target"], row["url"]))
        report.append({
            "keyword_id": kw.id,
            "keyword": kw.text,
            "urls": rows,
        })

    logger.debug("Built rankings for %d keywords x %d URLs", len(report), len(all_urls))
    return report
