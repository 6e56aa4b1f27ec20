"""Batch rank checker: fetch SERPs for every keyword and record tracked-URL positions."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import partial, reduce
from typing import Any, Awaitable, Callable, Optional, Protocol

from rankwatch.config import MIN_PACING_DELAY, Settings
from rankwatch.errors import ConfigError, ProviderError
from rankwatch.rank_tracker.matcher import match_position
from rankwatch.rank_tracker.records import BatchResult, ObservationRecord, TrackingConfig
from rankwatch.rank_tracker.store import RankStore

logger = logging.getLogger(__name__)


class ResultsProvider(Protocol):
    async def fetch_results(self, query: str) -> list[dict[str, Any]]: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class KeywordOutcome:
    """What one provider call produced; ``results`` is None when skipped."""

    keyword_id: int
    keyword: str
    results: Optional[list[dict[str, Any]]]


@dataclass(frozen=True)
class BatchCollection:
    observations: tuple[ObservationRecord, ...] = ()
    skipped: tuple[str, ...] = ()
    checked_ids: tuple[int, ...] = ()


def observations_for(
    keyword_id: int,
    results: list[dict[str, Any]],
    tracked_urls: list[str],
    check_date: datetime,
    strict: bool = False,
) -> list[ObservationRecord]:
    """Match every tracked URL against one result list; unmatched URLs yield nothing."""
    found = []
    for url in tracked_urls:
        position = match_position(results, url, strict=strict)
        if position is not None:
            found.append(ObservationRecord(keyword_id, url, position, check_date))
    return found


def fold_outcome(
    acc: BatchCollection,
    outcome: KeywordOutcome,
    tracked_urls: list[str],
    check_date: datetime,
    strict: bool = False,
) -> BatchCollection:
    if not outcome.results:
        return BatchCollection(acc.observations, acc.skipped + (outcome.keyword,), acc.checked_ids)
    found = observations_for(outcome.keyword_id, outcome.results, tracked_urls, check_date, strict)
    return BatchCollection(
        acc.observations + tuple(found),
        acc.skipped,
        acc.checked_ids + (outcome.keyword_id,),
    )


def collect_observations(
    outcomes: list[KeywordOutcome],
    tracked_urls: list[str],
    check_date: datetime,
    strict: bool = False,
) -> BatchCollection:
    """Reduce per-keyword outcomes into observations plus skipped keywords."""
    step = partial(fold_outcome, tracked_urls=tracked_urls, check_date=check_date, strict=strict)
    return reduce(step, outcomes, BatchCollection())


class BatchRankChecker:
    """Run one sequential, paced rank check across all tracked keywords.

    Usage::

        checker = BatchRankChecker(settings, store=RankStore())
        result = await checker.run_batch()
    """

    def __init__(
        self,
        settings: Settings,
        store: Optional[RankStore] = None,
        provider: Optional[ResultsProvider] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._settings = settings
        self._store = store or RankStore()
        self._provider = provider
        self._sleep = sleep
        self._clock = clock
        self._pacing_delay = max(settings.pacing_delay, MIN_PACING_DELAY)

    def _build_provider(self) -> ResultsProvider:
        from rankwatch.integrations.scrapingdog import ScrapingdogClient
        return ScrapingdogClient(
            api_key=self._settings.api_key,
            base_url=self._settings.provider_url,
            locale=self._settings.locale,
            timeout=self._settings.request_timeout,
        )

    def _next_check_date(self) -> datetime:
        """One timestamp for the whole run, strictly after the previous cohort."""
        now = self._clock()
        latest = self._store.latest_check_date()
        if latest is not None and now <= latest:
            now = latest + timedelta(microseconds=1)
        return now

    async def _fetch_outcome(self, provider: ResultsProvider, keyword_id: int, term: str) -> KeywordOutcome:
        try:
            results = await provider.fetch_results(term)
        except ProviderError as exc:
            logger.error("Provider error for %r (status=%s): %s", term, exc.status_code, exc)
            return KeywordOutcome(keyword_id, term, None)
        except Exception:
            logger.exception("Unexpected failure fetching %r; skipping", term)
            return KeywordOutcome(keyword_id, term, None)

        if not results:
            logger.info("No organic results found for %r", term)
            return KeywordOutcome(keyword_id, term, None)
        return KeywordOutcome(keyword_id, term, results)

    async def run_batch(self, config: Optional[TrackingConfig] = None) -> BatchResult:
        """Check every keyword once and persist the positions found.

        Args:
            config: Tracking configuration for this run.  Loaded from the
                store when omitted.

        Raises:
            ConfigError: credential, target, or keywords missing.  Raised
                before any provider call.
            PersistenceError: the store was unreachable when saving.
        """
        logger.info("Rank check starting...")
        if not self._settings.has_credential:
            logger.error("Provider credential is not configured; aborting run.")
            raise ConfigError("credential not configured")

        if config is None:
            config = self._store.get_tracking_config()
        if not config.target_url:
            logger.warning("Aborted: target URL not set.")
            raise ConfigError("target not configured")

        keywords = [(kw.id, kw.text) for kw in self._store.list_keywords()]
        if not keywords:
            logger.warning("Aborted: no keywords to check.")
            raise ConfigError("no keywords")

        tracked_urls = config.tracked_urls
        check_date = self._next_check_date()
        owns_provider = self._provider is None
        provider = self._provider or self._build_provider()

        logger.info(
            "Checking %d keywords for %d tracked URLs (check_date=%s)",
            len(keywords), len(tracked_urls), check_date.isoformat(),
        )
        outcomes: list[KeywordOutcome] = []
        try:
            for idx, (keyword_id, term) in enumerate(keywords, 1):
                logger.info("Checking keyword %d/%d: %r", idx, len(keywords), term)
                outcomes.append(await self._fetch_outcome(provider, keyword_id, term))
                await self._sleep(self._pacing_delay)
        finally:
            if owns_provider:
                await provider.close()

        collection = collect_observations(
            outcomes, tracked_urls, check_date, strict=self._settings.strict_host_match,
        )
        for obs in collection.observations:
            logger.debug("Found %r at position %d (keyword id=%d)", obs.url, obs.position, obs.keyword_id)

        insert = self._store.insert_observations(collection.observations)
        self._store.mark_checked(collection.checked_ids, check_date)
        result = BatchResult(
            check_date=check_date,
            checked_count=len(keywords),
            found_count=len(collection.observations),
            skipped_keywords=list(collection.skipped),
            inserted_count=insert.inserted,
            rejected_count=insert.rejected,
        )
        logger.info(
            "Rank check finished: %s (%d skipped, %d saved, %d rejected)",
            result.message, len(result.skipped_keywords),
            result.inserted_count, result.rejected_count,
        )
        return result
