"""Record store for keywords, tracking configuration, and rank observations."""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from rankwatch.database import get_session
from rankwatch.errors import DuplicateKeywordError, PersistenceError
from rankwatch.models import Keyword, RankObservation, TrackingConfigRecord
from rankwatch.rank_tracker.matcher import normalize_url
from rankwatch.rank_tracker.records import (
    InsertResult,
    ObservationRecord,
    RankPoint,
    TrackingConfig,
)

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo on the way out; treat stored values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _is_valid(record: ObservationRecord) -> bool:
    return (
        isinstance(record.keyword_id, int)
        and isinstance(record.url, str)
        and bool(record.url.strip())
        and isinstance(record.position, int)
        and not isinstance(record.position, bool)
        and record.position > 0
        and isinstance(record.checked_at, datetime)
    )


def _to_row(record: ObservationRecord) -> RankObservation:
    return RankObservation(
        keyword_id=record.keyword_id,
        url=record.url,
        position=record.position,
        checked_at=record.checked_at,
    )


class RankStore:
    """SQLAlchemy-backed record store used by the checker and reports.

    Usage::

        store = RankStore()
        kw = store.add_keyword("running shoes")
        store.save_tracking_config("example.com", ["rival.com"])
    """

    # ------------------------------------------------------------------
    # Keywords
    # ------------------------------------------------------------------

    def add_keyword(self, text: str) -> Keyword:
        """Track a new keyword.

        Raises:
            ValueError: if ``text`` is blank.
            DuplicateKeywordError: if the trimmed text is already tracked.
        """
        term = (text or "").strip()
        if not term:
            raise ValueError("Keyword is required")

        try:
            with get_session() as session:
                existing = session.query(Keyword).filter(Keyword.text == term).first()
                if existing is not None:
                    raise DuplicateKeywordError(f"Keyword already exists: {term!r}")
                keyword = Keyword(text=term)
                session.add(keyword)
                session.flush()
        except IntegrityError as exc:
            raise DuplicateKeywordError(f"Keyword already exists: {term!r}") from exc

        logger.info("Added keyword %r (id=%d)", term, keyword.id)
        return keyword

    def list_keywords(self) -> list[Keyword]:
        with get_session() as session:
            return session.query(Keyword).order_by(Keyword.text.asc()).all()

    def get_keyword(self, keyword_id: int) -> Optional[Keyword]:
        with get_session() as session:
            return session.get(Keyword, keyword_id)

    def delete_keyword(self, keyword_id: int) -> bool:
        """Delete a keyword and its observation history.

        Returns:
            True if the keyword existed, False otherwise.
        """
        with get_session() as session:
            keyword = session.get(Keyword, keyword_id)
            if keyword is None:
                return False
            removed = (
                session.query(RankObservation)
                .filter(RankObservation.keyword_id == keyword_id)
                .delete(synchronize_session=False)
            )
            session.delete(keyword)
        logger.info("Deleted keyword id=%d and %d observations", keyword_id, removed)
        return True

    # ------------------------------------------------------------------
    # Tracking configuration
    # ------------------------------------------------------------------

    def get_tracking_config(self) -> TrackingConfig:
        """Return the saved configuration, or an empty one if never saved."""
        with get_session() as session:
            record = session.query(TrackingConfigRecord).order_by(TrackingConfigRecord.id).first()
            if record is None:
                return TrackingConfig()
            return TrackingConfig(
                target_url=record.target_url or "",
                competitor_urls=tuple(record.competitor_urls or ()),
            )

    def save_tracking_config(
        self,
        target_url: str,
        competitor_urls: Optional[Iterable[str]] = None,
    ) -> TrackingConfig:
        """Upsert the singleton configuration.

        Competitors are trimmed and deduplicated (first spelling wins) and any
        competitor equal to the target is dropped, so a domain is never both.

        Raises:
            ValueError: if ``target_url`` is blank.
        """
        target = (target_url or "").strip()
        if not target:
            raise ValueError("Target URL is required")

        seen = {normalize_url(target)}
        competitors: list[str] = []
        for raw in competitor_urls or ():
            url = str(raw).strip()
            key = normalize_url(url)
            if not key or key in seen:
                continue
            seen.add(key)
            competitors.append(url)

        with get_session() as session:
            record = session.query(TrackingConfigRecord).order_by(TrackingConfigRecord.id).first()
            if record is None:
                record = TrackingConfigRecord(target_url=target, competitor_urls=competitors)
                session.add(record)
            else:
                record.target_url = target
                record.competitor_urls = competitors

        logger.info("Saved tracking config: target=%r, %d competitors", target, len(competitors))
        return TrackingConfig(target_url=target, competitor_urls=tuple(competitors))

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    def insert_observations(self, records: Iterable[ObservationRecord]) -> InsertResult:
        """Bulk-insert observations without letting bad rows sink the batch.

        Malformed records are dropped up front.  If the bulk insert hits an
        integrity error (for example a keyword deleted mid-run) the rows are
        retried one at a time and only the offending ones are rejected.

        Raises:
            PersistenceError: if the store cannot be reached at all.
        """
        valid: list[ObservationRecord] = []
        rejected = 0
        for record in records:
            if _is_valid(record):
                valid.append(record)
            else:
                rejected += 1
                logger.warning("Dropping malformed observation: %r", record)

        if not valid:
            return InsertResult(inserted=0, rejected=rejected)

        try:
            with get_session() as session:
                session.add_all([_to_row(r) for r in valid])
            inserted = len(valid)
        except IntegrityError as exc:
            logger.warning("Bulk insert rejected (%s); retrying row by row", exc.orig)
            inserted, failed = self._insert_each(valid)
            rejected += failed
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not save {len(valid)} observations: {exc}") from exc

        logger.info("Inserted %d observations (%d rejected)", inserted, rejected)
        return InsertResult(inserted=inserted, rejected=rejected)

    def _insert_each(self, records: list[ObservationRecord]) -> tuple[int, int]:
        inserted = failed = 0
        for record in records:
            try:
                with get_session() as session:
                    session.add(_to_row(record))
                inserted += 1
            except IntegrityError as exc:
                failed += 1
                logger.warning("Rejected observation %r: %s", record, exc.orig)
            except SQLAlchemyError as exc:
                raise PersistenceError(f"Could not save observation {record!r}: {exc}") from exc
        return inserted, failed

    def mark_checked(self, keyword_ids: Iterable[int], checked_at: datetime) -> int:
        """Stamp ``last_checked_at`` on keywords whose results were read in a run.

        Returns:
            Number of keywords updated.
        """
        ids = list(keyword_ids)
        if not ids:
            return 0
        try:
            with get_session() as session:
                updated = (
                    session.query(Keyword)
                    .filter(Keyword.id.in_(ids))
                    .update({Keyword.last_checked_at: checked_at}, synchronize_session=False)
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not record check date for {len(ids)} keywords: {exc}") from exc
        logger.debug("Marked %d keywords checked at %s", updated, checked_at.isoformat())
        return updated

    def latest_check_date(self, keyword_id: Optional[int] = None) -> Optional[datetime]:
        """Most recent check overall, or for one keyword.

        Covers runs that found none of the tracked URLs: those leave no
        observation but still stamp the keyword's ``last_checked_at``.
        """
        with get_session() as session:
            obs_query = session.query(func.max(RankObservation.checked_at))
            kw_query = session.query(func.max(Keyword.last_checked_at))
            if keyword_id is not None:
                obs_query = obs_query.filter(RankObservation.keyword_id == keyword_id)
                kw_query = kw_query.filter(Keyword.id == keyword_id)
            candidates = [v for v in (obs_query.scalar(), kw_query.scalar()) if v is not None]
        return max(_as_utc(v) for v in candidates) if candidates else None

    def recent_observations(
        self,
        keyword_id: int,
        urls: Iterable[str],
        limit_per_url: int = 2,
    ) -> dict[str, list[RankPoint]]:
        """Return up to ``limit_per_url`` newest points per URL, newest first."""
        url_list = list(urls)
        history: dict[str, list[RankPoint]] = {url: [] for url in url_list}
        if not url_list or limit_per_url < 1:
            return history

        with get_session() as session:
            subq = (
                session.query(
                    RankObservation.url,
                    RankObservation.position,
                    RankObservation.checked_at,
                    func.row_number()
                    .over(
                        partition_by=RankObservation.url,
                        order_by=(RankObservation.checked_at.desc(), RankObservation.id.desc()),
                    )
                    .label("rn"),
                )
                .filter(
                    RankObservation.keyword_id == keyword_id,
                    RankObservation.url.in_(url_list),
                )
                .subquery()
            )
            rows = (
                session.query(subq.c.url, subq.c.position, subq.c.checked_at)
                .filter(subq.c.rn <= limit_per_url)
                .order_by(subq.c.url, subq.c.rn)
                .all()
            )

        for url, position, checked_at in rows:
            history[url].append(RankPoint(position=position, checked_at=_as_utc(checked_at)))
        return history
