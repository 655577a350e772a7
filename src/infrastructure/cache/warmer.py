"""
Cache Warmer

Proactively populates the cache with the reads most likely to be requested,
so the first visitor after a deploy or a flush is served from cache.

Architecture:
    CacheWarmer
        ├── warm_cache()        (one pass, single-flight)
        │     ├── full_list       /api/v1/metrics
        │     ├── common_filters  /api/v1/metrics?category=... / ?tier=...
        │     └── individual      /api/v1/metrics/{id}  (top N)
        └── scheduler           (startup pass + recurring timer task)

State Machine:
    idle --warm_cache()--> warming --complete | error--> idle

    A pass requested while another is running is a no-op: it is neither
    queued nor retried. The flag is checked and set before the first await,
    which makes the check-and-set atomic on the event loop.

Strategy Order:
    Cheapest and most valuable first, so a pass that fails part-way still
    leaves the most useful entries populated. Each item is isolated: a
    failure increments the error count and the pass moves on.

Keys:
    Entries are written under exactly the key the read-through middleware
    computes for the equivalent anonymous GET, and encoded with the same
    envelope and encoder as the route handlers.

Author: System Architect
Date: 2025-12-14
"""

import asyncio
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from src.core.background import DetachedTaskRunner
from src.core.config.constants import (
    WARM_FILTER_CATEGORIES,
    WARM_FILTER_TIERS,
    Stage,
    WarmingRunStatus,
    WarmingStrategy,
)
from src.core.config.settings import Settings
from src.core.logging.logger import get_logger
from src.domain.envelopes import item_envelope, list_envelope
from src.domain.models import MetricDefinition
from src.domain.stores import ResourceStore
from src.infrastructure.cache.cache_store import CacheStore
from src.infrastructure.cache.codec import encode_payload
from src.infrastructure.cache.keys import build_cache_key
from src.infrastructure.cache.stats import CacheStatsCollector

logger = get_logger(__name__)


@dataclass
class WarmingJob:
    """Outcome of one strategy within a pass."""

    strategy: WarmingStrategy
    started_at: datetime
    finished_at: datetime | None = None
    warmed: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "warmed": self.warmed,
            "errors": self.errors,
        }


@dataclass
class WarmingSummary:
    """
    Result of one warming pass.

    ``warmed`` counts individual resources, ``queries_warmed`` counts list
    queries (the full list and each filter combination).
    """

    warmed: int = 0
    queries_warmed: int = 0
    errors: int = 0
    duration_ms: float = 0.0
    jobs: list[WarmingJob] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["jobs"] = [job.to_dict() for job in self.jobs]
        return data


def _common_filters() -> list[dict[str, str]]:
    return [{"category": category} for category in WARM_FILTER_CATEGORIES] + [
        {"tier": tier} for tier in WARM_FILTER_TIERS
    ]


class CacheWarmer:
    """
    Single-flight cache warmer for the metric collection.

    Usage:
        warmer = CacheWarmer(cache_store, metric_store, runner, settings)
        await warmer.start()      # optional startup pass + timer
        summary = await warmer.warm_cache()
        await warmer.stop()
    """

    def __init__(
        self,
        cache: CacheStore,
        metric_store: ResourceStore[MetricDefinition],
        runner: DetachedTaskRunner,
        settings: Settings,
        stats: CacheStatsCollector | None = None,
    ):
        """
        Initialize cache warmer.

        Args:
            cache: Cache store to populate
            metric_store: Read access to metric definitions
            runner: Runs startup and scheduled passes detached from the caller
            settings: Application settings (warmer, cache and app groups are used)
            stats: Receives run and entry counters; defaults to the store's collector
        """
        warmer_settings = settings.warmer
        cache_settings = settings.cache

        self._cache = cache
        self._metric_store = metric_store
        self._runner = runner
        self._stats = stats or cache.stats

        self._enabled = warmer_settings.ENABLE_CACHE_WARMING
        self._warm_on_startup = warmer_settings.CACHE_WARM_ON_STARTUP
        self._interval_minutes = warmer_settings.CACHE_WARM_INTERVAL
        self._max_items = warmer_settings.CACHE_WARM_MAX_METRICS
        self._list_ttl = cache_settings.CACHE_LIST_TTL
        self._item_ttl = cache_settings.CACHE_ITEM_TTL
        self._collection_path = f"{settings.app.API_BASE_PATH.rstrip('/')}/metrics"

        self._is_warming = False
        self._timer_task: asyncio.Task | None = None
        self._last_run: WarmingSummary | None = None
        self._last_run_at: datetime | None = None

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def is_warming(self) -> bool:
        return self._is_warming

    @property
    def last_run(self) -> WarmingSummary | None:
        return self._last_run

    # =========================================================================
    # Warming pass
    # =========================================================================

    async def warm_cache(self) -> WarmingSummary | None:
        """
        Run one warming pass.

        STAGE-WARM.1: Warming run

        Never raises. A failing store or cache is counted in ``errors``.

        Returns:
            Summary of the pass, or None if another pass was already running
        """
        if self._is_warming:
            logger.debug("Cache warming already in progress, skipping", stage=Stage.WARM_RUN)
            self._stats.record_warming_run(WarmingRunStatus.SKIPPED.value)
            return None
        self._is_warming = True

        started = time.perf_counter()
        summary = WarmingSummary()
        logger.info("Cache warming started", stage=Stage.WARM_RUN)

        try:
            listing = await self._warm_full_list(summary)
            await self._warm_common_filters(summary)
            await self._warm_individual(summary, listing)
        except Exception as e:
            summary.errors += 1
            logger.error(
                "Cache warming aborted",
                stage=Stage.WARM_RUN,
                error=str(e),
                error_type=type(e).__name__,
            )
        finally:
            self._is_warming = False

        duration = time.perf_counter() - started
        summary.duration_ms = round(duration * 1000, 2)
        self._last_run = summary
        self._last_run_at = datetime.now(timezone.utc)

        status = WarmingRunStatus.SUCCESS if summary.errors == 0 else WarmingRunStatus.PARTIAL
        self._stats.record_warming_run(status.value, duration)
        logger.info(
            "Cache warming complete",
            stage=Stage.WARM_RUN,
            warmed=summary.warmed,
            queries_warmed=summary.queries_warmed,
            errors=summary.errors,
            duration_ms=summary.duration_ms,
        )
        return summary

    async def _store_entry(self, key: str, body: dict[str, Any], ttl: int) -> bool:
        return await self._cache.set(key, encode_payload(body), ttl)

    def _begin(self, summary: WarmingSummary, strategy: WarmingStrategy) -> WarmingJob:
        job = WarmingJob(strategy=strategy, started_at=datetime.now(timezone.utc))
        summary.jobs.append(job)
        return job

    def _finish(self, job: WarmingJob, summary: WarmingSummary) -> None:
        job.finished_at = datetime.now(timezone.utc)
        summary.errors += job.errors
        self._stats.record_warmed_entries(job.strategy.value, job.warmed)
        logger.debug(
            "Warming strategy finished",
            stage=Stage.WARM_STRATEGY,
            strategy=job.strategy.value,
            warmed=job.warmed,
            errors=job.errors,
        )

    def _item_failed(self, job: WarmingJob, key: str, error: Exception | None = None) -> None:
        job.errors += 1
        logger.warning(
            "Failed to warm cache entry",
            stage=Stage.WARM_STRATEGY,
            strategy=job.strategy.value,
            key=key,
            error=str(error) if error else "cache write rejected",
        )

    async def _warm_full_list(self, summary: WarmingSummary) -> list[MetricDefinition] | None:
        """STAGE-WARM.2a: Unfiltered collection."""
        job = self._begin(summary, WarmingStrategy.FULL_LIST)
        key = build_cache_key(self._collection_path)
        listing = None
        try:
            listing = await self._metric_store.find_all()
            if await self._store_entry(key, list_envelope(listing), self._list_ttl):
                job.warmed += 1
                summary.queries_warmed += 1
            else:
                self._item_failed(job, key)
        except Exception as e:
            self._item_failed(job, key, e)
        self._finish(job, summary)
        return listing

    async def _warm_common_filters(self, summary: WarmingSummary) -> None:
        """STAGE-WARM.2b: Fixed single-dimension filters."""
        job = self._begin(summary, WarmingStrategy.COMMON_FILTERS)
        for filters in _common_filters():
            key = build_cache_key(self._collection_path, None, filters)
            try:
                items = await self._metric_store.find_all(filters)
                if await self._store_entry(key, list_envelope(items), self._list_ttl):
                    job.warmed += 1
                    summary.queries_warmed += 1
                else:
                    self._item_failed(job, key)
            except Exception as e:
                self._item_failed(job, key, e)
        self._finish(job, summary)

    async def _warm_individual(
        self, summary: WarmingSummary, listing: list[MetricDefinition] | None
    ) -> None:
        """STAGE-WARM.2c: Most recently updated resources."""
        job = self._begin(summary, WarmingStrategy.INDIVIDUAL)
        if listing is None:
            try:
                listing = await self._metric_store.find_all()
            except Exception as e:
                self._item_failed(job, self._collection_path, e)
                listing = []

        for metric in listing[: self._max_items]:
            key = build_cache_key(f"{self._collection_path}/{metric.metric_id}")
            try:
                if await self._store_entry(key, item_envelope(metric), self._item_ttl):
                    job.warmed += 1
                    summary.warmed += 1
                else:
                    self._item_failed(job, key)
            except Exception as e:
                self._item_failed(job, key, e)
        self._finish(job, summary)

    # =========================================================================
    # Scheduling
    # =========================================================================

    async def start(self) -> None:
        """
        Start warming.

        STAGE-WARM.3: Scheduling

        Runs one detached pass immediately when CACHE_WARM_ON_STARTUP is
        set, then arms the recurring timer when CACHE_WARM_INTERVAL > 0.
        """
        if not self._enabled:
            logger.info(
                "Cache warming disabled - set ENABLE_CACHE_WARMING=true to enable",
                stage=Stage.WARM_SCHEDULE,
            )
            return

        if self._warm_on_startup:
            self._runner.spawn(self.warm_cache(), name="cache-warm-startup")

        if self._interval_minutes > 0 and self._timer_task is None:
            self._timer_task = asyncio.create_task(self._schedule_loop(), name="cache-warm-timer")
            logger.info(
                "Cache warming scheduled",
                stage=Stage.WARM_SCHEDULE,
                interval_minutes=self._interval_minutes,
            )

    async def _schedule_loop(self) -> None:
        interval_seconds = self._interval_minutes * 60
        while True:
            await asyncio.sleep(interval_seconds)
            self._runner.spawn(self.warm_cache(), name="cache-warm-scheduled")

    async def stop(self) -> None:
        """
        Cancel the timer.

        An in-flight pass runs on the detached runner and finishes normally.
        """
        if self._timer_task is None:
            return
        self._timer_task.cancel()
        await asyncio.gather(self._timer_task, return_exceptions=True)
        self._timer_task = None
        logger.info("Cache warming schedule stopped", stage=Stage.WARM_SCHEDULE)

    def get_status(self) -> dict[str, Any]:
        """Warmer state for health and admin endpoints."""
        last_run = None
        if self._last_run is not None:
            last_run = {
                "at": self._last_run_at.isoformat() if self._last_run_at else None,
                **self._last_run.to_dict(),
            }
        return {
            "enabled": self._enabled,
            "is_warming": self._is_warming,
            "scheduled": self._timer_task is not None and not self._timer_task.done(),
            "scheduled_interval_minutes": self._interval_minutes,
            "last_run": last_run,
        }
