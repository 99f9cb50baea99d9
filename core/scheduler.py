from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from core.dispatcher import Dispatcher
from core.schedule import RegionSchedule, utcnow
from models.item import DEFAULT_SOURCE
from models.region import RegionConfig
from sources.base import InterestSource, ItemCatalog

log = logging.getLogger(__name__)

DEFAULT_CONCURRENCY_LIMIT = 20
DEFAULT_SWEEP_INTERVAL = 6 * 3600
DEFAULT_CATALOG_INTERVAL = 3600

DueCallback = Callable[[str], Awaitable[None]]


class Scheduler:
    """Periodic housekeeping around the dispatcher.

    Spawns one timer task per region plus a cooldown sweeper and a catalog
    refresher.  A region timer only decides whether the region is due for a
    check and reports how many items are awaited there; store data reaches
    the dispatcher separately through ``UpdateIntake``.  ``on_due`` lets the
    transport react to a due region, e.g. by requesting a fresh snapshot.

    A shared ``asyncio.Semaphore`` bounds concurrent interest lookups made
    by the timers.
    """

    def __init__(
        self,
        schedule: RegionSchedule,
        dispatcher: Dispatcher,
        interest: InterestSource,
        catalog: ItemCatalog | None = None,
        on_due: DueCallback | None = None,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL,
        catalog_interval_seconds: float = DEFAULT_CATALOG_INTERVAL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._schedule = schedule
        self._dispatcher = dispatcher
        self._interest = interest
        self._catalog = catalog
        self._on_due = on_due
        self._concurrency_limit = concurrency_limit
        self._semaphore = asyncio.Semaphore(concurrency_limit)
        self._sweep_interval = sweep_interval_seconds
        self._catalog_interval = catalog_interval_seconds
        self._clock = clock
        self._last_tick: dict[str, datetime] = {}

    async def tick_region(self, region: str) -> bool:
        """Run one timer cycle for ``region``.  Returns True when the region
        was due."""
        now = self._clock()
        if not self._schedule.is_due(region, now, self._last_tick.get(region)):
            return False
        self._last_tick[region] = now

        async with self._semaphore:
            try:
                active = await self._interest.get_active_items(DEFAULT_SOURCE)
            except Exception:
                log.exception("[%s] active item lookup failed", region)
                active = []

        awaited = [r for r in active if r.covers(region)]
        if not awaited:
            log.info("[%s] timer fired, no awaited items", region)
        else:
            log.info("[%s] timer fired, %d item(s) awaited", region, len(awaited))

        if self._on_due is not None:
            try:
                await self._on_due(region)
            except Exception:
                log.exception("[%s] due callback failed", region)
        return True

    async def _region_worker(self, cfg: RegionConfig) -> None:
        log.info(
            "Timer started for %s every %d min (%s UTC)",
            cfg.id,
            cfg.check_interval,
            cfg.window_label,
        )
        while True:
            await self.tick_region(cfg.id)
            await asyncio.sleep(cfg.check_interval * 60)

    async def _sweep_worker(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            log.info("Sweeping expired cooldown entries")
            try:
                await self._dispatcher.sweep_cooldowns()
            except Exception:
                log.exception("Cooldown sweep failed")

    async def _catalog_worker(self, catalog: ItemCatalog) -> None:
        while True:
            await asyncio.sleep(self._catalog_interval)
            log.info("Refreshing item catalog")
            try:
                await catalog.refresh()
            except Exception:
                log.exception("Catalog refresh failed")

    async def run(self) -> None:
        """Spawn all periodic tasks and await them.

        Returns immediately if no regions are configured.
        """
        regions = self._schedule.regions
        if not regions:
            log.warning("No regions configured")
            return

        active = self._schedule.active_regions(self._clock())
        if active:
            log.info("Regions in window now: %s", ", ".join(active))
        else:
            log.info("No region is in its window now")

        log.info(
            "Scheduler starting %d region timer(s), concurrency limit=%d",
            len(regions),
            self._concurrency_limit,
        )

        tasks = [
            asyncio.create_task(self._region_worker(cfg), name=f"timer-{cfg.id}")
            for cfg in regions
        ]
        tasks.append(asyncio.create_task(self._sweep_worker(), name="cooldown-sweep"))
        if self._catalog is not None:
            tasks.append(asyncio.create_task(self._catalog_worker(self._catalog), name="catalog-refresh"))

        await asyncio.gather(*tasks)
