from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import datetime
from typing import TypeVar

from core.fingerprint import ChangeDetector
from core.registry import RegionRegistry
from core.schedule import utcnow
from models.item import DEFAULT_SOURCE, BatchItem, InterestRecord
from models.region import RegionState
from models.result import (
    NO_CHANGE,
    OUTSIDE_WINDOW,
    UNKNOWN_REGION,
    DispatchResult,
    SentNotification,
)
from sinks.base import NotificationSink
from sources.base import EmptyCatalog, InterestSource, ItemCatalog, SubscriptionSource

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_NAMESPACE = "valohub"
DEFAULT_TITLE_PREFIX = "ValoHub"
DEFAULT_CALL_TIMEOUT = 5.0


def channel_name(namespace: str, region: str, source: str, item_id: str) -> str:
    """``{namespace}/{region}/{source}/{itemId}``; subscribers can derive it
    before any notification exists."""
    return f"{namespace}/{region}/{source}/{item_id}"


class Dispatcher:
    """Turns a region's store snapshot into notifications.

    For one ``(region, items, source)`` call:

    1. outside the region's window -> skipped (``outside_window``)
    2. same item set as last time  -> skipped (``no_change``)
    3. fetch the items people are waiting for
    4. per item: interest in this region, cooldown, subscribers for
       ``(region, source)``, then send and record the cooldown
    5. bump the region's check counters

    Calls for the same region are serialized by the region's lock, held
    across the external calls; different regions run independently.
    ``sweep_cooldowns`` takes the same locks, so it waits behind a slow
    dispatch for that region.  Every external call is bounded by
    ``call_timeout`` and any failure is treated as "nothing there", so a
    dispatch always returns a result.
    """

    def __init__(
        self,
        registry: RegionRegistry,
        interest: InterestSource,
        subscriptions: SubscriptionSource,
        sink: NotificationSink,
        catalog: ItemCatalog | None = None,
        detector: ChangeDetector | None = None,
        messages: Mapping[str, str] | None = None,
        namespace: str = DEFAULT_NAMESPACE,
        title_prefix: str = DEFAULT_TITLE_PREFIX,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._registry = registry
        self._interest = interest
        self._subscriptions = subscriptions
        self._sink = sink
        self._catalog = catalog or EmptyCatalog()
        self._detector = detector or ChangeDetector()
        self._messages = dict(messages or {})
        self._namespace = namespace
        self._title_prefix = title_prefix
        self._call_timeout = call_timeout
        self._clock = clock

    @property
    def registry(self) -> RegionRegistry:
        return self._registry

    async def dispatch(
        self,
        region: str,
        items: Sequence[BatchItem],
        source: str = DEFAULT_SOURCE,
        force: bool = False,
    ) -> DispatchResult:
        """Process one snapshot.  ``force`` skips the window check only."""
        state = self._registry.state(region)
        if state is None:
            log.warning("Dispatch for unconfigured region %r rejected", region)
            return DispatchResult.skip(region, source, UNKNOWN_REGION)

        async with state.lock:
            return await self._dispatch_locked(state, items, source, force)

    async def _dispatch_locked(
        self,
        state: RegionState,
        items: Sequence[BatchItem],
        source: str,
        force: bool,
    ) -> DispatchResult:
        region = state.region

        if not force and not self._registry.schedule.is_in_window(region, self._clock()):
            log.info("[%s] outside store window, skipping", region)
            return DispatchResult.skip(region, source, OUTSIDE_WINDOW)

        change = self._detector.detect(state, items)
        if not change.changed:
            log.info("[%s] store unchanged, skipping", region)
            return DispatchResult.skip(region, source, NO_CHANGE)
        self._detector.commit(state, change)

        log.info("[%s] store changed (%d items), checking %s", region, len(items), source)

        active = await self._call(
            self._interest.get_active_items(source),
            default=[],
            what=f"Active item lookup ({source})",
        )
        interest: dict[str, InterestRecord] = {}
        for record in active:
            interest.setdefault(record.item_id, record)

        result = DispatchResult(region=region, source=source, processed_count=len(items))
        for item in items:
            await self._process_item(state, item, source, interest, result)

        state.last_checked_at = self._clock()
        state.check_count += 1

        log.info(
            "[%s] %d notification(s) sent, %d on cooldown",
            region,
            result.notified_count,
            result.cooldown_skipped_count,
        )
        return result

    async def _process_item(
        self,
        state: RegionState,
        item: BatchItem,
        source: str,
        interest: Mapping[str, InterestRecord],
        result: DispatchResult,
    ) -> None:
        region = state.region
        item_id = item.item_id
        if not item_id:
            return

        record = interest.get(item_id)
        if record is None or not record.covers(region):
            return

        if not state.cooldown.may_notify(item_id, self._clock()):
            log.info("[%s] %s on cooldown, skipping", region, item_id)
            result.cooldown_skipped_count += 1
            return

        subs = await self._call(
            self._subscriptions.get_subscriptions(item_id),
            default=[],
            what=f"Subscription lookup ({item_id})",
        )
        matching = [s for s in subs if s.matches(region, source)]
        if not matching:
            return

        topic = channel_name(self._namespace, region, source, item_id)
        name = self._display_name(item)
        icon = item.icon or self._catalog_icon(item_id)
        sent = await self._call(
            self._sink.send(topic, f"{self._title_prefix}: {name}", self._body(source), icon),
            default=False,
            what=f"Send to {topic}",
        )
        if not sent:
            log.warning("[%s] delivery failed for %s, leaving it eligible", region, item_id)
            return

        state.cooldown.record_notified(item_id, self._clock())
        result.notifications.append(
            SentNotification(
                topic=topic,
                item_id=item_id,
                item_name=name,
                subscriber_count=len(matching),
            )
        )

    def _display_name(self, item: BatchItem) -> str:
        entry = self._catalog.lookup(item.item_id or "")
        if entry and entry.name:
            return entry.name
        for key in ("displayName", "name"):
            value = item.metadata.get(key)
            if value:
                return str(value)
        return item.item_id or ""

    def _catalog_icon(self, item_id: str) -> str | None:
        entry = self._catalog.lookup(item_id)
        return entry.icon if entry else None

    def _body(self, source: str) -> str:
        return self._messages.get(source) or self._messages.get(DEFAULT_SOURCE, "")

    async def _call(self, aw: Awaitable[T], default: T, what: str) -> T:
        try:
            return await asyncio.wait_for(aw, timeout=self._call_timeout)
        except asyncio.TimeoutError:
            log.warning("%s timed out after %.1fs", what, self._call_timeout)
        except Exception:
            log.exception("%s failed", what)
        return default

    async def sweep_cooldowns(self) -> int:
        """Drop cooldown entries whose cooldown has fully elapsed, region by
        region under each region's lock.  Returns the number removed."""
        removed = 0
        for state in self._registry.states:
            async with state.lock:
                cleaned = state.cooldown.purge_older_than(
                    state.cooldown.cooldown, self._clock()
                )
            if cleaned:
                log.info("[%s] %d expired cooldown entries removed", state.region, cleaned)
            removed += cleaned
        return removed
