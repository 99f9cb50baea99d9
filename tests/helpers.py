from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from models.item import BatchItem, InterestRecord, SubscriptionRecord
from sinks.base import NotificationSink
from sources.base import CatalogEntry, InterestSource, ItemCatalog, SubscriptionSource

# 02:00 UTC: inside the TR/EU window (01-03), outside NA (08-10).
T0 = datetime(2026, 10, 18, 2, 0, tzinfo=timezone.utc)

MESSAGES = {"store": "in store", "night": "in night market"}


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class FakeInterest(InterestSource):
    def __init__(self, records: list[InterestRecord] | None = None) -> None:
        self.records = list(records or [])
        self.calls: list[str] = []
        self.error: Exception | None = None
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    def want(self, item_id: str, *regions: str) -> None:
        self.records.append(InterestRecord(item_id, frozenset(regions)))

    async def get_active_items(self, source: str) -> list[InterestRecord]:
        self.calls.append(source)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return list(self.records)
        finally:
            self.in_flight -= 1


class FakeSubscriptions(SubscriptionSource):
    def __init__(self) -> None:
        self.by_item: dict[str, list[SubscriptionRecord]] = {}
        self.calls: list[str] = []
        self.failing: set[str] = set()

    def subscribe(self, item_id: str, region: str, source: str = "store", ref: str = "u1") -> None:
        self.by_item.setdefault(item_id, []).append(SubscriptionRecord(region, source, ref))

    async def get_subscriptions(self, item_id: str) -> list[SubscriptionRecord]:
        self.calls.append(item_id)
        if item_id in self.failing:
            raise RuntimeError("backend down")
        return list(self.by_item.get(item_id, []))


class FakeSink(NotificationSink):
    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.rejecting: set[str] = set()
        self.raising: set[str] = set()

    async def send(self, channel: str, title: str, body: str, icon: str | None = None) -> bool:
        item_id = channel.rsplit("/", 1)[-1]
        if item_id in self.raising:
            raise ConnectionError("relay unreachable")
        if item_id in self.rejecting:
            return False
        self.sent.append({"channel": channel, "title": title, "body": body, "icon": icon})
        return True


class FakeCatalog(ItemCatalog):
    def __init__(self, entries: dict[str, CatalogEntry] | None = None) -> None:
        self.entries = dict(entries or {})
        self.refreshes = 0
        self.error: Exception | None = None

    def lookup(self, item_id: str) -> CatalogEntry | None:
        return self.entries.get(item_id)

    async def refresh(self, force: bool = False) -> None:
        self.refreshes += 1
        if self.error is not None:
            raise self.error

    @property
    def size(self) -> int:
        return len(self.entries)


def items(*ids: str | None) -> list[BatchItem]:
    return [BatchItem(item_id=i) for i in ids]
