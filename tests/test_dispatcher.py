from __future__ import annotations

import asyncio
from datetime import timedelta

from core.dispatcher import Dispatcher, channel_name
from models.item import BatchItem
from models.result import NO_CHANGE, OUTSIDE_WINDOW, UNKNOWN_REGION
from sources.base import CatalogEntry

from tests.helpers import T0, items

MS = timedelta(milliseconds=1)
DAY = timedelta(hours=24)


def watch(interest, subscriptions, item_id, region="TR", source="store"):
    interest.want(item_id, region)
    subscriptions.subscribe(item_id, region, source)


async def test_end_to_end_notification(dispatcher, interest, subscriptions, sink, registry):
    interest.want("skin-42", "TR")
    subscriptions.subscribe("skin-42", "TR", "store", "u1")

    result = await dispatcher.dispatch("TR", items("skin-42"), "store")

    assert not result.skipped
    assert result.notified_count == 1
    assert result.processed_count == 1
    assert result.notifications[0].topic == "valohub/TR/store/skin-42"
    assert sink.sent == [{
        "channel": "valohub/TR/store/skin-42",
        "title": "ValoHub: skin-42",
        "body": "in store",
        "icon": None,
    }]
    state = registry.state("TR")
    assert state.cooldown.last_notified("skin-42") == T0
    assert state.check_count == 1
    assert state.last_checked_at == T0


async def test_outside_window_touches_nothing(dispatcher, interest, registry):
    result = await dispatcher.dispatch("NA", items("a"))

    assert result.skipped and result.reason == OUTSIDE_WINDOW
    assert registry.state("NA").last_fingerprint is None
    assert interest.calls == []


async def test_force_bypasses_window(dispatcher, interest, subscriptions, sink):
    watch(interest, subscriptions, "a", region="NA")

    result = await dispatcher.dispatch("NA", items("a"), force=True)

    assert result.notified_count == 1


async def test_unknown_region_fails_closed(dispatcher, interest):
    result = await dispatcher.dispatch("MARS", items("a"))

    assert result.skipped and result.reason == UNKNOWN_REGION
    assert interest.calls == []


async def test_same_batch_twice_is_skipped(dispatcher, interest, subscriptions, sink, registry):
    watch(interest, subscriptions, "a")
    await dispatcher.dispatch("TR", items("a", "b"))
    ledger_before = registry.state("TR").cooldown.entries()

    second = await dispatcher.dispatch("TR", items("b", "a"))

    assert second.skipped and second.reason == NO_CHANGE
    assert second.notified_count == 0
    assert len(sink.sent) == 1
    assert registry.state("TR").cooldown.entries() == ledger_before
    assert registry.state("TR").check_count == 1


async def test_first_empty_batch_counts_as_change(dispatcher, interest):
    result = await dispatcher.dispatch("TR", [])

    assert not result.skipped
    assert result.processed_count == 0
    assert interest.calls == ["store"]


async def test_cooldown_blocks_until_it_expires(dispatcher, interest, subscriptions, sink, clock):
    watch(interest, subscriptions, "x")
    first = await dispatcher.dispatch("TR", items("x"))
    assert first.notified_count == 1

    clock.now = T0 + DAY - MS
    blocked = await dispatcher.dispatch("TR", items("x", "y"))
    assert blocked.notified_count == 0
    assert blocked.cooldown_skipped_count == 1

    clock.now = T0 + DAY + MS
    again = await dispatcher.dispatch("TR", items("x"))
    assert again.notified_count == 1
    assert len(sink.sent) == 2


async def test_cooldown_is_per_region(dispatcher, interest, subscriptions, sink):
    interest.want("x", "TR", "EU")
    subscriptions.subscribe("x", "TR")
    subscriptions.subscribe("x", "EU")

    tr = await dispatcher.dispatch("TR", items("x"))
    eu = await dispatcher.dispatch("EU", items("x"))

    assert tr.notified_count == 1
    assert eu.notified_count == 1
    assert [s["channel"] for s in sink.sent] == ["valohub/TR/store/x", "valohub/EU/store/x"]


async def test_failed_send_leaves_item_eligible(dispatcher, interest, subscriptions, sink, registry):
    watch(interest, subscriptions, "a")
    watch(interest, subscriptions, "b")
    sink.rejecting.add("a")

    result = await dispatcher.dispatch("TR", items("a", "b"))

    assert [n.item_id for n in result.notifications] == ["b"]
    ledger = registry.state("TR").cooldown
    assert "a" not in ledger
    assert "b" in ledger

    sink.rejecting.clear()
    retry = await dispatcher.dispatch("TR", items("a"))
    assert [n.item_id for n in retry.notifications] == ["a"]


async def test_sink_exception_does_not_abort_batch(dispatcher, interest, subscriptions, sink):
    watch(interest, subscriptions, "a")
    watch(interest, subscriptions, "b")
    sink.raising.add("a")

    result = await dispatcher.dispatch("TR", items("a", "b"))

    assert result.notified_count == 1
    assert result.notifications[0].item_id == "b"


async def test_interest_failure_means_nothing_to_notify(dispatcher, interest, subscriptions, registry):
    watch(interest, subscriptions, "a")
    interest.error = RuntimeError("backend down")

    result = await dispatcher.dispatch("TR", items("a"))

    assert not result.skipped
    assert result.notified_count == 0
    assert registry.state("TR").check_count == 1


async def test_slow_interest_source_times_out(registry, interest, subscriptions, sink, clock):
    watch(interest, subscriptions, "a")
    interest.delay = 0.5
    dispatcher = Dispatcher(registry, interest, subscriptions, sink, call_timeout=0.01, clock=clock)

    result = await dispatcher.dispatch("TR", items("a"))

    assert result.notified_count == 0
    assert sink.sent == []


async def test_subscription_failure_skips_item(dispatcher, interest, subscriptions, sink):
    watch(interest, subscriptions, "a")
    watch(interest, subscriptions, "b")
    subscriptions.failing.add("a")

    result = await dispatcher.dispatch("TR", items("a", "b"))

    assert [n.item_id for n in result.notifications] == ["b"]


async def test_interest_must_cover_region(dispatcher, interest, subscriptions):
    interest.want("a", "EU")
    subscriptions.subscribe("a", "TR")

    result = await dispatcher.dispatch("TR", items("a"))

    assert result.notified_count == 0
    assert subscriptions.calls == []


async def test_subscriptions_filtered_by_region_and_source(dispatcher, interest, subscriptions):
    interest.want("a", "TR")
    subscriptions.subscribe("a", "EU", "store")
    subscriptions.subscribe("a", "TR", "night")

    none = await dispatcher.dispatch("TR", items("a"))
    assert none.notified_count == 0

    subscriptions.subscribe("a", "TR", "store", "u2")
    subscriptions.subscribe("a", "TR", "store", "u3")
    some = await dispatcher.dispatch("TR", items("a", "z"))
    assert some.notifications[0].subscriber_count == 2


async def test_items_without_identifier_are_skipped(dispatcher, interest, subscriptions):
    watch(interest, subscriptions, "a")

    result = await dispatcher.dispatch("TR", [BatchItem(None), BatchItem("a")])

    assert result.processed_count == 2
    assert result.notified_count == 1


async def test_night_market_uses_its_message(dispatcher, interest, subscriptions, sink):
    watch(interest, subscriptions, "a", source="night")

    await dispatcher.dispatch("TR", items("a"), "night")

    assert sink.sent[0]["channel"] == "valohub/TR/night/a"
    assert sink.sent[0]["body"] == "in night market"


async def test_unknown_source_falls_back_to_store_message(dispatcher, interest, subscriptions, sink):
    watch(interest, subscriptions, "a", source="bundle")

    await dispatcher.dispatch("TR", items("a"), "bundle")

    assert sink.sent[0]["body"] == "in store"


async def test_title_and_icon_from_catalog(dispatcher, interest, subscriptions, sink, catalog):
    watch(interest, subscriptions, "a")
    watch(interest, subscriptions, "b")
    catalog.entries["a"] = CatalogEntry("Prime Vandal", "https://cdn/prime.png")

    await dispatcher.dispatch("TR", [BatchItem("a"), BatchItem("b", icon="https://cdn/b.png")])

    assert sink.sent[0]["title"] == "ValoHub: Prime Vandal"
    assert sink.sent[0]["icon"] == "https://cdn/prime.png"
    assert sink.sent[1]["title"] == "ValoHub: b"
    assert sink.sent[1]["icon"] == "https://cdn/b.png"


async def test_dispatches_for_one_region_do_not_overlap(dispatcher, interest):
    interest.delay = 0.02

    await asyncio.gather(
        dispatcher.dispatch("TR", items("a")),
        dispatcher.dispatch("TR", items("b")),
        dispatcher.dispatch("TR", items("c")),
    )

    assert interest.max_in_flight == 1
    assert len(interest.calls) == 3


async def test_different_regions_run_in_parallel(dispatcher, interest):
    interest.delay = 0.02

    await asyncio.gather(
        dispatcher.dispatch("TR", items("a")),
        dispatcher.dispatch("EU", items("a")),
    )

    assert interest.max_in_flight == 2


async def test_sweep_drops_expired_cooldowns(dispatcher, interest, subscriptions, registry, clock):
    watch(interest, subscriptions, "a")
    await dispatcher.dispatch("TR", items("a"))

    clock.advance(DAY + MS)
    removed = await dispatcher.sweep_cooldowns()

    assert removed == 1
    assert registry.state("TR").cooldown.size == 0


async def test_sweep_waits_for_an_in_flight_dispatch(dispatcher, registry, clock):
    lock = registry.state("TR").lock
    await lock.acquire()
    sweep = asyncio.create_task(dispatcher.sweep_cooldowns())
    await asyncio.sleep(0.01)

    assert not sweep.done()

    lock.release()
    assert await sweep == 0


def test_channel_name():
    assert channel_name("valohub", "TR", "store", "skin-42") == "valohub/TR/store/skin-42"
