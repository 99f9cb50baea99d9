"""Store watcher -- entry point.

Assembles the pipeline:

    transport -> UpdateIntake.submit (validation, asyncio.Queue)
        -> DispatchConsumer (one serialized chain per region)
        -> Dispatcher: window -> change -> interest -> cooldown -> send

    Scheduler: per-region timers, cooldown sweep, catalog refresh

A shared httpx.AsyncClient is injected into every adapter; its timeout
bounds each backend, catalog and ntfy call.
"""
from __future__ import annotations

import asyncio
import logging

import httpx

from config.settings import Settings
from consumers.dispatch import DispatchConsumer
from core.dispatcher import Dispatcher
from core.fingerprint import ChangeDetector
from core.intake import UpdateIntake
from core.registry import RegionRegistry
from core.schedule import RegionSchedule
from core.scheduler import Scheduler
from sinks.base import NotificationSink
from sinks.console import ConsoleSink
from sinks.ntfy import NtfySink
from sources.backend import BackendClient
from sources.catalog import ValorantCatalog

log = logging.getLogger(__name__)


def build_sink(client: httpx.AsyncClient, settings: Settings) -> NotificationSink:
    if not settings.ntfy_url:
        log.warning("NTFY_URL not set, printing notifications to stdout")
        return ConsoleSink()
    return NtfySink(client, settings.ntfy_url, auth_token=settings.ntfy_auth_token)


async def run() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    settings = Settings.load()

    async with httpx.AsyncClient(timeout=settings.call_timeout) as client:
        schedule = RegionSchedule(settings.regions)
        registry = RegionRegistry(
            schedule,
            cooldown=settings.cooldown,
            retention=settings.retention,
        )

        backend = BackendClient(
            client,
            settings.backend_url,
            settings.worker_api_key,
            max_attempts=settings.http_max_attempts,
        )
        catalog = ValorantCatalog(
            client,
            settings.valorant_api_url,
            ttl_seconds=settings.catalog_ttl_seconds,
        )
        await catalog.refresh(force=True)

        dispatcher = Dispatcher(
            registry=registry,
            interest=backend,
            subscriptions=backend,
            sink=build_sink(client, settings),
            catalog=catalog,
            detector=ChangeDetector(settings.fingerprint_policy),
            messages=settings.message_bodies(),
            namespace=settings.namespace,
            # adapters retry internally, so allow for every attempt
            call_timeout=settings.call_timeout * (settings.http_max_attempts + 1),
        )

        intake = UpdateIntake(schedule.region_ids)
        consumer = DispatchConsumer(queue=intake.queue, dispatcher=dispatcher)

        scheduler = Scheduler(
            schedule=schedule,
            dispatcher=dispatcher,
            interest=backend,
            catalog=catalog,
            sweep_interval_seconds=settings.sweep_interval_hours * 3600,
            catalog_interval_seconds=settings.catalog_ttl_seconds,
        )

        log.info("Backend URL: %s", settings.backend_url)
        log.info("Ntfy URL: %s", settings.ntfy_url or "(stdout)")

        tasks = [
            asyncio.create_task(scheduler.run(), name="scheduler"),
            asyncio.create_task(consumer.run(), name=type(consumer).__name__),
        ]

        await asyncio.gather(*tasks)


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        print("\nShutting down.")


if __name__ == "__main__":
    main()
