from __future__ import annotations

import asyncio
import logging

from core.dispatcher import Dispatcher
from models.item import StoreUpdate
from models.result import DispatchResult

log = logging.getLogger(__name__)


class DispatchConsumer:
    """Feeds queued store updates to the dispatcher.

    Updates for different regions run concurrently, each in its own task;
    updates for the same region are chained so they reach the dispatcher
    in arrival order.  An update is marked done on the queue only once its
    dispatch has finished, so ``queue.join()`` means "all dispatched".
    """

    def __init__(
        self,
        queue: asyncio.Queue[StoreUpdate],
        dispatcher: Dispatcher,
    ) -> None:
        self._queue = queue
        self._dispatcher = dispatcher
        self._region_tasks: dict[str, asyncio.Task[None]] = {}
        self.last_results: dict[str, DispatchResult] = {}

    async def run(self) -> None:
        """Main consumer loop; runs until cancelled."""
        log.info("Dispatch consumer started, awaiting store updates")
        while True:
            update = await self._queue.get()
            previous = self._region_tasks.get(update.region)
            self._region_tasks[update.region] = asyncio.create_task(
                self._run(update, previous),
                name=f"dispatch-{update.region}",
            )

    async def _run(
        self,
        update: StoreUpdate,
        previous: asyncio.Task[None] | None,
    ) -> None:
        if previous is not None:
            await asyncio.wait([previous])

        log.info(
            "Store update: %s - %s - %d item(s)",
            update.region,
            update.source,
            len(update.items),
        )
        try:
            result = await self._dispatcher.dispatch(
                update.region, update.items, update.source, force=update.force
            )
        except Exception:
            log.exception("Dispatch for %s crashed", update.region)
        else:
            self.last_results[update.region] = result
        finally:
            self._queue.task_done()
