from __future__ import annotations

import asyncio
import logging
from collections.abc import Collection, Mapping
from typing import Any

from models.item import InvalidUpdateError, StoreUpdate

log = logging.getLogger(__name__)


class UpdateIntake:
    """Inbound seam for store snapshots.

    The transport hands raw ``{region, source?, items}`` payloads to
    ``submit``; they are validated against the configured regions and queued
    for the dispatch consumer.  Rejected payloads never reach the queue.
    """

    def __init__(self, known_regions: Collection[str], maxsize: int = 0) -> None:
        self._known_regions = frozenset(known_regions)
        self._queue: asyncio.Queue[StoreUpdate] = asyncio.Queue(maxsize=maxsize)
        self.rejected = 0

    @property
    def queue(self) -> asyncio.Queue[StoreUpdate]:
        return self._queue

    async def submit(self, payload: Mapping[str, Any], force: bool = False) -> StoreUpdate:
        """Validate ``payload`` and queue it.

        Raises:
            InvalidUpdateError: the payload is malformed or names an
                unconfigured region.
        """
        try:
            update = StoreUpdate.from_payload(payload, self._known_regions, force=force)
        except InvalidUpdateError as exc:
            self.rejected += 1
            log.warning("Rejected store update: %s", exc)
            raise

        await self._queue.put(update)
        return update

    async def join(self) -> None:
        """Wait until every queued update has been dispatched."""
        await self._queue.join()
