from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from models.item import InterestRecord, SubscriptionRecord


class InterestSource(ABC):
    """Tells the dispatcher which items somebody is currently waiting for.

    Implementations talk to a remote service and must never raise: on any
    failure they log and return an empty list.
    """

    @abstractmethod
    async def get_active_items(self, source: str) -> list[InterestRecord]:
        """Items with at least one subscriber for ``source``, with the
        regions in which they are awaited."""


class SubscriptionSource(ABC):
    """Lists the subscriptions for a single item.  Same never-raise contract
    as ``InterestSource``."""

    @abstractmethod
    async def get_subscriptions(self, item_id: str) -> list[SubscriptionRecord]:
        """All subscriptions for ``item_id`` across regions and sources."""


@dataclass(frozen=True)
class CatalogEntry:
    name: str
    icon: str | None = None


class ItemCatalog(ABC):
    """Reference data mapping item identifiers to display metadata."""

    @abstractmethod
    def lookup(self, item_id: str) -> CatalogEntry | None:
        """Cached lookup; never performs I/O."""

    async def refresh(self, force: bool = False) -> None:
        """Reload the cache if it is stale.  Default: nothing to reload."""

    @property
    def size(self) -> int:
        return 0

    def display_name(self, item_id: str) -> str:
        entry = self.lookup(item_id)
        return entry.name if entry and entry.name else item_id


class EmptyCatalog(ItemCatalog):
    """Catalog with no entries; every item is shown by its identifier."""

    def lookup(self, item_id: str) -> CatalogEntry | None:
        return None
