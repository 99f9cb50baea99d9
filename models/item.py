from __future__ import annotations

from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from typing import Any

DEFAULT_SOURCE = "store"

# Keys that may carry the item identifier, in priority order.
_ID_KEYS = ("itemId", "skinId", "offerId")


class InvalidUpdateError(ValueError):
    """Raised when an inbound update cannot be accepted (bad shape or an
    unconfigured region).  Nothing reaches the dispatcher in that case."""


def _extract_id(raw: Mapping[str, Any]) -> str | None:
    for key in _ID_KEYS:
        value = raw.get(key)
        if value:
            return str(value)
    return None


@dataclass(frozen=True)
class BatchItem:
    """One entry of a store snapshot.

    ``item_id`` is ``None`` for entries lacking an identifier; those are
    carried through so ``processed`` counts match the inbound batch, but
    every stage skips them.
    """

    item_id: str | None
    icon: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> BatchItem:
        if not isinstance(raw, Mapping):
            return cls(item_id=None)
        icon = raw.get("icon")
        metadata = {k: v for k, v in raw.items() if k not in _ID_KEYS}
        return cls(
            item_id=_extract_id(raw),
            icon=str(icon) if icon else None,
            metadata=metadata,
        )


@dataclass(frozen=True)
class InterestRecord:
    """An item somebody is waiting for, and the regions they wait in."""

    item_id: str
    regions: frozenset[str]

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> InterestRecord | None:
        item_id = _extract_id(raw)
        if not item_id:
            return None
        regions = raw.get("regions") or []
        if isinstance(regions, str):
            regions = [regions]
        return cls(item_id=item_id, regions=frozenset(str(r).upper() for r in regions))

    def covers(self, region: str) -> bool:
        return region in self.regions


@dataclass(frozen=True)
class SubscriptionRecord:
    """One interested party for an item in a (region, source) pair."""

    region: str
    source: str
    subscriber_ref: str | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> SubscriptionRecord | None:
        region = raw.get("region")
        if not region:
            return None
        ref = raw.get("subscriberRef") or raw.get("userId")
        return cls(
            region=str(region).upper(),
            source=str(raw.get("source") or DEFAULT_SOURCE),
            subscriber_ref=str(ref) if ref is not None else None,
        )

    def matches(self, region: str, source: str) -> bool:
        return self.region == region and self.source == source


@dataclass(frozen=True)
class StoreUpdate:
    """Inbound snapshot for one region, as handed over by the transport."""

    region: str
    items: tuple[BatchItem, ...]
    source: str = DEFAULT_SOURCE
    force: bool = False

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        known_regions: Collection[str],
        force: bool = False,
    ) -> StoreUpdate:
        """Validate and normalize a raw ``{region, source?, items}`` payload.

        Raises:
            InvalidUpdateError: payload is malformed or names a region that
                is not configured.
        """
        region = payload.get("region")
        items = payload.get("items")
        if not region or not isinstance(region, str):
            raise InvalidUpdateError("region is required")
        if not isinstance(items, (list, tuple)):
            raise InvalidUpdateError("items must be a list")

        region = region.upper()
        if region not in known_regions:
            raise InvalidUpdateError(
                f"unknown region {region!r}; valid regions: {sorted(known_regions)}"
            )

        return cls(
            region=region,
            items=tuple(BatchItem.from_dict(raw) for raw in items),
            source=payload.get("source") or DEFAULT_SOURCE,
            force=force,
        )
