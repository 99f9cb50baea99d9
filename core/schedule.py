from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from models.region import RegionConfig


def _utc_hour(now: datetime) -> int:
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.hour


class RegionSchedule:
    """Lookup of per-region store refresh windows.

    Pure configuration: nothing here mutates.  Unknown regions are reported
    as out of window rather than raising, so a misrouted region can never
    trigger a dispatch.
    """

    def __init__(self, regions: Iterable[RegionConfig]) -> None:
        self._regions: dict[str, RegionConfig] = {r.id: r for r in regions}

    def get(self, region: str) -> RegionConfig | None:
        return self._regions.get(region)

    def __contains__(self, region: object) -> bool:
        return region in self._regions

    @property
    def region_ids(self) -> list[str]:
        return list(self._regions)

    @property
    def regions(self) -> list[RegionConfig]:
        return list(self._regions.values())

    def is_in_window(self, region: str, now: datetime) -> bool:
        """Hour-resolution window test in UTC.

        ``start <= end``: in window for ``start <= hour < end``.
        ``start > end``: the window wraps midnight, so ``hour >= start`` or
        ``hour < end``.
        """
        cfg = self._regions.get(region)
        if cfg is None:
            return False

        hour = _utc_hour(now)
        if cfg.start_hour <= cfg.end_hour:
            return cfg.start_hour <= hour < cfg.end_hour
        return hour >= cfg.start_hour or hour < cfg.end_hour

    def active_regions(self, now: datetime) -> list[str]:
        return [r for r in self._regions if self.is_in_window(r, now)]

    def is_due(self, region: str, now: datetime, last_tick: datetime | None) -> bool:
        """True when the region is in window and at least one check interval
        has passed since ``last_tick``."""
        cfg = self._regions.get(region)
        if cfg is None or not self.is_in_window(region, now):
            return False
        if last_tick is None:
            return True
        return now - last_tick >= timedelta(minutes=cfg.check_interval)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
