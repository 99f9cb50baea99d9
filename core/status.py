from __future__ import annotations

import time
from datetime import datetime
from typing import Any

from core.registry import RegionRegistry
from sources.base import EmptyCatalog, ItemCatalog


def _iso(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts is not None else None


class StatusReporter:
    """Read-only view over region state for health and status endpoints."""

    def __init__(
        self,
        registry: RegionRegistry,
        catalog: ItemCatalog | None = None,
    ) -> None:
        self._registry = registry
        self._catalog = catalog or EmptyCatalog()
        self._started = time.monotonic()

    def region_status(self, region: str, now: datetime) -> dict[str, Any] | None:
        """Window, counters and running cooldowns for one region, or None
        if the region is not configured."""
        cfg = self._registry.schedule.get(region)
        state = self._registry.state(region)
        if cfg is None or state is None:
            return None

        return {
            "region": region,
            "isInWindow": self._registry.schedule.is_in_window(region, now),
            "schedule": {
                "startHour": cfg.start_hour,
                "endHour": cfg.end_hour,
                "checkInterval": cfg.check_interval,
                "timezone": cfg.timezone,
            },
            "state": {
                "lastCheck": _iso(state.last_checked_at),
                "storeHash": state.last_fingerprint,
                "checkCount": state.check_count,
                "cooldownSkins": [
                    {
                        "skinId": e.item_id,
                        "notifiedAt": _iso(e.notified_at),
                        "cooldownEnds": _iso(e.cooldown_ends),
                    }
                    for e in state.cooldown.entries(now)
                ],
            },
        }

    def health_snapshot(self, now: datetime) -> dict[str, Any]:
        schedule = self._registry.schedule
        regions: dict[str, Any] = {}
        for state in self._registry.states:
            cfg = schedule.get(state.region)
            regions[state.region] = {
                "isInWindow": schedule.is_in_window(state.region, now),
                "windowUTC": cfg.window_label if cfg else None,
                "lastCheck": _iso(state.last_checked_at),
                "checkCount": state.check_count,
                "pendingNotifications": state.cooldown.size,
            }

        return {
            "status": "ok",
            "type": "worker",
            "timestamp": now.isoformat(),
            "skinCacheSize": self._catalog.size,
            "activeRegions": schedule.active_regions(now),
            "regionStatus": regions,
            "uptime": time.monotonic() - self._started,
        }
