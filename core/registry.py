from __future__ import annotations

from datetime import timedelta

from core.cooldown import DEFAULT_COOLDOWN, CooldownLedger
from core.schedule import RegionSchedule
from models.region import RegionState


class RegionRegistry:
    """Owns one ``RegionState`` per configured region.

    States are created eagerly for every region in the schedule and live for
    the lifetime of the process.  Nothing outside the dispatcher should
    mutate them; the status surface only reads.
    """

    def __init__(
        self,
        schedule: RegionSchedule,
        cooldown: timedelta = DEFAULT_COOLDOWN,
        retention: timedelta | None = None,
    ) -> None:
        self.schedule = schedule
        self._states: dict[str, RegionState] = {
            region: RegionState(
                region=region,
                cooldown=CooldownLedger(cooldown=cooldown, retention=retention),
            )
            for region in schedule.region_ids
        }

    def state(self, region: str) -> RegionState | None:
        return self._states.get(region)

    def __contains__(self, region: object) -> bool:
        return region in self._states

    @property
    def states(self) -> list[RegionState]:
        return list(self._states.values())
