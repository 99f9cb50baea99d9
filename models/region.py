from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from core.cooldown import CooldownLedger


@dataclass(frozen=True)
class RegionConfig:
    """Store refresh window for one region.

    Fields:
        id:             Region identifier ("TR", "NA", ...).
        start_hour:     First UTC hour of the window (0-23).
        end_hour:       UTC hour at which the window closes (0-23).  When
                        ``end_hour < start_hour`` the window wraps past
                        midnight; equal hours give an empty window.
        check_interval: Minutes between timer ticks for this region.
        timezone:       IANA zone of the region's players; informational.
    """

    id: str
    start_hour: int
    end_hour: int
    check_interval: int = 5
    timezone: str = "UTC"

    @property
    def window_label(self) -> str:
        return f"{self.start_hour}:00 - {self.end_hour}:00"


DEFAULT_REGIONS: tuple[RegionConfig, ...] = (
    RegionConfig("TR", 1, 3, 5, "Europe/Istanbul"),
    RegionConfig("EU", 1, 3, 5, "Europe/London"),
    RegionConfig("NA", 8, 10, 5, "America/New_York"),
    RegionConfig("LATAM", 7, 9, 5, "America/Sao_Paulo"),
    RegionConfig("BR", 7, 9, 5, "America/Sao_Paulo"),
    RegionConfig("AP", 12, 14, 5, "Asia/Tokyo"),
    RegionConfig("KR", 15, 17, 5, "Asia/Seoul"),
)


@dataclass
class RegionState:
    """Mutable bookkeeping for a single region.

    Owned by the dispatcher; ``lock`` serializes dispatch calls for the
    region so fingerprint and cooldown updates never interleave.
    """

    region: str
    cooldown: CooldownLedger
    last_fingerprint: str | None = None
    last_checked_at: datetime | None = None
    check_count: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
