from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

DEFAULT_COOLDOWN = timedelta(hours=24)


@dataclass(frozen=True)
class CooldownEntry:
    item_id: str
    notified_at: datetime
    cooldown_ends: datetime


class CooldownLedger:
    """In-memory record of when each item was last notified in one region.

    An item may be notified again once ``cooldown`` has elapsed since its
    last notification.  Entries older than ``retention`` (twice the cooldown
    unless given) are dropped whenever a new notification is recorded, so the
    ledger stays bounded by the number of items notified within that horizon.
    """

    def __init__(
        self,
        cooldown: timedelta = DEFAULT_COOLDOWN,
        retention: timedelta | None = None,
    ) -> None:
        self.cooldown = cooldown
        self.retention = retention if retention is not None else cooldown * 2
        self._notified: dict[str, datetime] = {}

    def may_notify(self, item_id: str, now: datetime) -> bool:
        last = self._notified.get(item_id)
        if last is None:
            return True
        return now - last >= self.cooldown

    def record_notified(self, item_id: str, now: datetime) -> None:
        """Store ``now`` as the item's last notification, then purge entries
        older than the retention horizon."""
        self._notified[item_id] = now
        self.purge_older_than(self.retention, now)

    def purge_older_than(self, horizon: timedelta, now: datetime) -> int:
        """Drop entries whose timestamp is before ``now - horizon``.

        Returns the number of entries removed.
        """
        cutoff = now - horizon
        expired = [k for k, ts in self._notified.items() if ts < cutoff]
        for k in expired:
            del self._notified[k]
        return len(expired)

    def last_notified(self, item_id: str) -> datetime | None:
        return self._notified.get(item_id)

    def entries(self, now: datetime | None = None) -> list[CooldownEntry]:
        """Entries in notification order.  With ``now``, only those whose
        cooldown is still running."""
        out = [
            CooldownEntry(item_id, ts, ts + self.cooldown)
            for item_id, ts in sorted(self._notified.items(), key=lambda kv: kv[1])
        ]
        if now is not None:
            out = [e for e in out if e.cooldown_ends > now]
        return out

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._notified

    @property
    def size(self) -> int:
        return len(self._notified)
