from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

OUTSIDE_WINDOW = "outside_window"
NO_CHANGE = "no_change"
UNKNOWN_REGION = "unknown_region"


@dataclass(frozen=True)
class SentNotification:
    """A notification that the sink accepted."""

    topic: str
    item_id: str
    item_name: str
    subscriber_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "itemId": self.item_id,
            "itemName": self.item_name,
            "subscriberCount": self.subscriber_count,
        }


@dataclass
class DispatchResult:
    """Outcome of one ``Dispatcher.dispatch`` call.

    A skipped result (``reason`` set) means no state was touched beyond the
    fingerprint commit; otherwise the counters describe what happened to each
    item of the batch.
    """

    region: str
    source: str
    skipped: bool = False
    reason: str | None = None
    processed_count: int = 0
    cooldown_skipped_count: int = 0
    notifications: list[SentNotification] = field(default_factory=list)

    @property
    def notified_count(self) -> int:
        return len(self.notifications)

    @classmethod
    def skip(cls, region: str, source: str, reason: str) -> DispatchResult:
        return cls(region=region, source=source, skipped=True, reason=reason)

    def to_dict(self) -> dict[str, Any]:
        if self.skipped:
            return {"skipped": True, "reason": self.reason}
        return {
            "skipped": False,
            "region": self.region,
            "source": self.source,
            "processed": self.processed_count,
            "notificationsSent": self.notified_count,
            "skippedCooldown": self.cooldown_skipped_count,
            "notifications": [n.to_dict() for n in self.notifications],
        }
