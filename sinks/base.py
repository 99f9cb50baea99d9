from __future__ import annotations

from abc import ABC, abstractmethod


class NotificationSink(ABC):
    """Delivers a notification to a named channel.

    ``send`` reports delivery as a bool and must not raise for delivery
    problems; the dispatcher treats ``False`` as "not delivered, try again on
    a later cycle".
    """

    @abstractmethod
    async def send(
        self,
        channel: str,
        title: str,
        body: str,
        icon: str | None = None,
    ) -> bool:
        """Send one message.  Returns True once the relay accepted it."""
