from __future__ import annotations

from sinks.base import NotificationSink


class ConsoleSink(NotificationSink):
    """Sink that prints notifications to stdout.  Used when no ntfy server
    is configured."""

    async def send(
        self,
        channel: str,
        title: str,
        body: str,
        icon: str | None = None,
    ) -> bool:
        print(
            f"[{channel}] {title}\n"
            f"  {body}\n",
            flush=True,
        )
        return True
