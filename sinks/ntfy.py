from __future__ import annotations

import logging

import httpx

from sinks.base import NotificationSink

log = logging.getLogger(__name__)

DEFAULT_TAGS = "video_game,gift"
DEFAULT_PRIORITY = "high"


class NtfySink(NotificationSink):
    """Publishes to an ntfy server: ``POST {base_url}/{channel}`` with the
    body as plain text and the title/icon in headers."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        auth_token: str = "",
        tags: str = DEFAULT_TAGS,
        priority: str = DEFAULT_PRIORITY,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._auth_token = auth_token
        self._tags = tags
        self._priority = priority

    def _headers(self, title: str, icon: str | None) -> dict[str, str | bytes]:
        headers: dict[str, str | bytes] = {
            "Content-Type": "text/plain",
            # skin names and icon URLs are not always ASCII
            "Title": title.encode("utf-8"),
            "Tags": self._tags,
            "Priority": self._priority,
        }
        if icon:
            headers["Icon"] = icon.encode("utf-8")
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        return headers

    async def send(
        self,
        channel: str,
        title: str,
        body: str,
        icon: str | None = None,
    ) -> bool:
        url = f"{self._base_url}/{channel}"
        try:
            resp = await self._client.post(
                url,
                headers=self._headers(title, icon),
                content=body.encode("utf-8"),
            )
        except httpx.HTTPError as exc:
            log.error("ntfy error (%s): %s", channel, exc)
            return False

        if resp.is_success:
            log.info("Notification sent: %s", channel)
            return True

        log.error("ntfy rejected %s with HTTP %d", channel, resp.status_code)
        return False
