from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from models.item import InterestRecord, SubscriptionRecord
from sources.base import InterestSource, SubscriptionSource

log = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_BACKOFF_SECONDS = 0.5


class BackendClient(InterestSource, SubscriptionSource):
    """Adapter for the subscription backend's internal API.

    Endpoints:
        GET /api/internal/active-skins?source=<source>  -> {"skins": [...]}
        GET /api/internal/subscriptions/<itemId>        -> {"subscriptions": [...]}

    Both are authenticated with the worker API key in ``X-API-Key``.  Each
    call is retried up to ``max_attempts`` times on transport errors and 5xx
    responses; after that the failure is logged and an empty list returned.
    The shared ``httpx.AsyncClient`` carries the per-request timeout.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        api_key: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._max_attempts = max(1, max_attempts)
        self._backoff = backoff_seconds

    async def get_active_items(self, source: str) -> list[InterestRecord]:
        data = await self._get_json(
            "/api/internal/active-skins", params={"source": source}
        )
        records: list[InterestRecord] = []
        for raw in _list_field(data, "skins"):
            record = InterestRecord.from_dict(raw)
            if record is not None:
                records.append(record)
        return records

    async def get_subscriptions(self, item_id: str) -> list[SubscriptionRecord]:
        data = await self._get_json(f"/api/internal/subscriptions/{item_id}")
        records: list[SubscriptionRecord] = []
        for raw in _list_field(data, "subscriptions"):
            record = SubscriptionRecord.from_dict(raw)
            if record is not None:
                records.append(record)
        return records

    async def _get_json(
        self, path: str, params: dict[str, str] | None = None
    ) -> dict[str, Any] | None:
        url = f"{self._base_url}{path}"
        headers = {"X-API-Key": self._api_key}
        last_err = ""

        for attempt in range(1, self._max_attempts + 1):
            try:
                resp = await self._client.get(url, params=params, headers=headers)
            except httpx.HTTPError as exc:
                last_err = repr(exc)
            else:
                if resp.status_code == 200:
                    try:
                        data = resp.json()
                    except ValueError:
                        log.error("Backend returned invalid JSON for %s", path)
                        return None
                    return data if isinstance(data, dict) else None
                if resp.status_code < 500:
                    log.warning("Backend %s answered %d", path, resp.status_code)
                    return None
                last_err = f"http {resp.status_code}"

            if attempt < self._max_attempts:
                await asyncio.sleep(self._backoff * attempt)

        log.error(
            "Backend %s failed after %d attempt(s): %s",
            path,
            self._max_attempts,
            last_err,
        )
        return None


def _list_field(data: dict[str, Any] | None, key: str) -> list[dict[str, Any]]:
    if not data:
        return []
    value = data.get(key)
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]
