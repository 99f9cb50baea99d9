from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from sources.base import CatalogEntry, ItemCatalog

log = logging.getLogger(__name__)

DEFAULT_CATALOG_URL = "https://valorant-api.com/v1"
DEFAULT_TTL_SECONDS = 3600


class ValorantCatalog(ItemCatalog):
    """Skin catalog backed by valorant-api.com.

    Indexes every skin and each of its levels by uuid.  Level entries fall
    back to the parent skin's name and icon.  A failed refresh keeps the
    previous cache.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = DEFAULT_CATALOG_URL,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._ttl = ttl_seconds
        self._entries: dict[str, CatalogEntry] = {}
        self._loaded_at: float | None = None

    def lookup(self, item_id: str) -> CatalogEntry | None:
        return self._entries.get(item_id)

    @property
    def size(self) -> int:
        return len(self._entries)

    def is_stale(self) -> bool:
        if self._loaded_at is None:
            return True
        return time.monotonic() - self._loaded_at >= self._ttl

    async def refresh(self, force: bool = False) -> None:
        if not force and not self.is_stale():
            return

        try:
            resp = await self._client.get(f"{self._base_url}/weapons/skins")
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            log.error("Catalog refresh failed: %s", exc)
            return

        if (
            not isinstance(data, dict)
            or data.get("status") != 200
            or not isinstance(data.get("data"), list)
        ):
            log.warning("Catalog refresh returned no data")
            return

        entries = _index_skins(data["data"])
        if not entries:
            log.warning("Catalog refresh returned no usable entries")
            return

        self._entries = entries
        self._loaded_at = time.monotonic()
        log.info("Catalog loaded: %d entries", len(self._entries))


def _index_skins(skins: list[Any]) -> dict[str, CatalogEntry]:
    entries: dict[str, CatalogEntry] = {}
    for skin in skins:
        if not isinstance(skin, dict):
            continue
        name = skin.get("displayName") or ""
        icon = skin.get("displayIcon")
        if skin.get("uuid"):
            entries[skin["uuid"]] = CatalogEntry(name=name, icon=icon)
        levels = skin.get("levels")
        for level in levels if isinstance(levels, list) else []:
            if isinstance(level, dict) and level.get("uuid"):
                entries[level["uuid"]] = CatalogEntry(
                    name=level.get("displayName") or name,
                    icon=level.get("displayIcon") or icon,
                )
    return entries
