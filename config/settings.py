"""
Configuration for the store watcher.

Values come from an optional TOML file (``STOREWATCH_CONFIG`` or
``config.toml`` next to ``main.py``) and are then overridden by environment
variables for endpoints and secrets.  Malformed values fall back to defaults.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any

try:
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - Python < 3.11
    import tomli as tomllib

from core.fingerprint import FingerprintPolicy
from models.region import DEFAULT_REGIONS, RegionConfig

log = logging.getLogger(__name__)

_CONFIG_FILE_NAME = "config.toml"
_CONFIG_ENV = "STOREWATCH_CONFIG"

DEFAULT_MESSAGES: dict[str, dict[str, str]] = {
    "store": {
        "tr": "🎯 Favori skinin bugün mağazada!",
        "en": "🎯 Your favorite skin is in the store today!",
    },
    "night": {
        "tr": "🌙 Gece pazarında istediğin skin var!",
        "en": "🌙 Your wishlist skin is in Night Market!",
    },
    "bundle": {
        "tr": "📦 Aradığın skin yeni pakette!",
        "en": "📦 Your desired skin is in a new bundle!",
    },
}


@dataclass
class Settings:
    """Application settings."""

    backend_url: str = "https://valohub-backend.onrender.com"
    worker_api_key: str = "dev-worker-key"
    ntfy_url: str = "https://valohub-ntfy.onrender.com"
    ntfy_auth_token: str = ""
    valorant_api_url: str = "https://valorant-api.com/v1"

    namespace: str = "valohub"
    language: str = "tr"
    regions: list[RegionConfig] = field(default_factory=lambda: list(DEFAULT_REGIONS))

    cooldown_hours: float = 24.0
    retention_hours: float = 0.0  # <= 0 means twice the cooldown
    sweep_interval_hours: float = 6.0
    catalog_ttl_seconds: int = 3600
    call_timeout: float = 5.0
    http_max_attempts: int = 2
    fingerprint_policy: FingerprintPolicy = FingerprintPolicy.IDS

    messages: dict[str, dict[str, str]] = field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_MESSAGES.items()}
    )

    @property
    def cooldown(self) -> timedelta:
        return timedelta(hours=self.cooldown_hours)

    @property
    def retention(self) -> timedelta:
        if self.retention_hours <= 0:
            return self.cooldown * 2
        return timedelta(hours=self.retention_hours)

    def message_bodies(self) -> dict[str, str]:
        """Per-source body text in the configured language."""
        bodies: dict[str, str] = {}
        for source, texts in self.messages.items():
            body = texts.get(self.language) or texts.get("en") or next(iter(texts.values()), "")
            bodies[source] = body
        return bodies

    @classmethod
    def load(cls, path: Path | None = None) -> Settings:
        """Build settings from the TOML file and the environment."""
        data = _load_toml_config(path or _get_config_path())

        backend = _get_section(data, "backend")
        ntfy = _get_section(data, "ntfy")
        catalog = _get_section(data, "catalog")
        notify = _get_section(data, "notify")
        defaults = cls()

        settings = cls(
            backend_url=_get_str(backend, "url", defaults.backend_url),
            worker_api_key=_get_str(backend, "api_key", defaults.worker_api_key),
            ntfy_url=_get_str(ntfy, "url", defaults.ntfy_url),
            ntfy_auth_token=_get_str(ntfy, "auth_token", ""),
            valorant_api_url=_get_str(catalog, "url", defaults.valorant_api_url),
            namespace=_get_str(notify, "namespace", defaults.namespace),
            language=_get_str(notify, "language", defaults.language),
            regions=_parse_regions(_get_section(data, "regions")),
            cooldown_hours=_get_float(notify, "cooldown_hours", 24.0),
            retention_hours=_get_float(notify, "retention_hours", 0.0),
            sweep_interval_hours=_get_float(notify, "sweep_interval_hours", 6.0),
            catalog_ttl_seconds=_get_int(catalog, "ttl_seconds", 3600),
            call_timeout=_get_float(data, "call_timeout", 5.0),
            http_max_attempts=_get_int(data, "http_max_attempts", 2),
            fingerprint_policy=_get_policy(notify, "fingerprint_policy"),
        )
        settings.messages.update(_parse_messages(_get_section(data, "messages")))
        settings._apply_env(os.environ)
        return settings

    def _apply_env(self, env: Any) -> None:
        self.backend_url = env.get("BACKEND_URL") or self.backend_url
        self.ntfy_url = env.get("NTFY_URL", self.ntfy_url)
        self.worker_api_key = env.get("WORKER_API_KEY") or self.worker_api_key
        self.ntfy_auth_token = env.get("NTFY_AUTH_TOKEN") or self.ntfy_auth_token
        self.valorant_api_url = env.get("VALORANT_API_URL") or self.valorant_api_url
        self.language = env.get("MESSAGE_LANGUAGE") or self.language


def _get_config_path() -> Path:
    env_path = os.environ.get(_CONFIG_ENV)
    if env_path:
        return Path(env_path)
    return Path(__file__).resolve().parents[1] / _CONFIG_FILE_NAME


def _load_toml_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        log.info("No config file at %s, using defaults", path)
        return {}

    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        log.error("Failed to read config %s: %s", path, exc)
        return {}


def _parse_regions(section: dict[str, Any]) -> list[RegionConfig]:
    """Merge ``[regions.<ID>]`` tables over the default region set.

    A table for an unknown id adds that region; ``enabled = false`` drops it.
    """
    regions = {r.id: r for r in DEFAULT_REGIONS}
    for region_id, raw in section.items():
        if not isinstance(raw, dict):
            continue
        rid = str(region_id).strip().upper()
        if not _get_bool(raw, "enabled", True):
            regions.pop(rid, None)
            continue

        base = regions.get(rid) or RegionConfig(rid, 0, 0)
        start = _get_int(raw, "start_hour", base.start_hour)
        end = _get_int(raw, "end_hour", base.end_hour)
        if not (0 <= start <= 23 and 0 <= end <= 23):
            log.warning("Ignoring region %s: hours must be within 0-23", rid)
            continue
        regions[rid] = RegionConfig(
            id=rid,
            start_hour=start,
            end_hour=end,
            check_interval=max(1, _get_int(raw, "check_interval", base.check_interval)),
            timezone=_get_str(raw, "timezone", base.timezone),
        )
    return list(regions.values())


def _parse_messages(section: dict[str, Any]) -> dict[str, dict[str, str]]:
    parsed: dict[str, dict[str, str]] = {}
    for source, texts in section.items():
        if isinstance(texts, dict):
            parsed[str(source)] = {str(k): str(v) for k, v in texts.items()}
    return parsed


def _get_policy(data: dict[str, Any], key: str) -> FingerprintPolicy:
    value = _get_str(data, key, FingerprintPolicy.IDS.value).strip().lower()
    try:
        return FingerprintPolicy(value)
    except ValueError:
        log.warning("Unknown fingerprint policy %r, using ids", value)
        return FingerprintPolicy.IDS


def _get_section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key, {})
    return value if isinstance(value, dict) else {}


def _get_str(data: dict[str, Any], key: str, default: str) -> str:
    value = data.get(key, default)
    return str(value) if value is not None else default


def _get_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _get_float(data: dict[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _get_bool(data: dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return default
