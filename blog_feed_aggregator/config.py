from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


_DEFAULTS: dict[str, dict[str, Any]] = {
    "http": {
        "user_agent": "tailf RSS Aggregator",
        "timeout_seconds": 20,
        "max_connections": 10,
    },
    "rate_limit": {
        "max_requests_per_period": 2,
        "period_seconds": 1.0,
    },
    "ingest": {
        "max_feed_fetches_per_run": 30,
        "summary_max_chars": 500,
        "og_image_fetch_limit": 3,
        "og_image_delay_ms": 200,
    },
    "bookmarks": {
        "api_url": "https://bookmark.hatenaapis.com/count/entry",
        "delay_ms": 100,
        "refresh_window_days": 7,
        "batch_size": 40,
    },
    "scoring": {
        "use_anchor_oracle": False,
    },
    "storage": {
        "output_dir": "data",
        "format": "csv",
    },
    "logging": {
        "level": "INFO",
    },
}


@dataclass(frozen=True)
class Config:
    raw: dict[str, Any]

    def section(self, name: str) -> dict[str, Any]:
        merged = dict(_DEFAULTS.get(name, {}))
        merged.update(self.raw.get(name) or {})
        return merged

    @property
    def http(self) -> dict[str, Any]:
        return self.section("http")

    @property
    def rate_limit(self) -> dict[str, Any]:
        return self.section("rate_limit")

    @property
    def ingest(self) -> dict[str, Any]:
        return self.section("ingest")

    @property
    def bookmarks(self) -> dict[str, Any]:
        return self.section("bookmarks")

    @property
    def scoring(self) -> dict[str, Any]:
        return self.section("scoring")

    @property
    def output_dir(self) -> Path:
        return Path(str(self.section("storage")["output_dir"]))

    @property
    def storage_format(self) -> str:
        return str(self.section("storage")["format"]).lower()

    @property
    def log_level(self) -> str:
        return str(self.section("logging")["level"]).upper()


def load_yaml(path: str | Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_config(path: str | Path | None = None) -> Config:
    if path is None:
        return Config(raw={})
    return Config(raw=load_yaml(path))
