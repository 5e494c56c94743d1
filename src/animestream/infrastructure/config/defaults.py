"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "animestream",
    "environment": "dev",
    "http": {
        "timeout_seconds": 8.0,
        "user_agent": "AnimeStream/0.1.0",
    },
    "playwright": {
        "headless": True,
        "stealth": True,
    },
    "logging": {
        "level": "INFO",
        "format": None,  # derived from environment in schema.py
    },
    "cache": {
        "dir": "./.cache/animestream",
        "ttl_seconds": 6 * 3600,
    },
    "extraction": {
        "settle_delay_seconds": 0.5,
        "network_timeout_seconds": 3.0,
        "dom_timeout_seconds": 2.0,
        "hook_timeout_seconds": 2.0,
        "navigation_timeout_seconds": 15.0,
        "batch_delay_seconds": 0.5,
    },
    "sources": {
        "fast_providers": ["vidmoly", "sendvid", "vudeo"],
        "slow_providers": ["sibnet"],
    },
    "episode_cache": {
        "persist": False,
        "warm_enabled": True,
        "warm_delay_seconds": 1.0,
        "max_sessions": 3,
    },
}
