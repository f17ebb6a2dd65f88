"""
Configuration from environment variables (optionally loaded from a .env file).

    HN_LISTING_URL            - listing endpoint (default: newstories.json)
    HN_ITEM_URL               - item endpoint template with {id}
    HN_POLL_INTERVAL          - seconds between polling cycles (default: 5)
    HN_FETCH_LIMIT            - max ids considered per cycle, 0 = all (default: 20)
    HN_CHANNEL_CAPACITY       - ingest queue size (default: 500)
    HN_FETCH_TIMEOUT          - per-request timeout in seconds (default: 30)
    HN_MAX_CONCURRENT_FETCHES - cap on parallel item fetches, 0 = none (default: 0)
    HN_DEDUP_POLICY           - "prefix" or "difference" (default: prefix)
    HN_TRACK_IN_FLIGHT        - skip ids still being fetched (default: 1)
    HN_USER / HN_PASSWORD     - basic auth for the web UI (optional)
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

HN_API_BASE = "https://hacker-news.firebaseio.com/v0"
HN_NEW_STORIES = f"{HN_API_BASE}/newstories.json"
HN_ITEM = f"{HN_API_BASE}/item/{{id}}.json"

POLL_INTERVAL = 5  # seconds
FETCH_LIMIT = 20  # ids per cycle while testing against the live API
CHANNEL_CAPACITY = 500
FETCH_TIMEOUT = 30.0
DEDUP_POLICIES = ("prefix", "difference")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def load_env_file(path: Path):
    """Load KEY=VALUE lines into os.environ without overriding existing values."""
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            key, _, value = line.partition("=")
            os.environ.setdefault(key.strip(), value.strip())


def _int(env, name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _float(env, name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def _bool(env, name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    raw = raw.strip().lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


@dataclass
class Settings:
    listing_url: str = HN_NEW_STORIES
    item_url: str = HN_ITEM
    poll_interval: int = POLL_INTERVAL
    fetch_limit: int = FETCH_LIMIT
    channel_capacity: int = CHANNEL_CAPACITY
    fetch_timeout: float = FETCH_TIMEOUT
    max_concurrent_fetches: int = 0
    dedup_policy: str = "prefix"
    track_in_flight: bool = True
    auth_user: Optional[str] = None
    auth_pass: Optional[str] = None

    def __post_init__(self):
        if "{id}" not in self.item_url:
            raise ValueError(f"item URL must contain {{id}}: {self.item_url}")
        if self.dedup_policy not in DEDUP_POLICIES:
            raise ValueError(
                f"dedup policy must be one of {DEDUP_POLICIES}, got {self.dedup_policy!r}"
            )
        if self.channel_capacity < 1:
            raise ValueError("channel capacity must be at least 1")
        if self.poll_interval < 1:
            raise ValueError(f"poll interval must be >= 1, got {self.poll_interval}")
        if self.fetch_limit < 0:
            raise ValueError(f"fetch limit must be >= 0, got {self.fetch_limit}")
        if self.fetch_timeout <= 0:
            raise ValueError(f"fetch timeout must be positive, got {self.fetch_timeout}")
        if self.max_concurrent_fetches < 0:
            raise ValueError(
                f"max concurrent fetches must be >= 0, got {self.max_concurrent_fetches}"
            )

    @classmethod
    def from_env(cls, env=None, env_file: Optional[Path] = None) -> "Settings":
        """Build settings from ``env`` (default: os.environ).

        When ``env_file`` is given it is loaded into os.environ first.
        """
        if env_file is not None:
            load_env_file(env_file)
        if env is None:
            env = os.environ
        return cls(
            listing_url=env.get("HN_LISTING_URL") or HN_NEW_STORIES,
            item_url=env.get("HN_ITEM_URL") or HN_ITEM,
            poll_interval=_int(env, "HN_POLL_INTERVAL", POLL_INTERVAL, minimum=1),
            fetch_limit=_int(env, "HN_FETCH_LIMIT", FETCH_LIMIT),
            channel_capacity=_int(
                env, "HN_CHANNEL_CAPACITY", CHANNEL_CAPACITY, minimum=1
            ),
            fetch_timeout=_float(env, "HN_FETCH_TIMEOUT", FETCH_TIMEOUT),
            max_concurrent_fetches=_int(env, "HN_MAX_CONCURRENT_FETCHES", 0),
            dedup_policy=(env.get("HN_DEDUP_POLICY") or "prefix").strip().lower(),
            track_in_flight=_bool(env, "HN_TRACK_IN_FLIGHT", True),
            auth_user=env.get("HN_USER") or None,
            auth_pass=env.get("HN_PASSWORD") or None,
        )
