# -*- coding: utf-8 -*-
"""
Environment driven settings.

Required:
- SLACK_BOT_TOKEN, SLACK_APP_TOKEN

Optional (defaults in brackets):
- APP_BRAND [ActiveNode]
- ACTIVENODE_REGIONS_FILE  JSON list of {name, endpoint, green_host, blue_host, label?}
- ACTIVENODE_HTTP_TIMEOUT [10], ACTIVENODE_PIPELINE_TIMEOUT [20]
- ACTIVENODE_MAX_CONCURRENCY [0 = one task per region]
- ACTIVENODE_RELEASES_URL [https://deploy.app.com/releases/]
- ACTIVENODE_LOG_LEVEL [INFO]
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from activenode.errors import ConfigError
from activenode.models import Region


log = logging.getLogger(__name__)

DEFAULT_RELEASES_URL = "https://deploy.app.com/releases/"

DEFAULT_REGIONS: Tuple[Region, ...] = (
    Region(
        name="site1",
        endpoint="https://api1.domain.com/get",
        green_host="https://ServerGreen1.domain.com/",
        blue_host="https://ServerBlue1.domain.com/",
    ),
    Region(
        name="site2",
        endpoint="https://api2.domain.com/get",
        green_host="https://ServerGreen2.domain.com/",
        blue_host="https://ServerBlue2.domain.com/",
    ),
    Region(
        name="site3",
        endpoint="https://api3.domain.com/get",
        green_host="https://ServerGreen3.domain.com/",
        blue_host="https://ServerBlue3.domain.com/",
    ),
)

REGION_FIELDS = ("name", "endpoint", "green_host", "blue_host")


@dataclass(frozen=True)
class Settings:
    bot_token: str
    app_token: str
    regions: Tuple[Region, ...] = DEFAULT_REGIONS
    app_brand: str = "ActiveNode"
    http_timeout: float = 10.0
    pipeline_timeout: float = 20.0
    max_concurrency: int = 0
    releases_url: str = DEFAULT_RELEASES_URL
    log_level: str = "INFO"


def _float_env(env: Mapping[str, str], key: str, default: float) -> float:
    try:
        return float(env.get(key, default))
    except ValueError:
        log.warning("Ignoring invalid %s=%r, using %s", key, env.get(key), default)
        return default


def _int_env(env: Mapping[str, str], key: str, default: int) -> int:
    try:
        return int(env.get(key, default))
    except ValueError:
        log.warning("Ignoring invalid %s=%r, using %s", key, env.get(key), default)
        return default


def check_url(value: str, what: str) -> str:
    """Absolute http(s) URL or ConfigError."""
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, ValueError) as e:
        raise ConfigError(f"{what} is not a valid URL: {value!r} ({e})") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigError(f"{what} must be an absolute http(s) URL: {value!r}")
    return value


def validate_regions(regions: Tuple[Region, ...]) -> Tuple[Region, ...]:
    if not regions:
        raise ConfigError("at least one region must be configured")
    seen = set()
    for region in regions:
        if region.name in seen:
            raise ConfigError(f"duplicate region name: {region.name}")
        seen.add(region.name)
        check_url(region.endpoint, f"{region.name} endpoint")
        check_url(region.green_host, f"{region.name} green_host")
        check_url(region.blue_host, f"{region.name} blue_host")
    return regions


def parse_log_level(value: Optional[str], default: str = "INFO") -> str:
    name = (value or default).strip().upper()
    if isinstance(logging.getLevelName(name), int):
        return name
    log.warning("Ignoring invalid ACTIVENODE_LOG_LEVEL=%r, using %s", value, default)
    return default


def parse_regions(raw: Any) -> Tuple[Region, ...]:
    if not isinstance(raw, list):
        raise ConfigError("regions file must contain a JSON list")

    regions: List[Region] = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ConfigError(f"region #{i} is not an object")
        missing = [k for k in REGION_FIELDS if not item.get(k)]
        if missing:
            raise ConfigError(f"region #{i} is missing: {', '.join(missing)}")
        regions.append(
            Region(
                name=str(item["name"]),
                endpoint=str(item["endpoint"]),
                green_host=str(item["green_host"]),
                blue_host=str(item["blue_host"]),
                label=str(item.get("label") or ""),
            )
        )
    return validate_regions(tuple(regions))


def load_regions(path: Optional[str]) -> Tuple[Region, ...]:
    if not path:
        return DEFAULT_REGIONS
    try:
        with open(path, encoding="utf-8") as fh:
            raw = json.load(fh)
    except OSError as e:
        raise ConfigError(f"cannot read regions file {path}: {e}") from e
    except ValueError as e:
        raise ConfigError(f"regions file {path} is not valid JSON: {e}") from e
    return parse_regions(raw)


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env

    bot_token = env.get("SLACK_BOT_TOKEN", "").strip()
    app_token = env.get("SLACK_APP_TOKEN", "").strip()
    if not bot_token or not app_token:
        raise ConfigError("SLACK_BOT_TOKEN and SLACK_APP_TOKEN must be set")

    return Settings(
        bot_token=bot_token,
        app_token=app_token,
        regions=load_regions(env.get("ACTIVENODE_REGIONS_FILE", "").strip()),
        app_brand=env.get("APP_BRAND", "ActiveNode"),
        http_timeout=_float_env(env, "ACTIVENODE_HTTP_TIMEOUT", 10.0),
        pipeline_timeout=_float_env(env, "ACTIVENODE_PIPELINE_TIMEOUT", 20.0),
        max_concurrency=max(0, _int_env(env, "ACTIVENODE_MAX_CONCURRENCY", 0)),
        releases_url=env.get("ACTIVENODE_RELEASES_URL", DEFAULT_RELEASES_URL),
        log_level=parse_log_level(env.get("ACTIVENODE_LOG_LEVEL")),
    )


def describe(settings: Settings) -> Dict[str, Any]:
    """Loggable view of the settings, tokens excluded."""
    return {
        "app_brand": settings.app_brand,
        "regions": [r.name for r in settings.regions],
        "http_timeout": settings.http_timeout,
        "pipeline_timeout": settings.pipeline_timeout,
        "max_concurrency": settings.max_concurrency,
        "releases_url": settings.releases_url,
        "log_level": settings.log_level,
    }
