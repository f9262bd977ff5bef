# -*- coding: utf-8 -*-
"""
Build lookup against the web host serving a region's active colour.

The host status page is free-form text such as

    SUCCESS: ServerName
    Build: [20210314.1.2730-new-cool-ui-feature]<br>
    Server IP: 172.0.0.1

The build is the value between the `Build:` label and the `<br>` terminator.
Square brackets around the value are not part of it.
"""

import logging
import re

import httpx


log = logging.getLogger(__name__)

BUILD_RX = re.compile(r"Build:\s*\[?(.*?)\]?\s*<br>")


def extract_build(text: str) -> str:
    m = BUILD_RX.search(text or "")
    return m.group(1).strip() if m else ""


async def lookup(client: httpx.AsyncClient, host_address: str) -> str:
    """Return the build served by `host_address`, or "" when unavailable."""
    try:
        response = await client.get(host_address)
        response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
        log.warning("Build lookup failed for %s: %s", host_address, e)
        return ""

    build = extract_build(response.text)
    if not build:
        log.warning("No build marker in response from %s", host_address)
    return build
