# -*- coding: utf-8 -*-
"""
Load balancer polling.

The balancer answers with its farm list, e.g.

    {"farms": [{"active": null, "enabled": "True",
                "name": "site1.domain.com-green", "nodes": null}],
     "hosts": null, "nodes": null, "response": null, "status": "success"}

The active colour is read from the first farm's name. Network and parse
problems are never raised to the caller: they come back as UNKNOWN with a
failure reason.
"""

import logging
from typing import Any

import httpx

from activenode.models import Classification, Region, VariantState


log = logging.getLogger(__name__)


def classify_name(name: str) -> VariantState:
    # Case-sensitive, blue checked first.
    if "blue" in name:
        return VariantState.BLUE
    if "green" in name:
        return VariantState.GREEN
    return VariantState.UNKNOWN


def farm_name(payload: Any) -> str:
    """Return farms[0].name or raise ValueError when the shape is wrong."""
    if not isinstance(payload, dict):
        raise ValueError("balancer response is not an object")
    farms = payload.get("farms")
    if not isinstance(farms, list) or not farms:
        raise ValueError("balancer response has no farms")
    first = farms[0]
    name = first.get("name") if isinstance(first, dict) else None
    if not isinstance(name, str) or not name:
        raise ValueError("first farm has no name")
    return name


async def classify(client: httpx.AsyncClient, region: Region) -> Classification:
    try:
        response = await client.get(region.endpoint)
        response.raise_for_status()
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
        log.warning("Balancer query failed for %s (%s): %s", region.name, region.endpoint, e)
        return Classification(VariantState.UNKNOWN, failure=f"balancer unreachable: {e}")

    try:
        name = farm_name(response.json())
    except ValueError as e:
        log.warning("Unexpected balancer response for %s: %s", region.name, e)
        return Classification(VariantState.UNKNOWN, failure=f"unexpected balancer response: {e}")

    state = classify_name(name)
    log.debug("Region %s farm %r -> %s", region.name, name, state.value)
    return Classification(state)
