from __future__ import annotations

import json
from typing import Callable, Dict, Tuple

import httpx
import pytest

from activenode.models import Region


def balancer_body(farm_name: str) -> str:
    return json.dumps(
        {
            "farms": [{"active": None, "enabled": "True", "name": farm_name, "nodes": None}],
            "hosts": None,
            "nodes": None,
            "response": None,
            "status": "success",
        }
    )


def host_body(build: str) -> str:
    return f"SUCCESS: ServerName\n\tBuild: [{build}]<br>\n\tServer IP: 172.0.0.1"


Handler = Callable[[httpx.Request], httpx.Response]


def route_by_host(routes: Dict[str, Handler]) -> httpx.MockTransport:
    """Dispatch mock requests on the request host; unknown hosts -> ConnectError."""

    def handler(request: httpx.Request) -> httpx.Response:
        fn = routes.get(request.url.host)
        if fn is None:
            raise httpx.ConnectError("unreachable", request=request)
        return fn(request)

    return httpx.MockTransport(handler)


def text(body: str, status: int = 200) -> Handler:
    return lambda request: httpx.Response(status, text=body)


@pytest.fixture
def regions() -> Tuple[Region, ...]:
    return tuple(
        Region(
            name=f"site{i}",
            endpoint=f"https://api{i}.test/get",
            green_host=f"https://green{i}.test/",
            blue_host=f"https://blue{i}.test/",
        )
        for i in (1, 2, 3)
    )
